#!/usr/bin/env python3
"""Print a cached Azure access token without contacting the identity platform.

The Azure CLI keeps its MSAL token cache and subscription profile inside the
Azure config directory (``$AZURE_CONFIG_DIR`` or ``~/.azure``). This tool reads
both files and returns the most recently issued, still valid access token for
a tenant. The tenant can be given directly, resolved from a subscription, or
taken from the default subscription of the profile.

Typical usage from the repository root::

    python -m admintools.azure_token --subscription "Production"

"""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from admintools.runtime import EXIT_CODES, configure_logging

LOGGER = logging.getLogger(__name__)

CONFIG_DIR_ENV_VAR = "AZURE_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path("~/.azure")
TOKEN_CACHE_FILE = "msal_token_cache.json"
PROFILE_FILE = "azureProfile.json"


class TokenCacheError(RuntimeError):
    """Raised when the local credential cache cannot be read or interpreted."""


class TokenNotFoundError(TokenCacheError):
    """Raised when no valid access token matches the request."""


@dataclass(frozen=True)
class CachedAccessToken:
    """A single ``AccessToken`` entry of the MSAL cache."""

    secret: str = field(repr=False)
    tenant_id: str
    target: str
    cached_at: datetime
    expires_on: datetime
    client_id: str = ""

    def is_valid(self, now: datetime) -> bool:
        return self.expires_on > now

    def to_dict(self) -> dict[str, Any]:
        return {
            "accessToken": self.secret,
            "tenant": self.tenant_id,
            "scope": self.target,
            "expiresOn": self.expires_on.isoformat(),
            "cachedAt": self.cached_at.isoformat(),
        }


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """Return the Azure config directory honouring ``$AZURE_CONFIG_DIR``."""

    if config_dir:
        return Path(config_dir).expanduser()
    env_value = os.getenv(CONFIG_DIR_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return DEFAULT_CONFIG_DIR.expanduser()


def _load_json(path: Path) -> Mapping[str, Any]:
    if not path.is_file():
        raise TokenCacheError(f"Azure credential file not found: {path}")
    try:
        # azureProfile.json is written with a UTF-8 byte order mark.
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError) as exc:
        raise TokenCacheError(f"Unable to read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise TokenCacheError(f"Unexpected content in {path}")
    return payload


def _timestamp(raw: Any) -> datetime:
    return datetime.fromtimestamp(int(raw), tz=timezone.utc)


def iter_access_tokens(cache: Mapping[str, Any]) -> Iterator[CachedAccessToken]:
    """Yield parsed ``AccessToken`` entries, skipping malformed records."""

    section = cache.get("AccessToken") or {}
    for key, entry in section.items():
        try:
            yield CachedAccessToken(
                secret=str(entry["secret"]),
                tenant_id=str(entry.get("realm", "")),
                target=str(entry.get("target", "")),
                cached_at=_timestamp(entry.get("cached_at", 0)),
                expires_on=_timestamp(entry["expires_on"]),
                client_id=str(entry.get("client_id", "")),
            )
        except (AttributeError, KeyError, TypeError, ValueError):
            LOGGER.debug("Skipping malformed token cache entry %s", key)


def resolve_tenant(
    profile: Mapping[str, Any], *, subscription: str | None = None
) -> str:
    """Map *subscription* (id or name) or the default subscription to a tenant."""

    subscriptions = profile.get("subscriptions") or []
    if subscription:
        wanted = subscription.lower()
        for entry in subscriptions:
            if wanted in (str(entry.get("id", "")).lower(), str(entry.get("name", "")).lower()):
                return str(entry["tenantId"])
        raise TokenCacheError(f"Subscription '{subscription}' is not present in the Azure profile")

    for entry in subscriptions:
        if entry.get("isDefault"):
            return str(entry["tenantId"])
    raise TokenCacheError("The Azure profile has no default subscription; pass --tenant")


def select_token(
    tokens: Iterable[CachedAccessToken],
    tenant: str,
    *,
    scope: str | None = None,
    now: datetime | None = None,
) -> CachedAccessToken:
    """Pick the newest valid token for *tenant*, optionally filtered by *scope*."""

    now = now or datetime.now(timezone.utc)
    tenant_key = tenant.lower()
    candidates = [
        token
        for token in tokens
        if token.tenant_id.lower() == tenant_key
        and (not scope or scope.lower() in token.target.lower())
        and token.is_valid(now)
    ]
    if not candidates:
        raise TokenNotFoundError(
            f"No valid cached access token for tenant {tenant}; run 'az login' to refresh the cache"
        )
    return max(candidates, key=lambda token: token.cached_at)


def get_access_token(
    tenant: str | None = None,
    *,
    subscription: str | None = None,
    scope: str | None = None,
    config_dir: Path | str | None = None,
    now: datetime | None = None,
) -> CachedAccessToken:
    """Return the most recently issued, non-expired token for the requested tenant."""

    directory = resolve_config_dir(config_dir)
    if not tenant:
        tenant = resolve_tenant(_load_json(directory / PROFILE_FILE), subscription=subscription)
        LOGGER.debug("Resolved tenant %s from the Azure profile", tenant)

    cache = _load_json(directory / TOKEN_CACHE_FILE)
    token = select_token(iter_access_tokens(cache), tenant, scope=scope, now=now)
    LOGGER.info(
        "Using cached token for tenant %s (expires %s)",
        token.tenant_id,
        token.expires_on.isoformat(),
    )
    return token


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the token lookup options on *parser*."""

    target = parser.add_mutually_exclusive_group()
    target.add_argument("--tenant", default=None, help="Tenant id to look up.")
    target.add_argument(
        "--subscription",
        default=None,
        help="Subscription id or name whose tenant should be used.",
    )
    parser.add_argument(
        "--scope",
        default=None,
        help="Only consider tokens whose scope contains this text.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help=f"Azure config directory (default: ${CONFIG_DIR_ENV_VAR} or ~/.azure).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print token metadata as JSON instead of the bare token.",
    )


def render_token(token: CachedAccessToken, *, as_json: bool) -> str:
    if as_json:
        return json.dumps(token.to_dict(), indent=2)
    return token.secret


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""

    parser = argparse.ArgumentParser(description=__doc__)
    add_arguments(parser)
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        token = get_access_token(
            args.tenant,
            subscription=args.subscription,
            scope=args.scope,
            config_dir=args.config_dir,
        )
    except TokenCacheError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CODES["missing_resource"]

    print(render_token(token, as_json=args.json))
    return EXIT_CODES["success"]


if __name__ == "__main__":
    sys.exit(main())
