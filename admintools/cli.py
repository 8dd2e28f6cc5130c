"""Unified entry point for the administrative tools."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import argparse
import logging
from pathlib import Path
from typing import Sequence

from admintools.commands import CommandError
from admintools.commands import base as command_base
from admintools.runtime import (
    EXIT_CODES,
    apply_environment,
    configure_logging,
    parse_env_file,
)

LOGGER = logging.getLogger(__name__)
DEFAULT_ENV_PATHS = (Path("admintools/.env"), Path(".env"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="admintools", description=__doc__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (can be provided multiple times).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease log verbosity (can be provided multiple times).",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Explicit path to an environment file. Defaults to admintools/.env then .env.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    from admintools.commands import columns, credentials, launcher

    launcher.build_parser(subparsers)
    columns.build_parser(subparsers)
    credentials.build_parser(subparsers)

    return parser


def _determine_log_level(verbose: int, quiet: int) -> int:
    base_level = logging.INFO
    level = base_level - (verbose * 10) + (quiet * 10)
    return max(logging.DEBUG, min(logging.CRITICAL, level))


def _load_environment(env_file: Path | None) -> None:
    candidates = [env_file] if env_file else list(DEFAULT_ENV_PATHS)
    for candidate in candidates:
        if candidate is None:
            continue
        env = parse_env_file(candidate)
        if env:
            # Variables already exported by the caller take precedence.
            apply_environment(env.variables, override=False)
            LOGGER.debug("Loaded environment overrides from %s", candidate)
            break


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(_determine_log_level(args.verbose, args.quiet))

    _load_environment(args.env_file)

    handler = command_base.get_handler(getattr(args, "command"))

    try:
        return handler(args)
    except CommandError as exc:
        LOGGER.error("%s", exc)
        return exc.exit_code
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted")
        return EXIT_CODES["interrupted"]


if __name__ == "__main__":  # pragma: no cover - exercised by CLI
    raise SystemExit(main())
