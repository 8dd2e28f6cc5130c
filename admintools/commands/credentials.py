"""Read access tokens from the local Azure credential cache."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

from argparse import Namespace, _SubParsersAction

from admintools import azure_token
from admintools.commands.base import CommandError, register
from admintools.runtime import EXIT_CODES


def build_parser(subparsers: _SubParsersAction[object]) -> None:
    parser = subparsers.add_parser(
        "get-token",
        help="Print the newest valid Azure access token from the local cache",
    )
    azure_token.add_arguments(parser)
    parser.set_defaults(command="get-token", handler=handle)


@register("get-token")
def handle(args: Namespace) -> int:
    try:
        token = azure_token.get_access_token(
            args.tenant,
            subscription=args.subscription,
            scope=args.scope,
            config_dir=args.config_dir,
        )
    except azure_token.TokenCacheError as exc:
        raise CommandError(str(exc), exit_code=EXIT_CODES["missing_resource"]) from exc

    print(azure_token.render_token(token, as_json=args.json))
    return EXIT_CODES["success"]
