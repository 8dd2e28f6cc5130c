"""Copy a column between delimited text files."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

from argparse import Namespace, _SubParsersAction

from admintools import column_copy
from admintools.commands.base import CommandError, register
from admintools.runtime import EXIT_CODES


def build_parser(subparsers: _SubParsersAction[object]) -> None:
    parser = subparsers.add_parser(
        "copy-column",
        help="Copy a named column from one delimited file into another by row position",
    )
    column_copy.add_arguments(parser)
    parser.set_defaults(command="copy-column", handler=handle)


@register("copy-column")
def handle(args: Namespace) -> int:
    try:
        result = column_copy.copy_column(
            args.source,
            args.destination,
            args.column,
            delimiter=args.delimiter,
            encoding=args.encoding,
        )
    except column_copy.ColumnCopyError as exc:
        raise CommandError(str(exc), exit_code=EXIT_CODES["missing_resource"]) from exc

    if not result:
        # copy_column has already logged the reason.
        return EXIT_CODES["validation_failed"]
    return EXIT_CODES["success"]
