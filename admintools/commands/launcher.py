"""Build self-extracting batch launchers from scripts."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import logging
from argparse import Namespace, _SubParsersAction

from admintools import launcher_emitter
from admintools.commands.base import CommandError, register
from admintools.runtime import EXIT_CODES

LOGGER = logging.getLogger(__name__)


def build_parser(subparsers: _SubParsersAction[object]) -> None:
    parser = subparsers.add_parser(
        "build-launcher",
        help="Wrap a script into a self-extracting Windows batch launcher",
    )
    launcher_emitter.add_arguments(parser)
    parser.set_defaults(command="build-launcher", handler=handle)


@register("build-launcher")
def handle(args: Namespace) -> int:
    try:
        options = launcher_emitter.options_from_args(args)
    except launcher_emitter.LauncherError as exc:
        raise CommandError(str(exc), exit_code=EXIT_CODES["invalid_arguments"]) from exc

    try:
        destination, body_lines = launcher_emitter.write_launcher(
            args.input, args.output, options
        )
    except launcher_emitter.SourceScriptError as exc:
        raise CommandError(str(exc), exit_code=EXIT_CODES["missing_resource"]) from exc
    except launcher_emitter.LauncherError as exc:
        raise CommandError(str(exc), exit_code=EXIT_CODES["io_failure"]) from exc

    LOGGER.info("Launcher ready: %s (%d script lines)", destination, body_lines)
    print(str(destination))
    return EXIT_CODES["success"]
