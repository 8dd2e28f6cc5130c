#!/usr/bin/env python3
"""Wrap a script into a self-extracting Windows batch launcher.

The generated ``.bat`` file does not ask ``cmd.exe`` to understand the wrapped
script. Instead every source line is escaped and echoed into a randomly named
temporary file at run time, the interpreter is pointed at that file, and the
file is removed afterwards. Optional blocks add an administrator check and a
trailer that deletes the launcher itself once it has run.

Typical usage from the repository root::

    python -m admintools.launcher_emitter --input deploy.ps1 --admin --self-delete

"""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import argparse
import codecs
import logging
import os
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from admintools.runtime import EXIT_CODES, atomic_writer, configure_logging

LOGGER = logging.getLogger(__name__)

DEFAULT_OUTPUT_SUFFIX = ".bat"
DEFAULT_INTERPRETER = "powershell"
POWERSHELL_HOSTS = ("powershell", "pwsh")
DEFAULT_ENCODING = "utf-8"
DEFAULT_SCRIPT_SUFFIX = ".ps1"
INTERPRETER_ENV_VAR = "ADMINTOOLS_INTERPRETER"
TEMP_SCRIPT_VARIABLE = "LAUNCHER_SCRIPT"
BLANK_LINE = "echo."
# "echo off", "echo on" and "echo /?" are commands, not text to print.
LITERAL_ECHO_PREFIX = "echo("
ARTIFACT_NEWLINE = "\r\n"

# Caret doubling must run first so later steps can add carets safely.
ESCAPE_SEQUENCE: tuple[tuple[str, str], ...] = (
    ("^", "^^"),
    ("|", "^|"),
    (">", "^>"),
    ("<", "^<"),
    ("%", "%%"),
    ("&", "^&"),
    ("(", "^("),
    (")", "^)"),
    ('"', '^"'),
)

PREAMBLE: tuple[str, ...] = (
    "@echo off",
    "color 07",
    "cls",
    'cd /d "%~dp0"',
)

ADMIN_CHECK: tuple[str, ...] = (
    "net session >nul 2>&1",
    "if %errorLevel% neq 0 (",
    "    echo This launcher must be run as administrator.",
    "    echo Right-click the file and choose 'Run as administrator'.",
    "    pause",
    "    exit /b 1",
    ")",
)

SELF_DELETE_TRAILER = '(goto) 2>nul & del "%~f0"'


class LauncherError(RuntimeError):
    """Raised when a launcher cannot be produced."""


class SourceScriptError(LauncherError):
    """Raised when the script to wrap cannot be read or decoded."""


class SourceScriptMissingError(SourceScriptError):
    """Raised when the script to wrap does not exist."""


@dataclass(frozen=True)
class ConversionOptions:
    """Immutable parameters for a single conversion run."""

    admin_check: bool = False
    hide_terminal: bool = False
    self_delete: bool = False
    extra_interpreter_args: str = ""
    interpreter: str = DEFAULT_INTERPRETER
    script_suffix: str = DEFAULT_SCRIPT_SUFFIX
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self) -> None:
        if not is_powershell_host(self.interpreter):
            raise LauncherError(
                f"Unsupported interpreter '{self.interpreter}'; expected one of: "
                + ", ".join(POWERSHELL_HOSTS)
            )
        try:
            codecs.lookup(self.encoding)
        except LookupError as exc:
            raise LauncherError(f"Unknown encoding '{self.encoding}'") from exc


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of :func:`convert`; truthy when the artefact was written."""

    success: bool
    output_path: Path | None = None
    body_lines: int = 0
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success


def escape_line(line: str) -> str:
    """Escape ``cmd.exe`` meta-characters so *line* survives ``echo`` verbatim."""

    for pattern, replacement in ESCAPE_SEQUENCE:
        line = line.replace(pattern, replacement)
    return line


def render_line(line: str) -> str:
    """Return the ``echo`` instruction that reproduces one source line."""

    stripped = line.strip()
    if not stripped:
        return BLANK_LINE
    if stripped.lower() in ("on", "off") or stripped.startswith("/?"):
        return f"{LITERAL_ECHO_PREFIX}{escape_line(line)}"
    return f"echo {escape_line(line)}"


def is_powershell_host(interpreter: str) -> bool:
    """Return True when *interpreter* names ``powershell`` or ``pwsh``, with or without a path."""

    name = interpreter.replace("\\", "/").rsplit("/", 1)[-1].strip('"').lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name in POWERSHELL_HOSTS


def source_encoding(encoding: str) -> str:
    """Encoding used to read the script; UTF-8 sources may carry a BOM."""

    if codecs.lookup(encoding).name == "utf-8":
        return "utf-8-sig"
    return encoding


def random_script_name(suffix: str = DEFAULT_SCRIPT_SUFFIX) -> str:
    """Build a temporary file name from several independent random tokens."""

    tokens = (uuid.uuid4().hex[:8] for _ in range(3))
    return "launcher-" + "-".join(tokens) + suffix


def default_output_path(source_path: Path | str) -> Path:
    """Derive the artefact location by appending ``.bat`` to *source_path*."""

    source = Path(source_path)
    return source.with_name(source.name + DEFAULT_OUTPUT_SUFFIX)


def interpreter_command(options: ConversionOptions) -> str:
    parts = [options.interpreter, "-NoProfile", "-ExecutionPolicy", "Bypass"]
    if options.hide_terminal:
        parts.extend(["-WindowStyle", "Hidden"])
    parts.extend(["-File", f'"%{TEMP_SCRIPT_VARIABLE}%"'])
    extra = options.extra_interpreter_args.strip()
    if extra:
        parts.append(extra)
    return " ".join(parts)


def iter_artifact_lines(
    source_lines: Iterable[str],
    options: ConversionOptions,
    *,
    script_name_factory: Callable[[str], str] = random_script_name,
) -> Iterator[str]:
    """Yield every line of the launcher in order, without line terminators."""

    yield from PREAMBLE
    if options.admin_check:
        yield from ADMIN_CHECK

    script_name = script_name_factory(options.script_suffix)
    yield f'set "{TEMP_SCRIPT_VARIABLE}=%TEMP%\\{script_name}"'
    yield "("
    for line in source_lines:
        yield render_line(line.rstrip("\r\n"))
    yield f') > "%{TEMP_SCRIPT_VARIABLE}%"'
    yield interpreter_command(options)
    yield f'del "%{TEMP_SCRIPT_VARIABLE}%" >nul 2>&1'
    if options.self_delete:
        yield SELF_DELETE_TRAILER


def build_artifact(
    source_lines: Iterable[str],
    options: ConversionOptions,
    *,
    script_name_factory: Callable[[str], str] = random_script_name,
) -> str:
    """Render the whole launcher into a single CRLF terminated string."""

    lines = iter_artifact_lines(
        source_lines, options, script_name_factory=script_name_factory
    )
    return "".join(line + ARTIFACT_NEWLINE for line in lines)


def convert(
    source_path: Path | str,
    output_path: Path | str | None = None,
    options: ConversionOptions | None = None,
    *,
    script_name_factory: Callable[[str], str] = random_script_name,
) -> ConversionResult:
    """Convert *source_path* into a launcher written to *output_path*.

    Failures are reported through the returned :class:`ConversionResult`
    rather than raised, so interactive front-ends can display the message
    directly. Use :func:`write_launcher` when an exception is preferred.
    """

    try:
        destination, body_lines = write_launcher(
            source_path,
            output_path,
            options,
            script_name_factory=script_name_factory,
        )
    except LauncherError as exc:
        LOGGER.error("%s", exc)
        return ConversionResult(success=False, error=str(exc))
    return ConversionResult(success=True, output_path=destination, body_lines=body_lines)


def write_launcher(
    source_path: Path | str,
    output_path: Path | str | None = None,
    options: ConversionOptions | None = None,
    *,
    script_name_factory: Callable[[str], str] = random_script_name,
) -> tuple[Path, int]:
    """Stream *source_path* into a launcher and return ``(path, body_lines)``."""

    source = Path(source_path)
    if not source.is_file():
        raise SourceScriptMissingError(f"Source script does not exist: {source}")
    destination = Path(output_path) if output_path else default_output_path(source)
    options = options or ConversionOptions()

    body_lines = 0

    def _counted(handle: Iterable[str]) -> Iterator[str]:
        nonlocal body_lines
        try:
            for line in handle:
                body_lines += 1
                yield line
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceScriptError(
                f"Unable to read {source} as {options.encoding}: {exc}"
            ) from exc

    LOGGER.info("Converting %s into launcher %s", source, destination)
    try:
        reader = source.open("r", encoding=source_encoding(options.encoding))
    except OSError as exc:
        raise SourceScriptError(f"Unable to open source script {source}: {exc}") from exc

    # The launcher is written in the source encoding so echo reproduces the same bytes.
    try:
        with reader, atomic_writer(
            destination, encoding=options.encoding, newline=""
        ) as writer:
            for line in iter_artifact_lines(
                _counted(reader), options, script_name_factory=script_name_factory
            ):
                writer.write(line + ARTIFACT_NEWLINE)
    except UnicodeEncodeError as exc:
        raise LauncherError(
            f"Launcher text cannot be encoded as {options.encoding}: {exc}"
        ) from exc
    except OSError as exc:
        raise LauncherError(f"Unable to write launcher {destination}: {exc}") from exc

    LOGGER.info("Wrote %d script lines to %s", body_lines, destination)
    return destination, body_lines


def options_from_args(args: argparse.Namespace) -> ConversionOptions:
    """Assemble :class:`ConversionOptions` from parsed command line arguments."""

    interpreter = getattr(args, "interpreter", None) or os.getenv(
        INTERPRETER_ENV_VAR, DEFAULT_INTERPRETER
    )
    return ConversionOptions(
        admin_check=bool(getattr(args, "admin", False)),
        hide_terminal=bool(getattr(args, "hide_terminal", False)),
        self_delete=bool(getattr(args, "self_delete", False)),
        extra_interpreter_args=getattr(args, "args", None) or "",
        interpreter=interpreter,
        encoding=getattr(args, "encoding", None) or DEFAULT_ENCODING,
    )


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the launcher options on *parser*."""

    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Script file to wrap.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Destination launcher (default: <input>{DEFAULT_OUTPUT_SUFFIX}).",
    )
    parser.add_argument(
        "--admin",
        action="store_true",
        help="Abort at run time unless the launcher runs with administrator rights.",
    )
    parser.add_argument(
        "--self-delete",
        action="store_true",
        help="Remove the launcher from disk once the script has finished.",
    )
    parser.add_argument(
        "--hide-terminal",
        action="store_true",
        help="Start the interpreter with a hidden window.",
    )
    parser.add_argument(
        "--args",
        default="",
        help="Extra interpreter arguments appended verbatim (use --args=-Flag for leading dashes).",
    )
    parser.add_argument(
        "--interpreter",
        default=None,
        help=(
            "PowerShell host, powershell or pwsh, optionally with a path "
            f"(default: ${INTERPRETER_ENV_VAR} or {DEFAULT_INTERPRETER})."
        ),
    )
    parser.add_argument(
        "--encoding",
        default=DEFAULT_ENCODING,
        help=(
            "Encoding of the script; the launcher is written in the same encoding "
            f"(default: {DEFAULT_ENCODING}, e.g. cp1252 for ANSI scripts)."
        ),
    )


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
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        options = options_from_args(args)
    except LauncherError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CODES["invalid_arguments"]

    try:
        destination, _ = write_launcher(args.input, args.output, options)
    except SourceScriptError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CODES["missing_resource"]
    except LauncherError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CODES["io_failure"]

    print(str(destination))
    return EXIT_CODES["success"]


if __name__ == "__main__":
    sys.exit(main())
