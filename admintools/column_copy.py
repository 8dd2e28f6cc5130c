#!/usr/bin/env python3
"""Copy one named column between two delimited text files.

Rows are matched by position: row ``n`` of the source feeds row ``n`` of the
destination. The copy is refused when the column is missing from the source,
already present in the destination, or when the destination has fewer rows
than the source. Destination rows beyond the end of the source receive an
empty string.

Typical usage from the repository root::

    python -m admintools.column_copy users.csv report.csv --column Name

"""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import pandas as pd

from admintools.runtime import EXIT_CODES, atomic_writer, configure_logging

LOGGER = logging.getLogger(__name__)
DEFAULT_DELIMITER = ","
DEFAULT_ENCODING = "utf-8"


class ColumnCopyError(RuntimeError):
    """Raised when an input file cannot be read or the result cannot be written."""


@dataclass(frozen=True)
class ColumnCopyResult:
    """Outcome of :func:`copy_column`; truthy when the destination was updated."""

    success: bool
    column: str
    copied_rows: int = 0
    padded_rows: int = 0
    message: str = ""

    def __bool__(self) -> bool:
        return self.success


def read_table(path: Path, *, delimiter: str, encoding: str) -> pd.DataFrame:
    """Load *path* keeping every cell as text, so values round-trip unchanged."""

    if not path.is_file():
        raise ColumnCopyError(f"File does not exist: {path}")
    try:
        frame = pd.read_csv(
            path,
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            # In a one-column file an empty cell is a blank line; it is still a row.
            skip_blank_lines=False,
            encoding=encoding,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise ColumnCopyError(f"Unable to read {path}: {exc}") from exc
    # Blank lines are parsed as NaN even with keep_default_na disabled.
    return frame.fillna("")


def _reject(column: str, message: str) -> ColumnCopyResult:
    LOGGER.error("%s", message)
    return ColumnCopyResult(success=False, column=column, message=message)


def copy_column(
    source: Path | str,
    destination: Path | str,
    column: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    encoding: str = DEFAULT_ENCODING,
) -> ColumnCopyResult:
    """Append *column* from *source* to *destination* by row position."""

    source_path = Path(source)
    destination_path = Path(destination)

    source_frame = read_table(source_path, delimiter=delimiter, encoding=encoding)
    destination_frame = read_table(destination_path, delimiter=delimiter, encoding=encoding)

    if column not in source_frame.columns:
        return _reject(column, f"Column '{column}' was not found in {source_path}")
    if column in destination_frame.columns:
        return _reject(column, f"Column '{column}' already exists in {destination_path}")
    if len(destination_frame) < len(source_frame):
        return _reject(
            column,
            f"{destination_path} has {len(destination_frame)} rows but "
            f"{source_path} has {len(source_frame)}; refusing to truncate",
        )

    values = source_frame[column].reset_index(drop=True)
    destination_frame = destination_frame.reset_index(drop=True)
    destination_frame[column] = values.reindex(destination_frame.index, fill_value="")

    try:
        with atomic_writer(destination_path, encoding=encoding, newline="") as handle:
            destination_frame.to_csv(handle, sep=delimiter, index=False)
    except OSError as exc:
        raise ColumnCopyError(f"Unable to write {destination_path}: {exc}") from exc

    copied = len(source_frame)
    padded = len(destination_frame) - copied
    LOGGER.info(
        "Copied column '%s' into %s (%d values, %d padded)",
        column,
        destination_path,
        copied,
        padded,
    )
    return ColumnCopyResult(
        success=True,
        column=column,
        copied_rows=copied,
        padded_rows=padded,
        message=f"Copied {copied} values of '{column}'",
    )


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the column copy options on *parser*."""

    parser.add_argument("source", type=Path, help="File providing the column.")
    parser.add_argument("destination", type=Path, help="File receiving the column.")
    parser.add_argument("--column", required=True, help="Name of the column to copy.")
    parser.add_argument(
        "--delimiter",
        default=DEFAULT_DELIMITER,
        help=f"Field delimiter used by both files (default: '{DEFAULT_DELIMITER}').",
    )
    parser.add_argument(
        "--encoding",
        default=DEFAULT_ENCODING,
        help=f"Text encoding of both files (default: {DEFAULT_ENCODING}).",
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
        result = copy_column(
            args.source,
            args.destination,
            args.column,
            delimiter=args.delimiter,
            encoding=args.encoding,
        )
    except ColumnCopyError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CODES["missing_resource"]

    if not result:
        return EXIT_CODES["validation_failed"]
    return EXIT_CODES["success"]


if __name__ == "__main__":
    sys.exit(main())
