"""Write files so that readers never observe a partially written artefact."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

import os
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator


@contextmanager
def atomic_writer(
    destination: Path | str,
    *,
    encoding: str = "utf-8",
    newline: str | None = None,
) -> Iterator[IO[str]]:
    """Yield a text handle whose contents replace *destination* on success.

    The data is staged in a sibling ``.tmp`` file so that :func:`os.replace`
    stays on one filesystem. On any error the staging file is removed and the
    previous destination, if any, is left untouched.
    """

    destination_path = Path(destination)
    tmp_path = destination_path.with_name(
        f".{destination_path.name}.{uuid.uuid4().hex[:8]}.tmp"
    )
    try:
        with tmp_path.open("w", encoding=encoding, newline=newline) as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, destination_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_text_atomic(
    destination: Path | str,
    text: str,
    *,
    encoding: str = "utf-8",
    newline: str | None = None,
) -> Path:
    """Convenience wrapper around :func:`atomic_writer` for in-memory payloads."""

    with atomic_writer(destination, encoding=encoding, newline=newline) as handle:
        handle.write(text)
    return Path(destination)
