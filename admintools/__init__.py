"""Administrative utility scripts.

Each tool is a standalone module that can be run with ``python -m``:

* :mod:`admintools.launcher_emitter` wraps a script into a self-extracting
  Windows batch launcher.
* :mod:`admintools.column_copy` copies a column between delimited files.
* :mod:`admintools.azure_token` prints a cached Azure access token.

:mod:`admintools.cli` exposes the same tools as subcommands of a single entry
point. Importing the package has no side-effects; shared helpers live in
:mod:`admintools.runtime`.
"""

# SPDX-License-Identifier: MIT

from .runtime import (  # noqa: F401 - re-export for convenience
    EXIT_CODES,
    atomic_writer,
    configure_logging,
    write_text_atomic,
)

__all__ = [
    "EXIT_CODES",
    "atomic_writer",
    "configure_logging",
    "write_text_atomic",
]
__version__ = "0.1.0"
