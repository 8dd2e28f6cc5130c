"""Public runtime helpers for the administrative tools."""

from __future__ import annotations

# SPDX-License-Identifier: MIT
from .._runtime_core import (
    LoadedEnvironment,
    UTCFormatter,
    apply_environment,
    configure_logging,
    parse_env_file,
)
from .atomic import atomic_writer, write_text_atomic
from .exit_codes import EXIT_CODES

__all__ = [
    "EXIT_CODES",
    "LoadedEnvironment",
    "UTCFormatter",
    "apply_environment",
    "atomic_writer",
    "configure_logging",
    "parse_env_file",
    "write_text_atomic",
]
