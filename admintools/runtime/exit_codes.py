"""Shared exit codes for the administrative tools."""

from __future__ import annotations

# SPDX-License-Identifier: MIT

EXIT_CODES: dict[str, int] = {
    "success": 0,
    "invalid_arguments": 64,
    "validation_failed": 65,
    "missing_resource": 66,
    "io_failure": 71,
    "internal_error": 1,
    "interrupted": 130,
}
