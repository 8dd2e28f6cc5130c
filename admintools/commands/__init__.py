"""Command implementations for the consolidated admintools CLI."""

from __future__ import annotations

# SPDX-License-Identifier: MIT
from . import columns, credentials, launcher  # noqa: F401
from .base import CommandError, register

__all__ = ["CommandError", "register"]
