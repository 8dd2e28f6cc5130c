# SPDX-License-Identifier: MIT
"""Pytest setup shared by every test module.

Ensures the repository root is importable so tests resolve the in-tree
``admintools`` package without installing it, and keeps log output from
tests readable by resetting the root logger after each test.
"""

from __future__ import annotations

import logging
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """``configure_logging`` replaces root handlers; undo that between tests."""

    from admintools.runtime import UTCFormatter

    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, UTCFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
