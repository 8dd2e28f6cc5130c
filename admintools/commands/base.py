"""Common helper utilities shared between CLI commands."""
from __future__ import annotations

# SPDX-License-Identifier: MIT
import logging
from typing import Callable, MutableMapping

LOGGER = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command cannot be executed successfully.

    ``exit_code`` lets handlers pick a specific status from
    :data:`admintools.runtime.EXIT_CODES`.
    """

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


_REGISTRY: MutableMapping[str, Callable[[object], int]] = {}


def register(name: str) -> Callable[[Callable[[object], int]], Callable[[object], int]]:
    """Decorator used by subcommand modules to expose their handlers."""

    def decorator(func: Callable[[object], int]) -> Callable[[object], int]:
        _REGISTRY[name] = func
        return func

    return decorator


def get_handler(name: str) -> Callable[[object], int]:
    try:
        return _REGISTRY[name]
    except KeyError as exc:  # pragma: no cover - argparse rejects unknown commands
        raise CommandError(f"Unknown command '{name}'") from exc
