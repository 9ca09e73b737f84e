"""Exceptions raised by the grading engine."""

from __future__ import annotations

from typing import Dict, Sequence


class GradingError(Exception):
    """Base class for grading configuration errors."""


class InvalidPath(GradingError, LookupError):
    """Raised when a path does not resolve to an existing node."""

    def __init__(self, path: Sequence[str], message: str | None = None):
        self.path = list(path)
        super().__init__(message or f"Path '{'.'.join(self.path)}' does not exist.")


class KeyNotFound(GradingError, LookupError):
    """Raised when a child key is absent from its parent."""

    def __init__(self, path: Sequence[str], key: str):
        self.path = list(path)
        self.key = key
        parent = ".".join(self.path) or "<root>"
        super().__init__(f"Key '{key}' not found under '{parent}'.")


class ValidationError(GradingError, ValueError):
    """Raised when a grading configuration cannot be saved."""

    def __init__(self, message: str, details: Dict[str, str] | None = None):
        self.details = details or {}
        super().__init__(message)


__all__ = ["GradingError", "InvalidPath", "KeyNotFound", "ValidationError"]
