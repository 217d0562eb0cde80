"""
Custom exception hierarchy for togif.

All togif exceptions inherit from ToGifError so callers can catch
the entire family with a single except clause.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ToGifError(Exception):
    """Base exception for all togif errors."""


class InputError(ToGifError):
    """Raised when input files cannot be resolved, found, or read."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None) -> None:
        super().__init__(message)
        self.path = path


class PatternError(InputError):
    """Raised when an input pattern is not a valid regular expression."""

    def __init__(self, message: str, pattern: str) -> None:
        super().__init__(message, path=pattern)
        self.pattern = pattern


class DecodeError(ToGifError):
    """Raised when a source image is malformed."""

    def __init__(self, message: str, path: Union[str, Path]) -> None:
        super().__init__(message)
        self.path = path


class ValidationError(ToGifError):
    """Raised for invalid parameters such as a negative frame delay."""


class OutputError(ToGifError):
    """Raised when the output document cannot be written."""

    def __init__(self, message: str, path: Union[str, Path]) -> None:
        super().__init__(message)
        self.path = path
