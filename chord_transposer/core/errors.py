"""
Exceptions raised while parsing and transposing chord sheets.

Chord-level errors are normally collected as warnings rather than raised,
in the same way parse errors are collected line by line. Only
InvalidKeyError aborts a transposition.
"""

from __future__ import annotations

from typing import Optional, Tuple


class ChordError(Exception):
    """Base error for a single chord occurrence in a sheet."""

    def __init__(
        self,
        message: str,
        span: Optional[Tuple[int, int]] = None,
        line: int = 1,
        text: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.span = span
        self.line = line
        self.text = text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, span={self.span}, line={self.line})"


class MalformedChordError(ChordError):
    """Bracket contents don't start with a note name, or the bracket is never closed."""


class UnsupportedChordError(ChordError):
    """The root parsed but the quality suffix is not recognized."""


class InvalidKeyError(ValueError):
    """Source or target key is missing or cannot be parsed."""
