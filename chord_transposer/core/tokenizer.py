"""
Chord Sheet Tokenizer - find inline chords in ChordPro-style text.

Chords sit in square brackets inside lyric lines:

    {title: Amazing Grace}
    {key: G}

    [Verse 1]
    A-[G]mazing [G7]grace how [C]sweet the [G]sound

Only bracketed chord symbols in lyric lines are touched. Lyrics,
# comment lines and {...} directives (brackets inside them included),
section labels like [Verse 1], annotations like [*Riff] and no-chord
markers ([N.C.]) are passed through unchanged.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple
import logging

from chord_transposer.core.chord import ChordToken, parse_chord
from chord_transposer.core.errors import (
    ChordError,
    InvalidKeyError,
    MalformedChordError,
    UnsupportedChordError,
)
from chord_transposer.core.keys import Key, Mode
from chord_transposer.core.quality import QualityKind

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

_MINOR_KINDS = {
    QualityKind.MINOR,
    QualityKind.MINOR7,
    QualityKind.MINOR_MAJOR7,
    QualityKind.MINOR_SIXTH,
}


class ChordSheetTokenizer:
    """
    Extracts chord tokens, with absolute offsets, from chord-sheet text.

    Problems are collected in `errors` instead of being raised, one entry
    per offending bracket.
    """

    SECTION_PATTERN = re.compile(
        r"^(?:intro|verse|pre-?chorus|chorus|bridge|outro|tag|interlude|instrumental|"
        r"ending|refrain|coda|vamp|turnaround|break|solo)\b",
        re.IGNORECASE,
    )
    NO_CHORD_PATTERN = re.compile(r"^(?:N\.?C\.?|%|/)$", re.IGNORECASE)
    KEY_DIRECTIVE_PATTERN = re.compile(r"\{\s*key\s*:\s*([^}]*)\}", re.IGNORECASE)
    DIRECTIVE_PATTERN = re.compile(r"\{[^}]*\}?")

    def __init__(self):
        self.errors: list[ChordError] = []

    def tokenize(self, text: str) -> list[ChordToken]:
        """
        Tokenize a whole sheet.

        Args:
            text: Chord-sheet text

        Returns:
            Chord tokens in document order
        """
        self.errors = []
        tokens: list[ChordToken] = []

        line_start = 0
        for line_num, line in enumerate(text.splitlines(keepends=True), 1):
            tokens.extend(self._tokenize_line(line, line_num, line_start))
            line_start += len(line)

        return tokens

    def _tokenize_line(self, line: str, line_num: int, line_start: int) -> list[ChordToken]:
        """Tokenize one line; offsets are relative to the whole document."""
        tokens: list[ChordToken] = []
        body = line.rstrip("\r\n")

        if body.lstrip().startswith("#"):
            return tokens

        directives = [m.span() for m in self.DIRECTIVE_PATTERN.finditer(body)]

        pos = 0
        while True:
            open_at = body.find("[", pos)
            if open_at == -1:
                break

            # Brackets inside {comment: ...} and other directives are text
            directive_end = next((end for start, end in directives if start < open_at < end), None)
            if directive_end is not None:
                pos = directive_end
                continue

            close_at = body.find("]", open_at + 1)
            next_open = body.find("[", open_at + 1)
            if close_at == -1 or (next_open != -1 and next_open < close_at):
                end = next_open if next_open != -1 else len(body)
                self._record(MalformedChordError(
                    f"Unterminated chord bracket: {body[open_at:end]!r}",
                    span=(line_start + open_at, line_start + end),
                    line=line_num,
                    text=body[open_at:end],
                ))
                pos = end
                continue

            token = self._parse_bracket(body[open_at + 1:close_at], line_start + open_at + 1, line_num)
            if token is not None:
                tokens.append(token)
            pos = close_at + 1

        return tokens

    def _parse_bracket(self, content: str, offset: int, line_num: int) -> Optional[ChordToken]:
        """Parse the contents of one [...] pair, or return None for non-chords."""
        symbol = content.strip()
        offset += len(content) - len(content.lstrip())

        if not symbol:
            self._record(MalformedChordError(
                "Empty chord bracket", span=(offset, offset), line=line_num,
            ))
            return None

        if symbol.startswith("*") or self.SECTION_PATTERN.match(symbol) or self.NO_CHORD_PATTERN.match(symbol):
            logger.debug(f"Skipping non-chord bracket [{symbol}] on line {line_num}")
            return None

        try:
            token = parse_chord(symbol, offset)
        except MalformedChordError as e:
            e.line = line_num
            self._record(e)
            return None

        if token.quality.is_passthrough:
            self._record(UnsupportedChordError(
                f"Unsupported chord quality {token.quality.source!r} in {symbol!r}",
                span=token.span,
                line=line_num,
                text=symbol,
            ))

        return token

    def _record(self, error: ChordError) -> None:
        logger.warning(f"Line {error.line}: {error.message}")
        self.errors.append(error)

    def validate(self, text: str) -> list[ChordError]:
        """
        Check a sheet without transposing it.

        Returns:
            List of chord errors
        """
        self.tokenize(text)
        return self.errors


def reassemble(text: str, replacements: Iterable[Tuple[Span, str]]) -> str:
    """
    Splice replacement strings into text at their original spans.

    Args:
        text: Original text
        replacements: (span, new_text) pairs using offsets into the original

    Returns:
        Text with every span replaced and everything else unchanged

    Raises:
        ValueError: If spans overlap or fall outside the text
    """
    pieces: list[str] = []
    cursor = 0
    for (start, end), new_text in sorted(replacements, key=lambda r: r[0]):
        if start < cursor or end < start or end > len(text):
            raise ValueError(f"Bad replacement span ({start}, {end})")
        pieces.append(text[cursor:start])
        pieces.append(new_text)
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def detect_key(text: str) -> Optional[Key]:
    """
    Find the declared key of a sheet.

    Uses the first parseable {key: ...} directive, falling back to the root
    of the first chord (minor if that chord is minor).

    Returns:
        Key or None if the sheet has no directive and no chords
    """
    for match in ChordSheetTokenizer.KEY_DIRECTIVE_PATTERN.finditer(text):
        try:
            return Key.parse(match.group(1))
        except InvalidKeyError:
            logger.warning(f"Ignoring unparseable key directive {match.group(0)!r}")

    tokens = ChordSheetTokenizer().tokenize(text)
    if not tokens:
        return None

    first = tokens[0]
    mode = Mode.MINOR if first.quality.kind in _MINOR_KINDS else Mode.MAJOR
    try:
        return Key(first.root_position, mode)
    except InvalidKeyError:
        logger.warning(f"First chord {first.text!r} does not name a usable key")
        return None


def extract_chords(text: str) -> List[str]:
    """Distinct chord symbols in order of first appearance."""
    seen = []
    for token in ChordSheetTokenizer().tokenize(text):
        if token.text not in seen:
            seen.append(token.text)
    return seen
