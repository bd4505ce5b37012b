"""
Chord token model - a chord symbol parsed into root, quality and bass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from chord_transposer.core.errors import MalformedChordError
from chord_transposer.core.fifths import match_note_name, note_name, pitch_class, position_of
from chord_transposer.core.quality import ChordQuality, NotationStyle, parse_quality, render_quality

# Slash bass must be a bare note name at the very end ("C6/9/E" -> bass E)
_SLASH_BASS = re.compile(r"^(?P<quality>.*?)/(?P<bass>[A-G](?:##|♯♯|bb|♭♭|[#♯b♭])?)$", re.DOTALL)


@dataclass(frozen=True)
class ChordToken:
    """
    A chord symbol found in a sheet.

    Attributes:
        root: Root pitch class (0-11)
        quality: Parsed chord quality
        root_position: Line-of-fifths spelling of the root, if known
        bass: Slash-chord bass pitch class
        bass_position: Line-of-fifths spelling of the bass, if known
        span: (start, end) offsets of the chord text in the source document
        text: Chord symbol as written, or as rendered once transposed
    """
    root: int
    quality: ChordQuality = ChordQuality()
    root_position: Optional[int] = None
    bass: Optional[int] = None
    bass_position: Optional[int] = None
    span: Tuple[int, int] = (0, 0)
    text: str = ""

    def __post_init__(self):
        if self.root_position is not None and pitch_class(self.root_position) != self.root:
            raise ValueError(f"Root spelling {note_name(self.root_position)} is not pitch class {self.root}")
        if self.bass_position is not None and pitch_class(self.bass_position) != self.bass:
            raise ValueError(f"Bass spelling {note_name(self.bass_position)} is not pitch class {self.bass}")

    @property
    def is_slash(self) -> bool:
        return self.bass is not None

    @property
    def root_name(self) -> str:
        position = self.root_position if self.root_position is not None else position_of(self.root)
        return note_name(position)

    @property
    def bass_name(self) -> Optional[str]:
        if self.bass is None:
            return None
        position = self.bass_position if self.bass_position is not None else position_of(self.bass)
        return note_name(position)

    def __str__(self) -> str:
        return render_chord(self)


def parse_chord(text: str, offset: int = 0) -> ChordToken:
    """
    Parse a chord symbol like "Dm7", "F#m7b5", "G/B" or "Bbmaj9#11".

    An unrecognized quality suffix does not fail; it comes back as a
    passthrough quality and the caller decides whether to warn.

    Args:
        text: Chord symbol without brackets
        offset: Position of text in the enclosing document

    Returns:
        ChordToken with span (offset, offset + len(text))

    Raises:
        MalformedChordError: If text does not start with a note name
    """
    span = (offset, offset + len(text))

    matched = match_note_name(text)
    if matched is None:
        raise MalformedChordError(f"No chord root in {text!r}", span=span, text=text)
    root_position, length = matched
    rest = text[length:]

    bass = bass_position = None
    slash = _SLASH_BASS.match(rest)
    if slash:
        rest = slash.group("quality")
        bass_position, _ = match_note_name(slash.group("bass"))
        bass = pitch_class(bass_position)

    return ChordToken(
        root=pitch_class(root_position),
        quality=parse_quality(rest),
        root_position=root_position,
        bass=bass,
        bass_position=bass_position,
        span=span,
        text=text,
    )


def render_chord(
    token: ChordToken,
    style: NotationStyle = NotationStyle.SOURCE,
    unicode: bool = False,
) -> str:
    """
    Render a chord token back to a symbol.

    Args:
        token: Chord to render
        style: Suffix notation style
        unicode: Use ♯/♭ for the root, bass and alterations

    Returns:
        Chord symbol like "Bbmaj7/D"
    """
    def spelled(pc: int, position: Optional[int]) -> str:
        return note_name(position if position is not None else position_of(pc), unicode=unicode)

    symbol = spelled(token.root, token.root_position) + render_quality(token.quality, style, unicode)
    if token.bass is not None:
        symbol += "/" + spelled(token.bass, token.bass_position)
    return symbol
