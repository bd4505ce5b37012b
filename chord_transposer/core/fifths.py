"""
Line of fifths.

Every spelled note name sits at a signed position on the line of fifths:
C=0, G=1, D=2 ... B#=12 going sharpward and F=-1, Bb=-2 ... Fb=-8 going
flatward. Two positions twelve fifths apart are enharmonic equivalents
(C# at 7, Db at -5). The tables in this module are built once at import
and never change.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from chord_transposer.core.errors import MalformedChordError


class Accidental(Enum):
    """Side of the line of fifths a spelling lives on."""
    SHARP = "sharp"
    FLAT = "flat"
    NATURAL = "natural"

    @classmethod
    def from_string(cls, value: str) -> "Accidental":
        """Accept 'sharp'/'flat'/'natural' as well as '#' and 'b'."""
        aliases = {"#": "sharp", "♯": "sharp", "b": "flat", "♭": "flat", "": "natural"}
        value = aliases.get(value.strip(), value.strip().lower())
        for a in cls:
            if a.value == value:
                return a
        raise ValueError(f"Unknown accidental: {value!r}")


class AccidentalPreference(Enum):
    """User-facing enharmonic preference."""
    SHARP = "sharp"
    FLAT = "flat"
    AUTO = "auto"

    @classmethod
    def from_string(cls, value: str) -> "AccidentalPreference":
        aliases = {"#": "sharp", "♯": "sharp", "b": "flat", "♭": "flat"}
        value = aliases.get(value.strip(), value.strip().lower())
        for p in cls:
            if p.value == value:
                return p
        raise ValueError(f"Unknown accidental preference: {value!r}")


class Candidate(NamedTuple):
    """One spelling of a pitch class."""
    position: int
    accidental: Accidental


# Letters in fifths order; F sits at position -1
LETTERS = "FCGDAEB"
NATURAL_POSITIONS = {letter: index - 1 for index, letter in enumerate(LETTERS)}

# Positions spelled without an accidental (F..B)
NATURAL_RANGE = (-1, 5)

# Accidental sign -> signed number of fifths steps (7 per sharp)
_ACCIDENTAL_SIGNS = {
    "": 0,
    "#": 1, "♯": 1, "##": 2, "♯♯": 2, "𝄪": 2,
    "b": -1, "♭": -1, "bb": -2, "♭♭": -2, "𝄫": -2,
}

# A second flat followed by 5, 9, 11 or 13 is an alteration: Abb9 is Ab(b9)
NOTE_PATTERN = re.compile(r"([A-G])(##|♯♯|bb(?!5|9|1[13])|♭♭(?!5|9|1[13])|[#♯b♭𝄪𝄫])?")


def validate_pitch_class(pc: int) -> None:
    if isinstance(pc, bool) or not isinstance(pc, int) or not 0 <= pc <= 11:
        raise ValueError(f"Pitch class must be an integer 0-11, got {pc!r}")


def pitch_class(position: int) -> int:
    """Pitch class (0-11) of a line-of-fifths position."""
    return (position * 7) % 12


def accidental_count(position: int) -> int:
    """Signed number of accidentals: +1 for '#', -2 for 'bb', and so on."""
    return (position + 1) // 7


def accidental_of(position: int) -> Accidental:
    """Which side of the line a position is spelled on."""
    count = accidental_count(position)
    if count > 0:
        return Accidental.SHARP
    if count < 0:
        return Accidental.FLAT
    return Accidental.NATURAL


def note_name(position: int, unicode: bool = False) -> str:
    """
    Spell a line-of-fifths position.

    Args:
        position: Line-of-fifths position
        unicode: Use ♯/♭ instead of #/b

    Returns:
        Note name like "C", "F#", "Bb", "Fbb"
    """
    letter = LETTERS[(position + 1) % 7]
    count = accidental_count(position)
    if count > 0:
        sign = "♯" if unicode else "#"
    else:
        sign = "♭" if unicode else "b"
    return letter + sign * abs(count)


def match_note_name(text: str, start: int = 0) -> Optional[Tuple[int, int]]:
    """
    Match a note name at the start of text.

    Returns:
        Tuple of (position, characters consumed) or None
    """
    match = NOTE_PATTERN.match(text, start)
    if not match:
        return None
    position = NATURAL_POSITIONS[match.group(1)] + 7 * _ACCIDENTAL_SIGNS[match.group(2) or ""]
    return position, match.end() - start


def parse_note_name(text: str) -> int:
    """
    Parse a complete note name like "Eb" or "F#" into a position.

    Raises:
        MalformedChordError: If text is not exactly a note name
    """
    text = text.strip()
    matched = match_note_name(text)
    if matched is None or matched[1] != len(text):
        raise MalformedChordError(f"Not a note name: {text!r}", text=text)
    return matched[0]


def position_of(pc: int, prefer_sharp: bool = True) -> int:
    """
    Canonical position for a pitch class when there is no key context.

    Naturals always win; the five black-key pitch classes get the sharp
    (F# C# G# D# A#) or flat (Gb Db Ab Eb Bb) spelling.
    """
    validate_pitch_class(pc)
    base = (pc * 7) % 12
    if base <= NATURAL_RANGE[1]:
        return base
    if base == 11:
        return -1  # F rather than E#
    return base if prefer_sharp else base - 12


def key_signature_count(key) -> int:
    """
    Signed number of sharps (+) or flats (-) in a key signature.

    Minor keys use their relative major, three fifths flatward of the tonic.
    """
    if key.is_minor:
        return key.tonic_position - 3
    return key.tonic_position


def enharmonic_candidates(pc: int, center: int = 0, window: int = 12) -> List[Candidate]:
    """
    All spellings of a pitch class within center +/- window fifths.

    Args:
        pc: Pitch class (0-11)
        center: Line-of-fifths position the window is centred on
        window: Half-width of the window in fifths

    Returns:
        Candidates ordered from flattest to sharpest
    """
    validate_pitch_class(pc)
    low, high = center - window, center + window
    # First position >= low with the right pitch class
    offset = (pc * 7 - low) % 12
    return [
        Candidate(position, accidental_of(position))
        for position in range(low + offset, high + 1, 12)
    ]


def semitone_distance(source_pc: int, target_pc: int) -> int:
    """Upward semitone shift (0-11) from one pitch class to another."""
    return SEMITONE_SHIFTS[source_pc % 12][target_pc % 12]


# Precomputed per-key shift table: SEMITONE_SHIFTS[source][target]
SEMITONE_SHIFTS: List[List[int]] = [
    [(target - source) % 12 for target in range(12)] for source in range(12)
]

# Default spellings without key context
SHARP_NAMES: List[str] = [note_name(position_of(pc, True)) for pc in range(12)]
FLAT_NAMES: List[str] = [note_name(position_of(pc, False)) for pc in range(12)]
