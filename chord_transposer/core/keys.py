"""
Key model.

A Key is a spelled tonic (a line-of-fifths position) plus a mode. F# major
and Gb major share a tonic pitch class but are different keys, because the
spelling of the tonic decides which side of the line of fifths every other
note in the key is spelled on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from chord_transposer.core.errors import InvalidKeyError
from chord_transposer.core.fifths import (
    Accidental,
    accidental_count,
    enharmonic_candidates,
    key_signature_count,
    match_note_name,
    note_name,
    pitch_class,
)

# Furthest key signature accepted; |signature| > 7 is a theoretical key
MAX_SIGNATURE = 12
COMMON_SIGNATURE = 7


class Mode(Enum):
    """Key mode."""
    MAJOR = "major"
    MINOR = "minor"


KEY_PATTERN = re.compile(
    r"^\s*([A-Ga-g])(##|♯♯|bb|♭♭|[#♯b♭])?\s*([Mm]ajor|[Mm]inor|[Mm]aj|[Mm]in|m|M|-)?\s*$"
)

_MODE_WORDS = {
    "major": Mode.MAJOR, "maj": Mode.MAJOR, "M": Mode.MAJOR,
    "minor": Mode.MINOR, "min": Mode.MINOR, "m": Mode.MINOR, "-": Mode.MINOR,
}


@dataclass(frozen=True)
class Key:
    """A spelled key: tonic line-of-fifths position and mode."""

    tonic_position: int
    mode: Mode = Mode.MAJOR

    def __post_init__(self):
        if isinstance(self.tonic_position, bool) or not isinstance(self.tonic_position, int):
            raise InvalidKeyError(f"Key tonic must be a line-of-fifths position, got {self.tonic_position!r}")
        if not isinstance(self.mode, Mode):
            raise InvalidKeyError(f"Key mode must be a Mode, got {self.mode!r}")
        if abs(key_signature_count(self)) > MAX_SIGNATURE:
            raise InvalidKeyError(f"Key signature out of range: {self.name}")

    @property
    def is_minor(self) -> bool:
        return self.mode is Mode.MINOR

    @property
    def tonic(self) -> int:
        """Tonic pitch class (0-11)."""
        return pitch_class(self.tonic_position)

    @property
    def tonic_name(self) -> str:
        return note_name(self.tonic_position)

    @property
    def signature(self) -> int:
        """Signed sharps (+) / flats (-) count."""
        return key_signature_count(self)

    @property
    def preferred_accidental(self) -> Accidental:
        """Sharp keys prefer sharps, flat keys prefer flats."""
        if self.signature > 0:
            return Accidental.SHARP
        if self.signature < 0:
            return Accidental.FLAT
        return Accidental.NATURAL

    @property
    def is_theoretical(self) -> bool:
        """True for keys beyond seven sharps or flats (e.g. G# major, Fb major)."""
        return abs(self.signature) > COMMON_SIGNATURE

    @property
    def name(self) -> str:
        """Short chord-chart name: 'G', 'F#m', 'Bb'."""
        return self.tonic_name + ("m" if self.is_minor else "")

    @property
    def long_name(self) -> str:
        """Name like 'F# minor'."""
        return f"{self.tonic_name} {self.mode.value}"

    def relative(self) -> "Key":
        """Relative major or minor."""
        if self.is_minor:
            return Key(self.tonic_position - 3, Mode.MAJOR)
        return Key(self.tonic_position + 3, Mode.MINOR)

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, text: str) -> "Key":
        """
        Parse key metadata like "G", "Em", "F# minor", "Bb major" or "c#".

        A lowercase tonic with no mode word means minor.

        Raises:
            InvalidKeyError: If the text is not a key
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidKeyError(f"Missing key: {text!r}")

        match = KEY_PATTERN.match(text)
        if not match:
            raise InvalidKeyError(f"Unrecognized key: {text!r}")

        letter, accidental, mode_word = match.groups()
        position, _ = match_note_name(letter.upper() + (accidental or ""))

        if mode_word:
            mode = _MODE_WORDS.get(mode_word) or _MODE_WORDS[mode_word.lower()]
        else:
            mode = Mode.MINOR if letter.islower() else Mode.MAJOR

        return cls(position, mode)

    @classmethod
    def from_pitch_class(cls, pc: int, mode: Mode = Mode.MAJOR, prefer_sharp: bool = True) -> "Key":
        """
        Spell a key from a bare pitch class, choosing the smaller signature.

        Ties (F#/Gb major, D#/Eb minor) go to prefer_sharp.
        """
        offset = 3 if mode is Mode.MINOR else 0
        candidates = [
            c.position for c in enharmonic_candidates(pc % 12)
            if abs(accidental_count(c.position)) <= 1
        ]
        best = min(
            candidates,
            key=lambda pos: (abs(pos - offset), -pos if prefer_sharp else pos),
        )
        return cls(best, mode)

    @classmethod
    def from_music21(cls, m21_key) -> "Key":
        """
        Build a Key from a music21.key.Key.

        Raises:
            InvalidKeyError: For modes other than major/minor
        """
        mode_name = getattr(m21_key, "mode", None)
        if mode_name not in ("major", "minor"):
            raise InvalidKeyError(f"Unsupported music21 key mode: {mode_name!r}")
        tonic = m21_key.tonic.name.replace("-", "b")
        return cls.parse(f"{tonic} {mode_name}")

    def to_music21(self):
        """Convert to a music21.key.Key."""
        from music21 import key as m21_key

        name = self.tonic_name
        tonic = name[0] + name[1:].replace("b", "-")
        return m21_key.Key(tonic, self.mode.value)


def as_key(value: Union[Key, str, None]) -> Key:
    """
    Coerce key metadata (Key or string) to a Key.

    Raises:
        InvalidKeyError: If value is missing or malformed
    """
    if isinstance(value, Key):
        return value
    if isinstance(value, str):
        return Key.parse(value)
    raise InvalidKeyError(f"Key has no defined tonic: {value!r}")


def is_enharmonic_key(key: Union[Key, str]) -> bool:
    """True for keys with a common enharmonic twin: B/Cb, F#/Gb, C#/Db, G#m/Abm, D#m/Ebm, A#m/Bbm."""
    return enharmonic_equivalent_key(key) is not None


def enharmonic_equivalent_key(key: Union[Key, str]) -> Optional[Key]:
    """
    The same key spelled from the other side of the line of fifths.

    Both spellings must be common keys (at most seven sharps or flats), so
    the pairing is symmetric: B gives Cb and Cb gives B.

    Returns:
        Equivalent Key, or None when either spelling would be theoretical
    """
    key = as_key(key)
    if key.is_theoretical:
        return None
    for shift in (-12, 12):
        if abs(key.signature + shift) <= COMMON_SIGNATURE:
            return Key(key.tonic_position + shift, key.mode)
    return None
