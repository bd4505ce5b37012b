"""
Enharmonic Resolver - choose how a pitch class is spelled in a key.

The spelling closest to the key's tonic on the line of fifths wins. That
keeps diatonic notes on the key's own side (Bb, not A#, in F major) and
borrowed chords on the flat side of the tonic (Ab in C major). Only the
tritone above the tonic is exactly equidistant from it; that tie goes to
the caller's EnharmonicPreference.

Everything here is a pure function. Preferences are passed in explicitly,
nothing is read from global state.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple, Union

from chord_transposer.core.errors import InvalidKeyError
from chord_transposer.core.fifths import (
    Accidental,
    AccidentalPreference,
    accidental_count,
    enharmonic_candidates,
    note_name,
    parse_note_name,
    pitch_class,
    position_of,
    validate_pitch_class,
)
from chord_transposer.core.keys import Key, as_key

logger = logging.getLogger(__name__)

# Spelling used for the tritone in C major / A minor when nothing else decides
DEFAULT_TIE_BREAK = Accidental.SHARP

# Half-width (in fifths) of the candidate window around the key
SEARCH_WINDOW = 12


@dataclass(frozen=True)
class EnharmonicPreference:
    """
    User enharmonic preference, supplied per call.

    Attributes:
        default: Global default (SHARP, FLAT or AUTO)
        overrides: (Key, Accidental) pairs that win over the default for one key
    """
    default: AccidentalPreference = AccidentalPreference.AUTO
    overrides: Tuple[Tuple[Key, Accidental], ...] = ()

    @classmethod
    def create(
        cls,
        default: Union[AccidentalPreference, str] = AccidentalPreference.AUTO,
        overrides: Optional[Mapping[Union[Key, str], Union[Accidental, str]]] = None,
    ) -> "EnharmonicPreference":
        """
        Build a preference from loose values.

        Args:
            default: "sharp", "flat", "auto" or an AccidentalPreference
            overrides: Mapping of key (Key or "F#m" style string) to "sharp"/"flat"
        """
        if isinstance(default, str):
            default = AccidentalPreference.from_string(default)

        pairs = []
        for k, side in (overrides or {}).items():
            if isinstance(side, str):
                side = Accidental.from_string(side)
            if side is Accidental.NATURAL:
                raise ValueError(f"Override for {k} must be sharp or flat")
            pairs.append((as_key(k), side))

        pairs.sort(key=lambda pair: (pair[0].tonic_position, pair[0].mode.value))
        return cls(default=default, overrides=tuple(pairs))

    def override_for(self, key: Key) -> Optional[Accidental]:
        for k, side in self.overrides:
            if k == key:
                return side
        return None


NO_PREFERENCE = EnharmonicPreference()


def tie_break_side(
    key: Key,
    preference: Optional[EnharmonicPreference] = None,
    tie_default: Accidental = DEFAULT_TIE_BREAK,
) -> Accidental:
    """Accidental side used when two spellings are equally close to the key."""
    preference = preference or NO_PREFERENCE

    override = preference.override_for(key)
    if override is not None:
        return override
    if preference.default is AccidentalPreference.SHARP:
        return Accidental.SHARP
    if preference.default is AccidentalPreference.FLAT:
        return Accidental.FLAT
    if key.preferred_accidental is not Accidental.NATURAL:
        return key.preferred_accidental
    return tie_default


def resolve(
    pc: int,
    key: Key,
    preference: Optional[EnharmonicPreference] = None,
    tie_default: Accidental = DEFAULT_TIE_BREAK,
) -> int:
    """
    Resolve a pitch class to a line-of-fifths position in a key.

    Args:
        pc: Pitch class (0-11)
        key: Target key
        preference: Enharmonic preference for the tritone tie
        tie_default: Side used when neither preference nor key decides

    Returns:
        Line-of-fifths position of the chosen spelling

    Raises:
        ValueError: If pc is not 0-11
        InvalidKeyError: If key is not a Key
    """
    validate_pitch_class(pc)
    if not isinstance(key, Key):
        raise InvalidKeyError(f"Key has no defined tonic: {key!r}")

    key_pos = key.tonic_position
    candidates = enharmonic_candidates(pc, center=key_pos, window=SEARCH_WINDOW)

    usable = [c for c in candidates if abs(accidental_count(c.position)) <= 1]
    if not usable:
        # Only reachable from theoretical keys such as Ebb major
        logger.debug(
            f"No single-accidental spelling of pitch class {pc} near {key.long_name}, "
            f"using a double accidental"
        )
        usable = candidates

    best = min(abs(c.position - key_pos) for c in usable)
    tied = [c.position for c in usable if abs(c.position - key_pos) == best]
    if len(tied) == 1:
        return tied[0]

    side = tie_break_side(key, preference, tie_default)
    return max(tied) if side is Accidental.SHARP else min(tied)


@functools.lru_cache(maxsize=512)
def spelling_table(
    key: Key,
    preference: Optional[EnharmonicPreference] = None,
    tie_default: Accidental = DEFAULT_TIE_BREAK,
) -> Tuple[int, ...]:
    """Resolved position for each of the 12 pitch classes in a key."""
    return tuple(resolve(pc, key, preference, tie_default) for pc in range(12))


def spell(
    pc: int,
    key: Key,
    preference: Optional[EnharmonicPreference] = None,
    unicode: bool = False,
) -> str:
    """Note name for a pitch class in a key."""
    return note_name(resolve(pc, key, preference), unicode=unicode)


def respell(pc: int, accidental: Union[Accidental, AccidentalPreference]) -> int:
    """
    Spell a pitch class without key context.

    Naturals stay natural; black keys follow the requested side.
    """
    return position_of(pc, prefer_sharp=accidental.value != "flat")


def suggest_spelling(note: str, key: Union[Key, str]) -> str:
    """
    Respell a single note name for a key context.

    >>> suggest_spelling("A#", "F")
    'Bb'
    """
    position = parse_note_name(note)
    return note_name(resolve(pitch_class(position), as_key(key)))
