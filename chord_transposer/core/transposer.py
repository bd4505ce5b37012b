"""
Chord Transposer.

Moves chord tokens from one key to another. Only pitch changes: the root
and slash bass are shifted by the key interval and each is respelled by the
resolver for the target key. Quality, extensions and spans are copied.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from chord_transposer.core.chord import ChordToken, render_chord
from chord_transposer.core.errors import InvalidKeyError
from chord_transposer.core.fifths import Accidental, AccidentalPreference, semitone_distance
from chord_transposer.core.keys import Key
from chord_transposer.core.resolver import (
    DEFAULT_TIE_BREAK,
    EnharmonicPreference,
    spelling_table,
)


@dataclass(frozen=True)
class TranspositionRequest:
    """Tokens plus the keys and preference for one transposition."""
    tokens: Tuple[ChordToken, ...]
    source_key: Key
    target_key: Key
    preference: Optional[EnharmonicPreference] = None


def _check_key(value, role: str) -> Key:
    if not isinstance(value, Key):
        raise InvalidKeyError(f"{role} key has no defined tonic: {value!r}")
    return value


def transpose(
    token: ChordToken,
    source_key: Key,
    target_key: Key,
    preference: Optional[EnharmonicPreference] = None,
    tie_default: Accidental = DEFAULT_TIE_BREAK,
) -> ChordToken:
    """
    Transpose one chord from source_key to target_key.

    A zero shift still respells through the resolver, so transposing to the
    same key normalizes spellings (A# becomes Bb in F major).

    Args:
        token: Chord to transpose
        source_key: Key the chord is written in
        target_key: Key to move to
        preference: Enharmonic preference for tritone ties
        tie_default: Tie side when neither preference nor key decides

    Returns:
        New ChordToken with the same quality and span; text is the new symbol

    Raises:
        InvalidKeyError: If either key is not a Key
    """
    source_key = _check_key(source_key, "Source")
    target_key = _check_key(target_key, "Target")

    shift = semitone_distance(source_key.tonic, target_key.tonic)
    table = spelling_table(target_key, preference, tie_default)

    root = (token.root + shift) % 12
    bass = bass_position = None
    if token.bass is not None:
        bass = (token.bass + shift) % 12
        bass_position = table[bass]

    moved = replace(
        token,
        root=root,
        root_position=table[root],
        bass=bass,
        bass_position=bass_position,
    )
    return replace(moved, text=render_chord(moved))


def transpose_tokens(
    request: TranspositionRequest,
    tie_default: Accidental = DEFAULT_TIE_BREAK,
) -> List[ChordToken]:
    """Transpose every token of a request, in order."""
    return [
        transpose(token, request.source_key, request.target_key, request.preference, tie_default)
        for token in request.tokens
    ]


def transpose_key(
    key: Key,
    semitones: int,
    preference: Optional[EnharmonicPreference] = None,
) -> Key:
    """
    Spell the key that lies a number of semitones away.

    The spelling with the smaller key signature wins; F#/Gb style ties follow
    the preference, then the side of the original key.

    Args:
        key: Starting key
        semitones: Signed semitone shift
        preference: Enharmonic preference for the tie

    Returns:
        Shifted Key with the same mode
    """
    key = _check_key(key, "Source")
    default = preference.default if preference else AccidentalPreference.AUTO
    if default is AccidentalPreference.AUTO:
        prefer_sharp = key.preferred_accidental is not Accidental.FLAT
    else:
        prefer_sharp = default is AccidentalPreference.SHARP
    return Key.from_pitch_class((key.tonic + semitones) % 12, key.mode, prefer_sharp=prefer_sharp)


# ---------------------------------------------------------------------------
# Capo suggestions
# ---------------------------------------------------------------------------

COMMON_SHAPES = ["G", "C", "D", "A", "E", "Em", "Am", "Dm"]

_SHAPE_DIFFICULTY = {
    "G": "easy", "C": "easy", "D": "easy", "Em": "easy", "Am": "easy",
    "A": "medium", "E": "medium", "Dm": "medium",
}
_DIFFICULTY_ORDER = {"easy": 0, "medium": 1, "hard": 2}


@dataclass(frozen=True)
class CapoOption:
    """Play an open-chord shape with a capo to sound in another key."""
    position: int
    shape: Key
    difficulty: str


def capo_options(target_key: Key, shapes: Sequence[str] = COMMON_SHAPES) -> List[CapoOption]:
    """
    Capo positions that let open shapes sound in target_key.

    Returns:
        Options sorted by capo fret, then shape difficulty
    """
    target_key = _check_key(target_key, "Target")
    options = []
    for shape_name in shapes:
        shape = Key.parse(shape_name)
        if shape.mode is not target_key.mode:
            continue
        capo = semitone_distance(shape.tonic, target_key.tonic)
        options.append(CapoOption(capo, shape, _SHAPE_DIFFICULTY.get(shape_name, "hard")))

    options.sort(key=lambda o: (o.position, _DIFFICULTY_ORDER[o.difficulty]))
    return options


def sounding_key(shape: Key, capo: int) -> Key:
    """Key that sounds when shape is played with a capo at the given fret."""
    return transpose_key(shape, capo)
