"""
Core module for the chord transposer.

Contains the line-of-fifths model, enharmonic resolver, chord quality
normalizer, transposer, tokenizer and cached transposition operations.
"""

from chord_transposer.core.errors import (
    ChordError,
    MalformedChordError,
    UnsupportedChordError,
    InvalidKeyError,
)
from chord_transposer.core.fifths import Accidental, AccidentalPreference
from chord_transposer.core.keys import (
    Key,
    Mode,
    is_enharmonic_key,
    enharmonic_equivalent_key,
)
from chord_transposer.core.quality import (
    ChordQuality,
    QualityKind,
    NotationStyle,
    parse_quality,
    render_quality,
)
from chord_transposer.core.chord import ChordToken, parse_chord, render_chord
from chord_transposer.core.resolver import (
    EnharmonicPreference,
    resolve,
    spell,
    suggest_spelling,
)
from chord_transposer.core.transposer import (
    TranspositionRequest,
    transpose,
    transpose_tokens,
    transpose_key,
    capo_options,
)
from chord_transposer.core.tokenizer import (
    ChordSheetTokenizer,
    reassemble,
    detect_key,
    extract_chords,
)
from chord_transposer.core.cache import LRUCache
from chord_transposer.core.operations import (
    TranspositionResult,
    transpose_text,
    transpose_text_by,
    transpose_chords,
    convert_chord,
    convert_all_chords,
)

__all__ = [
    "ChordError",
    "MalformedChordError",
    "UnsupportedChordError",
    "InvalidKeyError",
    "Accidental",
    "AccidentalPreference",
    "Key",
    "Mode",
    "is_enharmonic_key",
    "enharmonic_equivalent_key",
    "ChordQuality",
    "QualityKind",
    "NotationStyle",
    "parse_quality",
    "render_quality",
    "ChordToken",
    "parse_chord",
    "render_chord",
    "EnharmonicPreference",
    "resolve",
    "spell",
    "suggest_spelling",
    "TranspositionRequest",
    "transpose",
    "transpose_tokens",
    "transpose_key",
    "capo_options",
    "ChordSheetTokenizer",
    "reassemble",
    "detect_key",
    "extract_chords",
    "LRUCache",
    "TranspositionResult",
    "transpose_text",
    "transpose_text_by",
    "transpose_chords",
    "convert_chord",
    "convert_all_chords",
]
