"""
Transposition operations.

High-level functions that take chord-sheet text or chord symbols, run the
tokenizer -> transposer -> renderer pipeline, and memoize whole-sheet
results in the shared cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple, Union

from chord_transposer.config import get_config
from chord_transposer.core.cache import LRUCache, get_default_cache
from chord_transposer.core.chord import ChordToken, parse_chord, render_chord
from chord_transposer.core.errors import ChordError, InvalidKeyError, MalformedChordError
from chord_transposer.core.fifths import (
    Accidental,
    AccidentalPreference,
    semitone_distance,
)
from chord_transposer.core.keys import Key, Mode, as_key
from chord_transposer.core.quality import NotationStyle
from chord_transposer.core.resolver import EnharmonicPreference, respell
from chord_transposer.core.tokenizer import ChordSheetTokenizer, detect_key, reassemble
from chord_transposer.core.transposer import transpose, transpose_key

logger = logging.getLogger(__name__)

KeyLike = Union[Key, str]

# Marker for "use the shared cache"
DEFAULT_CACHE = object()


@dataclass(frozen=True)
class TranspositionResult:
    """
    Result of transposing one sheet.

    Attributes:
        text: Transposed text, same layout as the input
        warnings: Malformed/unsupported chords, each with span and line
        source_key: Key the sheet was written in
        target_key: Key it was moved to
        semitones: Upward shift applied (0-11)
        chords: Transposed chord tokens in document order
    """
    text: str
    warnings: Tuple[ChordError, ...]
    source_key: Key
    target_key: Key
    semitones: int
    chords: Tuple[ChordToken, ...] = ()

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def _preference_or_default(preference: Optional[EnharmonicPreference]) -> EnharmonicPreference:
    if preference is not None:
        return preference
    return get_config().enharmonic_preference()


def transpose_text(
    text: str,
    source_key: KeyLike,
    target_key: KeyLike,
    preference: Optional[EnharmonicPreference] = None,
    style: Optional[NotationStyle] = None,
    unicode: Optional[bool] = None,
    cache=DEFAULT_CACHE,
) -> TranspositionResult:
    """
    Transpose every bracketed chord in a chord sheet.

    Args:
        text: Chord-sheet text
        source_key: Declared key of the sheet (Key or "G", "F#m", ...)
        target_key: Key to move to
        preference: Enharmonic preference; defaults to the configured one
        style: Chord suffix notation; defaults to the configured one
        unicode: Render ♯/♭; defaults to the configured setting
        cache: LRUCache to use, None to bypass caching

    Returns:
        TranspositionResult with the new text and any warnings

    Raises:
        InvalidKeyError: If either key is missing or malformed
    """
    config = get_config()
    source = as_key(source_key)
    target = as_key(target_key)
    preference = _preference_or_default(preference)
    style = style or config.notation_style()
    unicode = config.output.unicode_accidentals if unicode is None else unicode
    tie_default = config.tie_default()

    if cache is DEFAULT_CACHE:
        cache = get_default_cache()

    cache_key = (text, source, target, preference, style, unicode, tie_default)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for {source.name} -> {target.name}")
            return cached

    tokenizer = ChordSheetTokenizer()
    tokens = tokenizer.tokenize(text)
    moved = [transpose(token, source, target, preference, tie_default) for token in tokens]
    rendered = [render_chord(t, style, unicode) for t in moved]
    new_text = reassemble(text, [(t.span, symbol) for t, symbol in zip(moved, rendered)])

    result = TranspositionResult(
        text=new_text,
        warnings=tuple(tokenizer.errors),
        source_key=source,
        target_key=target,
        semitones=semitone_distance(source.tonic, target.tonic),
        chords=tuple(replace(t, text=symbol) for t, symbol in zip(moved, rendered)),
    )

    if cache is not None:
        cache.put(cache_key, result)

    return result


def transpose_text_by(
    text: str,
    semitones: int,
    source_key: Optional[KeyLike] = None,
    preference: Optional[EnharmonicPreference] = None,
    style: Optional[NotationStyle] = None,
    cache=DEFAULT_CACHE,
) -> TranspositionResult:
    """
    Transpose a sheet up or down by a number of semitones.

    The target key is spelled from the source key (see transpose_key). With
    no source key the sheet's {key:} directive or first chord is used.

    Raises:
        InvalidKeyError: If no source key is given or detectable
    """
    if source_key is None:
        source = detect_key(text)
        if source is None:
            raise InvalidKeyError("Sheet declares no key and contains no chords")
    else:
        source = as_key(source_key)

    preference = _preference_or_default(preference)
    target = transpose_key(source, semitones, preference)
    logger.debug(f"Transposing by {semitones:+d} semitones: {source.name} -> {target.name}")
    return transpose_text(text, source, target, preference, style, cache=cache)


def transpose_chords(
    symbols: Sequence[str],
    source_key: KeyLike,
    target_key: KeyLike,
    preference: Optional[EnharmonicPreference] = None,
    style: NotationStyle = NotationStyle.SOURCE,
) -> List[str]:
    """
    Transpose a list of chord symbols.

    Symbols without a recognizable root are returned unchanged.

    >>> transpose_chords(["C", "F", "G", "Am"], "C", "D")
    ['D', 'G', 'A', 'Bm']
    """
    source = as_key(source_key)
    target = as_key(target_key)
    preference = _preference_or_default(preference)
    tie_default = get_config().tie_default()

    result = []
    for symbol in symbols:
        try:
            token = parse_chord(symbol)
        except MalformedChordError:
            logger.warning(f"Leaving unrecognized chord {symbol!r} unchanged")
            result.append(symbol)
            continue
        result.append(render_chord(transpose(token, source, target, preference, tie_default), style))
    return result


def convert_chord(symbol: str, accidental: Union[Accidental, AccidentalPreference, str]) -> str:
    """
    Respell a chord's root and bass on one side without key context.

    >>> convert_chord("C#/G#", "flat")
    'Db/Ab'

    Args:
        symbol: Chord symbol
        accidental: "sharp"/"flat" (or "#"/"b")

    Returns:
        Respelled symbol; unparseable symbols come back unchanged
    """
    if isinstance(accidental, str):
        accidental = Accidental.from_string(accidental)

    try:
        token = parse_chord(symbol)
    except MalformedChordError:
        logger.warning(f"Cannot respell {symbol!r}; no chord root")
        return symbol

    if accidental.value not in ("sharp", "flat"):
        return symbol

    bass_position = respell(token.bass, accidental) if token.bass is not None else None
    converted = replace(
        token,
        root_position=respell(token.root, accidental),
        bass_position=bass_position,
    )
    return render_chord(converted)


def convert_all_chords(
    symbols: Sequence[str],
    accidental: Union[Accidental, AccidentalPreference, str],
) -> List[str]:
    """Respell a list of chord symbols on one side."""
    return [convert_chord(symbol, accidental) for symbol in symbols]


def get_available_keys() -> List[str]:
    """
    Get list of common keys.

    Returns:
        Key names, majors then minors, in circle-of-fifths order
    """
    majors = [Key(position) for position in range(-7, 8)]
    minors = [Key(position + 3, Mode.MINOR) for position in range(-7, 8)]
    return [k.name for k in majors + minors]


def new_cache(max_size: Optional[int] = None, ttl: Optional[float] = None) -> LRUCache:
    """Build a private cache sized from the configuration."""
    settings = get_config().cache
    return LRUCache(max_size or settings.max_entries, ttl if ttl is not None else settings.ttl_seconds)
