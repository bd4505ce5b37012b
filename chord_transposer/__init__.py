"""
KeyForge - Chord Transposer

Music-theory-aware chord transposition for ChordPro-style chord sheets:
moves progressions between keys while spelling every root and bass note
the way the target key expects.
"""

__version__ = "1.0.0"

from chord_transposer.core.keys import Key
from chord_transposer.core.resolver import EnharmonicPreference
from chord_transposer.core.operations import transpose_text
from chord_transposer.config import Config

__all__ = ["Key", "EnharmonicPreference", "transpose_text", "Config", "__version__"]
