"""
Chord quality normalizer.

Maps the many ways of writing a chord suffix onto one ChordQuality value
and renders it back in a chosen notation style.

Examples of equivalent input:
    maj7  M7  Δ7  ma7  ^7       -> major seventh
    m7  min7  mi7  -7           -> minor seventh
    m7b5  min7b5  -7b5  ø  ø7   -> half-diminished
    7(b9,#11)  7b9#11  7-9+11   -> dominant seventh with b9 and #11

Suffixes that don't parse are kept verbatim as a passthrough quality so the
chord root can still be transposed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple
import logging

from chord_transposer.core.errors import UnsupportedChordError

logger = logging.getLogger(__name__)


class QualityKind(Enum):
    """Base chord quality."""
    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"
    AUGMENTED = "augmented"
    SUS2 = "sus2"
    SUS4 = "sus4"
    DOMINANT7 = "dominant7"
    MAJOR7 = "major7"
    MINOR7 = "minor7"
    MINOR_MAJOR7 = "minor-major7"
    HALF_DIMINISHED = "half-diminished"
    DIMINISHED7 = "diminished7"
    SIXTH = "sixth"
    MINOR_SIXTH = "minor-sixth"
    POWER = "power"
    PASSTHROUGH = "passthrough"


class ModifierKind(Enum):
    """Modifier applied on top of the base quality, in canonical order."""
    SUS = "sus"
    FLAT = "flat"
    SHARP = "sharp"
    ADD = "add"
    OMIT = "no"
    ALT = "alt"


_MODIFIER_ORDER = {kind: index for index, kind in enumerate(ModifierKind)}


class NotationStyle(Enum):
    """Output style for chord suffixes."""
    SOURCE = "source"      # as written in the sheet
    STANDARD = "standard"  # m7, maj7, m7b5, dim7
    JAZZ = "jazz"          # -7, Δ7, ø7, °7

    @classmethod
    def from_string(cls, value: str) -> "NotationStyle":
        for style in cls:
            if style.value == value.strip().lower():
                return style
        raise ValueError(f"Unknown notation style: {value!r}")


@dataclass(frozen=True)
class Modifier:
    """A single alteration, added tone, suspension or omission."""
    kind: ModifierKind
    degree: int = 0

    @property
    def sort_key(self) -> Tuple[int, int]:
        # Alterations sort by degree so b9 #9 #11 b13 come out in order
        if self.kind in (ModifierKind.FLAT, ModifierKind.SHARP):
            return (_MODIFIER_ORDER[ModifierKind.FLAT], self.degree * 2 + (self.kind is ModifierKind.SHARP))
        return (_MODIFIER_ORDER[self.kind], self.degree)


@dataclass(frozen=True)
class ChordQuality:
    """
    Canonical chord quality.

    Attributes:
        kind: Base quality
        extension: Highest stacked extension (9, 11, 13) for seventh/sixth chords
        modifiers: Alterations and additions in canonical order
        source: Suffix text as written; not part of equality
    """
    kind: QualityKind = QualityKind.MAJOR
    extension: Optional[int] = None
    modifiers: Tuple[Modifier, ...] = ()
    source: Optional[str] = field(default=None, compare=False)

    @property
    def is_passthrough(self) -> bool:
        return self.kind is QualityKind.PASSTHROUGH

    def has(self, kind: ModifierKind, degree: Optional[int] = None) -> bool:
        return any(m.kind is kind and (degree is None or m.degree == degree) for m in self.modifiers)

    @classmethod
    def passthrough(cls, text: str) -> "ChordQuality":
        return cls(QualityKind.PASSTHROUGH, source=text)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_TRIAD = re.compile(
    r"(?P<halfdim>[øØ])"
    r"|(?P<dim>dim|°|o(?=7|$))"
    r"|(?P<aug>aug|\+)"
    r"|(?P<majmark>[Mm]aj|MAJ|ma(?=\d)|M|Δ|\^)"
    r"|(?P<minor>min|mi|m|-)"
)
_MAJ_MARK = re.compile(r"\(?(?:[Mm]aj|MAJ|M|Δ|\^)(?=7|9|11|13|\)|$)")
_NUMBER = re.compile(r"6/9|69|13|11|9|7|6|5|4|2")
_MODIFIER = re.compile(
    r"(?P<sus>sus)(?P<sus_degree>2|4)?"
    r"|(?P<add>add)(?P<add_degree>2|4|9|11|13)"
    r"|(?P<flat>b|♭|-)(?P<flat_degree>5|9|11|13)"
    r"|(?P<sharp>#|♯|\+)(?P<sharp_degree>5|9|11)"
    r"|(?P<plus>\+)"
    r"|(?P<omit>no|omit)(?P<omit_degree>3|5)"
    r"|(?P<alt>alt)"
)
_BARE_DEGREE = re.compile(r"9|11|13")
_SEPARATOR = re.compile(r"[,\s/]+")


class _Unrecognized(Exception):
    pass


class _QualityScanner:
    """Left-to-right scanner for one chord suffix."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.modifiers: List[Modifier] = []

    def _match(self, pattern: re.Pattern) -> Optional[re.Match]:
        match = pattern.match(self.text, self.pos)
        if match and match.end() > self.pos:
            self.pos = match.end()
            return match
        return None

    def scan(self) -> ChordQuality:
        triad = "major"
        major_mark = None

        match = self._match(_TRIAD)
        if match:
            triad = match.lastgroup
            if triad == "majmark":
                triad, major_mark = "major", match.group()
        if triad == "minor":
            mark = self._match(_MAJ_MARK)
            if mark:
                major_mark = mark.group()
        elif triad == "aug":
            mark = self._match(_MAJ_MARK)
            if mark:
                major_mark = mark.group()
            self.modifiers.append(Modifier(ModifierKind.SHARP, 5))

        number_match = self._match(_NUMBER)
        number = number_match.group() if number_match else None

        if major_mark and major_mark.startswith("("):
            if not self.text.startswith(")", self.pos):
                raise _Unrecognized(self.text)
            self.pos += 1

        self._scan_modifiers()
        return self._build(triad, major_mark, number)

    def _scan_modifiers(self) -> None:
        while self.pos < len(self.text):
            if self.text[self.pos] == "(":
                self.pos += 1
                self._scan_group()
                continue
            if not self._scan_one():
                raise _Unrecognized(self.text)

    def _scan_group(self) -> None:
        while True:
            self._match(_SEPARATOR)
            if self.text.startswith(")", self.pos):
                self.pos += 1
                return
            if self.pos >= len(self.text):
                raise _Unrecognized(self.text)
            if self._scan_one():
                continue
            bare = self._match(_BARE_DEGREE)
            if not bare:
                raise _Unrecognized(self.text)
            self.modifiers.append(Modifier(ModifierKind.ADD, int(bare.group())))

    def _scan_one(self) -> bool:
        match = self._match(_MODIFIER)
        if not match:
            return False
        kind = match.lastgroup
        if kind.endswith("_degree"):
            kind = kind[: -len("_degree")]
        if kind == "alt":
            self.modifiers.append(Modifier(ModifierKind.ALT))
        elif kind == "plus":
            # Bare "+" after the number, as in C7+, raises the fifth
            self.modifiers.append(Modifier(ModifierKind.SHARP, 5))
        elif kind == "sus":
            self.modifiers.append(Modifier(ModifierKind.SUS, int(match.group("sus_degree") or 4)))
        else:
            modifier_kind = {
                "add": ModifierKind.ADD,
                "flat": ModifierKind.FLAT,
                "sharp": ModifierKind.SHARP,
                "omit": ModifierKind.OMIT,
            }[kind]
            self.modifiers.append(Modifier(modifier_kind, int(match.group(f"{kind}_degree"))))
        return True

    def _build(self, triad: str, major_mark: Optional[str], number: Optional[str]) -> ChordQuality:
        extension = None
        if number in ("9", "11", "13"):
            extension = int(number)
            number = "7"
        elif number in ("6/9", "69"):
            extension = 9
            number = "6"

        if number == "2":
            self.modifiers.append(Modifier(ModifierKind.ADD, 2))
            number = None
        elif number == "4" and triad == "major" and not major_mark:
            self.modifiers.append(Modifier(ModifierKind.SUS, 4))
            number = None

        if triad == "major" or triad == "aug":
            if number == "7":
                kind = QualityKind.MAJOR7 if major_mark else QualityKind.DOMINANT7
            elif number == "6":
                kind = QualityKind.SIXTH
            elif number == "5" and not major_mark and triad == "major":
                kind = QualityKind.POWER
            elif number is None:
                if major_mark in ("Δ", "^"):
                    kind = QualityKind.MAJOR7
                elif triad == "aug":
                    kind = QualityKind.AUGMENTED
                    self.modifiers.remove(Modifier(ModifierKind.SHARP, 5))
                else:
                    kind = QualityKind.MAJOR
            else:
                raise _Unrecognized(self.text)
        elif triad == "minor":
            if number == "7":
                kind = QualityKind.MINOR_MAJOR7 if major_mark else QualityKind.MINOR7
            elif number == "6" and not major_mark:
                kind = QualityKind.MINOR_SIXTH
            elif number is None:
                kind = QualityKind.MINOR_MAJOR7 if major_mark in ("Δ", "^") else QualityKind.MINOR
            else:
                raise _Unrecognized(self.text)
        elif triad == "dim":
            if number == "7" and extension is None:
                kind = QualityKind.DIMINISHED7
            elif number is None:
                kind = QualityKind.DIMINISHED
            else:
                raise _Unrecognized(self.text)
        else:  # halfdim
            if number not in ("7", None):
                raise _Unrecognized(self.text)
            kind = QualityKind.HALF_DIMINISHED

        if kind is QualityKind.MINOR7 and Modifier(ModifierKind.FLAT, 5) in self.modifiers:
            kind = QualityKind.HALF_DIMINISHED
            self.modifiers.remove(Modifier(ModifierKind.FLAT, 5))

        sus = [m for m in self.modifiers if m.kind is ModifierKind.SUS]
        if kind is QualityKind.MAJOR and len(sus) == 1:
            kind = QualityKind.SUS2 if sus[0].degree == 2 else QualityKind.SUS4
            self.modifiers.remove(sus[0])

        modifiers = tuple(sorted(set(self.modifiers), key=lambda m: m.sort_key))
        return ChordQuality(kind=kind, extension=extension, modifiers=modifiers)


def parse_quality(text: str, strict: bool = False) -> ChordQuality:
    """
    Parse a chord suffix into a ChordQuality.

    Args:
        text: Suffix after the root, e.g. "m7", "maj9", "7(b9,#11)"
        strict: Raise instead of returning a passthrough quality

    Returns:
        Canonical ChordQuality with source set to text

    Raises:
        UnsupportedChordError: If strict and the suffix is not recognized
    """
    if text == "":
        return ChordQuality(QualityKind.MAJOR, source="")

    try:
        quality = _QualityScanner(text).scan()
    except _Unrecognized:
        if strict:
            raise UnsupportedChordError(f"Unsupported chord quality: {text!r}", text=text)
        logger.debug(f"Passing through unrecognized chord quality {text!r}")
        return ChordQuality.passthrough(text)

    return replace(quality, source=text)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_STANDARD_BASE = {
    QualityKind.MAJOR: "",
    QualityKind.MINOR: "m",
    QualityKind.DIMINISHED: "dim",
    QualityKind.AUGMENTED: "aug",
    QualityKind.SUS2: "sus2",
    QualityKind.SUS4: "sus4",
    QualityKind.DOMINANT7: "{n}",
    QualityKind.MAJOR7: "maj{n}",
    QualityKind.MINOR7: "m{n}",
    QualityKind.MINOR_MAJOR7: "mmaj{n}",
    QualityKind.HALF_DIMINISHED: "m{n}b5",
    QualityKind.DIMINISHED7: "dim7",
    QualityKind.SIXTH: "6{six_nine}",
    QualityKind.MINOR_SIXTH: "m6{six_nine}",
    QualityKind.POWER: "5",
}

_JAZZ_BASE = dict(_STANDARD_BASE)
_JAZZ_BASE.update({
    QualityKind.MINOR: "-",
    QualityKind.DIMINISHED: "°",
    QualityKind.AUGMENTED: "+",
    QualityKind.MAJOR7: "Δ{n}",
    QualityKind.MINOR7: "-{n}",
    QualityKind.MINOR_MAJOR7: "-Δ{n}",
    QualityKind.HALF_DIMINISHED: "ø{n}",
    QualityKind.DIMINISHED7: "°7",
    QualityKind.MINOR_SIXTH: "-6{six_nine}",
})


def _render_modifier(modifier: Modifier, quality: ChordQuality, unicode: bool) -> str:
    if modifier.kind is ModifierKind.FLAT:
        return ("♭" if unicode else "b") + str(modifier.degree)
    if modifier.kind is ModifierKind.SHARP:
        return ("♯" if unicode else "#") + str(modifier.degree)
    if modifier.kind is ModifierKind.ALT:
        return "alt"
    if modifier.kind is ModifierKind.ADD and modifier.degree == 2 and quality.kind in (
        QualityKind.MAJOR, QualityKind.MINOR
    ):
        return "2"
    return f"{modifier.kind.value}{modifier.degree}"


def render_quality(
    quality: ChordQuality,
    style: NotationStyle = NotationStyle.SOURCE,
    unicode: bool = False,
) -> str:
    """
    Render a ChordQuality as suffix text.

    Args:
        quality: Quality to render
        style: Notation style; SOURCE returns the text as written
        unicode: Use ♭/♯ for alterations (STANDARD/JAZZ only)

    Returns:
        Suffix text
    """
    if quality.is_passthrough:
        return quality.source or ""
    if style is NotationStyle.SOURCE and quality.source is not None:
        return quality.source

    table = _JAZZ_BASE if style is NotationStyle.JAZZ else _STANDARD_BASE
    base = table[quality.kind].format(
        n=quality.extension or 7,
        six_nine="/9" if quality.extension == 9 else "",
    )
    return base + "".join(_render_modifier(m, quality, unicode) for m in quality.modifiers)
