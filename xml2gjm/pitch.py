"""Pitch and duration primitives shared by the parsers and the GJM renderer."""

from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from xml2gjm.score_models import Attributes

# ── Pitch constants ─────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12

#: Half steps from A flat for each letter name. The gaps are intentional.
STEP_OFFSETS: Final[dict[str, int]] = {
    "A": 13,
    "B": 15,
    "C": 4,
    "D": 6,
    "E": 8,
    "F": 9,
    "G": 11,
}

#: Pitch index residue -> numbered-notation scale degree.
NUMBERED_SIGNS: Final[dict[int, int]] = {1: 1, 3: 2, 4: 3, 6: 4, 8: 5, 9: 6, 11: 7}

ALTERATION_NAMES: Final[dict[int, str]] = {-1: "Flat", 0: "Natural", 1: "Sharp"}

# ── Duration constants ──────────────────────────────────────────────────────
#: GJM stamps per whole note.
STAMPS_PER_WHOLE = 64


def pitch_index(step: str, octave: int) -> int:
    """
    Convert a MusicXML step letter and octave into a GJM pitch index.

    Index zero is A flat below A1 and the index rises by one per half step.
    Octave 0 shares the numbering of octave 1; letters outside A-G contribute
    no offset.

    Args:
        step:   Pitch letter, "A" to "G".
        octave: MusicXML octave number (C4 is middle C).

    Returns:
        The pitch index, e.g. 40 for C4.
    """
    base = 0 if octave == 0 else (octave - 1) * SEMITONES_PER_OCTAVE
    return base + STEP_OFFSETS.get(step, 0)


def numbered_sign(index: int) -> int:
    """Numbered-notation degree (1-7) for a pitch index; unlisted residues give 1."""
    return NUMBERED_SIGNS.get(index % SEMITONES_PER_OCTAVE, 1)


def alteration_name(alter: int) -> str:
    """
    Name an alteration in semitones.

    Double (or larger) alterations saturate to "Flat" / "Sharp" because GJM
    has no label for them.
    """
    clamped = max(-1, min(1, alter))
    return ALTERATION_NAMES[clamped]


class NoteType(Enum):
    """MusicXML ``<type>`` values."""

    TEN_TWENTY_FOURTH = "1024th"
    FIVE_TWELFTH = "512th"
    TWO_FIFTY_SIXTH = "256th"
    ONE_TWENTY_EIGHTH = "128th"
    SIXTY_FOURTH = "64th"
    THIRTY_SECOND = "32nd"
    SIXTEENTH = "16th"
    EIGHTH = "eighth"
    QUARTER = "quarter"
    HALF = "half"
    WHOLE = "whole"
    BREVE = "breve"
    LONG = "long"
    MAXIMA = "maxima"

    @classmethod
    def from_musicxml(cls, text: str) -> NoteType | None:
        """Return the matching NoteType, or None for unrecognised text."""
        try:
            return cls(text)
        except ValueError:
            return None


# GJM only expresses 32nd through whole notes
_GJM_DURATION_TYPES: Final[dict[NoteType, str]] = {
    NoteType.THIRTY_SECOND: "The32nd",
    NoteType.SIXTEENTH: "The16th",
    NoteType.EIGHTH: "Eighth",
    NoteType.QUARTER: "Quarter",
    NoteType.HALF: "Half",
    NoteType.WHOLE: "Whole",
}


def gjm_duration_type(note_type: NoteType) -> str:
    """GJM ``DurationType`` string, or "" for lengths GJM cannot express."""
    return _GJM_DURATION_TYPES.get(note_type, "")


def round_half_up(value: float) -> int:
    """Round a non-negative value with halves going up (not to even)."""
    return int(math.floor(value + 0.5))


# ── Duration ratio arithmetic ───────────────────────────────────────────────


def theoretical_source_duration(attributes: Attributes) -> int:
    """Divisions in one full measure under ``attributes``."""
    return attributes.divisions * attributes.beats


def theoretical_target_duration(attributes: Attributes) -> int:
    """GJM stamps in one full measure under ``attributes``."""
    return (STAMPS_PER_WHOLE // attributes.beat_type) * attributes.beats


def duration_ratio(attributes: Attributes) -> float:
    """
    Stamps per division for a measure.

    For the defaults (4/4, 24 divisions) this is 64 / 96.
    Returns 0.0 when the measure holds no divisions at all.
    """
    source = theoretical_source_duration(attributes)
    if source == 0:
        return 0.0
    return theoretical_target_duration(attributes) / source


def gjm_duration(duration: int, ratio: float) -> int:
    """Convert a duration in divisions to GJM stamps."""
    return round_half_up(duration * ratio)


def duration_stamp_max(attributes: Attributes, consumed: int) -> int:
    """
    Last usable stamp of a measure whose chords consume ``consumed`` divisions.

    Stamps are zero-based offsets, hence the subtraction; the result never
    drops below zero.
    """
    stamps = round_half_up(duration_ratio(attributes) * consumed)
    return max(stamps - 1, 0)
