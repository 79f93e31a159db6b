"""Parsers for the leaf-level MusicXML elements: note, attributes, backup and direction."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from xml2gjm.events import EventCursor, ScoreFormatError, StartTag, parse_float
from xml2gjm.pitch import STEP_OFFSETS, NoteType, pitch_index, round_half_up
from xml2gjm.score_models import Attributes, Clef, Note

logger = logging.getLogger(__name__)

MAX_VOLUME = 100


# ------------------------------------------------------------------
# Notes
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedNote:
    """
    A note together with how it attaches to the time line.

    Attributes:
        note:     The parsed Note.
        is_chord: True when ``<chord/>`` marks it as sounding with the previous note.
        is_grace: True for grace notes, which take no time and are not converted.
    """

    note: Note
    is_chord: bool = False
    is_grace: bool = False


def parse_note(cursor: EventCursor) -> ParsedNote:
    """
    Parse a ``<note>`` element.

    Args:
        cursor: Positioned just inside ``<note>``; left just after ``</note>``.

    Raises:
        ScoreFormatError: If duration, staff, octave or alter are not integers.
    """
    fields: dict[str, Any] = {}
    is_chord = False
    is_grace = False

    for tag in cursor.descend("note"):
        if tag.name == "pitch":
            fields["pitch_index"], fields["alter"] = _parse_pitch(cursor)
        elif tag.name == "chord":
            is_chord = True
        elif tag.name == "grace":
            is_grace = True
        elif tag.name == "type":
            note_type = NoteType.from_musicxml(cursor.read_text("type"))
            if note_type is not None:
                fields["note_type"] = note_type
        elif tag.name == "duration":
            fields["duration"] = cursor.read_int("duration", minimum=0)
        elif tag.name == "staff":
            fields["staff"] = cursor.read_int("staff", minimum=0)
        elif tag.name == "rest":
            fields["is_rest"] = True
        elif tag.name == "dot":
            fields["dotted"] = True
        elif tag.name == "notations":
            fields.update(_parse_notations(cursor))

    return ParsedNote(note=Note(**fields), is_chord=is_chord, is_grace=is_grace)


def _parse_pitch(cursor: EventCursor) -> tuple[int, int]:
    step = ""
    octave = 0
    alter = 0
    for tag in cursor.descend("pitch"):
        if tag.name == "step":
            step = cursor.read_text("step")
        elif tag.name == "octave":
            octave = cursor.read_int("octave", minimum=0)
        elif tag.name == "alter":
            alter = cursor.read_int("alter")

    if step not in STEP_OFFSETS:
        cursor.warn(f"Unrecognized pitch step {step!r}")
    return pitch_index(step, octave), alter


def _parse_notations(cursor: EventCursor) -> dict[str, bool]:
    flags: dict[str, bool] = {}
    for tag in cursor.descend("notations"):
        kind = tag.attributes.get("type")
        if tag.name == "arpeggiate":
            flags["arpeggiate"] = True
        elif tag.name == "tuplet":
            # Every tuplet is written as a triplet
            if kind == "start":
                flags["triplet"] = True
        elif tag.name in ("slur", "tied"):
            if kind == "start":
                flags["tie_start"] = True
            elif kind == "stop":
                flags["tie_stop"] = True
    return flags


# ------------------------------------------------------------------
# Attributes
# ------------------------------------------------------------------


def parse_attributes(cursor: EventCursor, previous: Attributes | None = None) -> Attributes:
    """
    Parse an ``<attributes>`` element on top of the attributes already in effect.

    Divisions, key and time signature apply to every staff. ``<staves>`` only
    ever adds staves, each starting with staff 1's clef. A ``<clef>`` applies
    to the staff named by its ``number`` attribute, or staff 1.

    Args:
        cursor:   Positioned just inside ``<attributes>``.
        previous: Attributes carried over; defaults when None.

    Returns:
        A new Attributes snapshot; ``previous`` is left untouched.
    """
    attributes = previous if previous is not None else Attributes()

    for tag in cursor.descend("attributes"):
        if tag.name == "divisions":
            divisions = cursor.read_int("divisions", minimum=1)
            attributes = dataclasses.replace(attributes, divisions=divisions)
        elif tag.name == "key":
            for child in cursor.descend("key"):
                if child.name == "fifths":
                    attributes = dataclasses.replace(attributes, key=cursor.read_int("fifths"))
        elif tag.name == "time":
            for child in cursor.descend("time"):
                if child.name == "beats":
                    attributes = dataclasses.replace(
                        attributes, beats=cursor.read_int("beats", minimum=1)
                    )
                elif child.name == "beat-type":
                    attributes = dataclasses.replace(
                        attributes, beat_type=cursor.read_int("beat-type", minimum=1)
                    )
        elif tag.name == "staves":
            attributes = attributes.with_staves(cursor.read_int("staves", minimum=1))
        elif tag.name == "clef":
            staff = _clef_staff(cursor, tag)
            clef = _parse_clef(cursor)
            if clef is not None:
                attributes = attributes.with_clef(staff, clef)

    return attributes


def _clef_staff(cursor: EventCursor, tag: StartTag) -> int:
    # Single-staff parts usually omit the number
    number = tag.attributes.get("number")
    if number is None:
        return 1
    try:
        staff = int(number)
    except ValueError:
        raise ScoreFormatError(f"<clef number> expects an integer, got {number!r}") from None
    if staff < 1:
        cursor.warn(f"Clef staff number {staff} is out of range; using staff 1")
        return 1
    return staff


def _parse_clef(cursor: EventCursor) -> Clef | None:
    clef = None
    for tag in cursor.descend("clef"):
        if tag.name == "sign":
            sign = cursor.read_text("sign")
            try:
                clef = Clef(sign)
            except ValueError:
                cursor.warn(f"Unrecognized clef sign {sign!r}")
    return clef


# ------------------------------------------------------------------
# Cursor movement and sound hints
# ------------------------------------------------------------------


def parse_offset(cursor: EventCursor, label: str) -> int:
    """Read the ``<duration>`` of a ``<backup>`` or ``<forward>`` element."""
    duration = 0
    for tag in cursor.descend(label):
        if tag.name == "duration":
            duration = cursor.read_int("duration", minimum=0)
    return duration


@dataclass(frozen=True)
class SoundHints:
    """Playback values from a ``<sound>`` element; None means not given."""

    tempo: int | None = None
    volume: int | None = None

    @classmethod
    def from_tag(cls, tag: StartTag) -> SoundHints:
        """
        Read ``tempo`` and ``dynamics``, rounded half up.

        Negative values become 0 and volume is capped at 100.
        """
        tempo = tag.attributes.get("tempo")
        dynamics = tag.attributes.get("dynamics")
        hints = cls()
        if tempo is not None:
            hints = dataclasses.replace(
                hints, tempo=max(0, round_half_up(parse_float(tempo, "sound tempo")))
            )
        if dynamics is not None:
            volume = round_half_up(parse_float(dynamics, "sound dynamics"))
            hints = dataclasses.replace(hints, volume=min(MAX_VOLUME, max(0, volume)))
        return hints

    def apply(self, attributes: Attributes) -> Attributes:
        if self.tempo is not None:
            attributes = dataclasses.replace(attributes, tempo=self.tempo)
        if self.volume is not None:
            attributes = dataclasses.replace(attributes, volume=self.volume)
        return attributes


def parse_direction(cursor: EventCursor) -> list[SoundHints]:
    """Collect the sound hints of a ``<direction>`` element; visual content is skipped."""
    hints = []
    for tag in cursor.descend("direction"):
        if tag.name == "sound":
            hints.append(SoundHints.from_tag(tag))
    if not hints:
        logger.debug("Direction without sound hints skipped")
    return hints
