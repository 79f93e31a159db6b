"""MeasureBuilder: places the notes of one ``<measure>`` on a time line and groups them into chords."""

from __future__ import annotations

import dataclasses
import logging

from xml2gjm.element_parsers import (
    ParsedNote,
    SoundHints,
    parse_attributes,
    parse_direction,
    parse_note,
    parse_offset,
)
from xml2gjm.events import EventCursor
from xml2gjm.score_models import Attributes, Chord, Measure, Note

logger = logging.getLogger(__name__)


class MeasureBuilder:
    """
    Event-driven assembly of one measure across all staves of a part.

    Timing model
    ------------
    MusicXML lists notes in reading order and moves a time cursor with note
    durations, ``<backup>`` and ``<forward>``. The builder tracks:

    - ``current_position``: where the next new chord starts (divisions).
    - ``last_chord_position``: where the most recent chord started.

    A ``<chord/>`` note joins the chord at ``last_chord_position``. When it is
    shorter than what the chord has consumed so far, the cursor is pulled back
    so the chord lasts as long as its shortest note.

    Notes are buffered by start position because backups allow them to arrive
    out of order; chords are only formed in ``finish()``, once every note,
    backup and staff assignment of the measure is known.
    """

    def __init__(self, attributes: Attributes) -> None:
        """
        Args:
            attributes: Snapshot carried over from the previous measure.
        """
        self.attributes = attributes
        self.current_position = 0
        self.last_chord_position = 0
        self._notes: dict[int, list[Note]] = {}

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def add_note(self, parsed: ParsedNote) -> int:
        """Place a note on the time line and return its start position."""
        note = parsed.note
        if parsed.is_chord:
            position = self.last_chord_position
            if note.duration < self.current_position - self.last_chord_position:
                self.current_position = self.last_chord_position + note.duration
        else:
            position = self.current_position
            self.last_chord_position = self.current_position
            self.current_position += note.duration

        self._notes.setdefault(position, []).append(note)
        return position

    def backup(self, duration: int) -> None:
        self.current_position = max(0, self.current_position - duration)

    def forward(self, duration: int) -> None:
        self.current_position += duration

    def apply_sound(self, hints: SoundHints) -> None:
        """Tempo and volume changes hold for the whole measure and later ones."""
        self.attributes = hints.apply(self.attributes)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _resolve_staff(self, note: Note, cursor: EventCursor) -> Note:
        if note.staff < 1:
            cursor.warn(f"Note staff {note.staff} is out of range; using staff 1")
            return dataclasses.replace(note, staff=1)
        if note.staff > self.attributes.staff_count:
            cursor.warn(
                f"Note on staff {note.staff} but only {self.attributes.staff_count} "
                "staves declared; adding staves"
            )
            self.attributes = self.attributes.with_staves(note.staff)
        return note

    def finish(self, cursor: EventCursor) -> list[Measure]:
        """
        Group the buffered notes into chords, one Measure per staff.

        Returns:
            Measures ordered by staff number, each sharing the final attributes.
        """
        placed = [
            (start, self._resolve_staff(note, cursor))
            for start in sorted(self._notes)
            for note in self._notes[start]
        ]

        chords_by_staff: list[list[Chord]] = [[] for _ in range(self.attributes.staff_count)]
        for start, note in placed:
            chords = chords_by_staff[note.staff - 1]
            if chords and chords[-1].start == start:
                chords[-1].add(note)
            else:
                chords.append(Chord.from_note(start, note))

        return [
            Measure(staff=index + 1, attributes=self.attributes, chords=chords)
            for index, chords in enumerate(chords_by_staff)
        ]


def parse_measure(
    cursor: EventCursor, attributes: Attributes
) -> tuple[list[Measure], Attributes]:
    """
    Parse a ``<measure>`` element.

    Args:
        cursor:     Positioned just inside ``<measure>``; left after ``</measure>``.
        attributes: Snapshot carried over from the previous measure.

    Returns:
        A 2-tuple:
          - one Measure per staff,
          - the attributes snapshot the next measure inherits.
    """
    builder = MeasureBuilder(attributes)

    for tag in cursor.descend("measure"):
        if tag.name == "attributes":
            builder.attributes = parse_attributes(cursor, builder.attributes)
        elif tag.name == "note":
            parsed = parse_note(cursor)
            if parsed.is_grace:
                logger.debug("Grace note skipped")
                continue
            builder.add_note(parsed)
        elif tag.name == "backup":
            builder.backup(parse_offset(cursor, "backup"))
        elif tag.name == "forward":
            builder.forward(parse_offset(cursor, "forward"))
        elif tag.name == "direction":
            for hints in parse_direction(cursor):
                builder.apply_sound(hints)
        elif tag.name == "sound":
            builder.apply_sound(SoundHints.from_tag(tag))

    measures = builder.finish(cursor)
    return measures, builder.attributes
