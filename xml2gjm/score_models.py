"""Data models for a parsed partwise score."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from xml2gjm import pitch
from xml2gjm.pitch import NoteType

#: GJM engines accept at most this many regular tracks.
MAX_TRACK_COUNT: Final[int] = 3


class Clef(Enum):
    """Clef of one staff, valued by its MusicXML ``<sign>``."""

    TREBLE = "G"
    BASS = "F"

    @property
    def gjm_name(self) -> str:
        return "L2G" if self is Clef.TREBLE else "L4F"


@dataclass(frozen=True)
class Note:
    """A single note or rest read from one ``<note>`` element."""

    pitch_index: int = 0
    alter: int = 0
    duration: int = 0
    note_type: NoteType = NoteType.QUARTER
    staff: int = 1
    is_rest: bool = False
    dotted: bool = False
    arpeggiate: bool = False
    triplet: bool = False
    tie_start: bool = False
    tie_stop: bool = False

    @property
    def playing_pitch_index(self) -> int:
        return self.pitch_index + self.alter

    @property
    def numbered_sign(self) -> int:
        return pitch.numbered_sign(self.pitch_index)

    @property
    def alteration_name(self) -> str:
        return pitch.alteration_name(self.alter)


@dataclass
class Chord:
    """
    Notes of one staff that start on the same division.

    MusicXML lets simultaneous notes disagree on length; the chord lasts as
    long as its shortest note, and ``note_type``/``dotted`` follow that note.
    The remaining flags come from the note that opened the chord.
    """

    start: int
    notes: list[Note] = field(default_factory=list)
    duration: int = 0
    note_type: NoteType = NoteType.QUARTER
    dotted: bool = False
    is_rest: bool = False
    arpeggiate: bool = False
    triplet: bool = False
    tie_start: bool = False
    tie_stop: bool = False

    @classmethod
    def from_note(cls, start: int, note: Note) -> Chord:
        return cls(
            start=start,
            notes=[note],
            duration=note.duration,
            note_type=note.note_type,
            dotted=note.dotted,
            is_rest=note.is_rest,
            arpeggiate=note.arpeggiate,
            triplet=note.triplet,
            tie_start=note.tie_start,
            tie_stop=note.tie_stop,
        )

    def add(self, note: Note) -> None:
        if note.duration < self.duration:
            self.duration = note.duration
            self.note_type = note.note_type
            self.dotted = note.dotted
        self.notes.append(note)

    @property
    def tie_type(self) -> str | None:
        """GJM ``TieType`` value, or None when no tie or slur touches the chord."""
        if self.tie_start and self.tie_stop:
            return "Both"
        if self.tie_start:
            return "Start"
        if self.tie_stop:
            return "End"
        return None

    @property
    def pitch_count(self) -> int:
        """Number of pitch signs written for the chord; rests have none."""
        return 0 if self.is_rest else len(self.notes)


@dataclass(frozen=True)
class Attributes:
    """
    Measure attributes shared by every staff of a part, plus a clef per staff.

    Divisions, key, time signature, tempo and volume are stored once, so an
    update reaches all staves. Only the clef differs between staves; the
    staff count is the length of ``clefs``.
    """

    divisions: int = 24
    volume: int = 80
    tempo: int = 108
    key: int = 0
    beats: int = 4
    beat_type: int = 4
    clefs: tuple[Clef, ...] = (Clef.TREBLE,)

    @property
    def staff_count(self) -> int:
        return len(self.clefs)

    def clef_for(self, staff: int) -> Clef:
        return self.clefs[staff - 1]

    def with_staves(self, count: int) -> Attributes:
        """Grow (never shrink) to ``count`` staves; new staves copy staff 1's clef."""
        if count <= self.staff_count:
            return self
        extra = (self.clefs[0],) * (count - self.staff_count)
        return dataclasses.replace(self, clefs=self.clefs + extra)

    def with_clef(self, staff: int, clef: Clef) -> Attributes:
        grown = self.with_staves(staff)
        clefs = list(grown.clefs)
        clefs[staff - 1] = clef
        return dataclasses.replace(grown, clefs=tuple(clefs))


@dataclass
class Measure:
    """One staff's chords for one measure, with the attributes in effect."""

    staff: int
    attributes: Attributes
    chords: list[Chord] = field(default_factory=list)

    @property
    def clef(self) -> Clef:
        return self.attributes.clef_for(self.staff)

    @property
    def source_duration(self) -> int:
        """Divisions consumed by the chords of this measure."""
        return sum(chord.duration for chord in self.chords)

    @property
    def duration_ratio(self) -> float:
        return pitch.duration_ratio(self.attributes)

    @property
    def duration_stamp_max(self) -> int:
        return pitch.duration_stamp_max(self.attributes, self.source_duration)


@dataclass
class Part:
    """
    One MusicXML ``<part>``, fanned out into a measure sequence per staff.

    A staff that first appears in a later measure starts its sequence at that
    measure, so its measure indexes are offset from staff 1's.
    """

    staves: list[list[Measure]] = field(default_factory=lambda: [[]])


@dataclass
class Score:
    """All parts of a score in source order, with header metadata."""

    parts: list[Part] = field(default_factory=list)
    title: str | None = None
    composer: str | None = None
    warnings: list[str] = field(default_factory=list)

    def tracks(self, limit: int | None = MAX_TRACK_COUNT) -> list[list[Measure]]:
        """
        Flatten every part's staves into output tracks, in order.

        Args:
            limit: Maximum number of tracks to return; None returns all.
        """
        flattened = [staff for part in self.parts for staff in part.staves]
        if limit is None:
            return flattened
        return flattened[:limit]
