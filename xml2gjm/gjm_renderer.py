"""GjmRenderer: serializes a parsed Score into GJM notation text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO, Final

from xml2gjm.events import ScoreFormatError
from xml2gjm.pitch import gjm_duration, gjm_duration_type
from xml2gjm.score_models import MAX_TRACK_COUNT, Chord, Clef, Measure, Score

FILE_VERSION: Final[str] = "1.1.0.0"
NUMBERED_KEY_SIGNATURE: Final[str] = "C"

# GJM requires these maps but MusicXML gives nothing to fill them from
INSTRUMENT_TYPE: Final[str] = "Piano"
VOLUME_CURVE: Final[tuple[float, ...]] = (0.8, 0.7, 0.5, 0.5, 0.7, 0.6, 0.5, 0.4)


def _indent(depth: int) -> str:
    return "\t" * depth


def _lua_string(value: str) -> str:
    """Single-quoted Lua string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


@dataclass(frozen=True)
class NotationInfo:
    """Header fields of a GJM file. Field names keep GJM's own spelling."""

    version: str = FILE_VERSION
    name: str = "Unnamed"
    author: str = "UnknownAuthor"
    translator: str = "UnknownTranslator"
    creator: str = "Dwarfed"
    volume: int = 1

    @classmethod
    def for_score(
        cls,
        score: Score,
        *,
        name: str | None = None,
        author: str | None = None,
        translator: str | None = None,
        creator: str | None = None,
    ) -> NotationInfo:
        """
        Header for ``score``: explicit values win, then score metadata, then defaults.
        """
        defaults = cls()
        return cls(
            name=name or score.title or defaults.name,
            author=author or score.composer or defaults.author,
            translator=translator or defaults.translator,
            creator=creator or defaults.creator,
        )


@dataclass(frozen=True)
class ChangeMaps:
    """Per-track (measure index, value) entries wherever a value differs from the previous measure."""

    keys: list[tuple[int, int]]
    clefs: list[tuple[int, Clef]]
    volumes: list[tuple[int, int]]


def measure_change_maps(measures: list[Measure]) -> ChangeMaps:
    """
    Compute the key, clef and volume change maps of one track.

    Each map starts with the first measure's value at index 0; an empty track
    yields empty maps.
    """
    keys: list[tuple[int, int]] = []
    clefs: list[tuple[int, Clef]] = []
    volumes: list[tuple[int, int]] = []

    for index, measure in enumerate(measures):
        attributes = measure.attributes
        if not keys or keys[-1][1] != attributes.key:
            keys.append((index, attributes.key))
        if not clefs or clefs[-1][1] != measure.clef:
            clefs.append((index, measure.clef))
        if not volumes or volumes[-1][1] != attributes.volume:
            volumes.append((index, attributes.volume))

    return ChangeMaps(keys, clefs, volumes)


def tempo_map(measures: list[Measure]) -> list[tuple[int, int]]:
    """(measure index, BPM) for the first measure and every tempo change."""
    entries: list[tuple[int, int]] = []
    for index, measure in enumerate(measures):
        if not entries or entries[-1][1] != measure.attributes.tempo:
            entries.append((index, measure.attributes.tempo))
    return entries


class GjmRenderer:
    """
    Render a Score as GJM text.

    Output layout
    -------------
    ``Version`` and a ``Notation`` header table, whose time signature, tempo
    map and measure count describe the first track, followed by
    ``Notation.RegularTracks``: one table per staff track holding its change
    maps and an indexed table of measures, each an indexed table of chords.

    Chord flags are only written when set; a missing key means false.
    Tracks beyond ``max_tracks`` are dropped without error.
    """

    def __init__(self, info: NotationInfo | None = None, max_tracks: int = MAX_TRACK_COUNT) -> None:
        """
        Args:
            info:       Header values; defaults when None.
            max_tracks: Number of staff tracks written at most.
        """
        if max_tracks < 1:
            raise ValueError(f"max_tracks must be at least 1, got {max_tracks}.")
        self.info = info if info is not None else NotationInfo()
        self.max_tracks = max_tracks

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _header_lines(self, first_track: list[Measure]) -> list[str]:
        info = self.info
        attributes = first_track[0].attributes
        lines = [
            f"Version ={_lua_string(info.version)}\n",
            "Notation = {\n",
            f"\tVersion ={_lua_string(info.version)},\n",
            f"\tNotationName = {_lua_string(info.name)},\n",
            f"\tNotationAuther = {_lua_string(info.author)},\n",
            f"\tNotationTranslater = {_lua_string(info.translator)},\n",
            f"\tNotationCreator = {_lua_string(info.creator)},\n",
            f"\tVolume = {info.volume},\n",
            f"\tBeatsPerMeasure = {attributes.beats},\n",
            f"\tBeatDurationType = '{attributes.beat_type}',\n",
            f"\tNumberedKeySignature = {_lua_string(NUMBERED_KEY_SIGNATURE)},\n",
            "\tMeasureBeatsPerMinuteMap = {\n",
        ]
        lines.extend(f"\t\t{{ {index}, {tempo} }},\n" for index, tempo in tempo_map(first_track))
        lines.append("\t},\n")
        lines.append(f"\tMeasureAlignedCount = {len(first_track)},\n")
        lines.append("}\n")
        return lines

    def _map_lines(self, name: str, values: list[str]) -> list[str]:
        lines = [f"{_indent(2)}{name} = {{\n"]
        lines.extend(f"{_indent(3)}{{ {value} }},\n" for value in values)
        lines.append(f"{_indent(2)}}},\n")
        return lines

    def _track_lines(self, track_index: int, measures: list[Measure]) -> list[str]:
        maps = measure_change_maps(measures)
        curve = ", ".join(str(point) for point in VOLUME_CURVE)

        lines = [f"{_indent(1)}[{track_index}] = {{\n"]
        lines += self._map_lines(
            "MeasureKeySignatureMap", [f"{i}, {key}" for i, key in maps.keys]
        )
        lines += self._map_lines(
            "MeasureClefTypeMap", [f"{i}, '{clef.gjm_name}'" for i, clef in maps.clefs]
        )
        lines += self._map_lines("MeasureInstrumentTypeMap", [f"0, '{INSTRUMENT_TYPE}'"])
        lines += self._map_lines("MeasureVolumeCurveMap", [f"0, {{{curve}}}"])
        lines += self._map_lines(
            "MeasureVolumeMap", [f"{i}, {volume}" for i, volume in maps.volumes]
        )

        for measure_index, measure in enumerate(measures):
            lines += self._measure_lines(measure_index, measure)

        lines.append(f"{_indent(1)}}},\n")
        return lines

    def _measure_lines(self, measure_index: int, measure: Measure) -> list[str]:
        lines = [
            f"{_indent(2)}[{measure_index}] = {{\n",
            f"{_indent(3)}DurationStampMax = {measure.duration_stamp_max},\n",
            f"{_indent(3)}NotePackCount = {len(measure.chords)},\n",
        ]

        ratio = measure.duration_ratio
        stamp = 0
        for chord_index, chord in enumerate(measure.chords):
            lines += self._chord_lines(chord_index, chord, stamp)
            stamp += gjm_duration(chord.duration, ratio)

        lines.append(f"{_indent(2)}}},\n")
        return lines

    def _chord_lines(self, chord_index: int, chord: Chord, stamp: int) -> list[str]:
        pad = _indent(4)
        lines = [f"{_indent(3)}[{chord_index}] = {{\n"]

        if chord.is_rest:
            lines.append(f"{pad}IsRest = true,\n")
        if chord.tie_type is not None:
            lines.append(f"{pad}TieType ='{chord.tie_type}',\n")
        if chord.dotted:
            lines.append(f"{pad}IsDotted = true,\n")
        if chord.triplet:
            lines.append(f"{pad}Triplet = true,\n")
        duration_type = gjm_duration_type(chord.note_type)
        if duration_type:
            lines.append(f"{pad}DurationType = '{duration_type}',\n")
        if chord.arpeggiate:
            lines.append(f"{pad}ArpeggioMode ='Upward',\n")

        lines.append(f"{pad}StampIndex = {stamp},\n")
        lines.append(f"{pad}ClassicPitchSignCount = {chord.pitch_count},\n")

        if chord.pitch_count > 0:
            lines.append(f"{pad}ClassicPitchSign = {{\n")
            for note in chord.notes:
                lines.append(
                    f"{_indent(5)}[{note.pitch_index}] = {{ "
                    f"NumberedSign = {note.numbered_sign}, "
                    f"PlayingPitchIndex = {note.playing_pitch_index}, "
                    f"AlterantType = '{note.alteration_name}', "
                    f"RawAlterantType = '{note.alteration_name}', }},\n"
                )
            lines.append(f"{pad}}},\n")

        lines.append(f"{_indent(3)}}},\n")
        return lines

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, score: Score) -> str:
        """
        Render ``score`` to GJM text.

        Raises:
            ScoreFormatError: If the first track holds no measures, since the
                              header is derived from it.
        """
        first = score.tracks(limit=1)
        if not first or not first[0]:
            raise ScoreFormatError("Score contains no measures to convert.")

        lines = self._header_lines(first[0])
        lines.append("Notation.RegularTracks = {\n")
        for track_index, measures in enumerate(score.tracks(limit=self.max_tracks)):
            lines += self._track_lines(track_index, measures)
        lines.append("}")
        return "".join(lines)

    def write(self, score: Score, sink: IO[str]) -> None:
        """Render ``score`` and write it to an open text stream."""
        sink.write(self.render(score))
