"""Unit tests for part and score assembly."""

import io

import pytest

from xml2gjm.events import ScoreFormatError
from xml2gjm.score_builder import read_score
from xml2gjm.score_models import Clef, Score

WHOLE_C4 = (
    "<note><pitch><step>C</step><octave>4</octave></pitch>"
    "<duration>96</duration><type>whole</type></note>"
)


def _read(xml: str) -> Score:
    return read_score(io.BytesIO(xml.encode("utf-8")))


def _part(part_id: str, *measures: str) -> str:
    body = "".join(f'<measure number="{i + 1}">{m}</measure>' for i, m in enumerate(measures))
    return f'<part id="{part_id}">{body}</part>'


def _score(*parts: str, header: str = "") -> str:
    part_list = "".join(
        f'<score-part id="P{i + 1}"><part-name>Part {i + 1}</part-name></score-part>'
        for i in range(len(parts))
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<score-partwise version="4.0">'
        f"{header}<part-list>{part_list}</part-list>{''.join(parts)}"
        "</score-partwise>"
    )


def test_single_part_single_measure() -> None:
    score = _read(_score(_part("P1", "<attributes><divisions>24</divisions></attributes>" + WHOLE_C4)))

    assert len(score.parts) == 1
    [staff] = score.parts[0].staves
    [measure] = staff
    [chord] = measure.chords
    assert chord.notes[0].pitch_index == 40
    assert score.warnings == []


def test_attributes_carry_into_next_measure() -> None:
    score = _read(
        _score(
            _part(
                "P1",
                "<attributes><divisions>24</divisions><key><fifths>0</fifths></key></attributes>"
                + WHOLE_C4,
                WHOLE_C4,
            )
        )
    )
    first, second = score.parts[0].staves[0]
    assert second.attributes.key == 0
    assert second.attributes == first.attributes


def test_attributes_carry_non_default_values() -> None:
    score = _read(
        _score(
            _part(
                "P1",
                "<attributes><divisions>4</divisions><key><fifths>-3</fifths></key>"
                "<time><beats>3</beats><beat-type>4</beat-type></time></attributes>"
                '<sound tempo="90"/>',
                "",
            )
        )
    )
    second = score.parts[0].staves[0][1]
    assert (second.attributes.key, second.attributes.divisions, second.attributes.beats) == (-3, 4, 3)
    assert second.attributes.tempo == 90


def test_two_staff_part_yields_two_sequences() -> None:
    attributes = (
        "<attributes><divisions>24</divisions><staves>2</staves>"
        '<clef number="1"><sign>G</sign></clef><clef number="2"><sign>F</sign></clef></attributes>'
    )
    bass_note = WHOLE_C4.replace("</note>", "<staff>2</staff></note>")
    backup = "<backup><duration>96</duration></backup>"
    score = _read(
        _score(_part("P1", attributes + WHOLE_C4 + backup + bass_note, WHOLE_C4 + backup + bass_note))
    )

    treble, bass = score.parts[0].staves
    assert len(treble) == len(bass) == 2
    assert [m.clef for m in treble] == [Clef.TREBLE, Clef.TREBLE]
    assert [m.clef for m in bass] == [Clef.BASS, Clef.BASS]
    assert treble[1].attributes is bass[1].attributes
    assert len(score.tracks()) == 2


def test_staff_added_later_starts_at_that_measure() -> None:
    score = _read(
        _score(_part("P1", WHOLE_C4, "<attributes><staves>2</staves></attributes>" + WHOLE_C4))
    )
    first, second = score.parts[0].staves
    assert len(first) == 2
    assert len(second) == 1
    assert second[0].chords == []


def test_four_parts_are_capped_at_three_tracks() -> None:
    parts = [_part(f"P{i}", WHOLE_C4) for i in range(1, 5)]
    score = _read(_score(*parts))

    assert len(score.parts) == 4
    assert len(score.tracks()) == 3
    assert len(score.tracks(limit=None)) == 4


def test_score_metadata() -> None:
    header = (
        "<work><work-title>Minuet</work-title></work>"
        "<movement-title>I.</movement-title>"
        '<identification><creator type="lyricist">Anon</creator>'
        '<creator type="composer">J. S. Bach</creator></identification>'
    )
    score = _read(_score(_part("P1", WHOLE_C4), header=header))
    assert score.title == "Minuet"
    assert score.composer == "J. S. Bach"


def test_movement_title_used_without_work_title() -> None:
    score = _read(_score(_part("P1", WHOLE_C4), header="<movement-title>Etude</movement-title>"))
    assert score.title == "Etude"
    assert score.composer is None


def test_warnings_are_collected() -> None:
    score = _read(
        _score(_part("P1", "<attributes><clef><sign>TAB</sign></clef></attributes>" + WHOLE_C4))
    )
    assert score.warnings == ["Unrecognized clef sign 'TAB'"]


def test_missing_partwise_score_is_rejected() -> None:
    with pytest.raises(ScoreFormatError, match="score-partwise"):
        _read("<opus/>")


def test_timewise_score_is_rejected() -> None:
    with pytest.raises(ScoreFormatError, match="Timewise"):
        _read("<score-timewise><part-list/></score-timewise>")


def test_malformed_document_is_rejected() -> None:
    with pytest.raises(ScoreFormatError):
        _read("<score-partwise><part><measure></part></score-partwise>")


def test_bad_numeric_field_is_fatal() -> None:
    with pytest.raises(ScoreFormatError, match="divisions"):
        _read(_score(_part("P1", "<attributes><divisions>many</divisions></attributes>")))
