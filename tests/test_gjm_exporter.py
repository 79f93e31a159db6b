"""Tests for GjmExporter file handling."""

import io
from pathlib import Path

import pytest

from xml2gjm.events import ScoreFormatError
from xml2gjm.gjm_exporter import GjmExporter

SCORE = """<?xml version="1.0" encoding="UTF-8"?>
<score-partwise version="4.0">
  <work><work-title>Little Tune</work-title></work>
  <part-list><score-part id="P1"><part-name>Piano</part-name></score-part></part-list>
  <part id="P1">
    <measure number="1">
      <attributes><divisions>2</divisions></attributes>
      <note><pitch><step>A</step><octave>4</octave></pitch><duration>2</duration><type>quarter</type></note>
      <note><pitch><step>B</step><alter>-1</alter><octave>4</octave></pitch><duration>2</duration><type>quarter</type></note>
      <note><rest/><duration>4</duration><type>half</type></note>
    </measure>
  </part>
</score-partwise>
"""


def _write_score(tmp_path: Path, name: str = "tune.musicxml", content: str = SCORE) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_export_writes_gjm_file(tmp_path: Path) -> None:
    source = _write_score(tmp_path)
    target = tmp_path / "tune.gjm"

    score = GjmExporter().export(source, target)

    content = target.read_text(encoding="utf-8")
    assert content.startswith("Version ='1.1.0.0'\n")
    assert "\tNotationName = 'Little Tune',\n" in content
    assert "NotePackCount = 3," in content
    assert score.warnings == []


def test_export_header_overrides(tmp_path: Path) -> None:
    source = _write_score(tmp_path)
    target = tmp_path / "tune.gjm"

    GjmExporter(title="Other", creator="Me").export(source, target)

    content = target.read_text(encoding="utf-8")
    assert "\tNotationName = 'Other',\n" in content
    assert "\tNotationCreator = 'Me',\n" in content


def test_export_accepts_xml_suffix(tmp_path: Path) -> None:
    source = _write_score(tmp_path, name="tune.XML")
    target = tmp_path / "out.gjm"
    GjmExporter().export(source, target)
    assert target.exists()


def test_failed_export_leaves_no_output(tmp_path: Path) -> None:
    source = _write_score(tmp_path, content="<score-partwise><part><measure>")
    target = tmp_path / "broken.gjm"

    with pytest.raises(ScoreFormatError):
        GjmExporter().export(source, target)
    assert not target.exists()


def test_unsupported_suffix_is_rejected(tmp_path: Path) -> None:
    source = _write_score(tmp_path, name="tune.txt")
    with pytest.raises(ValueError, match="Unsupported input type"):
        GjmExporter().read(source)


def test_convert_stream() -> None:
    content = GjmExporter().convert_stream(io.BytesIO(SCORE.encode("utf-8")))
    # 2 divisions per quarter: each quarter is 16 stamps
    assert "StampIndex = 16," in content
    assert "StampIndex = 32," in content
    assert "[49] = { NumberedSign = 1, PlayingPitchIndex = 49, AlterantType = 'Natural'," in content
    assert "[51] = { NumberedSign = 2, PlayingPitchIndex = 50, AlterantType = 'Flat'," in content


# ---------------------------------------------------------------------------
# Integration tests: require music21 installed.
# ---------------------------------------------------------------------------

@pytest.mark.integration
def test_export_from_midi(tmp_path: Path) -> None:
    """Smoke test: a MIDI file goes through music21 and comes out as GJM."""
    music21 = pytest.importorskip("music21")

    stream = music21.stream.Stream()
    for name in ("C4", "E4", "G4", "C5"):
        stream.append(music21.note.Note(name, quarterLength=1.0))
    midi_path = tmp_path / "arpeggio.mid"
    stream.write("midi", fp=str(midi_path))

    target = tmp_path / "arpeggio.gjm"
    GjmExporter().export(midi_path, target)

    content = target.read_text(encoding="utf-8")
    assert "Notation.RegularTracks = {" in content
    assert "PlayingPitchIndex = 40," in content
