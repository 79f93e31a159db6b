"""GjmExporter: converts score files on disk into GJM files."""

from __future__ import annotations

import io
from pathlib import Path
from typing import IO, Any, Final

from xml2gjm.gjm_renderer import GjmRenderer, NotationInfo
from xml2gjm.score_builder import read_score
from xml2gjm.score_models import MAX_TRACK_COUNT, Score

MUSICXML_SUFFIXES: Final[set[str]] = {".xml", ".musicxml"}
MUSIC21_SUFFIXES: Final[set[str]] = {".mxl", ".mid", ".midi"}


class GjmExporter:
    """
    Convert a score file into a GJM file.

    Supported inputs:
    - ``.xml`` / ``.musicxml``: uncompressed partwise MusicXML, read directly.
    - ``.mxl`` / ``.mid`` / ``.midi``: parsed with music21 and re-exported as
      MusicXML before conversion.

    The output file is only created once the whole input has been parsed and
    rendered, so a failed conversion never leaves a partial file behind.
    """

    def __init__(
        self,
        title: str | None = None,
        author: str | None = None,
        translator: str | None = None,
        creator: str | None = None,
        max_tracks: int = MAX_TRACK_COUNT,
    ) -> None:
        """
        Args:
            title, author, translator, creator: Header overrides; score
                metadata or GJM defaults are used for the ones left as None.
            max_tracks: Number of staff tracks written at most.
        """
        self.title = title
        self.author = author
        self.translator = translator
        self.creator = creator
        self.max_tracks = max_tracks

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_with_music21(self, path: Path) -> Any:
        from music21 import converter

        return converter.parse(str(path))

    def _score_to_musicxml_bytes(self, score: Any) -> bytes:
        from music21.musicxml.m21ToXml import GeneralObjectExporter

        exporter = GeneralObjectExporter(score)
        return exporter.parse()

    def _load_musicxml_bytes(self, input_path: Path) -> bytes:
        suffix = input_path.suffix.lower()
        if suffix in MUSICXML_SUFFIXES:
            return input_path.read_bytes()
        if suffix in MUSIC21_SUFFIXES:
            return self._score_to_musicxml_bytes(self._parse_with_music21(input_path))
        supported = ", ".join(sorted(MUSICXML_SUFFIXES | MUSIC21_SUFFIXES))
        raise ValueError(f"Unsupported input type '{suffix}'. Use one of: {supported}.")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(self, input_path: str | Path) -> Score:
        """
        Parse a score file into the in-memory model.

        Raises:
            ValueError: If the file type is unsupported or the content is
                        not convertible (ScoreFormatError).
            OSError:    If the file cannot be read.
        """
        data = self._load_musicxml_bytes(Path(input_path))
        return read_score(io.BytesIO(data))

    def render(self, score: Score) -> str:
        info = NotationInfo.for_score(
            score,
            name=self.title,
            author=self.author,
            translator=self.translator,
            creator=self.creator,
        )
        return GjmRenderer(info=info, max_tracks=self.max_tracks).render(score)

    def convert_stream(self, stream: IO[bytes]) -> str:
        """Convert an open MusicXML byte stream to GJM text."""
        return self.render(read_score(stream))

    def export(self, input_path: str | Path, output_path: str | Path) -> Score:
        """
        Convert ``input_path`` and write the GJM text to ``output_path``.

        Returns:
            The parsed Score, whose ``warnings`` list any recoverable problems.

        Raises:
            ValueError: If the input cannot be converted.
            OSError:    If a file cannot be read or written.
        """
        score = self.read(input_path)
        content = self.render(score)

        with open(output_path, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
        return score
