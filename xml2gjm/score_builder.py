"""Part and score assembly on top of the measure builder."""

from __future__ import annotations

import logging
from typing import IO

from xml2gjm.events import EndOfStream, EventCursor, ScoreFormatError, StartTag
from xml2gjm.measure_builder import parse_measure
from xml2gjm.score_models import Attributes, Part, Score

logger = logging.getLogger(__name__)


def parse_part(cursor: EventCursor) -> Part:
    """
    Parse a ``<part>`` element into per-staff measure sequences.

    Each measure starts from the attributes the previous measure ended with.
    A staff that appears for the first time gets a new sequence starting at
    the current measure.
    """
    part = Part()
    attributes = Attributes()

    for tag in cursor.descend("part"):
        if tag.name != "measure":
            continue
        measures, attributes = parse_measure(cursor, attributes)
        for index, measure in enumerate(measures):
            if index >= len(part.staves):
                part.staves.append([])
            part.staves[index].append(measure)

    return part


def _read_creator(cursor: EventCursor, tag: StartTag) -> str | None:
    text = cursor.read_text("creator")
    if tag.attributes.get("type") == "composer" and text:
        return text
    return None


def parse_score(cursor: EventCursor) -> Score:
    """
    Parse a ``<score-partwise>`` element.

    Parts are kept in source order. Title and composer are taken from the
    score header when present; ``<movement-title>`` is used when there is no
    ``<work-title>``.
    """
    score = Score()
    movement_title = None

    for tag in cursor.descend("score-partwise"):
        if tag.name == "part":
            score.parts.append(parse_part(cursor))
        elif tag.name == "work-title":
            score.title = cursor.read_text("work-title") or None
        elif tag.name == "movement-title":
            movement_title = cursor.read_text("movement-title") or None
        elif tag.name == "creator":
            composer = _read_creator(cursor, tag)
            if composer is not None and score.composer is None:
                score.composer = composer

    if score.title is None:
        score.title = movement_title
    logger.debug("Parsed %d part(s)", len(score.parts))
    return score


def read_score(stream: IO[bytes]) -> Score:
    """
    Parse a complete MusicXML document from an open binary stream.

    Args:
        stream: Readable binary stream holding a partwise MusicXML document.

    Returns:
        The parsed Score, with the parser's warnings attached.

    Raises:
        ScoreFormatError: If the document is malformed, holds a timewise
                          score or no score at all, or a numeric field is invalid.
    """
    cursor = EventCursor.from_stream(stream)
    score = None

    while True:
        event = cursor.next()
        if isinstance(event, EndOfStream):
            break
        if not isinstance(event, StartTag):
            continue
        if event.name == "score-partwise":
            score = parse_score(cursor)
        elif event.name == "score-timewise":
            raise ScoreFormatError("Timewise MusicXML scores are not supported")

    if score is None:
        raise ScoreFormatError("Document does not contain a <score-partwise> element")
    score.warnings = list(cursor.diagnostics)
    return score
