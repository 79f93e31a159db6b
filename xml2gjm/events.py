"""Markup events: adapts lxml's iterparse into a forward-only event cursor."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import IO, Union

from lxml import etree

logger = logging.getLogger(__name__)

# Optional minus sign and ASCII digits only
_INTEGER = re.compile(r"-?[0-9]+")


class ScoreFormatError(ValueError):
    """Raised when the input cannot be converted at all (malformed markup, bad numbers)."""


@dataclass(frozen=True)
class StartTag:
    """An opening tag with its attributes (local names, namespaces stripped)."""

    name: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EndTag:
    """A closing tag."""

    name: str


@dataclass(frozen=True)
class Characters:
    """Non-blank character data of the element that is about to close."""

    text: str


@dataclass(frozen=True)
class EndOfStream:
    """Emitted once after the document element has closed."""


Event = Union[StartTag, EndTag, Characters, EndOfStream]


def _local_name(tag: str) -> str:
    return etree.QName(tag).localname


def iter_events(stream: IO[bytes]) -> Iterator[Event]:
    """
    Yield markup events for an open binary stream.

    lxml only knows an element's text once the element is complete, so the
    text is reported as a Characters event immediately before its EndTag.
    That is exact for leaf elements, which are the only ones whose text the
    converter reads.

    Raises:
        ScoreFormatError: If the stream is not well-formed XML.
    """
    context = etree.iterparse(
        stream,
        events=("start", "end"),
        load_dtd=False,
        no_network=True,
        resolve_entities=False,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        for action, element in context:
            if not isinstance(element.tag, str):
                continue
            name = _local_name(element.tag)
            if action == "start":
                attributes = {_local_name(key): value for key, value in element.attrib.items()}
                yield StartTag(name, attributes)
                continue

            text = element.text
            if text is not None and text.strip():
                yield Characters(text.strip())
            yield EndTag(name)
            # Parsed subtrees are never revisited
            element.clear(keep_tail=True)
    except etree.XMLSyntaxError as exc:
        raise ScoreFormatError(f"Malformed MusicXML: {exc}") from exc

    yield EndOfStream()


def parse_float(text: str, label: str) -> float:
    """Parse a numeric attribute value, treating failure as fatal."""
    try:
        value = float(text)
    except ValueError:
        raise ScoreFormatError(f"{label} expects a number, got {text!r}") from None
    if not math.isfinite(value):
        raise ScoreFormatError(f"{label} expects a finite number, got {text!r}")
    return value


class EventCursor:
    """
    Forward-only cursor over a markup event sequence.

    Parsers receive the cursor positioned just inside their opening tag and
    return once the matching closing tag has been consumed. Anything a parser
    does not understand is reported through ``warn()``, which logs the message
    and keeps it in ``diagnostics``; parsing then continues.

    Usage:

        cursor = EventCursor.from_stream(fh)
        for tag in cursor.descend("note"):
            ...
    """

    def __init__(self, events: Iterable[Event]) -> None:
        self._events = iter(events)
        self.diagnostics: list[str] = []

    @classmethod
    def from_stream(cls, stream: IO[bytes]) -> EventCursor:
        return cls(iter_events(stream))

    # ------------------------------------------------------------------
    # Event access
    # ------------------------------------------------------------------

    def next(self) -> Event:
        """Return the next event; EndOfStream repeats once the source is exhausted."""
        return next(self._events, EndOfStream())

    def next_inside(self, label: str) -> Event:
        """
        Return the next event of a tag that must still be open.

        Raises:
            ScoreFormatError: If the document ends before ``</label>``.
        """
        event = self.next()
        if isinstance(event, EndOfStream):
            raise ScoreFormatError(f"Unexpected end of document inside <{label}>")
        return event

    def descend(self, label: str) -> Iterator[StartTag]:
        """
        Yield every start tag nested in ``<label>`` until its closing tag.

        Start tags of any depth are yielded; a caller that handles one is
        expected to consume its subtree before asking for the next tag.
        """
        while True:
            event = self.next_inside(label)
            if isinstance(event, StartTag):
                yield event
            elif isinstance(event, EndTag) and event.name == label:
                return

    def skip(self, label: str) -> None:
        """Consume everything up to and including ``</label>``."""
        for _ in self.descend(label):
            pass

    # ------------------------------------------------------------------
    # Leaf values
    # ------------------------------------------------------------------

    def read_text(self, label: str) -> str:
        """
        Read the character content of a leaf tag and consume its closing tag.

        Returns an empty string (with a warning) when the tag holds no text.
        """
        value = None
        while True:
            event = self.next_inside(label)
            if isinstance(event, EndTag) and event.name == label:
                break
            if isinstance(event, Characters) and value is None:
                value = event.text
            elif isinstance(event, StartTag):
                self.warn(f"Extra element <{event.name}> inside <{label}>")

        if value is None:
            self.warn(f"No character content inside <{label}>")
            return ""
        return value

    def read_int(self, label: str, minimum: int | None = None) -> int:
        """
        Read a leaf tag as an integer.

        Raises:
            ScoreFormatError: If the text is not an integer or is below ``minimum``.
        """
        text = self.read_text(label)
        if _INTEGER.fullmatch(text) is None:
            raise ScoreFormatError(f"<{label}> expects an integer, got {text!r}")
        value = int(text)
        if minimum is not None and value < minimum:
            raise ScoreFormatError(f"<{label}> must be at least {minimum}, got {value}")
        return value

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.diagnostics.append(message)
