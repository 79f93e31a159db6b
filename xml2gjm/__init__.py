"""xml2gjm: MusicXML partwise score to GJM notation converter."""

__version__ = "0.1.0"
