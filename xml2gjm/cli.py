"""xml2gjm CLI entry point."""

import logging
import sys
from pathlib import Path

import click

from xml2gjm import __version__
from xml2gjm.gjm_exporter import GjmExporter
from xml2gjm.score_models import MAX_TRACK_COUNT, Score

INPUT_PATH = click.Path(exists=True, dir_okay=False, readable=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="  %(levelname)s: %(message)s",
    )


def _report_warnings(score: Score) -> None:
    if score.warnings:
        click.echo(f"      {len(score.warnings)} warning(s) while parsing; see log above.")


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="xml2gjm")
@click.option("--verbose", "-v", is_flag=True, help="Log every skipped element.")
def main(verbose: bool) -> None:
    """xml2gjm — MusicXML to GJM notation converter."""
    _configure_logging(verbose)


# ── convert subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=INPUT_PATH)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination GJM file path. Defaults to INPUT_FILE with a .gjm suffix.",
)
@click.option("--title", default=None, metavar="TEXT", help="NotationName; defaults to the work title.")
@click.option("--author", default=None, metavar="TEXT", help="NotationAuther; defaults to the composer.")
@click.option("--translator", default=None, metavar="TEXT", help="NotationTranslater header field.")
@click.option("--creator", default=None, metavar="TEXT", help="NotationCreator header field.")
@click.option(
    "--max-tracks",
    type=click.IntRange(1, None),
    default=MAX_TRACK_COUNT,
    show_default=True,
    help="Number of staff tracks written; extra staves are dropped.",
)
def convert(
    input_file: str,
    output: str | None,
    title: str | None,
    author: str | None,
    translator: str | None,
    creator: str | None,
    max_tracks: int,
) -> None:
    """
    Convert a MusicXML score into a GJM notation file.

    INPUT_FILE may be .xml/.musicxml, or .mxl/.mid/.midi (read via music21).

    \b
    Examples:
      xml2gjm convert song.musicxml
      xml2gjm convert song.musicxml -o charts/song.gjm --title "My Song"
      xml2gjm convert song.mid --max-tracks 2
    """
    input_path = Path(input_file)
    resolved_output = output if output is not None else str(input_path.with_suffix(".gjm"))

    click.echo(f"xml2gjm v{__version__}")
    click.echo(f"  Input  : {input_file}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    exporter = GjmExporter(
        title=title,
        author=author,
        translator=translator,
        creator=creator,
        max_tracks=max_tracks,
    )

    click.echo("[1/2] Converting score...")
    try:
        score = exporter.export(input_path, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read or write file — {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"  ERROR: Could not convert score — {exc}", err=True)
        sys.exit(1)

    click.echo("[2/2] Summary...")
    track_count = len(score.tracks(limit=None))
    click.echo(f"      Parts  : {len(score.parts)}  |  Staff tracks: {track_count}")
    if track_count > max_tracks:
        click.echo(f"      Only the first {max_tracks} track(s) were written.")
    _report_warnings(score)

    click.echo()
    click.echo(f"Done!  Wrote '{resolved_output}'.")


# ── info subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=INPUT_PATH)
def info(input_file: str) -> None:
    """
    Show the parts, staves and measure counts of a score without converting it.

    \b
    Examples:
      xml2gjm info song.musicxml
    """
    try:
        score = GjmExporter().read(input_file)
    except (OSError, ValueError) as exc:
        click.echo(f"  ERROR: Could not parse score — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Title    : {score.title or '-'}")
    click.echo(f"Composer : {score.composer or '-'}")
    track = 0
    for part_index, part in enumerate(score.parts):
        for staff_index, measures in enumerate(part.staves):
            marker = "" if track < MAX_TRACK_COUNT else "  (dropped)"
            click.echo(
                f"  Part {part_index + 1} staff {staff_index + 1}: "
                f"{len(measures)} measure(s){marker}"
            )
            track += 1
    click.echo(f"Warnings : {len(score.warnings)}")
    for message in score.warnings:
        click.echo(f"  - {message}")
