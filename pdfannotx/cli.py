"""
Command-line interface for pdfannotx.
"""

import logging
import os
import sys

import click
from rich.console import Console
from rich.table import Table

from pdfannotx import __version__
from pdfannotx.constants import COORDINATE_SPACE_LEGACY
from pdfannotx.exceptions import PdfAnnotError
from pdfannotx.export import ExportOptions, export_to_file
from pdfannotx.importer import create_document_state
from pdfannotx.serializer import load_state_file, migrate_coordinate_space, save_state_file
from pdfannotx.utils import get_logger

console = Console()


def _configure_logging(verbose):
    logger = get_logger("pdfannotx")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _fail(error):
    console.print(f"\n[bold red]✗ Error:[/bold red] {error}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    pdfannotx - Annotate PDFs with text, highlights and arrows.
    """
    pass


@cli.command(name="export")
@click.argument('state_file', type=click.Path(exists=True))
@click.argument('output_pdf', type=click.Path())
@click.option(
    '--font-size',
    default=ExportOptions().page_number_font_size,
    show_default=True,
    help='Font size used for page numbers and footers',
    type=float
)
@click.option(
    '--no-title',
    is_flag=True,
    help='Do not copy the document name into the PDF title'
)
@click.option('--verbose', '-v', is_flag=True, help='Show per-page progress')
def export_command(state_file, output_pdf, font_size, no_title, verbose):
    """
    Render a saved document state into the final annotated PDF.

    Example:

        pdfannotx export document.json annotated.pdf
    """
    _configure_logging(verbose)
    try:
        restored = load_state_file(state_file)
        options = ExportOptions(page_number_font_size=font_size, include_title=not no_title)
        console.print("\n[bold cyan]Exporting PDF...[/bold cyan]")
        path = export_to_file(restored.state, output_pdf, options=options)
    except PdfAnnotError as e:
        _fail(e)

    console.print(
        f"\n[bold green]✓ Exported {len(restored.state.page_order)} page(s)[/bold green]"
    )
    console.print(f"[dim]Output file: {path}[/dim]\n")


@cli.command(name="info")
@click.argument('state_file', type=click.Path(exists=True))
def show_info(state_file):
    """
    Display information about a saved document state.

    Example:

        pdfannotx info document.json
    """
    try:
        restored = load_state_file(state_file)
    except PdfAnnotError as e:
        _fail(e)

    state = restored.state
    table = Table(title=f"Document: {os.path.basename(state_file)}")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Name", state.document.name if state.document else "-")
    table.add_row("Pages", str(len(state.page_order)))
    table.add_row("Sources", str(len(state.original_pdf_sources)))
    table.add_row("Coordinate Space", state.coordinate_space)
    table.add_row("Language", state.language)
    pagination = state.pagination
    table.add_row(
        "Pagination",
        f"{pagination.position}, from {pagination.start_at}" if pagination.enabled else "Off",
    )

    console.print()
    console.print(table)

    pages = Table(title="Pages")
    pages.add_column("#", style="cyan", justify="right")
    pages.add_column("Page ID")
    pages.add_column("Source", justify="right")
    pages.add_column("Size")
    pages.add_column("Texts", justify="right")
    pages.add_column("Highlights", justify="right")
    pages.add_column("Arrows", justify="right")
    for position, page_id in enumerate(state.page_order, start=1):
        metrics = state.page_metrics.get(page_id)
        page = state.pages.get(page_id)
        pages.add_row(
            str(position),
            page_id,
            f"{metrics.source_index}:{metrics.page_index}" if metrics else "-",
            f"{metrics.width:g} x {metrics.height:g}" if metrics else "-",
            str(len(page.texts)) if page else "0",
            str(len(page.highlights)) if page else "0",
            str(len(page.arrows)) if page else "0",
        )
    console.print(pages)
    console.print()


@cli.command(name="migrate")
@click.argument('state_file', type=click.Path(exists=True))
@click.argument('output_file', type=click.Path())
def migrate(state_file, output_file):
    """
    Re-save a document state, converting legacy coordinates when possible.

    Example:

        pdfannotx migrate old.json migrated.json
    """
    try:
        restored = load_state_file(state_file)
        state = migrate_coordinate_space(restored.state)
        path = save_state_file(state, output_file)
    except PdfAnnotError as e:
        _fail(e)

    if state.coordinate_space == COORDINATE_SPACE_LEGACY:
        console.print(
            "\n[bold yellow]! Page metrics incomplete; coordinates left in legacy space[/bold yellow]"
        )
    else:
        console.print("\n[bold green]✓ Document uses native page coordinates[/bold green]")
    console.print(f"[dim]Output file: {path}[/dim]\n")


@cli.command(name="import")
@click.argument('input_pdf', type=click.Path(exists=True))
@click.argument('output_file', type=click.Path())
@click.option('--name', '-n', default=None, help='Document name (defaults to the file name)')
def import_pdf(input_pdf, output_file, name):
    """
    Create a new document state from a PDF file.

    Example:

        pdfannotx import input.pdf document.json
    """
    try:
        with open(input_pdf, "rb") as handle:
            data = handle.read()
        state = create_document_state(data, name or os.path.basename(input_pdf))
        path = save_state_file(state, output_file)
    except PdfAnnotError as e:
        _fail(e)

    console.print(f"\n[bold green]✓ Imported {len(state.page_order)} page(s)[/bold green]")
    console.print(f"[dim]Output file: {path}[/dim]\n")


if __name__ == '__main__':
    cli()
