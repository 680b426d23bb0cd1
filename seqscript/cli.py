"""Command line front end for formatting, checking and laying out diagrams."""
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .layout import Box, MarkerGeometry, MessageGeometry, calculate_layout
from .syntax import Participant, parse, serialize

app = typer.Typer(add_completion=False, help="Parse, format and lay out sequence diagram text.")
console = Console()


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc.strerror}") from exc


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log parser and layout details.")):
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(console=console)])


@app.command("format")
def format_command(
    path: Path = typer.Argument(..., help="Diagram source file."),
    check: bool = typer.Option(False, "--check", help="Exit with status 1 if the file is not canonical."),
    write: bool = typer.Option(False, "--write", "-w", help="Rewrite the file in place."),
):
    """Print the canonical form of a diagram."""
    source = _read(path)
    # Files end with a single newline; it is not part of the diagram text.
    canonical = serialize(parse(source.rstrip("\n")))
    if check:
        if canonical + "\n" != source:
            console.print(f"[yellow]{escape(str(path))} is not canonical[/yellow]")
            raise typer.Exit(code=1)
        console.print(f"[green]{escape(str(path))} is canonical[/green]")
        return
    if write:
        path.write_text(canonical + "\n", encoding="utf-8")
        console.print(f"Formatted {escape(str(path))}")
        return
    typer.echo(canonical)


@app.command()
def check(path: Path = typer.Argument(..., help="Diagram source file.")):
    """Report lines that did not parse."""
    document = parse(_read(path))
    errors = document.errors()
    if not errors:
        console.print(f"[green]No errors[/green] ({len(document)} nodes)")
        return
    for error in errors:
        console.print(f"[red]line {error.source_line_start}[/red]: {escape(error.message)}")
    raise typer.Exit(code=1)


@app.command()
def layout(path: Path = typer.Argument(..., help="Diagram source file.")):
    """Show computed positions for every laid-out node."""
    document = parse(_read(path))
    result = calculate_layout(document)

    participants = Table(title="Participants")
    participants.add_column("Alias")
    participants.add_column("x", justify="right")
    participants.add_column("width", justify="right")
    for alias, geometry in result.participant_layout.items():
        participants.add_row(escape(alias), f"{geometry.x:g}", f"{geometry.width:g}")
    console.print(participants)

    nodes = Table(title="Nodes")
    nodes.add_column("Line", justify="right")
    nodes.add_column("Type")
    nodes.add_column("y", justify="right")
    nodes.add_column("Detail")
    for node in document:
        geometry = result.layout.get(node.id)
        if geometry is None or isinstance(node, Participant):
            continue
        if isinstance(geometry, MessageGeometry):
            detail = f"{geometry.from_x:g} -> {geometry.to_x:g}"
            if geometry.number is not None:
                detail = f"#{geometry.number} {detail}"
        elif isinstance(geometry, MarkerGeometry):
            detail = geometry.kind
        elif isinstance(geometry, Box):
            detail = f"x={geometry.x:g} w={geometry.width:g} h={geometry.height:g}"
        else:
            detail = ""
        nodes.add_row(str(node.source_line_start), node.type.value, f"{geometry.y:g}", detail)
    console.print(nodes)
    console.print(f"Total height: {result.total_height:g}")
