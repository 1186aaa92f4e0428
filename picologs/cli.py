#!/usr/bin/env python3
"""
Command-line interface for the picologs event pipeline.
"""

import json
import sys
import logging
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config.loader import load_and_apply_config
from .config.settings import Settings
from .exceptions import ConfigurationError
from .parser.classifier import LogClassifier
from .parser.events import SpreeEvent
from .parser.tokenizer import RawLogLine
from .streaming.processor import LogProcessor


# Set up rich console for pretty output
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)


def _load_settings(ctx, config_path):
    try:
        settings = load_and_apply_config(config_path, Settings.from_env())
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    if ctx.obj.get("verbose"):
        settings.log_configuration()
    else:
        logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.WARNING))
    return settings


def _event_table(events, title):
    table = Table(title=title)
    table.add_column("Time", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Summary")
    table.add_column("Reported by", style="green")

    for event in events:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"{event.emoji} {event.event_type.value}",
            event.summary(),
            ", ".join(event.reported_by) or "-",
        )
        if isinstance(event, SpreeEvent):
            for child in event.children:
                table.add_row(
                    child.timestamp.strftime("%H:%M:%S"),
                    "  └",
                    f"[dim]{child.summary()}[/dim]",
                    "",
                )
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, verbose):
    """Picologs - Star Citizen Game.log event pipeline"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--reporter", "-r", help="Local player name (learned from the log when omitted)")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.option("--config", "config_path", type=click.Path(), help="Path to a picologs.yaml file")
@click.pass_context
def replay(ctx, log_file, reporter, output_format, config_path):
    """Run a Game.log file through the pipeline and print the resulting events."""
    settings = _load_settings(ctx, config_path)
    processor = LogProcessor(settings=settings, reporter=reporter)
    log_path = Path(log_file)
    logger.debug(f"Replaying {log_path}")

    arrival = datetime.now(timezone.utc)
    with open(log_path, "rb") as f:
        for line in f:
            text = line.decode("utf-8", errors="ignore").rstrip("\r\n")
            if text.strip():
                processor.process_line(RawLogLine(text, arrival))
    processor.finalize()

    events = processor.events()
    if output_format == "json":
        click.echo(json.dumps([e.to_dict() for e in events], indent=2, ensure_ascii=False))
        return

    stats = processor.get_stats()
    console.print(f"[bold green]Replayed:[/bold green] {log_path.name}")
    console.print(
        f"[cyan]Lines:[/cyan] {stats['lines_processed']}  "
        f"[cyan]Events:[/cyan] {stats['events_classified']}  "
        f"[cyan]Merged:[/cyan] {stats['events_merged']}  "
        f"[cyan]Sprees:[/cyan] {stats['sprees_created']}"
    )
    if stats["reporter"]:
        console.print(f"[cyan]Player:[/cyan] {stats['reporter']}")
    console.print(_event_table(events, f"{len(events)} events"))


@cli.command()
@click.argument("line")
@click.option("--config", "config_path", type=click.Path(), help="Path to a picologs.yaml file")
@click.pass_context
def classify(ctx, line, config_path):
    """Classify a single log line and print the event as JSON."""
    settings = _load_settings(ctx, config_path)
    classifier = LogClassifier(settings.classifier)
    event = classifier.classify(RawLogLine(line, datetime.now(timezone.utc)))

    if event is None:
        console.print("[yellow]No event recognized[/yellow]")
        sys.exit(1)

    console.print(f"{event.emoji} [bold]{event.summary()}[/bold]")
    click.echo(json.dumps(event.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
