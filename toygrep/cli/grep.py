#!/usr/bin/env python3
"""
Command line for toygrep.

Usage:
    toygrep PATTERN                 - Search stdin (when piped) or the current directory
    toygrep PATTERN FILE...         - Search the given files and directories
    toygrep -i -w PATTERN DIR       - Case-insensitive, whole-word search
    toygrep --stats PATTERN DIR     - Also show timings and counters
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple
import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from loguru import logger

from toygrep.core.config import Config
from toygrep.core.errors import PatternError
from toygrep.core.matcher import RegexMatcherBuilder
from toygrep.core.printer import PrintMode, ThreadedPrinter
from toygrep.core.searcher import Searcher
from toygrep.core.stats import PrintLog, SearchReport
from toygrep.core.target import Target

err_console = Console(stderr=True, highlight=False)

EXIT_MATCH = 0
EXIT_NO_MATCH = 1
EXIT_ERROR = 2


def setup_logging(debug: bool) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level="DEBUG" if debug else "WARNING"
    )


def resolve_targets(raw_targets: Sequence[str]) -> Tuple[Target, ...]:
    """Turn command line arguments into targets, defaulting sensibly."""
    if not raw_targets:
        if not sys.stdin.isatty():
            return (Target.stdin(),)
        return (Target.from_path(Path.cwd()),)

    return tuple(
        Target.stdin() if raw == "-" else Target.from_path(raw)
        for raw in raw_targets
    )


@click.command()
@click.argument("pattern")
@click.argument("targets", nargs=-1)
@click.option("--ignore-case", "-i", is_flag=True, help="Ignore case distinctions")
@click.option("--word-regexp", "-w", is_flag=True, help="Match whole words only")
@click.option("--line-number/--no-line-number", "-n", "line_numbers", default=None,
              help="Prefix each line with its line number")
@click.option("--group/--no-group", default=None, help="Group results per file")
@click.option("--color/--no-color", default=None, help="Colorize output")
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Directory crawl workers")
@click.option("--stats", "show_stats", is_flag=True, help="Show search statistics")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Path to a YAML config file")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
def cli(
    pattern: str,
    targets: Tuple[str, ...],
    ignore_case: bool,
    word_regexp: bool,
    line_numbers: Optional[bool],
    group: Optional[bool],
    color: Optional[bool],
    jobs: Optional[int],
    show_stats: bool,
    config_path: Optional[Path],
    debug: bool
):
    """Search PATTERN in each TARGET (files, directories, or - for stdin)."""
    setup_logging(debug)

    config = Config.load(config_path)
    if line_numbers is not None:
        config.printer.line_numbers = line_numbers
    if group is not None:
        config.printer.group_by_target = group
    if color is not None:
        config.printer.color = color
    if jobs is not None:
        config.crawl.worker_count = jobs

    try:
        matcher = (
            RegexMatcherBuilder(pattern)
            .case_insensitive(ignore_case)
            .match_whole_word(word_regexp)
            .build()
        )
    except PatternError as e:
        raise click.BadParameter(e.reason, param_hint="PATTERN")

    resolved = resolve_targets(targets)
    logger.debug(f"Targets: {[str(t) for t in resolved]}")

    report, print_log = asyncio.run(run_search(matcher, resolved, config))

    for missing in report.unreachable:
        err_console.print(f"[red]toygrep:[/red] {escape(str(missing))}")

    if show_stats:
        display_stats(report, print_log)

    if report.has_errors:
        sys.exit(EXIT_ERROR)
    sys.exit(EXIT_MATCH if report.has_matches else EXIT_NO_MATCH)


async def run_search(matcher, targets: Sequence[Target], config: Config) -> Tuple[SearchReport, PrintLog]:
    """Run the search with a printer thread attached and wait for both to finish."""
    mode = PrintMode.resolve(config.printer, targets)
    printer = ThreadedPrinter.build(matcher, mode, config.printer)

    with printer as sender:
        report = await Searcher(matcher, sender, config).search(targets)

    return report, printer.print_log


def display_stats(report: SearchReport, print_log: Optional[PrintLog]) -> None:
    """Display run statistics in a table on stderr."""
    table = Table(title=f"Search Statistics ({report.elapsed * 1000:.1f}ms)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    stats = report.stats
    table.add_row("Files visited", f"{stats.total_files_visited:,}")
    table.add_row("Skipped (non-UTF-8)", f"{stats.skipped_files_non_utf8:,}")
    table.add_row("Unreadable files", f"{stats.files_unreadable:,}")
    table.add_row("Skipped directories", f"{stats.dirs_skipped:,}")
    table.add_row("Skipped symlinks", f"{stats.symlinks_skipped:,}")
    table.add_row("Bytes read", f"{stats.bytes_read:,}")
    table.add_row("Bytes sampled", f"{stats.bytes_sampled:,}")
    table.add_row("Lines matched", f"{stats.lines_matched_count:,}")
    table.add_row("Bytes matched", f"{stats.bytes_matched_count:,}")
    table.add_row("Walk duration", f"{stats.walk_duration * 1000:.1f}ms")
    table.add_row("Unreachable targets", f"{len(report.unreachable):,}")

    if print_log is not None:
        table.add_row("Lines printed", f"{print_log.lines_printed:,}")
        table.add_row("Print decode errors", f"{print_log.decode_errors:,}")
        if print_log.spawn_to_first_message is not None:
            table.add_row("Printer spawn to first message", f"{print_log.spawn_to_first_message * 1000:.1f}ms")
        if print_log.print_duration is not None:
            table.add_row("Print duration", f"{print_log.print_duration * 1000:.1f}ms")

    err_console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
