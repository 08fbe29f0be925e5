# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Command-line interface.

Commands:
- format: format files in place, or standard input to standard output
- daemon: keep a formatter alive and answer requests over TCP

Exit codes: 0 success, 1 formatting failure or files needing formatting
in --check mode, 2 configuration error.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import typer
from typing_extensions import Annotated

from returns.result import Failure, Result, Success

from . import __version__
from .async_file_io import read_source_safe
from .config import EngineSettings, FormatterConfig, build_config, load_settings
from .daemon import DEFAULT_HOST, DEFAULT_PORT, request_format, run_daemon
from .edits import unified_diff
from .engine import FormattingEngine, TopiaryEngine
from .errors import ConfigError, GdfmtError
from .file_discovery import discover_gdscript_files
from .formatter import FormatOutcome, create_formatter
from .logging_jsonl import JsonlLogger
from .logging_setup import setup_logger
from .thread_safe_metrics import ThreadSafeMetrics
from .worker_context import FileResult, WorkerContext, WorkItem
from .worker_pool import format_files

STDIN_NAME = "<stdin>"

app = typer.Typer(
    name="gdfmt",
    help="GDScript formatter built on Topiary",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gdfmt {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=False)
def main_callback(
    version: Annotated[Optional[bool], typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version and exit")] = None
) -> None:
    """GDScript formatter built on Topiary."""


@dataclass(frozen=True)
class FormatArgs:
    """Output options of the format command."""
    stdout: bool = False
    check: bool = False
    diff: bool = False
    workers: int = 1

    @property
    def writes_files(self) -> bool:
        return not (self.stdout or self.check or self.diff)


def create_engine(settings: EngineSettings) -> FormattingEngine:
    """Build the formatting engine for a command."""
    return TopiaryEngine(settings)


def _resolve_settings(
    config_path: Optional[Path],
    topiary: Optional[str],
    query: Optional[Path],
    **formatter_options: Optional[object],
) -> Result[Tuple[FormatterConfig, EngineSettings], ConfigError]:
    """Merge the configuration file with command-line overrides.

    Options left at None (or flags not given) keep the value from the file
    or the default.
    """
    loaded = load_settings(config_path)
    if isinstance(loaded, Failure):
        return loaded
    settings = loaded.unwrap()

    options = settings.formatter.model_dump()
    options.update({
        key: value for key, value in formatter_options.items()
        if value is not None and value is not False
    })
    config = build_config(**options)
    if isinstance(config, Failure):
        return config

    engine_updates = {}
    if topiary:
        engine_updates["executable"] = topiary
    if query:
        engine_updates["query_path"] = query
    return Success((config.unwrap(), settings.engine.model_copy(update=engine_updates)))


def _report_error(error: GdfmtError) -> int:
    """Print `error` and return the matching exit code."""
    if isinstance(error, ConfigError):
        typer.echo(f"Configuration error: {error.message}", err=True)
        return 2
    typer.echo(f"Error: {error.message}", err=True)
    return 1


def _echo_warnings(warnings: Sequence[str], source: object) -> None:
    for warning in warnings:
        typer.echo(f"Warning: {source}: {warning}", err=True)


def _format_stdin(
    args: FormatArgs,
    config: FormatterConfig,
    engine: FormattingEngine,
    logger: Optional[JsonlLogger],
    client: bool,
    host: str,
    port: int,
) -> int:
    content = sys.stdin.read()

    if client:
        result = request_format(content, host, port).map(lambda text: FormatOutcome(text=text))
    else:
        result = create_formatter(config, engine, logger=logger).format(content)

    if isinstance(result, Failure):
        return _report_error(result.failure())

    outcome = result.unwrap()
    _echo_warnings(outcome.warnings, STDIN_NAME)

    if args.check:
        if outcome.text != content:
            typer.echo("The input passed via stdin is not formatted", err=True)
            return 1
        typer.echo("The input passed via stdin is already formatted", err=True)
        return 0

    if args.diff:
        typer.echo(unified_diff(content, outcome.text, STDIN_NAME), nl=False)
        return 0

    typer.echo(outcome.text, nl=False)
    return 0


async def _format_paths(
    paths: Sequence[Path],
    args: FormatArgs,
    config: FormatterConfig,
    engine: FormattingEngine,
    logger: Optional[JsonlLogger],
) -> int:
    targets = discover_gdscript_files(paths)
    if not targets:
        typer.echo(
            "Error: No GDScript files found in the arguments provided. Please provide at least one .gd file.",
            err=True
        )
        return 1

    context = WorkerContext(
        metrics=ThreadSafeMetrics(),
        config=config,
        engine=engine,
        logger=logger,
        write_enabled=args.writes_files,
    )

    reads = await asyncio.gather(*(read_source_safe(path) for path in targets))
    items = []
    for index, (path, read) in enumerate(zip(targets, reads)):
        if isinstance(read, Failure):
            # Unreadable files are reported with the others; the rest still run
            await context.metrics.record_failure(None, read.failure().message)
            await context.report_completion(FileResult(
                path=path,
                index=index,
                status="failed",
                original="",
                error=read.failure(),
            ))
            continue
        items.append(WorkItem(path=path, content=read.unwrap(), index=index))

    results = await format_files(items, context, num_workers=args.workers)

    if logger:
        logger.write({'ev': 'run_summary', **(await context.metrics.get_snapshot())})

    return _report_results(results, args)


def _report_results(results: List[FileResult], args: FormatArgs) -> int:
    exit_code = 0
    total = len(results)

    for result in results:
        if result.failed:
            exit_code = _report_error(result.error)
            continue

        _echo_warnings(result.warnings, result.path)

        if args.check:
            if result.changed:
                typer.echo(f"Would reformat {result.path}", err=True)
        elif args.diff:
            if result.changed:
                typer.echo(unified_diff(result.original, result.formatted, str(result.path)), nl=False)
        elif args.stdout:
            # Several files on stdout are told apart by a marker line
            if total > 1:
                typer.echo(f"#--file:{result.path}")
            typer.echo(result.formatted, nl=False)

    if args.check:
        if any(result.changed for result in results):
            typer.echo("Some files are not formatted", err=True)
            return 1
        if exit_code == 0:
            typer.echo(f"All {total} file(s) are formatted", err=True)
    elif args.writes_files:
        changed = sum(1 for result in results if result.changed)
        typer.echo(
            f"Formatted {total} file{'' if total == 1 else 's'} ({changed} changed)",
            err=True
        )

    return exit_code


@app.command(name="format")
def format_command(
    files: Annotated[Optional[List[Path]], typer.Argument(help="GDScript files or directories; standard input if omitted")] = None,
    stdout: Annotated[bool, typer.Option("--stdout", help="Print formatted code instead of writing files")] = False,
    check: Annotated[bool, typer.Option("--check", help="Exit with code 1 if any input needs formatting")] = False,
    diff: Annotated[bool, typer.Option("--diff", help="Show unified diffs instead of writing files")] = False,
    use_spaces: Annotated[bool, typer.Option("--use-spaces", help="Indent with spaces instead of tabs")] = False,
    indent_size: Annotated[Optional[int], typer.Option("--indent-size", help="Spaces per indentation level with --use-spaces")] = None,
    reorder_code: Annotated[bool, typer.Option("--reorder-code", help="Reorder declarations after formatting")] = False,
    safe: Annotated[bool, typer.Option("--safe", help="Fail if formatting changes the code structure")] = False,
    workers: Annotated[int, typer.Option("--workers", min=1, help="Number of files formatted in parallel")] = 1,
    config_path: Annotated[Optional[Path], typer.Option("--config", help="JSON configuration file (default: ./gdfmt.json if present)")] = None,
    topiary: Annotated[Optional[str], typer.Option("--topiary", help="Topiary executable")] = None,
    query: Annotated[Optional[Path], typer.Option("--query", help="Topiary query file for GDScript")] = None,
    log_path: Annotated[Optional[Path], typer.Option("--log-path", help="Write JSONL events to this file")] = None,
    client: Annotated[bool, typer.Option("--client", help="Send standard input to a running daemon")] = False,
    host: Annotated[str, typer.Option("--host", help="Daemon host for --client")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option("--port", help="Daemon port for --client")] = DEFAULT_PORT,
) -> None:
    """Format GDScript files, or standard input when no file is given."""
    resolved = _resolve_settings(
        config_path, topiary, query,
        use_spaces=use_spaces,
        indent_size=indent_size,
        reorder_code=reorder_code,
        safe=safe,
    )
    if isinstance(resolved, Failure):
        raise typer.Exit(_report_error(resolved.failure()))
    config, engine_settings = resolved.unwrap()

    if client and files:
        raise typer.Exit(_report_error(ConfigError(
            message="--client only formats standard input",
            key="client"
        )))

    args = FormatArgs(stdout=stdout, check=check, diff=diff, workers=workers)
    logger = setup_logger(log_path)
    engine = create_engine(engine_settings)

    if files:
        exit_code = asyncio.run(_format_paths(files, args, config, engine, logger))
    else:
        exit_code = _format_stdin(args, config, engine, logger, client, host, port)

    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command(name="daemon")
def daemon_command(
    use_spaces: Annotated[bool, typer.Option("--use-spaces", help="Indent with spaces instead of tabs")] = False,
    indent_size: Annotated[Optional[int], typer.Option("--indent-size", help="Spaces per indentation level with --use-spaces")] = None,
    reorder_code: Annotated[bool, typer.Option("--reorder-code", help="Reorder declarations after formatting")] = False,
    safe: Annotated[bool, typer.Option("--safe", help="Fail if formatting changes the code structure")] = False,
    config_path: Annotated[Optional[Path], typer.Option("--config", help="JSON configuration file (default: ./gdfmt.json if present)")] = None,
    topiary: Annotated[Optional[str], typer.Option("--topiary", help="Topiary executable")] = None,
    query: Annotated[Optional[Path], typer.Option("--query", help="Topiary query file for GDScript")] = None,
    log_path: Annotated[Optional[Path], typer.Option("--log-path", help="Write JSONL events to this file")] = None,
    host: Annotated[str, typer.Option("--host", help="Interface to listen on")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option("--port", help="Port to listen on")] = DEFAULT_PORT,
) -> None:
    """Run a formatting daemon that keeps the parser and queries loaded."""
    resolved = _resolve_settings(
        config_path, topiary, query,
        use_spaces=use_spaces,
        indent_size=indent_size,
        reorder_code=reorder_code,
        safe=safe,
    )
    if isinstance(resolved, Failure):
        raise typer.Exit(_report_error(resolved.failure()))
    config, engine_settings = resolved.unwrap()

    logger = setup_logger(log_path)
    formatter = create_formatter(config, create_engine(engine_settings), logger=logger)

    def on_ready(server) -> None:
        typer.echo(f"Daemon started, listening on {server.host}:{server.port}", err=True)

    try:
        asyncio.run(run_daemon(formatter, host, port, logger, on_ready=on_ready))
    except KeyboardInterrupt:
        typer.echo("Daemon stopped", err=True)
    except OSError as e:
        typer.echo(f"Error: cannot start daemon on {host}:{port}: {e}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
