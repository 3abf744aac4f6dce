import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from .cli_config import (
    OUTPUT_FORMATS,
    create_sample_config,
    get_config,
    load_config,
)
from .detector import LintResult, lint_flake_lock
from .error_handling import FlakeLockError, setup_error_handling
from .reporting import (
    DuplicateReporter,
    batch_results_to_dict,
    error_to_dict,
    output_json_results,
    results_to_dict,
    write_json,
)
from .structured_logging import configure_logging

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_DUPLICATES = 1
EXIT_ERROR = 2

console = Console()
err_console = Console(stderr=True)


def _configure_run_logging(verbose: bool) -> None:
    logging_config = get_config().logging
    log_level = "INFO" if verbose else logging_config.log_level
    configure_logging(log_level)
    setup_error_handling(
        getattr(logging, log_level.upper(), logging.WARNING),
        log_format=logging_config.log_format,
    )


def _lint(file_path: str, include_revision: bool, ignore_unlocked: bool) -> LintResult:
    lock_config = get_config().lock
    return lint_flake_lock(
        file_path,
        include_revision=include_revision,
        ignore_unlocked=ignore_unlocked,
        supported_versions=lock_config.supported_versions,
        max_file_size=lock_config.max_file_size_bytes,
    )


def run_lint(
    file_path: str,
    include_revision: bool,
    ignore_unlocked: bool,
    output_format: str,
    output_file: Optional[str],
    quiet: bool,
    verbose: bool,
) -> int:
    """Lint one lock file and report. Returns the process exit code."""
    if verbose and not quiet:
        err_console.print(f"📁 Parsing file: {file_path}", style="blue", markup=False)

    try:
        result = _lint(file_path, include_revision, ignore_unlocked)
    except FlakeLockError as e:
        err_console.print(
            f"❌ Error: {e}", style="red", markup=False, highlight=False, soft_wrap=True
        )
        return EXIT_ERROR

    if output_format == "json":
        try:
            output_json_results(result, output_file, err_console)
        except OSError as e:
            err_console.print(
                f"❌ Error: failed to write results to {output_file}: {e.strerror or e}",
                style="red",
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            return EXIT_ERROR
    else:
        DuplicateReporter(console, quiet=quiet).print_results(result)

    return EXIT_DUPLICATES if result.has_duplicates else EXIT_OK


_LINT_OPTIONS = [
    click.option(
        "--include-revision",
        is_flag=True,
        help="Only treat inputs locked to the same revision as duplicates",
    ),
    click.option(
        "--ignore-unlocked",
        is_flag=True,
        help="Leave out nodes without a locked source (such as the root node)",
    ),
    click.option(
        "--output-format",
        type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
        default=None,
        help="Output format for results (default from config or console)",
    ),
    click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output"),
    click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose output and structured lint events on stderr",
    ),
]


def lint_options(func):
    """Options shared by every command that lints lock files."""
    for option in reversed(_LINT_OPTIONS):
        func = option(func)
    return func


@click.command()
@click.argument("flake_lock", required=False, type=click.Path(dir_okay=True))
@lint_options
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False),
    help="Save results to file (JSON format only)",
)
@click.version_option(__version__, prog_name="flake-locker")
def check(
    flake_lock: Optional[str],
    include_revision: bool,
    ignore_unlocked: bool,
    output_format: Optional[str],
    quiet: bool,
    verbose: bool,
    output_file: Optional[str],
) -> None:
    """
    Lint a flake.lock file for duplicate inputs.

    FLAKE_LOCK defaults to ./flake.lock. Exits 0 when no duplicates are
    found, 1 when duplicates are found and 2 on read or parse errors.

    Examples:

      locker

      locker path/to/flake.lock --ignore-unlocked

      flake-locker check flake.lock --output-format json -o duplicates.json
    """
    config = load_config()
    _configure_run_logging(verbose)

    final_path = flake_lock or config.lint.default_lock_file
    final_format = (output_format or config.lint.output_format).lower()

    if output_file and final_format != "json":
        raise click.UsageError("Output file can only be used with JSON format")

    sys.exit(
        run_lint(
            final_path,
            include_revision or config.lint.include_revision,
            ignore_unlocked or config.lint.ignore_unlocked,
            final_format,
            output_file,
            quiet or config.lint.quiet,
            verbose or config.lint.verbose,
        )
    )


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 flake-locker: lint your flake.lock for duplicate inputs

    Finds nodes that lock the same flake URI more than once, which usually
    means an input is missing a 'follows'.
    """
    if version:
        console.print(f"flake-locker version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


cli.add_command(check)


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    type=click.Path(dir_okay=False),
    required=True,
)
@lint_options
def batch(
    files: tuple,
    include_revision: bool,
    ignore_unlocked: bool,
    output_format: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Lint several flake.lock files in one run.

    Exits 2 if any file failed to load, otherwise 1 if any file had
    duplicates. With JSON output a single document covers every file.

    Examples:

      flake-locker batch flake.lock templates/*/flake.lock
    """
    config = load_config()
    _configure_run_logging(verbose)
    final_format = (output_format or config.lint.output_format).lower()
    include_revision = include_revision or config.lint.include_revision
    ignore_unlocked = ignore_unlocked or config.lint.ignore_unlocked

    if final_format == "json":
        sys.exit(_batch_json(files, include_revision, ignore_unlocked))

    files_with_duplicates = 0
    failed_files = 0

    if not quiet:
        console.print(f"🔍 Linting {len(files)} lock files...", style="blue")

    for file_path in files:
        if not quiet:
            console.print(f"\n📁 {file_path}", style="cyan", markup=False)

        code = run_lint(
            file_path,
            include_revision,
            ignore_unlocked,
            final_format,
            None,
            quiet or config.lint.quiet,
            verbose or config.lint.verbose,
        )
        if code == EXIT_DUPLICATES:
            files_with_duplicates += 1
        elif code == EXIT_ERROR:
            failed_files += 1

    if not quiet:
        console.print("\n📊 Batch lint complete:", style="bold")
        console.print(f"   Files checked: {len(files)}")
        console.print(f"   Files with duplicates: {files_with_duplicates}")
        console.print(f"   Failed files: {failed_files}")

    if failed_files:
        sys.exit(EXIT_ERROR)
    if files_with_duplicates:
        sys.exit(EXIT_DUPLICATES)


def _batch_json(files: tuple, include_revision: bool, ignore_unlocked: bool) -> int:
    """Lint every file and print one JSON document. Returns the exit code."""
    entries = []
    for file_path in files:
        try:
            result = _lint(file_path, include_revision, ignore_unlocked)
        except FlakeLockError as e:
            entries.append(error_to_dict(file_path, e))
        else:
            entries.append(results_to_dict(result))

    summary = batch_results_to_dict(entries)
    write_json(summary)

    if summary["failed_files"]:
        return EXIT_ERROR
    if summary["files_with_duplicates"]:
        return EXIT_DUPLICATES
    return EXIT_OK


@cli.command()
def info():
    """Show what is checked and how results are reported."""
    info_text = """
[bold blue]📋 What is checked:[/bold blue]

• Every node in [green]flake.lock[/green] is reduced to the flake URI of its locked source
• [yellow]github[/yellow], [yellow]gitlab[/yellow], [yellow]sourcehut[/yellow] - type:owner/repo (case-insensitive)
• [yellow]git[/yellow], [yellow]hg[/yellow], [yellow]tarball[/yellow] - type:url
• [yellow]path[/yellow] - type:path
• Nodes sharing a URI are reported as duplicates

[bold blue]🚦 Exit Codes:[/bold blue]

• [green]0[/green] - No duplicate inputs
• [yellow]1[/yellow] - Duplicate inputs found
• [red]2[/red] - The lock file could not be read or parsed

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]FLAKE_LOCKER_INCLUDE_REVISION[/cyan] - Match on revision too
• [cyan]FLAKE_LOCKER_IGNORE_UNLOCKED[/cyan] - Skip nodes without a locked source
• [cyan]FLAKE_LOCKER_OUTPUT_FORMAT[/cyan] - console or json
• [cyan]FLAKE_LOCKER_LOG_LEVEL[/cyan] - Level for structured lint events

[bold blue]📄 Configuration Files:[/bold blue]

• [green].flake-locker.json[/green] / [green].flake-locker.yaml[/green] - Project-level config
• [green]~/.config/flake-locker/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  # Lint ./flake.lock
  locker

  # JSON output for automation
  flake-locker check flake.lock --output-format json

  # Several lock files at once
  flake-locker batch flake.lock templates/*/flake.lock
"""
    console.print(
        Panel(
            info_text,
            title="[bold]flake-locker Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(dir_okay=False),
    default=".flake-locker.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(
        Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue")
    )

    console.print("\n[bold cyan]🔍 Lint Settings:[/bold cyan]")
    console.print(f"  Include Revision: {current_config.lint.include_revision}")
    console.print(f"  Ignore Unlocked: {current_config.lint.ignore_unlocked}")
    console.print(f"  Output Format: {current_config.lint.output_format}")
    console.print(f"  Default Lock File: {current_config.lint.default_lock_file}")

    console.print("\n[bold cyan]🔒 Lock File Settings:[/bold cyan]")
    console.print(
        "  Supported Versions: "
        f"{', '.join(str(v) for v in current_config.lock.supported_versions)}"
    )
    console.print(f"  Max File Size: {current_config.lock.max_file_size_mb} MB")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(
        f"  Log Format: {current_config.logging.log_format}", markup=False
    )


if __name__ == "__main__":
    cli()
