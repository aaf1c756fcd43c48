#!/usr/bin/env python3
"""
Photo Import CLI

Imports new photos from a camera SD card into the local photo library,
one folder per capture day, skipping images the library already has.
"""

import sys
import time
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

from photo_importer import (
    Config,
    ImportReporter,
    InteractiveVolumeSelector,
    LabelVolumeSelector,
    PhotoImporter,
)
from photo_importer.config import DEFAULTS
from photo_importer.volumes import discover_volumes, filter_candidates

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_console_handler = None
_file_handler = None


def setup_logging(level: str = 'INFO', log_dir: Path = None):
    """Set up logging configuration."""
    global _console_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = logging.StreamHandler(sys.stdout)
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    if log_dir:
        _setup_file_logging(log_dir, formatter, root_logger)

    # Reduce noise from libraries
    logging.getLogger('exifread').setLevel(logging.WARNING)


def _setup_file_logging(log_dir: Path, formatter: logging.Formatter, root_logger: logging.Logger,
                        log_name: str = 'photo_import'):
    """Add file handler to root logger."""
    global _file_handler
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove previous file handler if any
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = logging.FileHandler(log_dir / f'{log_name}.log')
    _file_handler.setFormatter(formatter)
    root_logger.addHandler(_file_handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")
    sys.stdout.flush()

def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


def configured_exit_delay(config: Config = None) -> float:
    """Pause before exiting after a fatal error, falling back to the default."""
    delay = config.get_exit_delay() if config is not None else None
    if isinstance(delay, (int, float)) and not isinstance(delay, bool) and delay >= 0:
        return delay
    return DEFAULTS['photo_import']['process']['exit_delay_seconds']


def fail(message: str, delay: float):
    """Report a fatal error and exit after a pause so the message can be read."""
    print_error(message)
    if delay:
        time.sleep(delay)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level (overrides config)')
@click.pass_context
def cli(ctx, config, log_level):
    """Photo Import Tool - copy new SD card photos into day folders."""

    # Initial logging setup (console only)
    setup_logging(log_level or 'INFO')

    try:
        config_obj = Config(config)
    except Exception as e:
        fail(f"Failed to load configuration: {e}", configured_exit_delay())

    errors = config_obj.validate_config()
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        fail("Invalid configuration", configured_exit_delay(config_obj))

    setup_logging(log_level or config_obj.get_log_level(), config_obj.get_log_dir())

    ctx.ensure_object(dict)
    ctx.obj['config'] = config_obj

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option('--dry-run/--no-dry-run', default=None, help='Perform dry run (override config)')
@click.option('--library', type=click.Path(file_okay=False), help='Photo library root (override config)')
@click.option('--volume', type=click.Path(exists=True, file_okay=False),
              help='Use this directory as the SD card instead of searching')
@click.option('--label', help='Pick the SD card with this volume label when several are found')
@click.option('--exit-delay', type=float, default=None,
              help='Seconds to wait before exiting after a fatal error')
@click.option('--report', '-r', type=click.Path(dir_okay=False), help='Save summary report to file')
@click.pass_context
def run(ctx, dry_run=None, library=None, volume=None, label=None, exit_delay=None, report=None):
    """Import new photos from the SD card (default command)."""

    config = ctx.obj['config']
    if library:
        config.set('photo_import.library_root', library)
    delay = configured_exit_delay(config) if exit_delay is None else exit_delay

    print_header("PHOTO IMPORT")

    selector = LabelVolumeSelector(label) if label else InteractiveVolumeSelector()
    importer = PhotoImporter(config, selector=selector)
    reporter = ImportReporter()

    try:
        print_info("Starting photo import - looking for SD card...")
        stats = importer.run(dry_run, Path(volume) if volume else None)
    except Exception as e:
        fail(f"Import failed: {e}", delay)

    if stats.dry_run:
        print_info("DRY RUN completed - no files were actually moved or copied")

    if stats.errors:
        print_warning(f"Import completed with {len(stats.errors)} errors:")
        for error in stats.errors[:5]:
            click.echo(f"  - {error}")
        if len(stats.errors) > 5:
            click.echo(f"  - ... and {len(stats.errors) - 5} more errors")

    print_success(f"Found {stats.images_found:,} images, {stats.new_images:,} new")
    print_info(f"Folders created: {stats.folders_created:,}")
    if not stats.dry_run:
        print_info(f"Moved: {stats.moved:,}, copied: {stats.copied:,}")
        if stats.failed > 0:
            print_warning(f"Failed files: {stats.failed:,}")

    if report:
        try:
            report_file = reporter.save_report(stats, Path(report))
        except Exception as e:
            fail(f"Failed to save report: {e}", delay)
        print_success(f"Report saved: {report_file}")

    click.echo("\n" + reporter.generate_summary_report(stats))
    sys.stdout.flush()


@cli.command()
@click.pass_context
def volumes(ctx):
    """List mounted volumes and mark the import candidates."""

    print_header("MOUNTED VOLUMES")

    config = ctx.obj['config']
    mounted = discover_volumes()
    candidates = filter_candidates(
        mounted,
        config.get_mount_prefixes(),
        config.get_media_types(),
        config.get_volume_label(),
    )

    if not mounted:
        print_warning("No mounted volumes found")
        return

    for volume in mounted:
        marker = "[x]" if volume in candidates else "[ ]"
        ready = "ready" if volume.ready else "not ready"
        click.echo(f"  {marker} {volume} - {ready}")

    click.echo()
    if candidates:
        print_success(f"{len(candidates)} candidate SD card(s)")
    else:
        print_warning("No SD card candidates (check volumes.mount_prefixes and volumes.media_types)")
    sys.stdout.flush()


if __name__ == '__main__':
    cli()
