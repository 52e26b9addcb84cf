# ABOUTME: CLI package for Lectern, built on Click.
# ABOUTME: Defines the root command group, loads configuration, and sets up logging.

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from lectern.cli.commands import hydrate_cmd, match_cmd, ping_cmd, search_cmd
from lectern.config import DEFAULT_CONFIG_PATH, ConfigError, load_config

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _configure_logging(verbosity: int) -> None:
    level = _LOG_LEVELS.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # httpx logs full request URLs at INFO, apikey query values included.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


@click.group()
@click.version_option(package_name="lectern")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Path to the YAML configuration file (default: {DEFAULT_CONFIG_PATH})",
)
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: int) -> None:
    """Lectern - book metadata search and Readarr matching."""
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]Config error:[/red] {exc}")
        raise SystemExit(1) from exc
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


cli.add_command(search_cmd.search)
cli.add_command(match_cmd.match)
cli.add_command(hydrate_cmd.hydrate)
cli.add_command(ping_cmd.ping)
