# ABOUTME: Shared Click options and context helpers for Lectern CLI commands.
# ABOUTME: Provides the --kind and --json flags and access to the loaded configuration.

import click

from lectern.config import LecternConfig
from lectern.metadata.types import MediaKind

kind_option = click.option(
    "--kind",
    type=click.Choice([k.value for k in MediaKind], case_sensitive=False),
    default=MediaKind.EBOOK.value,
    show_default=True,
    help="Media kind to search for.",
)

json_option = click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print machine-readable JSON instead of a table.",
)


def get_config(ctx: click.Context) -> LecternConfig:
    """Return the configuration loaded by the root command."""
    return ctx.find_root().obj["config"]
