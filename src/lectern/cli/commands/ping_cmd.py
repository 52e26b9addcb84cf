# ABOUTME: The `lectern ping` command for checking Readarr connectivity.
# ABOUTME: Runs a throwaway lookup against the instance configured for a media kind.

import click
from rich.console import Console

from lectern.cli.options import get_config, kind_option
from lectern.config import LecternConfig
from lectern.core.registry import ProviderRegistry, build_registry
from lectern.metadata.provider import ProviderError
from lectern.metadata.types import MediaKind

console = Console()


def _create_registry(config: LecternConfig) -> ProviderRegistry:
    return build_registry(config)


@click.command("ping")
@kind_option
@click.pass_context
def ping(ctx: click.Context, kind: str) -> None:
    """Check that the Readarr instance for --kind answers lookups."""
    config = get_config(ctx)
    media_kind = MediaKind.parse(kind)
    with _create_registry(config) as registry:
        if registry.readarr is None or not registry.readarr.supports(media_kind):
            console.print(f"[red]Error:[/red] no Readarr instance configured for {media_kind.value}")
            raise SystemExit(1)
        try:
            registry.readarr.ping(media_kind)
        except ProviderError as exc:
            console.print(f"[red]Readarr unreachable:[/red] {exc}")
            raise SystemExit(1) from exc
    console.print(f"[green]Readarr ({media_kind.value}) OK[/green]")
