# ABOUTME: The `lectern search` command for aggregated metadata search.
# ABOUTME: Queries every enabled provider and prints merged candidates as a table or JSON.

import json

import click
from rich.console import Console
from rich.table import Table

from lectern.cli.options import get_config, json_option, kind_option
from lectern.config import LecternConfig
from lectern.core.aggregator import Aggregator, InvalidQueryError, SearchResult
from lectern.core.registry import ProviderRegistry, build_registry, create_aggregator
from lectern.metadata.types import MediaKind

console = Console()


def _create_registry(config: LecternConfig) -> ProviderRegistry:
    return build_registry(config)


def _create_aggregator(config: LecternConfig, registry: ProviderRegistry) -> Aggregator:
    return create_aggregator(config, registry)


def _result_json(result: SearchResult) -> str:
    return json.dumps(
        {
            "candidates": [c.to_dict() for c in result.candidates],
            "provider_results": result.provider_results,
            "errors": {name: str(err) for name, err in result.errors.items()},
        },
        indent=2,
    )


def _print_table(result: SearchResult) -> None:
    table = Table()
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("ISBN-13")
    table.add_column("ASIN")
    table.add_column("Source", style="cyan")

    for index, candidate in enumerate(result.candidates, start=1):
        table.add_row(
            str(index),
            candidate.title,
            candidate.author or "[dim]unknown[/dim]",
            candidate.isbn13 or candidate.isbn10 or "[dim]-[/dim]",
            candidate.asin or "[dim]-[/dim]",
            candidate.source,
        )
    console.print(table)


@click.command("search")
@click.argument("query")
@kind_option
@json_option
@click.pass_context
def search(ctx: click.Context, query: str, kind: str, as_json: bool) -> None:
    """Search all enabled metadata providers for QUERY."""
    config = get_config(ctx)
    with _create_registry(config) as registry:
        aggregator = _create_aggregator(config, registry)
        try:
            result = aggregator.search(query, MediaKind.parse(kind))
        except InvalidQueryError as exc:
            console.print(f"[red]Invalid query:[/red] {exc}")
            raise SystemExit(2) from exc

    if as_json:
        click.echo(_result_json(result))
        return

    if not result.candidates:
        console.print("[yellow]No results found.[/yellow]")
    else:
        _print_table(result)

    counts = ", ".join(f"{name}={count}" for name, count in result.provider_results.items())
    console.print(f"\n[dim]{len(result.candidates)} result(s) ({counts})[/dim]")
    for name, error in result.errors.items():
        console.print(f"[yellow]{name}:[/yellow] {error}")
