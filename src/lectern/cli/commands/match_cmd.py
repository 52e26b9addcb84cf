# ABOUTME: The `lectern match` command for matching identifiers against Readarr.
# ABOUTME: Tries ISBN-13, ISBN-10, ASIN, then title and author; exits 1 when nothing matched.

import json

import click
from rich.console import Console
from rich.table import Table

from lectern.cli.options import get_config, json_option, kind_option
from lectern.config import LecternConfig
from lectern.core.matcher import Matcher, MatchQuery, MatchResult
from lectern.core.registry import ProviderRegistry, build_registry, create_matcher
from lectern.metadata.provider import ProviderError
from lectern.metadata.readarr_parser import EXT_FOREIGN_BOOK_ID
from lectern.metadata.types import MediaKind

console = Console()


def _create_registry(config: LecternConfig) -> ProviderRegistry:
    return build_registry(config)


def _create_matcher(config: LecternConfig, registry: ProviderRegistry) -> Matcher | None:
    return create_matcher(config, registry)


def _result_json(result: MatchResult) -> str:
    return json.dumps(
        {
            "found": result.found,
            "channel": result.channel.value if result.channel else None,
            "candidate": result.candidate.to_dict() if result.candidate else None,
            "attempts": [
                {"channel": a.channel.value, "term": a.term, "hit": a.hit} for a in result.attempts
            ],
        },
        indent=2,
    )


def _print_result(result: MatchResult) -> None:
    for attempt in result.attempts:
        mark = "[green]hit[/green]" if attempt.hit else "[dim]miss[/dim]"
        console.print(f"  {attempt.channel.value:<6} {attempt.term}  {mark}")

    candidate = result.candidate
    if candidate is None:
        return
    table = Table(title=candidate.title, show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Author", candidate.author or "[dim]unknown[/dim]")
    table.add_row("ISBN-13", candidate.isbn13 or "[dim]none[/dim]")
    table.add_row("ISBN-10", candidate.isbn10 or "[dim]none[/dim]")
    table.add_row("ASIN", candidate.asin or "[dim]none[/dim]")
    table.add_row("Foreign ID", str(candidate.extensions.get(EXT_FOREIGN_BOOK_ID) or "[dim]none[/dim]"))
    table.add_row("Matched by", result.channel.value if result.channel else "")
    console.print(table)


@click.command("match")
@click.option("--isbn13", default=None, help="ISBN-13 to look up first.")
@click.option("--isbn10", default=None, help="ISBN-10 to look up.")
@click.option("--asin", default=None, help="Amazon ASIN to look up.")
@click.option("--title", default=None, help="Title for the fuzzy fallback.")
@click.option("--author", default=None, help="Author for the fuzzy fallback.")
@kind_option
@json_option
@click.pass_context
def match(
    ctx: click.Context,
    isbn13: str | None,
    isbn10: str | None,
    asin: str | None,
    title: str | None,
    author: str | None,
    kind: str,
    as_json: bool,
) -> None:
    """Match book identifiers against the Readarr catalog."""
    if not any((isbn13, isbn10, asin, title)):
        raise click.UsageError("give at least one of --isbn13, --isbn10, --asin or --title")

    config = get_config(ctx)
    query = MatchQuery(isbn13=isbn13, isbn10=isbn10, asin=asin, title=title, author=author)
    with _create_registry(config) as registry:
        matcher = _create_matcher(config, registry)
        if matcher is None:
            console.print("[red]Error:[/red] no Readarr instance is configured")
            raise SystemExit(1)
        try:
            result = matcher.match(query, MediaKind.parse(kind))
        except ProviderError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

    if as_json:
        click.echo(_result_json(result))
    else:
        _print_result(result)
        if not result.found:
            console.print("[yellow]No match found.[/yellow]")

    if not result.found:
        raise SystemExit(1)
