# ABOUTME: The `lectern hydrate` command for attaching a Readarr selection to a stored request.
# ABOUTME: Reads a request from JSON, hydrates it, and writes the updated record.

import json
from pathlib import Path

import click
from rich.console import Console

from lectern.cli.options import get_config
from lectern.config import LecternConfig
from lectern.core.hydrator import Hydrator, NoMatchError, StoredRequest
from lectern.core.registry import ProviderRegistry, build_registry, create_matcher
from lectern.metadata.provider import ProviderError

console = Console(stderr=True)


def _create_registry(config: LecternConfig) -> ProviderRegistry:
    return build_registry(config)


def _create_hydrator(config: LecternConfig, registry: ProviderRegistry) -> Hydrator | None:
    matcher = create_matcher(config, registry)
    return Hydrator(matcher) if matcher is not None else None


def _load_request(path: Path) -> StoredRequest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise click.BadParameter(f"cannot read request: {exc}", param_hint="REQUEST_JSON") from exc
    if not isinstance(data, dict):
        raise click.BadParameter("request must be a JSON object", param_hint="REQUEST_JSON")
    try:
        return StoredRequest.from_dict(data)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="REQUEST_JSON") from exc


@click.command("hydrate")
@click.argument("request_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the hydrated request here (default: print to stdout).",
)
@click.pass_context
def hydrate(ctx: click.Context, request_json: Path, output: Path | None) -> None:
    """Hydrate the stored request in REQUEST_JSON with Readarr metadata."""
    config = get_config(ctx)
    request = _load_request(request_json)

    with _create_registry(config) as registry:
        hydrator = _create_hydrator(config, registry)
        if hydrator is None:
            console.print("[red]Error:[/red] no Readarr instance is configured")
            raise SystemExit(1)
        try:
            result = hydrator.hydrate(request)
        except NoMatchError as exc:
            console.print(f"[red]No match:[/red] {exc}")
            raise SystemExit(1) from exc
        except ProviderError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

    console.print(f"[green]{result.message}[/green]")
    body = json.dumps(result.request.to_dict(), indent=2)
    if output is None:
        click.echo(body)
    else:
        output.write_text(body + "\n", encoding="utf-8")
        console.print(f"[dim]Wrote {output}[/dim]")
