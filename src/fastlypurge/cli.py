"""Command line interface for fastlypurge."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, TypeVar

import httpx
import typer
from rich.console import Console
from rich.table import Table

from fastlypurge.core.entities.purge_config import ConfigurationError, PurgeConfig
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash
from fastlypurge.core.services.credential_check import CredentialCheck
from fastlypurge.core.services.edge_modules import edge_module_status
from fastlypurge.core.services.purge_state import PurgeState
from fastlypurge.core.services.purger import FastlyPurger
from fastlypurge.core.services.tags_invalidator import CacheTagsInvalidator
from fastlypurge.core.services.vcl_handler import VclHandler
from fastlypurge.infrastructure.api.fastly_client import FastlyApiClient
from fastlypurge.infrastructure.notifiers.webhook import WebhookNotifier
from fastlypurge.infrastructure.serializers.json import SerializationError
from fastlypurge.infrastructure.state.json_file import JsonFileStateStore

T = TypeVar("T")

DEFAULT_STATE_PATH = Path(".fastlypurge-state.json")

app = typer.Typer(
    name="fastlypurge",
    help="Purge Fastly caches and manage service VCL.",
    no_args_is_help=True,
)
purge_app = typer.Typer(help="Purge content from Fastly.", no_args_is_help=True)
credentials_app = typer.Typer(help="Inspect the API credentials.", no_args_is_help=True)
vcl_app = typer.Typer(help="Edit the service configuration.", no_args_is_help=True)
edge_modules_app = typer.Typer(help="Manage edge modules.", no_args_is_help=True)

app.add_typer(purge_app, name="purge")
app.add_typer(credentials_app, name="credentials")
app.add_typer(vcl_app, name="vcl")
app.add_typer(edge_modules_app, name="edge-modules")

console = Console()


@dataclass
class Services:
    """Wired-up services for one command invocation."""

    config: PurgeConfig
    api: FastlyApiClient
    notifier: WebhookNotifier
    cache_tags_hash: CacheTagsHash
    state: PurgeState
    purger: FastlyPurger

    def invalidator(self) -> CacheTagsInvalidator:
        return CacheTagsInvalidator(self.purger, self.cache_tags_hash)

    def vcl_handler(self) -> VclHandler:
        return VclHandler(self.api, self.config, notifier=self.notifier)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON settings file. FASTLY_* environment variables take precedence.",
    ),
    state: Path = typer.Option(
        DEFAULT_STATE_PATH,
        "--state",
        help="JSON file holding the site id and cached credential state.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """fastlypurge: Fastly purging from the command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["state_path"] = state


@purge_app.command("all")
def purge_all(
    ctx: typer.Context,
    service: bool = typer.Option(
        False,
        "--service",
        help="Purge the whole service, including other sites sharing it.",
    ),
) -> None:
    """Purge all content of this site (or of the whole service)."""

    async def run(services: Services) -> bool:
        return bool(await services.purger.purge_all(site_only=not service))

    target = "service" if service else "site"
    _report(
        _run(ctx, run),
        f"Purged all content of the {target}.",
        f"Unable to purge all content of the {target}.",
    )


@purge_app.command("url")
def purge_url(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Absolute URL to purge"),
) -> None:
    """Purge a single URL."""

    async def run(services: Services) -> bool:
        return bool(await services.purger.purge_url(url))

    _report(_run(ctx, run), f"Purged {url}.", f"Unable to purge {url}.")


@purge_app.command("key")
def purge_key(
    ctx: typer.Context,
    tags: str = typer.Argument(..., help="Comma-separated cache tags, e.g. node:1,node_list"),
) -> None:
    """Purge the surrogate keys of cache tags."""
    tag_list = [tag.strip() for tag in tags.split(",") if tag.strip()]
    if not tag_list:
        console.print("[red]✗[/red] No cache tags given.")
        raise typer.Exit(code=2)

    async def run(services: Services) -> bool:
        return bool(await services.invalidator().invalidate_tags(tag_list))

    _report(
        _run(ctx, run),
        f"Purged {len(tag_list)} cache tag(s).",
        f"Unable to purge cache tag(s): {', '.join(tag_list)}",
    )


@credentials_app.command("check")
def credentials_check(ctx: typer.Context) -> None:
    """Validate the API token and cache the outcome."""

    async def run(services: Services) -> Any:
        await services.state.clear_purge_credentials_state()
        return await CredentialCheck(services.api, services.state, services.config).run()

    result = _run(ctx, run)
    _report(result.is_ok, result.recommendation, result.recommendation)


@app.command("site-id")
def site_id(ctx: typer.Context) -> None:
    """Show the site id, generating and persisting one if needed."""

    async def run(services: Services) -> str:
        return await services.cache_tags_hash.get_site_id()

    console.print(_run(ctx, run))


@app.command("hash")
def hash_tag(
    ctx: typer.Context,
    tag: str = typer.Argument(..., help="Cache tag to hash"),
) -> None:
    """Show the surrogate key of a cache tag for this site."""

    async def run(services: Services) -> str:
        keys = await services.cache_tags_hash.cache_tags_to_hashes([tag])
        return keys[0]

    console.print(_run(ctx, run))


@vcl_app.command("upload-maintenance")
def upload_maintenance(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML page"),
) -> None:
    """Upload a maintenance page served on backend errors."""
    html = file.read_text(encoding="utf-8")

    async def run(services: Services) -> tuple[bool, list[str]]:
        handler = services.vcl_handler()
        return await handler.upload_maintenance_page(html), handler.errors

    success, errors = _run(ctx, run)
    _report(success, "Maintenance page uploaded and activated.", _errors_line(errors))


@edge_modules_app.command("list")
def edge_modules_list(ctx: typer.Context) -> None:
    """List edge modules and whether they are enabled."""

    async def run(services: Services) -> list[Any]:
        snippets = await services.vcl_handler().get_all_snippets()
        return edge_module_status(snippets)

    table = Table(title="Edge modules")
    table.add_column("Module", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    for status in _run(ctx, run):
        label = "[green]Enabled[/green]" if status.enabled else "Disabled"
        if status.updated_at:
            label += f" ({status.updated_at})"
        table.add_row(status.module.id, status.module.name, label)
    console.print(table)


@edge_modules_app.command("upload")
def edge_modules_upload(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Edge module id"),
    value: Optional[list[str]] = typer.Option(
        None,
        "--value",
        help="Template value as key=value. JSON values are decoded.",
    ),
    values_file: Optional[Path] = typer.Option(
        None,
        "--values-file",
        exists=True,
        dir_okay=False,
        help="JSON file with template values.",
    ),
) -> None:
    """Render an edge module and activate it."""
    try:
        values = _load_json_file(values_file) if values_file else {}
    except SerializationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=2) from e
    values.update(_parse_values(value or []))

    async def run(services: Services) -> tuple[bool, list[str]]:
        handler = services.vcl_handler()
        return await handler.upload_edge_module(name, values), handler.errors

    success, errors = _run(ctx, run)
    _report(success, f"Edge module {name} enabled/updated.", _errors_line(errors))


@edge_modules_app.command("remove")
def edge_modules_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Edge module id"),
) -> None:
    """Remove an edge module's snippets and activate the result."""

    async def run(services: Services) -> tuple[bool, list[str]]:
        handler = services.vcl_handler()
        return await handler.remove_edge_module(name), handler.errors

    success, errors = _run(ctx, run)
    _report(success, f"Edge module {name} disabled.", _errors_line(errors))


def _make_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


def load_config(config_path: Path | None) -> PurgeConfig:
    """Load settings from an optional JSON file plus the environment."""
    base = PurgeConfig.from_mapping(_load_json_file(config_path)) if config_path else None
    return PurgeConfig.from_env(base)


@asynccontextmanager
async def open_services(config: PurgeConfig, state_path: Path) -> AsyncIterator[Services]:
    """Wire the services for one invocation around a shared HTTP client."""
    store = JsonFileStateStore(state_path)
    async with _make_http_client() as http_client:
        api = FastlyApiClient(config, http_client=http_client)
        notifier = WebhookNotifier(config, http_client=http_client)
        cache_tags_hash = CacheTagsHash(config, store)
        state = PurgeState(store)
        yield Services(
            config=config,
            api=api,
            notifier=notifier,
            cache_tags_hash=cache_tags_hash,
            state=state,
            purger=FastlyPurger(api, cache_tags_hash, state, config, notifier),
        )


def _run(ctx: typer.Context, func: Callable[[Services], Awaitable[T]]) -> T:
    try:
        config = load_config(ctx.obj["config_path"])
    except (ConfigurationError, SerializationError, OSError) as e:
        console.print(f"[red]✗[/red] Invalid configuration: {e}")
        raise typer.Exit(code=2) from e

    async def runner() -> T:
        async with open_services(config, ctx.obj["state_path"]) as services:
            return await func(services)

    try:
        return asyncio.run(runner())
    except SerializationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=2) from e


def _report(success: bool, ok_message: str, error_message: str) -> None:
    if success:
        console.print(f"[green]✓[/green] {ok_message}")
        return
    console.print(f"[red]✗[/red] {error_message}")
    raise typer.Exit(code=1)


def _errors_line(errors: list[str]) -> str:
    return "; ".join(errors) if errors else "The request failed."


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SerializationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(f"{path} must contain a JSON object")
    return data


def _parse_values(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` options, decoding JSON values where possible."""
    values: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--value")
        try:
            values[key] = json.loads(raw)
        except ValueError:
            values[key] = raw
    return values


if __name__ == "__main__":
    app()
