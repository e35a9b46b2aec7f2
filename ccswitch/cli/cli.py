"""Main CLI entry point for cc-switch.

This module is the command layer: it parses application kinds and provider
input at the boundary and calls :class:`ccswitch.core.store.ConfigStore`.
Engine errors are reported verbatim.
"""

from __future__ import annotations

import functools
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ccswitch import __version__
from ccswitch.core.errors import CCSwitchError
from ccswitch.core.provider import AppType, Provider
from ccswitch.core.settings import get_config_dir
from ccswitch.core.store import ConfigStore
from ccswitch.utils.log import enable_file_logging, get_logger


console = Console()
logger = get_logger()


class AppTypeParam(click.ParamType):
    """Click parameter that only accepts the managed application kinds."""

    name = "app"

    def convert(self, value: Any, param: Optional[click.Parameter], ctx: Optional[click.Context]) -> AppType:
        if isinstance(value, AppType):
            return value
        try:
            return AppType.parse(value)
        except CCSwitchError as exc:
            choices = ", ".join(app.value for app in AppType)
            self.fail(f"{exc}. Supported values: {choices}.", param, ctx)


APP = AppTypeParam()


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CCSwitchError as exc:
            logger.debug(
                "[cli] Command failed: %s: %s",
                type(exc).__name__,
                exc,
            )
            raise click.ClickException(str(exc)) from exc

    return wrapper


def _get_store(ctx: click.Context) -> ConfigStore:
    obj = ctx.ensure_object(dict)
    store = obj.get("store")
    if store is None:
        store = ConfigStore(obj.get("config_dir"))
        obj["store"] = store
    return store


def _load_json_option(raw: Optional[str], file_path: Optional[Path], option: str) -> Any:
    if raw is not None and file_path is not None:
        raise click.UsageError(f"Use either --{option}-json or --{option}-file, not both.")
    if file_path is not None:
        try:
            raw = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise click.ClickException(f"Failed to read {file_path}: {exc}") from exc
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON for --{option}: {exc}") from exc


def _build_settings_config(
    app: AppType,
    base: Any,
    settings_json: Optional[str],
    settings_file: Optional[Path],
    auth_file: Optional[Path],
    config_file: Optional[Path],
) -> Any:
    settings_config = _load_json_option(settings_json, settings_file, "settings")
    if settings_config is None:
        settings_config = base
    if auth_file is None and config_file is None:
        return settings_config
    if app is not AppType.CODEX:
        raise click.UsageError("--auth-file and --config-file only apply to codex.")
    merged = dict(settings_config) if isinstance(settings_config, dict) else {}
    if auth_file is not None:
        merged["auth"] = _load_json_option(None, auth_file, "auth")
    if config_file is not None:
        try:
            merged["config"] = config_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise click.ClickException(f"Failed to read {config_file}: {exc}") from exc
    return merged


def _provider_row(provider: Provider, current: str) -> dict[str, Any]:
    return {
        "id": provider.id,
        "name": provider.name,
        "current": provider.id == current,
        "websiteUrl": provider.website_url,
        "category": provider.category,
        "createdAt": provider.created_at,
    }


def _payload_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--settings-json", type=str, default=None, help="Provider payload as JSON."),
        click.option(
            "--settings-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="Read the provider payload from a JSON file.",
        ),
        click.option(
            "--auth-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="Codex only: auth.json content for the provider.",
        ),
        click.option(
            "--config-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="Codex only: config.toml content for the provider.",
        ),
        click.option("--website-url", type=str, default=None, help="Provider website."),
        click.option("--category", type=str, default=None, help="Provider category."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="cc-switch data directory (default: ~/.cc-switch or $CCSWITCH_CONFIG_DIR).",
)
@click.option("--verbose", is_flag=True, help="Print debug logs to stderr.")
@click.option("--log-file", is_flag=True, help="Also write logs under <config-dir>/logs.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Optional[Path], verbose: bool, log_file: bool) -> None:
    """Switch Claude Code and Codex between provider profiles."""
    obj = ctx.ensure_object(dict)
    obj["config_dir"] = config_dir
    if verbose:
        logger.set_console_level(logging.DEBUG)
    if log_file:
        enable_file_logging(config_dir or get_config_dir())
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(name="list")
@click.argument("app", type=APP)
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
@click.pass_context
@_handle_errors
def list_cmd(ctx: click.Context, app: AppType, as_json: bool) -> None:
    """List providers of APP (claude or codex)."""
    store = _get_store(ctx)
    providers = store.list_providers(app)
    current = store.get_current(app)
    rows = [_provider_row(p, current) for p in sorted(providers.values(), key=lambda p: p.name.lower())]
    if as_json:
        click.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return
    if not rows:
        console.print(f"No {app.display_name} providers configured.")
        return
    table = Table(title=f"{app.display_name} providers")
    table.add_column("", width=1)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Website")
    for row in rows:
        table.add_row(
            "*" if row["current"] else "",
            escape(row["id"]),
            escape(row["name"]),
            escape(row["websiteUrl"] or ""),
        )
    console.print(table)


@cli.command(name="current")
@click.argument("app", type=APP)
@click.pass_context
@_handle_errors
def current_cmd(ctx: click.Context, app: AppType) -> None:
    """Print the id of the active provider of APP."""
    click.echo(_get_store(ctx).get_current(app))


@cli.command(name="add")
@click.argument("app", type=APP)
@click.option("--id", "provider_id", type=str, default=None, help="Provider id (default: random).")
@click.option("--name", type=str, required=True, help="Display name.")
@_payload_options
@click.pass_context
@_handle_errors
def add_cmd(
    ctx: click.Context,
    app: AppType,
    provider_id: Optional[str],
    name: str,
    settings_json: Optional[str],
    settings_file: Optional[Path],
    auth_file: Optional[Path],
    config_file: Optional[Path],
    website_url: Optional[str],
    category: Optional[str],
) -> None:
    """Add a provider to APP."""
    settings_config = _build_settings_config(
        app, {}, settings_json, settings_file, auth_file, config_file
    )
    provider = Provider(
        id=provider_id or str(uuid.uuid4()),
        name=name,
        settings_config=settings_config,
        website_url=website_url,
        category=category,
        created_at=int(time.time() * 1000),
    )
    _get_store(ctx).add_provider(app, provider)
    console.print(f"Added {app.value} provider '{escape(provider.name)}' ({escape(provider.id)})")


@cli.command(name="update")
@click.argument("app", type=APP)
@click.argument("provider_id")
@click.option("--name", type=str, default=None, help="New display name.")
@_payload_options
@click.pass_context
@_handle_errors
def update_cmd(
    ctx: click.Context,
    app: AppType,
    provider_id: str,
    name: Optional[str],
    settings_json: Optional[str],
    settings_file: Optional[Path],
    auth_file: Optional[Path],
    config_file: Optional[Path],
    website_url: Optional[str],
    category: Optional[str],
) -> None:
    """Update provider PROVIDER_ID of APP; unspecified fields are kept."""
    store = _get_store(ctx)
    existing = store.list_providers(app).get(provider_id)
    if existing is None:
        raise click.ClickException(f"Provider not found: {provider_id}")
    settings_config = _build_settings_config(
        app,
        existing.settings_config,
        settings_json,
        settings_file,
        auth_file,
        config_file,
    )
    updated = existing.model_copy(
        update={
            "name": name if name is not None else existing.name,
            "settings_config": settings_config,
            "website_url": website_url if website_url is not None else existing.website_url,
            "category": category if category is not None else existing.category,
        }
    )
    store.update_provider(app, updated)
    console.print(f"Updated {app.value} provider '{escape(updated.name)}'")


@cli.command(name="delete")
@click.argument("app", type=APP)
@click.argument("provider_id")
@click.pass_context
@_handle_errors
def delete_cmd(ctx: click.Context, app: AppType, provider_id: str) -> None:
    """Delete provider PROVIDER_ID of APP (not allowed while active)."""
    _get_store(ctx).delete_provider(app, provider_id)
    console.print(f"Deleted {app.value} provider '{escape(provider_id)}'")


@cli.command(name="switch")
@click.argument("app", type=APP)
@click.argument("provider_id")
@click.pass_context
@_handle_errors
def switch_cmd(ctx: click.Context, app: AppType, provider_id: str) -> None:
    """Make PROVIDER_ID the live configuration of APP."""
    store = _get_store(ctx)
    store.switch_provider(app, provider_id)
    provider = store.list_providers(app)[provider_id]
    console.print(
        f"[green]Switched {app.display_name} to '{escape(provider.name)}'.[/green]"
    )


@cli.command(name="import")
@click.argument("app", type=APP)
@click.pass_context
@_handle_errors
def import_cmd(ctx: click.Context, app: AppType) -> None:
    """Import the live configuration of APP as the 'default' provider."""
    imported = _get_store(ctx).import_default(app)
    if imported:
        console.print(f"Imported the live {app.display_name} configuration as 'default'.")
    else:
        console.print(f"[dim]{app.display_name} already has providers; nothing imported.[/dim]")


@cli.command(name="status")
@click.argument("app", type=APP)
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
@click.pass_context
@_handle_errors
def status_cmd(ctx: click.Context, app: AppType, as_json: bool) -> None:
    """Show whether the live configuration of APP exists."""
    status = _get_store(ctx).get_config_status(app)
    if as_json:
        click.echo(json.dumps({"exists": status.exists, "path": status.path}))
        return
    state = "[green]present[/green]" if status.exists else "[yellow]missing[/yellow]"
    console.print(f"{app.display_name}: {state} ({escape(status.path)})")


@cli.command(name="paths")
@click.pass_context
@_handle_errors
def paths_cmd(ctx: click.Context) -> None:
    """Show where cc-switch and the managed applications keep their files."""
    store = _get_store(ctx)
    console.print(f"Store: {escape(str(store.get_app_config_path()))}")
    console.print(f"Settings: {escape(str(store.settings_manager.path))}")
    for app in AppType:
        console.print(f"{app.display_name}: {escape(str(store.get_live_config_dir(app)))}")


@cli.group(name="settings")
def settings_group() -> None:
    """Show or change runtime settings."""


@settings_group.command(name="show")
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
@click.pass_context
@_handle_errors
def settings_show_cmd(ctx: click.Context, as_json: bool) -> None:
    settings = _get_store(ctx).get_settings()
    data = settings.to_json_dict()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    console.print("\n[bold]Settings[/bold]\n")
    console.print(f"Target environment: {settings.target_env.value}")
    console.print(f"WSL distribution: {escape(settings.wsl_distro or 'Not set')}")
    console.print(f"Show in tray: {settings.show_in_tray}")
    console.print(f"Minimize to tray on close: {settings.minimize_to_tray_on_close}\n")


@settings_group.command(name="set")
@click.option("--target-env", type=click.Choice(["local", "wsl"]), default=None)
@click.option("--wsl-distro", type=str, default=None, help="Empty string clears it.")
@click.option("--show-in-tray/--hide-in-tray", default=None)
@click.option("--minimize-on-close/--quit-on-close", default=None)
@click.pass_context
@_handle_errors
def settings_set_cmd(
    ctx: click.Context,
    target_env: Optional[str],
    wsl_distro: Optional[str],
    show_in_tray: Optional[bool],
    minimize_on_close: Optional[bool],
) -> None:
    patch: dict[str, Any] = {}
    if target_env is not None:
        patch["targetEnv"] = target_env
    if wsl_distro is not None:
        patch["wslDistro"] = wsl_distro
    if show_in_tray is not None:
        patch["showInTray"] = show_in_tray
    if minimize_on_close is not None:
        patch["minimizeToTrayOnClose"] = minimize_on_close
    if not patch:
        raise click.UsageError("Nothing to change.")
    settings = _get_store(ctx).save_settings(patch)
    console.print(
        f"Saved settings (target: {settings.target_env.value}, "
        f"distro: {escape(settings.wsl_distro or '-')})"
    )


@cli.group(name="wsl")
def wsl_group() -> None:
    """Inspect WSL distributions."""


@wsl_group.command(name="list")
@click.pass_context
@_handle_errors
def wsl_list_cmd(ctx: click.Context) -> None:
    distros = _get_store(ctx).list_remote_distros()
    if not distros:
        console.print("[dim]No WSL distributions found.[/dim]")
        return
    for distro in distros:
        click.echo(distro)


@wsl_group.command(name="home")
@click.argument("distro")
@click.pass_context
@_handle_errors
def wsl_home_cmd(ctx: click.Context, distro: str) -> None:
    click.echo(_get_store(ctx).resolve_remote_home(distro))


def main() -> None:
    """Console script entry point."""
    cli(obj={})


__all__ = ["cli", "main"]
