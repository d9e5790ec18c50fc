"""
backplane-cli Command Line Interface

Main entry point for the ocm-backplane CLI.
"""

import json
import logging
import os
import sys
from typing import Any, Dict, NoReturn

import click
import yaml
from rich.console import Console
from rich.table import Table

from backplane_cli.config.loader import get_config_file_path, load_settings
from backplane_cli.config.models import PROXY_URL_KEY, SESSION_DIR_KEY
from backplane_cli.config.resolver import get_backplane_configuration, resolve_access_requests_config
from backplane_cli.config.validator import ValidationReport, validate_config
from backplane_cli.exceptions import BackplaneError, get_error_code
from backplane_cli.info import BACKPLANE_CONFIG_PATH_ENV_NAME, get_build_version
from backplane_cli.logging_config import mask_secrets, setup_logging
from backplane_cli.session import (
    create_session,
    delete_session,
    get_session_root,
    list_sessions,
    session_name,
)

console = Console()


def _fail(error: BackplaneError) -> NoReturn:
    """Print an error and exit with its mapped code."""
    console.print(f"[red]Error:[/red] {mask_secrets(str(error))}", highlight=False)
    sys.exit(get_error_code(error))


def _environ(ctx: click.Context) -> Dict[str, str]:
    return ctx.obj["environ"]


def _resolve(ctx: click.Context):
    return get_backplane_configuration(environ=_environ(ctx), strict=ctx.obj["strict"])


@click.group()
@click.version_option(package_name="backplane-cli", prog_name="ocm-backplane")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Backplane config file (default: ~/.config/backplane/config.json)")
@click.option("--lenient", is_flag=True, help="Warn instead of failing when no proxy-url is configured")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def main(ctx: click.Context, config_path: str, lenient: bool, verbose: bool):
    """ocm-backplane: access managed clusters through the backplane API"""
    setup_logging(logging.DEBUG if verbose else None)

    environ = dict(os.environ)
    if config_path:
        environ[BACKPLANE_CONFIG_PATH_ENV_NAME] = config_path

    ctx.ensure_object(dict)
    ctx.obj["environ"] = environ
    # None defers to BACKPLANE_CONFIG_LENIENT
    ctx.obj["strict"] = False if lenient else None


@main.command()
def version():
    """Print the version."""
    click.echo(get_build_version())


@main.group()
def config():
    """Configuration commands."""
    pass


@config.command("path")
@click.pass_context
def config_path_cmd(ctx: click.Context):
    """Print the configuration file path."""
    try:
        click.echo(str(get_config_file_path(_environ(ctx))))
    except BackplaneError as e:
        _fail(e)


@config.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--yaml", "yaml_output", is_flag=True, help="Output as YAML")
@click.pass_context
def show(ctx: click.Context, json_output: bool, yaml_output: bool):
    """Resolve and show the effective configuration."""
    try:
        bp_config = _resolve(ctx)
    except BackplaneError as e:
        _fail(e)

    data = bp_config.to_dict(mask=True)
    if data.get(PROXY_URL_KEY):
        data[PROXY_URL_KEY] = mask_secrets(data[PROXY_URL_KEY])

    if json_output:
        click.echo(json.dumps(data, indent=2))
        return
    if yaml_output:
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)
        return

    table = Table(title="Backplane Configuration", show_header=True)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, dict):
            value = yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip()
        table.add_row(key, "[dim]Not set[/dim]" if value in (None, "") else str(value))
    console.print(table)


def _print_report(report: ValidationReport, config_file: str) -> None:
    console.print("[bold blue]Configuration Validation[/bold blue]")
    console.print(f"[dim]{config_file}[/dim]")
    console.print()

    if report.errors:
        console.print("[red]Errors:[/red]")
        for err in report.errors:
            console.print(f"  [red]✗[/red] {err}", highlight=False)
        console.print()

    if report.warnings:
        console.print("[yellow]Warnings:[/yellow]")
        for warn in report.warnings:
            console.print(f"  [yellow]⚠[/yellow] {warn}", highlight=False)
        console.print()

    if report.is_valid:
        console.print("[green]Configuration is valid.[/green]")
    else:
        console.print("[red]Configuration has errors.[/red]")


@config.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def validate(ctx: click.Context, json_output: bool):
    """Validate the configuration file without network access."""
    environ = _environ(ctx)

    try:
        settings = load_settings(environ)
    except BackplaneError as e:
        if json_output:
            click.echo(json.dumps({"valid": False, "errors": [e.message], "warnings": []}, indent=2))
            sys.exit(get_error_code(e))
        _fail(e)

    # Collect every problem instead of stopping at the first
    report = validate_config(settings, environ, strict=False)
    resolve_access_requests_config(settings, report)

    if json_output:
        result: Dict[str, Any] = report.to_dict()
        result["config_file"] = str(settings.config_path)
        result["config_file_found"] = settings.config_file_found
        click.echo(json.dumps(result, indent=2))
    else:
        _print_report(report, str(settings.config_path))

    sys.exit(0 if report.is_valid else 1)


@config.command("check-connection")
@click.pass_context
def check_connection(ctx: click.Context):
    """Check the connection to the backplane API through the proxy."""
    try:
        bp_config = _resolve(ctx)
        bp_config.check_api_connection()
    except BackplaneError as e:
        _fail(e)

    via = f" via {mask_secrets(bp_config.proxy_url)}" if bp_config.proxy_url else ""
    console.print(f"[green]✓[/green] Connected to {bp_config.url}{via}", highlight=False)


@main.command()
@click.argument("alias", required=False)
@click.option("--cluster-id", "-c", help="The cluster to create the session for")
@click.option("--delete", "-d", "delete", is_flag=True, help="Delete session")
@click.option("--list", "list_all", is_flag=True, help="List existing sessions")
@click.pass_context
def session(ctx: click.Context, alias: str, cluster_id: str, delete: bool, list_all: bool):
    """Create an isolated environment to interact with a cluster in its own directory."""
    environ = _environ(ctx)

    try:
        # Only session-dir is needed; no API URL or proxy resolution
        settings = load_settings(environ)
        root = get_session_root(settings.get_string(SESSION_DIR_KEY), environ)

        if list_all:
            for name in list_sessions(root):
                click.echo(name)
            return

        name = session_name(alias, cluster_id)
        if delete:
            if delete_session(root, name):
                console.print(f"[green]✓[/green] Deleted session {name}")
            else:
                console.print(f"[yellow]No session named {name}[/yellow]")
            return

        session_path = create_session(root, name, cluster_id)
    except BackplaneError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Session {name} ready", highlight=False)
    console.print(f"  source {session_path / '.ocenv'}", highlight=False)


if __name__ == "__main__":
    main()
