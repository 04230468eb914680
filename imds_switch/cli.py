#!/usr/bin/env python3
"""
imds-switch CLI

Runs the metadata emulator and drives a running instance.

Commands:
    serve       Run the metadata service
    validate    Validate the role registry file
    roles       List roles configured in the registry file
    profiles    List registry profiles in the configuration directory
    status      Show the active role of a running service
    use         Switch the active role of a running service

Usage:
    imds-switch serve [--config PATH] [--host HOST] [--port PORT]
    imds-switch validate [--config PATH]
    imds-switch roles [--config PATH]
    imds-switch profiles
    imds-switch status [--endpoint URL]
    imds-switch use ALIAS [--endpoint URL]

Module: cli
"""

import json
import os
import sys
from typing import Any, Optional

import click
import httpx

from .config import get_config
from .config_file import RegistryFile
from .errors import ConfigFileError
from .version import __version__

DEFAULT_ENDPOINT = "http://127.0.0.1:8080"
CLIENT_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string"""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Handle and format errors"""
    if verbose:
        click.echo(f"Error: {type(error).__name__}: {error}", err=True)
        import traceback

        traceback.print_exc()
    elif isinstance(error, ConfigFileError):
        click.echo(error.format(), err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _registry_file(config_path: Optional[str], profile: str) -> RegistryFile:
    return RegistryFile(path=config_path, profile=profile)


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", response.text)
    except ValueError:
        return response.text


config_option = click.option(
    "--config", "-c", "config_path", default=None, help="Role registry file (default: IMDS_SWITCH_CONFIG or XDG path)"
)
profile_option = click.option(
    "--profile", "-p", default="default", help="Registry profile used when no path is given", show_default=True
)
endpoint_option = click.option(
    "--endpoint",
    "-e",
    default=lambda: os.getenv("IMDS_SWITCH_ENDPOINT", DEFAULT_ENDPOINT),
    help="Base URL of a running imds-switch service",
    show_default=DEFAULT_ENDPOINT,
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Verbose error output")


@click.group()
@click.version_option(version=__version__, prog_name="imds-switch")
def cli():
    """
    imds-switch: EC2 instance metadata emulator with switchable roles

    Serves temporary credentials for the active IAM role on the
    instance metadata credential paths used by AWS SDKs.
    """
    pass


@cli.command()
@config_option
@profile_option
@click.option("--host", default=None, help="Bind address (default: HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Bind port (default: PORT or 8080)")
@click.option("--default-role", default=None, help="Alias active at startup (overrides the registry)")
def serve(config_path: Optional[str], profile: str, host: Optional[str], port: Optional[int], default_role: Optional[str]):
    """
    Run the metadata service

    Examples:
        imds-switch serve
        imds-switch serve --config roles.json --port 9000
        imds-switch serve --default-role prod
    """
    import uvicorn

    if config_path:
        os.environ["IMDS_SWITCH_CONFIG"] = config_path
    os.environ["IMDS_SWITCH_PROFILE"] = profile
    if default_role:
        os.environ["IMDS_SWITCH_DEFAULT_ROLE"] = default_role

    config = get_config()
    uvicorn.run(
        "imds_switch.app:create_app",
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
        factory=True,
    )


@cli.command()
@config_option
@profile_option
@verbose_option
def validate(config_path: Optional[str], profile: str, verbose: bool):
    """
    Validate the role registry file

    Examples:
        imds-switch validate
        imds-switch validate --config roles.json
    """
    try:
        registry_file = _registry_file(config_path, profile)
        registry = registry_file.load()
        click.echo(
            f"✓ {registry_file.path} is valid ({len(registry.roles)} roles, default: {registry.default_role})",
            err=True,
        )
    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@config_option
@profile_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@verbose_option
def roles(config_path: Optional[str], profile: str, as_json: bool, verbose: bool):
    """
    List roles configured in the registry file

    Examples:
        imds-switch roles
        imds-switch roles --json
    """
    try:
        registry = _registry_file(config_path, profile).load()

        if as_json:
            click.echo(
                format_json(
                    {
                        "default_role": registry.default_role,
                        "roles": {alias: role.model_dump() for alias, role in registry.roles.items()},
                    }
                )
            )
            return

        for alias, role in registry.roles.items():
            marker = "*" if alias == registry.default_role else " "
            click.echo(f"{marker} {alias}\t{role.arn}")
    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@verbose_option
def profiles(verbose: bool):
    """
    List registry profiles in the configuration directory

    Examples:
        imds-switch profiles
        imds-switch serve --profile lab
    """
    try:
        registry_file = RegistryFile()
        names = registry_file.list_profiles()
        if not names:
            click.echo(f"No registry profiles in {registry_file.base_dir}", err=True)
            return
        for name in names:
            click.echo(name)
    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@endpoint_option
@verbose_option
def status(endpoint: str, verbose: bool):
    """
    Show the active role of a running service

    Examples:
        imds-switch status
        imds-switch status --endpoint http://169.254.169.254
    """
    try:
        with httpx.Client(base_url=endpoint, timeout=CLIENT_TIMEOUT) as client:
            response = client.get("/roles", params={"status": "active"})
        if response.is_error:
            raise click.ClickException(f"{response.status_code}: {_error_message(response)}")
        click.echo(response.json()["roles"][0])
    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@click.argument("alias")
@endpoint_option
@verbose_option
def use(alias: str, endpoint: str, verbose: bool):
    """
    Switch the active role of a running service

    Examples:
        imds-switch use prod
        imds-switch use dev --endpoint http://169.254.169.254
    """
    try:
        with httpx.Client(base_url=endpoint, timeout=CLIENT_TIMEOUT) as client:
            response = client.post("/roles", json={"alias": alias})
        if response.is_error:
            raise click.ClickException(f"{response.status_code}: {_error_message(response)}")
        click.echo(f"✓ Active role: {response.json()['active_role']}", err=True)
    except Exception as e:
        handle_error(e, verbose)


if __name__ == "__main__":
    cli()
