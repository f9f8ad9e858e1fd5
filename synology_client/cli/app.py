"""
Defines the command-line interface for the client using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import pydantic
import typer
from rich.console import Console
from rich.logging import RichHandler

from synology_client import __version__
from synology_client.api.client import SynologyHttpClient
from synology_client.api.descriptor import EndpointDescriptor, get_api_info
from synology_client.api.session import SessionHandle
from synology_client.api.upload import FileStationUploadEndpoint
from synology_client.exceptions import ValidationError
from synology_client.models import error_codes
from synology_client.models.config import ClientConfig
from synology_client.storage.config_manager import ConfigManager
from synology_client.utils.structured_logger import create_api_logger

from .formatters import (
    print_config,
    print_error_description,
    print_response,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("synology_client")

app = typer.Typer(
    name="synology-client",
    help=(
        "Talk to the Synology DSM Web API from the command line. Use"
        " 'synology-client <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

# Options shared by all commands, filled in by the callback
_state: dict = {"log_dir": None}


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "synology-client"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", help="Write a JSON-lines log of API requests here."
    ),
):
    """Synology Web API client"""
    if version:
        console.print(
            f"[bold]synology-client[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("synology_client").setLevel(log_level)
    _state["log_dir"] = log_dir

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]synology-client init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager.load_config()
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Argument(
        ..., help="DSM web API root, e.g. https://nas.local:5001/webapi/"
    ),
    sid: str = typer.Option("", "--sid", help="Session ID from a prior login."),
    verify_ssl: bool = typer.Option(
        True, "--verify-ssl/--no-verify-ssl", help="Verify the NAS certificate."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(
        {"base_url": base_url, "sid": sid, "verify_ssl": verify_ssl}
    )
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def errors(
    api_name: str = typer.Argument(..., help="API name, e.g. SYNO.FileStation.Upload"),
    code: int = typer.Argument(..., help="Numeric error code returned by the NAS."),
):
    """Explain an error code returned by the NAS."""
    print_error_description(api_name, error_codes.describe(api_name, code))


def _parse_params(params: list[str]) -> dict[str, str]:
    result = {}
    for item in params:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValidationError(f"Expected key=value, got '{item}'.")
        result[key] = value
    return result


def _resolve_api(api_name: str, path: str | None, api_version: int | None):
    if path:
        version = 1 if api_version is None else api_version
        try:
            return EndpointDescriptor(name=api_name, path=path, version=version)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid API descriptor for {api_name}: {e}") from e
    api_info = get_api_info(api_name)
    if api_version is None:
        return api_info
    return api_info.with_version(api_version)


def _load(sid: str | None) -> tuple[ClientConfig, SessionHandle]:
    config = ConfigManager(CONFIG_FILE).load_config({"sid": sid})
    return config, SessionHandle(token=config.sid)


def _make_client(config: ClientConfig) -> SynologyHttpClient:
    log_dir = _state["log_dir"]
    api_logger = create_api_logger(log_dir, enable_json=log_dir is not None)
    return SynologyHttpClient(config, api_logger=api_logger)


@app.command(name="get")
def get_command(
    api_name: str = typer.Argument(..., help="API name, e.g. SYNO.FileStation.List"),
    method: str = typer.Argument(..., help="API method, e.g. list_share"),
    params: list[str] | None = typer.Argument(  # noqa: B008
        None, help="Extra query parameters as key=value."
    ),
    api_version: int | None = typer.Option(
        None, "--api-version", help="Override the API version."
    ),
    path: str | None = typer.Option(
        None, "--path", help="CGI path for APIs not known to the client."
    ),
    sid: str | None = typer.Option(None, "--sid", help="Override the stored sid."),
):
    """Call an API method with a GET request and print its data."""
    query = _parse_params(params or [])
    api_info = _resolve_api(api_name, path, api_version)
    config, session = _load(sid)

    async def _get_async():
        async with _make_client(config) as client:
            return await client.get(api_info, method, query, session)

    print_response(asyncio.run(_get_async()))


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload."),
    destination: str = typer.Argument(..., help="Destination folder on the NAS."),
    overwrite: bool = typer.Option(
        False, "--overwrite/--skip", help="Replace an existing file of the same name."
    ),
    create_parents: bool | None = typer.Option(
        None,
        "--create-parents/--no-create-parents",
        help="Create missing parent folders (default from config).",
    ),
    api_version: int | None = typer.Option(
        None, "--api-version", help="Override the upload API version."
    ),
    sid: str | None = typer.Option(None, "--sid", help="Override the stored sid."),
):
    """Upload a file to File Station."""
    api_info = _resolve_api("SYNO.FileStation.Upload", None, api_version)
    config, session = _load(sid)

    async def _upload_async():
        async with _make_client(config) as client:
            endpoint = FileStationUploadEndpoint(
                client,
                api_info,
                session,
                create_parents=config.create_parents,
            )
            return await endpoint.upload(
                str(file_path),
                destination,
                overwrite,
                create_parents=create_parents,
            )

    result = asyncio.run(_upload_async())
    if result.skipped:
        console.print(f"[yellow]⚠️  '{file_path.name}' already exists, skipped.[/yellow]")
    else:
        console.print(f"[green]✓ Uploaded '{file_path.name}' to {destination}[/green]")
