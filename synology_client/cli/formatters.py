"""
Functions for formatting and displaying data in the console using Rich.
"""

import json
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from synology_client.models.error_codes import ErrorDescription


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ApiError": [
            "• The NAS rejected the request; see the message above.",
            "• Session errors (105, 106, 107, 119) mean you need a new sid.",
            "• Look up a code with `synology-client errors <API> <CODE>`.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• Check that base_url points at the DSM web API (…/webapi/).",
            "• Please try again in a few minutes.",
        ],
        "ProtocolError": [
            "• The NAS answered with an unexpected body.",
            "• Check the API version; try a different `--api-version`.",
        ],
        "ValidationError": [
            "• One of the arguments is empty or malformed.",
        ],
        "ConfigurationError": [
            "• Run `synology-client init <BASE_URL>` to create a configuration.",
            "• Check the values with `synology-client --show-config`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_file: Path, config_data: dict[str, Any]) -> None:
    """Prints the configuration as a table, hiding the session token."""
    console = Console()
    table = Table(
        title=f"Configuration ([dim]{config_file}[/dim])",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key, value in sorted(config_data.items()):
        if key == "sid" and value:
            value = f"{str(value)[:4]}… (hidden)"
        table.add_row(key, str(value))

    console.print(table)


def print_error_description(api_name: str, description: ErrorDescription) -> None:
    """Shows how an error code resolves for an API."""
    console = Console()
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("API", api_name)
    table.add_row("Code", str(description.code))
    table.add_row("Message", description.message)
    table.add_row("Table", f"[dim]{description.table}[/dim]")
    console.print(table)


def print_response(data: Any) -> None:
    """Pretty-prints the data returned by an API call."""
    console = Console()
    if hasattr(data, "model_dump"):
        data = data.model_dump(by_alias=True)
    console.print_json(json.dumps(data, default=str))
