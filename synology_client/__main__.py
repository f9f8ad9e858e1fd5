"""
Entry point for the ``synology-client`` command.

Click handles ``typer.Exit``/``Abort`` itself; what reaches this module is a library
failure, which is rendered as a panel instead of a traceback.
"""

import logging
import sys

from rich.console import Console

from synology_client.cli.app import app
from synology_client.cli.formatters import format_error_with_suggestions
from synology_client.exceptions import ApiError, SynologyClientError

# ApiError gets its own status so scripts can tell a NAS refusal from a local problem
EXIT_ERROR = 1
EXIT_API_ERROR = 2
EXIT_INTERRUPTED = 130


def main() -> None:
    console = Console(stderr=True)

    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Interrupted.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except SynologyClientError as e:
        console.print(format_error_with_suggestions(e))
        logging.getLogger("synology_client").debug("Traceback:", exc_info=True)
        sys.exit(EXIT_API_ERROR if isinstance(e, ApiError) else EXIT_ERROR)


if __name__ == "__main__":
    main()
