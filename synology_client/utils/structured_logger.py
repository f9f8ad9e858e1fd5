"""
Event logging for Web API traffic.

Every request emits named events (``api_request_started``, ``api_error_response``...)
to the regular ``logging`` tree and, when a log directory is configured, appends
them as JSON lines to ``synology_client_<timestamp>.jsonl``.
"""

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import IO, Any

REDACTED = "***"
SENSITIVE_PARAMS = frozenset({"_sid", "passwd", "otp_code", "device_id"})


def redact_params(params: Any) -> dict[str, Any]:
    """Returns a copy of request parameters safe to write to a log."""
    items = params.items() if isinstance(params, dict) else params or []
    return {k: (REDACTED if k in SENSITIVE_PARAMS else v) for k, v in items}


class StructuredLogger:
    """
    Writes named events with keyword context.

    Example:
        with StructuredLogger("synology_client.api", log_dir=Path("logs")) as events:
            events.info("api_request_completed", api="SYNO.API.Info", status_code=200)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)
        self._stream: IO[str] | None = self._open_stream() if self.enable_json else None
        # Stamped on every JSON entry so lines from one run can be grouped
        self._run_fields = {
            "session_id": uuid.uuid4().hex[:12],
            "started_at": datetime.now().isoformat(),
        }

    def _open_stream(self) -> IO[str]:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return open(  # noqa: SIM115
            self.log_dir / f"synology_client_{stamp}.jsonl", "a", encoding="utf-8"
        )

    def _emit(self, level: int, event: str, context: dict[str, Any]) -> None:
        if self.enable_console and self._logger.isEnabledFor(level):
            details = " ".join(f"{k}={v}" for k, v in context.items())
            self._logger.log(level, f"[{event}] {details}".rstrip())

        if self._stream is None or self._stream.closed:
            return
        record = {
            "timestamp": datetime.now().isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            **self._run_fields,
            **context,
        }
        try:
            self._stream.write(json.dumps(record, default=str) + "\n")
            self._stream.flush()
        except OSError as e:
            print(f"Could not write API event log: {e}", file=sys.stderr)

    def debug(self, event: str, **context: Any) -> None:
        self._emit(logging.DEBUG, event, context)

    def info(self, event: str, **context: Any) -> None:
        self._emit(logging.INFO, event, context)

    def warning(self, event: str, **context: Any) -> None:
        self._emit(logging.WARNING, event, context)

    def error(self, event: str, **context: Any) -> None:
        self._emit(logging.ERROR, event, context)

    def close(self) -> None:
        if self._stream is not None and not self._stream.closed:
            self._stream.close()

    def __enter__(self) -> "StructuredLogger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class APILogger:
    """Request lifecycle events for ``SynologyHttpClient``."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def request_started(self, api: str, method: str, params: Any) -> None:
        self.logger.debug(
            "api_request_started", api=api, method=method, params=redact_params(params)
        )

    def request_completed(
        self, api: str, method: str, status_code: int, duration_ms: float
    ) -> None:
        self.logger.debug(
            "api_request_completed",
            api=api,
            method=method,
            status_code=status_code,
            elapsed_ms=round(duration_ms, 1),
        )

    def request_failed(
        self,
        api: str,
        method: str,
        error: str,
        duration_ms: float,
        status_code: int | None = None,
    ) -> None:
        """A transport or protocol failure; no usable envelope was received."""
        self.logger.error(
            "api_request_failed",
            api=api,
            method=method,
            reason=error,
            status_code=status_code,
            elapsed_ms=round(duration_ms, 1),
        )

    def api_error(self, api: str, method: str, code: int, message: str) -> None:
        """An envelope with ``success: false``."""
        self.logger.warning(
            "api_error_response", api=api, method=method, code=code, message=message
        )

    def request_cancelled(self, api: str, method: str) -> None:
        self.logger.info("api_request_cancelled", api=api, method=method)

    def close(self) -> None:
        self.logger.close()


def create_api_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> APILogger:
    return APILogger(
        StructuredLogger("synology_client.api", log_dir=log_dir, enable_json=enable_json)
    )
