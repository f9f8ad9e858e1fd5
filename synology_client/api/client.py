"""
Async transport client for the Synology Web API.
"""

import asyncio
import logging
import time
from collections.abc import Coroutine, Mapping
from typing import Any, Optional, TypeVar

import aiohttp
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from synology_client.exceptions import (
    ApiError,
    CancellationError,
    ProtocolError,
    TransportError,
)
from synology_client.models import error_codes
from synology_client.models.config import ClientConfig
from synology_client.utils.structured_logger import APILogger, redact_params

from .descriptor import EndpointDescriptor
from .envelope import FailureEnvelope, parse_envelope
from .session import SessionHandle

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

QueryParams = Mapping[str, Any]


def _format_query_value(value: Any) -> str:
    """Renders a query value the way the DSM CGIs expect it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_query_value(v) for v in value)
    return str(value)


def build_query(
    api_info: EndpointDescriptor,
    method: str,
    query_params: Optional[QueryParams] = None,
    session: Optional[SessionHandle] = None,
) -> list[tuple[str, str]]:
    """
    Builds the routing query string sent with every request.

    ``api``, ``version`` and ``method`` always come from the descriptor and the
    caller; ``_sid`` is added only for an authenticated session.
    """
    query = [
        ("api", api_info.name),
        ("version", str(api_info.version)),
        ("method", method),
    ]
    for key, value in (query_params or {}).items():
        if value is None:
            continue
        query.append((key, _format_query_value(value)))

    if session is not None and session.is_authenticated:
        query.append(("_sid", session.token))
    return query


class SynologyHttpClient:
    """
    Async client issuing GET/POST calls against the DSM ``webapi`` CGIs.

    Features:
    - Routing and session parameters attached from the endpoint descriptor
    - Envelope decoding with errors resolved to readable messages
    - Connection pooling through a shared aiohttp session
    - Per-call cancellation through an ``asyncio.Event``

    The client holds no per-call state, so one instance can serve many concurrent
    tasks.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_session: Optional[aiohttp.ClientSession] = None,
        api_logger: Optional[APILogger] = None,
    ):
        """
        Initializes the transport client.

        Args:
            config: Validated client configuration (base URL, timeouts, pool size).
            http_session: An existing aiohttp session to use instead of creating one.
                The caller keeps ownership of a session passed in this way.
            api_logger: Optional structured logger for request events.
        """
        self.config = config
        self.base_url = config.base_url
        self._api_logger = api_logger
        self._session: Optional[aiohttp.ClientSession] = http_session
        self._owns_session = http_session is None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                ssl=self.config.verify_ssl,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self.config.user_agent},
                timeout=aiohttp.ClientTimeout(
                    total=self.config.timeout_total,
                    connect=self.config.timeout_connect,
                    sock_read=self.config.timeout_sock_read,
                ),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Closes the aiohttp session if this client created it, and the API log."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        if self._api_logger:
            self._api_logger.close()

    async def __aenter__(self) -> "SynologyHttpClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def url_for(self, api_info: EndpointDescriptor) -> str:
        return self.base_url + api_info.path.lstrip("/")

    async def get(
        self,
        api_info: EndpointDescriptor,
        method: str,
        query_params: Optional[QueryParams] = None,
        session: Optional[SessionHandle] = None,
        *,
        response_model: Optional[type[ModelT]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Calls an API method with all arguments in the query string.

        Returns:
            The envelope's ``data``, validated into ``response_model`` if given.
        """
        return await self._run_cancellable(
            self._request(
                "GET",
                api_info,
                method,
                query_params=query_params,
                session=session,
                response_model=response_model,
            ),
            api_info,
            method,
            cancel_event,
        )

    async def post(
        self,
        api_info: EndpointDescriptor,
        method: str,
        data: Any = None,
        session: Optional[SessionHandle] = None,
        *,
        query_params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_model: Optional[type[ModelT]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Calls an API method with a request body.

        The routing fields and ``_sid`` still travel in the query string; ``data`` is
        passed to aiohttp untouched (a dict is form-encoded, an
        ``aiohttp.MultipartWriter`` is sent as multipart/form-data).
        """
        return await self._run_cancellable(
            self._request(
                "POST",
                api_info,
                method,
                query_params=query_params,
                session=session,
                data=data,
                headers=headers,
                response_model=response_model,
            ),
            api_info,
            method,
            cancel_event,
        )

    async def _run_cancellable(
        self,
        request: Coroutine[Any, Any, T],
        api_info: EndpointDescriptor,
        method: str,
        cancel_event: Optional[asyncio.Event],
    ) -> T:
        """Awaits ``request`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await request

        if cancel_event.is_set():
            request.close()
            self._log_cancelled(api_info, method)
            raise CancellationError(
                f"Call to {api_info.name}.{method} was cancelled before it started."
            )

        request_task = asyncio.ensure_future(request)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait(
                {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            request_task.cancel()
            cancel_task.cancel()
            raise

        if request_task.done():
            cancel_task.cancel()
            return request_task.result()

        request_task.cancel()
        await asyncio.wait({request_task})
        self._log_cancelled(api_info, method)
        raise CancellationError(f"Call to {api_info.name}.{method} was cancelled.")

    def _log_cancelled(self, api_info: EndpointDescriptor, method: str) -> None:
        log.debug(f"Call to {api_info.name}.{method} cancelled")
        if self._api_logger:
            self._api_logger.request_cancelled(api_info.name, method)

    async def _request(
        self,
        http_method: str,
        api_info: EndpointDescriptor,
        method: str,
        *,
        query_params: Optional[QueryParams] = None,
        session: Optional[SessionHandle] = None,
        data: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        response_model: Optional[type[ModelT]] = None,
    ) -> Any:
        http_session = await self._initialize_session()
        params = build_query(api_info, method, query_params, session)
        url = self.url_for(api_info)

        if self._api_logger:
            self._api_logger.request_started(api_info.name, method, params)
        log.debug(f"{http_method} {url} {redact_params(params)}")

        start_time = time.monotonic()
        try:
            async with http_session.request(
                http_method, url, params=params, data=data, headers=headers
            ) as r:
                duration_ms = (time.monotonic() - start_time) * 1000

                if not 200 <= r.status < 300:
                    self._log_failure(
                        api_info, method, f"HTTP {r.status}", start_time, r.status
                    )
                    raise TransportError(
                        f"{api_info.name}.{method} failed with HTTP {r.status}",
                        status=r.status,
                    )

                try:
                    payload = await r.json(content_type=None)
                except ValueError as e:
                    self._log_failure(
                        api_info, method, "invalid JSON", start_time, r.status
                    )
                    raise ProtocolError(
                        f"Malformed response from {api_info.name}.{method}: "
                        "body is not valid JSON"
                    ) from e

                if self._api_logger:
                    self._api_logger.request_completed(
                        api_info.name, method, r.status, duration_ms
                    )
        except asyncio.TimeoutError as e:
            self._log_failure(api_info, method, "timeout", start_time)
            raise TransportError(
                f"{api_info.name}.{method} timed out", timed_out=True
            ) from e
        except aiohttp.ClientError as e:
            self._log_failure(api_info, method, str(e), start_time)
            raise TransportError(f"{api_info.name}.{method} failed: {e}") from e

        return self._unwrap(api_info, method, payload, response_model)

    def _unwrap(
        self,
        api_info: EndpointDescriptor,
        method: str,
        payload: Any,
        response_model: Optional[type[ModelT]],
    ) -> Any:
        """Turns a decoded body into the call result or the matching exception."""
        envelope = parse_envelope(payload)

        if isinstance(envelope, FailureEnvelope):
            code = envelope.error.code
            message = error_codes.resolve(api_info.name, code)
            log.debug(f"{api_info.name}.{method} returned error {code}: {message}")
            if self._api_logger:
                self._api_logger.api_error(api_info.name, method, code, message)
            raise ApiError(
                api=api_info.name,
                code=code,
                message=message,
                sub_errors=envelope.error.errors,
            )

        if response_model is None:
            return envelope.data

        try:
            return response_model.model_validate(envelope.data)
        except PydanticValidationError as e:
            raise ProtocolError(
                f"Unexpected data returned by {api_info.name}.{method}: {e}"
            ) from e

    def _log_failure(
        self,
        api_info: EndpointDescriptor,
        method: str,
        error: str,
        start_time: float,
        status_code: Optional[int] = None,
    ) -> None:
        log.debug(f"API call to {api_info.name}.{method} failed: {error}")
        if self._api_logger:
            self._api_logger.request_failed(
                api_info.name,
                method,
                error,
                (time.monotonic() - start_time) * 1000,
                status_code,
            )
