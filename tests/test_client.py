"""Transport client: query building, envelope handling and failure mapping."""

import asyncio

import aiohttp
import pytest
from pydantic import BaseModel

from synology_client.api.client import SynologyHttpClient, build_query
from synology_client.api.descriptor import (
    DOWNLOAD_STATION_TASK_API,
    FILE_STATION_LIST_API,
)
from synology_client.api.session import SessionHandle
from synology_client.exceptions import (
    ApiError,
    CancellationError,
    ProtocolError,
    TransportError,
)
from synology_client.models.error_codes import (
    COMMON_ERRORS,
    DOWNLOAD_STATION_TASK_ERRORS,
    FILE_STATION_ERRORS,
)
from synology_client.utils.structured_logger import APILogger

from tests.mock_nas import (
    ENTRY_URL,
    SID,
    TASK_URL,
    failure,
    last_request,
    recorded_requests,
    success,
)


class ShareList(BaseModel):
    total: int
    shares: list[dict]


# -- Query building ------------------------------------------------------------


def test_build_query_routing_fields_come_from_descriptor():
    query = dict(build_query(FILE_STATION_LIST_API.with_version(3), "list_share"))
    assert query == {
        "api": "SYNO.FileStation.List",
        "version": "3",
        "method": "list_share",
    }


def test_build_query_formats_values():
    query = dict(
        build_query(
            FILE_STATION_LIST_API,
            "list",
            {
                "folder_path": "/home",
                "limit": 10,
                "recursive": True,
                "additional": ["size", "time"],
                "skipped": None,
            },
        )
    )
    assert query["folder_path"] == "/home"
    assert query["limit"] == "10"
    assert query["recursive"] == "true"
    assert query["additional"] == "size,time"
    assert "skipped" not in query


def test_build_query_sid_only_for_authenticated_session():
    assert ("_sid", SID) in build_query(
        FILE_STATION_LIST_API, "list_share", session=SessionHandle(token=SID)
    )
    for anonymous in (None, SessionHandle(), SessionHandle(token="  ")):
        query = build_query(FILE_STATION_LIST_API, "list_share", session=anonymous)
        assert "_sid" not in dict(query)


# -- GET -----------------------------------------------------------------------


async def test_get_returns_data_unchanged(client, mocked, session):
    data = {"total": 1, "offset": 0, "shares": [{"name": "docs", "path": "/docs"}]}
    mocked.get(ENTRY_URL, payload=success(data))

    result = await client.get(FILE_STATION_LIST_API, "list_share", {"limit": 5}, session)

    assert result == data
    method, url, _ = last_request(mocked)
    assert method == "GET"
    assert url.path == "/webapi/entry.cgi"
    assert url.query["api"] == "SYNO.FileStation.List"
    assert url.query["version"] == "2"
    assert url.query["method"] == "list_share"
    assert url.query["limit"] == "5"
    assert url.query["_sid"] == SID


async def test_get_without_session_sends_no_sid(client, mocked):
    mocked.get(ENTRY_URL, payload=success({"total": 0, "shares": []}))

    await client.get(FILE_STATION_LIST_API, "list_share")

    _, url, _ = last_request(mocked)
    assert "_sid" not in url.query


async def test_get_validates_into_response_model(client, mocked, session):
    mocked.get(ENTRY_URL, payload=success({"total": 1, "shares": [{"name": "a"}]}))

    result = await client.get(
        FILE_STATION_LIST_API, "list_share", session=session, response_model=ShareList
    )

    assert isinstance(result, ShareList)
    assert result.total == 1


async def test_get_response_model_mismatch_is_protocol_error(client, mocked, session):
    mocked.get(ENTRY_URL, payload=success({"unexpected": True}))

    with pytest.raises(ProtocolError):
        await client.get(
            FILE_STATION_LIST_API, "list_share", session=session, response_model=ShareList
        )


async def test_get_uses_descriptor_path(client, mocked, session):
    mocked.get(TASK_URL, payload=success({"tasks": []}))

    await client.get(DOWNLOAD_STATION_TASK_API, "list", session=session)

    _, url, _ = last_request(mocked)
    assert url.path == "/webapi/DownloadStation/task.cgi"
    assert url.query["api"] == "SYNO.DownloadStation.Task"


# -- POST ----------------------------------------------------------------------


async def test_post_keeps_routing_in_query_and_body_opaque(client, mocked, session):
    mocked.post(TASK_URL, payload=success({"task_id": ["dbid_1"]}))

    result = await client.post(
        DOWNLOAD_STATION_TASK_API,
        "create",
        data={"uri": "https://example.com/file.iso"},
        session=session,
    )

    assert result == {"task_id": ["dbid_1"]}
    method, url, kwargs = last_request(mocked)
    assert method == "POST"
    assert url.query["method"] == "create"
    assert url.query["_sid"] == SID
    assert kwargs["data"] == {"uri": "https://example.com/file.iso"}


# -- Failures ------------------------------------------------------------------


async def test_api_error_resolves_per_api_message(client, mocked, session):
    mocked.get(TASK_URL, payload=failure(403))

    with pytest.raises(ApiError) as exc_info:
        await client.get(DOWNLOAD_STATION_TASK_API, "getinfo", {"id": "x"}, session)

    error = exc_info.value
    assert error.code == 403
    assert error.api == "SYNO.DownloadStation.Task"
    assert error.message == DOWNLOAD_STATION_TASK_ERRORS[403]
    assert error.message in str(error)


async def test_api_error_falls_back_to_common_message(client, mocked, session):
    mocked.get(ENTRY_URL, payload=failure(106))

    with pytest.raises(ApiError) as exc_info:
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert exc_info.value.message == COMMON_ERRORS[106]


async def test_api_error_unknown_code_has_generic_message(client, mocked, session):
    mocked.get(ENTRY_URL, payload=failure(31337))

    with pytest.raises(ApiError) as exc_info:
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert exc_info.value.code == 31337
    assert "31337" in exc_info.value.message


async def test_api_error_carries_sub_errors(client, mocked, session):
    mocked.post(ENTRY_URL, payload=failure(1002, [{"code": 408, "path": "/gone"}]))

    with pytest.raises(ApiError) as exc_info:
        await client.post(FILE_STATION_LIST_API, "copy", data={}, session=session)

    assert exc_info.value.sub_errors == [{"code": 408, "path": "/gone"}]
    assert exc_info.value.message == FILE_STATION_ERRORS[1002]


@pytest.mark.parametrize("status", [401, 404, 500, 502])
async def test_non_2xx_is_transport_error(client, mocked, session, status):
    mocked.get(ENTRY_URL, status=status, payload=success({}))

    with pytest.raises(TransportError) as exc_info:
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert exc_info.value.status == status
    assert not exc_info.value.timed_out


async def test_connection_failure_is_transport_error(client, mocked, session):
    mocked.get(ENTRY_URL, exception=aiohttp.ClientConnectionError("refused"))

    with pytest.raises(TransportError) as exc_info:
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert exc_info.value.status is None
    assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)


async def test_timeout_is_transport_error(client, mocked, session):
    mocked.get(ENTRY_URL, exception=asyncio.TimeoutError())

    with pytest.raises(TransportError) as exc_info:
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert exc_info.value.timed_out


async def test_transport_errors_are_not_retried(client, mocked, session):
    mocked.get(ENTRY_URL, status=503, repeat=True)

    with pytest.raises(TransportError):
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    assert len(recorded_requests(mocked)) == 1


async def test_non_json_body_is_protocol_error(client, mocked, session):
    mocked.get(ENTRY_URL, body="<html>login</html>", content_type="text/html")

    with pytest.raises(ProtocolError):
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"total": 0}},
        {"success": True},
        {"success": False, "error": {"message": "no code"}},
        [1, 2, 3],
    ],
)
async def test_malformed_envelope_is_protocol_error(client, mocked, session, payload):
    mocked.get(ENTRY_URL, payload=payload)

    with pytest.raises(ProtocolError):
        await client.get(FILE_STATION_LIST_API, "list_share", session=session)


# -- Cancellation --------------------------------------------------------------


async def test_pre_set_cancel_event_sends_nothing(client, mocked, session):
    mocked.get(ENTRY_URL, payload=success({}))
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(CancellationError):
        await client.get(
            FILE_STATION_LIST_API, "list_share", session=session, cancel_event=cancel
        )

    assert recorded_requests(mocked) == []


async def test_cancel_event_interrupts_in_flight_call(client, mocked, session):
    async def hang(url, **kwargs):
        await asyncio.sleep(30)

    mocked.get(ENTRY_URL, callback=hang)
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)

    with pytest.raises(CancellationError):
        await asyncio.wait_for(
            client.get(
                FILE_STATION_LIST_API, "list_share", session=session, cancel_event=cancel
            ),
            timeout=5,
        )


async def test_unfired_cancel_event_does_not_interfere(client, mocked, session):
    mocked.get(ENTRY_URL, payload=success({"total": 0}))

    result = await client.get(
        FILE_STATION_LIST_API,
        "list_share",
        session=session,
        cancel_event=asyncio.Event(),
    )

    assert result == {"total": 0}


@pytest.mark.parametrize("with_event", [True, False])
async def test_cancelling_the_caller_task_propagates_cancelled_error(
    client, mocked, session, with_event
):
    started = asyncio.Event()

    async def hang(url, **kwargs):
        started.set()
        await asyncio.sleep(30)

    mocked.get(ENTRY_URL, callback=hang)
    cancel_event = asyncio.Event() if with_event else None
    task = asyncio.ensure_future(
        client.get(
            FILE_STATION_LIST_API,
            "list_share",
            session=session,
            cancel_event=cancel_event,
        )
    )
    await asyncio.wait_for(started.wait(), timeout=5)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


def test_cancellation_is_distinct_from_other_failures():
    assert not issubclass(CancellationError, (TransportError, ApiError, ProtocolError))


# -- Concurrency & lifecycle ---------------------------------------------------


async def test_concurrent_calls_share_one_client(client, mocked, session):
    mocked.get(ENTRY_URL, payload=success({"ok": True}), repeat=True)

    results = await asyncio.gather(
        *(
            client.get(FILE_STATION_LIST_API, "list_share", session=session)
            for _ in range(5)
        )
    )

    assert results == [{"ok": True}] * 5
    assert len(recorded_requests(mocked)) == 5


async def test_external_session_is_not_closed(config):
    async with aiohttp.ClientSession() as http_session:
        async with SynologyHttpClient(config, http_session=http_session):
            pass
        assert not http_session.closed


async def test_api_logger_redacts_sid(config, mocked, session):
    events = []

    class RecordingLogger:
        def debug(self, event, **context):
            events.append((event, context))

        info = warning = error = debug

        def close(self):
            events.append(("closed", {}))

    mocked.get(ENTRY_URL, payload=failure(119))
    async with SynologyHttpClient(
        config, api_logger=APILogger(RecordingLogger())
    ) as client:
        with pytest.raises(ApiError):
            await client.get(FILE_STATION_LIST_API, "list_share", session=session)

    names = [name for name, _ in events]
    assert names == [
        "api_request_started",
        "api_request_completed",
        "api_error_response",
        "closed",
    ]
    assert events[0][1]["params"]["_sid"] == "***"
    assert SID not in repr(events)
