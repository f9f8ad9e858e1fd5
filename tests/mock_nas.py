"""Helpers for faking the NAS with aioresponses."""

import re
from typing import NamedTuple

from aioresponses import aioresponses

BASE_URL = "http://nas.test:5000/webapi/"
ENTRY_URL = re.compile(r"^http://nas\.test:5000/webapi/entry\.cgi(\?.*)?$")
TASK_URL = re.compile(
    r"^http://nas\.test:5000/webapi/DownloadStation/task\.cgi(\?.*)?$"
)
SID = "abcd1234sessiontoken"


def success(data):
    return {"success": True, "data": data}


def failure(code, errors=None):
    error = {"code": code}
    if errors is not None:
        error["errors"] = errors
    return {"success": False, "error": error}


def recorded_requests(mocked: aioresponses) -> list[tuple[str, object, dict]]:
    """Flattens aioresponses' request log into (method, url, kwargs) tuples."""
    return [
        (method, url, call.kwargs)
        for (method, url), calls in mocked.requests.items()
        for call in calls
    ]


def last_request(mocked: aioresponses) -> tuple[str, object, dict]:
    requests = recorded_requests(mocked)
    assert requests, "no request reached the transport"
    return requests[-1]


class FormPart(NamedTuple):
    raw_headers: bytes
    headers: dict[str, str]
    value: bytes


class _BodySink:
    """Stands in for aiohttp's stream writer when serializing a request body."""

    def __init__(self):
        self.chunks: list[bytes] = []

    async def write(self, data) -> None:
        self.chunks.append(bytes(data))


async def serialize_form(form) -> bytes:
    sink = _BodySink()
    await form.write(sink)
    return b"".join(sink.chunks)


def parse_form(body: bytes, boundary: str) -> dict[str, FormPart]:
    """Splits a multipart/form-data body into its parts, keyed by field name."""
    parts = {}
    for chunk in body.split(b"--" + boundary.encode("ascii"))[1:-1]:
        raw_headers, _, value = chunk.removeprefix(b"\r\n").partition(b"\r\n\r\n")
        headers = dict(
            line.split(": ", 1) for line in raw_headers.decode("utf-8").split("\r\n")
        )
        name = re.search(r'; name="([^"]*)"', headers["Content-Disposition"]).group(1)
        parts[name] = FormPart(raw_headers, headers, value.removesuffix(b"\r\n"))
    return parts


async def sent_form(mocked: aioresponses) -> dict[str, FormPart]:
    """The multipart form of the last request, as the NAS would receive it."""
    _, _, kwargs = last_request(mocked)
    form = kwargs["data"]
    return parse_form(await serialize_form(form), form.boundary)
