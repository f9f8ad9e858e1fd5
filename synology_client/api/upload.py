"""
File uploads through SYNO.FileStation.Upload.

The upload CGI takes a multipart/form-data body whose routing fields mirror the
query string and whose last part carries the file.
"""

import asyncio
import logging
import os
from typing import Any, Optional
from urllib.parse import quote

import aiofiles
import aiohttp
import pydantic
from aiohttp import hdrs
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from synology_client.exceptions import ValidationError

from .client import SynologyHttpClient
from .descriptor import FILE_STATION_UPLOAD_API, EndpointDescriptor
from .session import SessionHandle

log = logging.getLogger(__name__)

UPLOAD_METHOD = "upload"
FILE_FIELD = "file"
DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"

# Lowest API version first reached -> wire values for overwrite=True/False.
# Version 3 servers reject "true"/"false"; older ones reject "overwrite"/"skip".
OVERWRITE_ENCODINGS: tuple[tuple[int, dict[bool, str]], ...] = (
    (3, {True: "overwrite", False: "skip"}),
    (1, {True: "true", False: "false"}),
)


def encode_overwrite(version: int, overwrite: bool) -> str:
    """Returns the ``overwrite`` form value understood by the given API version."""
    for min_version, values in OVERWRITE_ENCODINGS:
        if version >= min_version:
            return values[bool(overwrite)]
    raise ValidationError(f"Unsupported API version for upload: {version}")


def _bool_field(value: bool) -> str:
    return "true" if value else "false"


def _quote_param(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def encode_filename_params(file_name: str) -> tuple[str, str]:
    """
    Returns the two parallel forms of a file name for Content-Disposition.

    - legacy: the UTF-8 bytes of the name read back one character per byte. This
      is what a server reading the plain ``filename`` parameter as ISO-8859-1 sees.
    - extended: the RFC 5987 ``UTF-8''<percent-encoded>`` value for ``filename*``
    """
    raw = file_name.encode("utf-8")
    legacy = raw.decode("latin-1")
    extended = "UTF-8''" + quote(raw, safe="")
    return legacy, extended


def content_disposition(field_name: str, file_name: Optional[str] = None) -> str:
    """
    Builds a ``form-data`` Content-Disposition value for one part.

    The plain ``filename`` keeps the original name; aiohttp writes part headers as
    UTF-8, so it reaches the wire as the legacy byte form.
    """
    value = f'form-data; name="{_quote_param(field_name)}"'
    if file_name is not None:
        _, extended = encode_filename_params(file_name)
        value += f'; filename="{_quote_param(file_name)}"; filename*={extended}'
    return value


def add_form_field(form: aiohttp.MultipartWriter, name: str, value: Any) -> None:
    form.append(str(value), {hdrs.CONTENT_DISPOSITION: content_disposition(name)})


def add_form_file(
    form: aiohttp.MultipartWriter,
    name: str,
    file_name: str,
    content: bytes,
    content_type: str = DEFAULT_FILE_CONTENT_TYPE,
) -> None:
    form.append(
        bytes(content),
        {
            hdrs.CONTENT_TYPE: content_type,
            hdrs.CONTENT_DISPOSITION: content_disposition(name, file_name),
        },
    )


class UploadRequest(BaseModel):
    """
    A validated upload: either a local file path or in-memory bytes with a name.
    """

    model_config = ConfigDict(frozen=True)

    file_path: Optional[str] = None
    content: Optional[bytes] = Field(None, repr=False)
    file_name: Optional[str] = None
    destination: str
    overwrite: bool = False
    create_parents: bool = True
    # Optional timestamps in milliseconds since the epoch
    mtime: Optional[int] = None
    crtime: Optional[int] = None
    atime: Optional[int] = None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Destination folder cannot be empty.")
        return v

    @model_validator(mode="before")
    @classmethod
    def derive_file_name(cls, data: Any) -> Any:
        """Names a file upload after the last component of its path."""
        if (
            isinstance(data, dict)
            and data.get("file_name") is None
            and isinstance(data.get("file_path"), str)
        ):
            data = {**data, "file_name": os.path.basename(data["file_path"].strip())}
        return data

    @model_validator(mode="after")
    def validate_source(self) -> "UploadRequest":
        """Ensures exactly one of file path and raw content is supplied."""
        if (self.file_path is None) == (self.content is None):
            raise ValueError("Provide either a file path or content, not both.")

        if self.file_path is not None:
            if not self.file_path.strip():
                raise ValueError("File path cannot be empty.")

        if self.file_name is None or not self.file_name.strip():
            raise ValueError("File name cannot be empty.")
        if any(c in self.file_name for c in "\r\n\0"):
            raise ValueError("File name cannot contain control characters.")
        return self

    @classmethod
    def create(cls, **kwargs: Any) -> "UploadRequest":
        """Builds a request, reporting invalid arguments as ``ValidationError``."""
        try:
            return cls(**kwargs)
        except pydantic.ValidationError as e:
            messages = "; ".join(
                err["msg"].removeprefix("Value error, ") for err in e.errors()
            )
            raise ValidationError(f"Invalid upload request: {messages}") from e


class FileStationUploadResult(BaseModel):
    """The ``data`` object returned by a successful upload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    skipped: bool = Field(False, alias="blSkip")
    file: Optional[str] = None
    pid: Optional[int] = None
    progress: Optional[float] = None


class FileStationUploadEndpoint:
    """
    Uploads files to a shared folder on the NAS.

    The form fields that depend on the API version (``version`` itself and the
    ``overwrite`` value) are derived from ``api_info``, so the same endpoint works
    against old and new DSM releases.
    """

    def __init__(
        self,
        http_client: SynologyHttpClient,
        api_info: EndpointDescriptor = FILE_STATION_UPLOAD_API,
        session: Optional[SessionHandle] = None,
        *,
        create_parents: bool = True,
    ):
        self._http_client = http_client
        self.api_info = api_info
        self._session = session
        self.create_parents = create_parents

    async def upload(
        self,
        file_path: str,
        destination: str,
        overwrite: bool = False,
        *,
        create_parents: Optional[bool] = None,
        mtime: Optional[int] = None,
        crtime: Optional[int] = None,
        atime: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FileStationUploadResult:
        """
        Uploads a local file. The whole file is read into memory first.

        Raises:
            ValidationError: If an argument is blank or the file can't be read.
        """
        request = UploadRequest.create(
            file_path=file_path,
            destination=destination,
            overwrite=overwrite,
            create_parents=self._create_parents(create_parents),
            mtime=mtime,
            crtime=crtime,
            atime=atime,
        )

        try:
            async with aiofiles.open(request.file_path.strip(), "rb") as f:
                content = await f.read()
        except OSError as e:
            raise ValidationError(f"Cannot read file '{file_path}': {e}") from e

        log.debug(f"Read {len(content)} bytes from {request.file_path}")
        return await self._send(request, content, cancel_event)

    async def upload_bytes(
        self,
        content: bytes,
        file_name: str,
        destination: str,
        overwrite: bool = False,
        *,
        create_parents: Optional[bool] = None,
        mtime: Optional[int] = None,
        crtime: Optional[int] = None,
        atime: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FileStationUploadResult:
        """Uploads in-memory content under the given file name."""
        if content is None:
            raise ValidationError("Invalid upload request: content cannot be None.")

        request = UploadRequest.create(
            content=content,
            file_name=file_name,
            destination=destination,
            overwrite=overwrite,
            create_parents=self._create_parents(create_parents),
            mtime=mtime,
            crtime=crtime,
            atime=atime,
        )
        return await self._send(request, request.content, cancel_event)

    def _create_parents(self, override: Optional[bool]) -> bool:
        return self.create_parents if override is None else override

    def build_form(
        self, request: UploadRequest, content: bytes
    ) -> aiohttp.MultipartWriter:
        """Lays out the form fields in the order DSM expects, file part last."""
        form = aiohttp.MultipartWriter("form-data")
        add_form_field(form, "api", self.api_info.name)
        add_form_field(form, "version", self.api_info.version)
        add_form_field(form, "method", UPLOAD_METHOD)
        add_form_field(form, "path", request.destination)
        add_form_field(form, "create_parents", _bool_field(request.create_parents))
        add_form_field(
            form,
            "overwrite",
            encode_overwrite(self.api_info.version, request.overwrite),
        )
        for key in ("mtime", "crtime", "atime"):
            value = getattr(request, key)
            if value is not None:
                add_form_field(form, key, value)
        add_form_file(form, FILE_FIELD, request.file_name, content)
        return form

    async def _send(
        self,
        request: UploadRequest,
        content: bytes,
        cancel_event: Optional[asyncio.Event],
    ) -> FileStationUploadResult:
        form = self.build_form(request, content)
        log.info(
            f"Uploading '{request.file_name}' ({len(content)} bytes) "
            f"to '{request.destination}'"
        )
        return await self._http_client.post(
            self.api_info,
            UPLOAD_METHOD,
            data=form,
            session=self._session,
            response_model=FileStationUploadResult,
            cancel_event=cancel_event,
        )
