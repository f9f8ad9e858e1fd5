"""
Static metadata describing the Synology Web APIs the client talks to.
"""

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from synology_client.exceptions import ValidationError


class EndpointDescriptor(BaseModel):
    """Identifies one remote API: its name, CGI path, version and session scope."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str
    path: str
    version: int = Field(..., ge=1)
    session_name: str = ""

    @field_validator("name", "path")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v

    def with_version(self, version: int) -> "EndpointDescriptor":
        """Returns a copy targeting another revision of the same API."""
        try:
            return EndpointDescriptor(
                name=self.name,
                path=self.path,
                version=version,
                session_name=self.session_name,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid API version {version!r}: {e}") from e


API_INFO = EndpointDescriptor(
    name="SYNO.API.Info", path="query.cgi", version=1, session_name=""
)
AUTH_API = EndpointDescriptor(
    name="SYNO.API.Auth", path="entry.cgi", version=6, session_name=""
)

FILE_STATION_INFO_API = EndpointDescriptor(
    name="SYNO.FileStation.Info", path="entry.cgi", version=2, session_name="FileStation"
)
FILE_STATION_LIST_API = EndpointDescriptor(
    name="SYNO.FileStation.List", path="entry.cgi", version=2, session_name="FileStation"
)
FILE_STATION_UPLOAD_API = EndpointDescriptor(
    name="SYNO.FileStation.Upload",
    path="entry.cgi",
    version=2,
    session_name="FileStation",
)
FILE_STATION_DOWNLOAD_API = EndpointDescriptor(
    name="SYNO.FileStation.Download",
    path="entry.cgi",
    version=2,
    session_name="FileStation",
)

DOWNLOAD_STATION_INFO_API = EndpointDescriptor(
    name="SYNO.DownloadStation.Info",
    path="DownloadStation/info.cgi",
    version=1,
    session_name="DownloadStation",
)
DOWNLOAD_STATION_TASK_API = EndpointDescriptor(
    name="SYNO.DownloadStation.Task",
    path="DownloadStation/task.cgi",
    version=1,
    session_name="DownloadStation",
)

KNOWN_APIS: dict[str, EndpointDescriptor] = {
    api.name: api
    for api in (
        API_INFO,
        AUTH_API,
        FILE_STATION_INFO_API,
        FILE_STATION_LIST_API,
        FILE_STATION_UPLOAD_API,
        FILE_STATION_DOWNLOAD_API,
        DOWNLOAD_STATION_INFO_API,
        DOWNLOAD_STATION_TASK_API,
    )
}


def get_api_info(name: str) -> EndpointDescriptor:
    """Looks up the default descriptor of a well-known API by name."""
    try:
        return KNOWN_APIS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown API '{name}'. Known APIs: {', '.join(sorted(KNOWN_APIS))}"
        ) from None
