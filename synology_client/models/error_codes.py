"""
Error code catalog for the Synology Web API.

The NAS only answers with a numeric code on failure. Codes 100-119, 150 and 160
mean the same thing for every API, while 400 and above are reused with different
meanings by each API family, so lookups go through the family table first.
"""

from typing import NamedTuple

COMMON_TABLE = "common"
FALLBACK_TABLE = "fallback"

UNKNOWN_ERROR_TEMPLATE = "Unknown error (code: {code})"

# Codes shared by all APIs
COMMON_ERRORS: dict[int, str] = {
    100: "Unknown error",
    101: "No parameter of API, method or version",
    102: "The requested API does not exist",
    103: "The requested method does not exist",
    104: "The requested version does not support the functionality",
    105: "The logged in session does not have permission",
    106: "Session timeout",
    107: "Session interrupted by duplicate login",
    108: "Failed to upload the file",
    109: "The network connection is unstable or the system is busy",
    110: "The network connection is unstable or the system is busy",
    111: "The network connection is unstable or the system is busy",
    114: "Lost parameters for this API",
    115: "Not allowed to upload a file",
    116: "Not allowed to perform for a demo site",
    117: "The network connection is unstable or the system is busy",
    118: "The network connection is unstable or the system is busy",
    119: "SID not found",
    150: "Request source IP does not match the login IP",
    160: "Insufficient application privilege",
}

AUTH_ERRORS: dict[int, str] = {
    400: "No such account or incorrect password",
    401: "Account disabled",
    402: "Permission denied",
    403: "2-step verification code required",
    404: "Failed to authenticate 2-step verification code",
    406: "Enforce to authenticate with 2-factor authentication code",
    407: "Blocked IP source",
    408: "Expired password cannot change",
    409: "Expired password",
    410: "Password must be changed",
}

FILE_STATION_ERRORS: dict[int, str] = {
    400: "Invalid parameter of file operation",
    401: "Unknown error of file operation",
    402: "System is too busy",
    403: "Invalid user does this file operation",
    404: "Invalid group does this file operation",
    405: "Invalid user and group does this file operation",
    406: "Can't get user/group information from the account server",
    407: "Operation not permitted",
    408: "No such file or directory",
    409: "Non-supported file system",
    410: "Failed to connect internet-based file system (e.g., CIFS)",
    411: "Read-only file system",
    412: "Filename too long in the non-encrypted file system",
    413: "Filename too long in the encrypted file system",
    414: "File already exists",
    415: "Disk quota exceeded",
    416: "No space left on device",
    417: "Input/output error",
    418: "Illegal name or path",
    419: "Illegal file name",
    420: "Illegal file name on FAT file system",
    421: "Device or resource busy",
    599: "No such task of the file operation",
    800: "A folder path of favorite folder is already added to user's favorites",
    801: "A name of favorite folder conflicts with an existing folder path",
    802: "There are too many favorites to be added",
    900: "Failed to delete file(s)/folder(s)",
    1000: "Failed to copy files/folders",
    1001: "Failed to move files/folders",
    1002: "An error occurred at the destination",
    1100: "Failed to create a folder",
    1101: "The number of folders to the parent folder would exceed the system limitation",
    1200: "Failed to rename it",
    1300: "Failed to compress files/folders",
    1301: "The compressed file name is too long",
    1400: "Failed to extract files",
    1401: "Cannot open the file as archive",
    1903: "Failed to set the current group",
    1904: "Not supported the current group",
    1905: "Some files are not supported",
}

FILE_STATION_UPLOAD_ERRORS: dict[int, str] = {
    1800: (
        "There is no Content-Length information in the HTTP header "
        "or the received size doesn't match the value of Content-Length"
    ),
    1801: "Wait too long, no data can be received from client",
    1802: "No filename information in the last part of file content",
    1803: "Upload connection is cancelled",
    1804: "Failed to upload oversized file to FAT file system",
    1805: "Can't overwrite or skip the existing file, if no overwrite parameter is given",
}

DOWNLOAD_STATION_TASK_ERRORS: dict[int, str] = {
    400: "File upload failed",
    401: "Max number of tasks reached",
    402: "Destination denied",
    403: "Destination does not exist",
    404: "Invalid task id",
    405: "Invalid task action",
    406: "No default destination",
    407: "Set destination failed",
    408: "File does not exist",
}

# API name (or dotted prefix of one) -> table
API_ERRORS: dict[str, dict[int, str]] = {
    "SYNO.API.Auth": AUTH_ERRORS,
    "SYNO.FileStation": FILE_STATION_ERRORS,
    "SYNO.FileStation.Upload": FILE_STATION_UPLOAD_ERRORS,
    "SYNO.DownloadStation.Task": DOWNLOAD_STATION_TASK_ERRORS,
}


class ErrorDescription(NamedTuple):
    """A resolved error code and the table it came from."""

    code: int
    message: str
    table: str


def _api_prefixes(api_name: str) -> list[str]:
    """'SYNO.FileStation.Upload' -> ['SYNO.FileStation.Upload', 'SYNO.FileStation', 'SYNO']"""
    parts = [p for p in (api_name or "").split(".") if p]
    return [".".join(parts[:i]) for i in range(len(parts), 0, -1)]


def describe(api_name: str, code: int) -> ErrorDescription:
    """
    Resolves an error code, reporting which table produced the message.

    Per-API tables are tried from the most specific dotted prefix of the API name
    to the least specific, then the common table, then a generic template.
    """
    for prefix in _api_prefixes(api_name):
        table = API_ERRORS.get(prefix)
        if table and code in table:
            return ErrorDescription(code, table[code], prefix)

    if code in COMMON_ERRORS:
        return ErrorDescription(code, COMMON_ERRORS[code], COMMON_TABLE)

    return ErrorDescription(
        code, UNKNOWN_ERROR_TEMPLATE.format(code=code), FALLBACK_TABLE
    )


def resolve(api_name: str, code: int) -> str:
    """Returns a human-readable message for an error code. Never raises."""
    return describe(api_name, code).message
