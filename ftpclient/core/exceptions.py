"""
Errors raised by the FTP client core.

Transport-level failures (no connection, malformed reply, truncated data
stream) are raised directly by the control and data channels. Failures
reported by the server through a reply code are carried by a single
tagged error, FTPReplyError, whose kind comes from the lookup table in
reply_codes.
"""

from enum import Enum


class FailureKind(Enum):
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    NEED_ACCOUNT = "NEED_ACCOUNT"
    CANT_OPEN_DATA_CONNECTION = "CANT_OPEN_DATA_CONNECTION"
    CONNECTION_CLOSED = "CONNECTION_CLOSED"
    FILE_ACTION_NOT_TAKEN = "FILE_ACTION_NOT_TAKEN"
    LOCAL_ERROR_IN_PROCESSING = "LOCAL_ERROR_IN_PROCESSING"
    INSUFFICIENT_STORAGE_SPACE = "INSUFFICIENT_STORAGE_SPACE"
    NOT_LOGGED_IN = "NOT_LOGGED_IN"
    NEED_ACCOUNT_FOR_STORING_FILES = "NEED_ACCOUNT_FOR_STORING_FILES"
    FILE_UNAVAILABLE = "FILE_UNAVAILABLE"
    PAGE_TYPE_UNKNOWN = "PAGE_TYPE_UNKNOWN"
    FILE_ACTION_ABORTED = "FILE_ACTION_ABORTED"
    FILE_NAME_NOT_ALLOWED = "FILE_NAME_NOT_ALLOWED"
    TRANSIENT_ERROR = "TRANSIENT_ERROR"
    PERMANENT_ERROR = "PERMANENT_ERROR"


class FTPError(Exception):
    """Base class for every error raised by the client."""


class NoConnectionError(FTPError):
    """The control channel is not connected and cannot be restored."""

    def __init__(self, message: str = "No connection established."):
        super().__init__(message)


class MalformedReplyError(FTPError):
    """A reply line could not be framed or parsed."""


class TruncatedStreamError(FTPError):
    """The data stream ended before the expected number of bytes arrived."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Data stream ended prematurely ({received}/{expected} bytes)")


class FTPReplyError(FTPError):
    """
    A negative server reply.

    Attributes:
        kind: FailureKind describing the failure.
        code: numeric reply code sent by the server.
        message: reply text.
    """

    def __init__(self, kind, code: int, message: str):
        self.kind = kind
        self.code = code
        self.message = message
        super().__init__(f"{code} {message}")

    def __repr__(self):
        return f"FTPReplyError(kind={self.kind.name}, code={self.code}, message={self.message!r})"


class ServiceUnavailableError(FTPReplyError):
    """The server reported 421 (or 120 on connect) and closed the session."""

    def __init__(self, code: int, message: str):
        super().__init__(FailureKind.SERVICE_UNAVAILABLE, code, message)
