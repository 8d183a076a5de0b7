"""
Core FTP Client logic.
Includes the reply parser, control and passive data connections, and the
command handler built on top of them.
"""

from .connection import ControlConnectionManager, SessionDescriptor
from .data_connection import DataConnectionManager, negotiate_passive
from .commands import ClientCommandHandler
from .parser import Parser, Reply
from .remote_file import RemoteFile
from .reply_codes import FailureKind, ReplyCode, check_reply
from .exceptions import (
    FTPError,
    FTPReplyError,
    MalformedReplyError,
    NoConnectionError,
    ServiceUnavailableError,
    TruncatedStreamError,
)

__all__ = [
    "ControlConnectionManager",
    "SessionDescriptor",
    "DataConnectionManager",
    "negotiate_passive",
    "ClientCommandHandler",
    "Parser",
    "Reply",
    "RemoteFile",
    "FailureKind",
    "ReplyCode",
    "check_reply",
    "FTPError",
    "FTPReplyError",
    "MalformedReplyError",
    "NoConnectionError",
    "ServiceUnavailableError",
    "TruncatedStreamError",
]
