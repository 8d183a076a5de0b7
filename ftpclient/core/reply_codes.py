from .exceptions import FailureKind, FTPReplyError, ServiceUnavailableError


class ReplyCode:
    """Static holder for the FTP reply codes the client acts on"""

    # =========================
    # Positive preliminary
    # =========================
    DATA_CONNECTION_ALREADY_OPEN = 125
    SERVICE_READY_IN_NNN_MINUTES = 120
    FILE_STATUS_OKAY = 150

    # =========================
    # Positive completion
    # =========================
    COMMAND_OKAY = 200
    COMMAND_SUPERFLUOUS = 202
    SERVICE_READY = 220
    CLOSING_CONTROL_CONNECTION = 221
    CLOSING_DATA_CONNECTION = 226
    ENTERING_PASSIVE_MODE = 227
    USER_LOGGED_IN = 230
    FILE_ACTION_OKAY = 250
    PATHNAME_CREATED = 257

    # =========================
    # Positive intermediate
    # =========================
    NEED_PASSWORD = 331
    NEED_ACCOUNT_FOR_LOGIN = 332
    FILE_ACTION_PENDING = 350

    # =========================
    # Transient negative
    # =========================
    SERVICE_UNAVAILABLE = 421
    CANT_OPEN_DATA_CONNECTION = 425
    CONNECTION_CLOSED = 426
    FILE_ACTION_NOT_TAKEN = 450
    LOCAL_ERROR_IN_PROCESSING = 451
    INSUFFICIENT_STORAGE_SPACE = 452

    # =========================
    # Permanent negative
    # =========================
    NOT_LOGGED_IN = 530
    NEED_ACCOUNT_FOR_STORING_FILES = 532
    FILE_UNAVAILABLE = 550
    PAGE_TYPE_UNKNOWN = 551
    FILE_ACTION_ABORTED = 552
    FILE_NAME_NOT_ALLOWED = 553


FAILURE_KINDS = {
    ReplyCode.NEED_ACCOUNT_FOR_LOGIN: FailureKind.NEED_ACCOUNT,
    ReplyCode.SERVICE_UNAVAILABLE: FailureKind.SERVICE_UNAVAILABLE,
    ReplyCode.CANT_OPEN_DATA_CONNECTION: FailureKind.CANT_OPEN_DATA_CONNECTION,
    ReplyCode.CONNECTION_CLOSED: FailureKind.CONNECTION_CLOSED,
    ReplyCode.FILE_ACTION_NOT_TAKEN: FailureKind.FILE_ACTION_NOT_TAKEN,
    ReplyCode.LOCAL_ERROR_IN_PROCESSING: FailureKind.LOCAL_ERROR_IN_PROCESSING,
    ReplyCode.INSUFFICIENT_STORAGE_SPACE: FailureKind.INSUFFICIENT_STORAGE_SPACE,
    ReplyCode.NOT_LOGGED_IN: FailureKind.NOT_LOGGED_IN,
    ReplyCode.NEED_ACCOUNT_FOR_STORING_FILES: FailureKind.NEED_ACCOUNT_FOR_STORING_FILES,
    ReplyCode.FILE_UNAVAILABLE: FailureKind.FILE_UNAVAILABLE,
    ReplyCode.PAGE_TYPE_UNKNOWN: FailureKind.PAGE_TYPE_UNKNOWN,
    ReplyCode.FILE_ACTION_ABORTED: FailureKind.FILE_ACTION_ABORTED,
    ReplyCode.FILE_NAME_NOT_ALLOWED: FailureKind.FILE_NAME_NOT_ALLOWED,
}


def failure_kind(code: int):
    """Returns the FailureKind for a reply code, or None for 1xx/2xx/3xx codes not in the table."""
    kind = FAILURE_KINDS.get(code)
    if kind is not None:
        return kind
    if 400 <= code < 500:
        return FailureKind.TRANSIENT_ERROR
    if 500 <= code < 600:
        return FailureKind.PERMANENT_ERROR
    return None


def check_reply(reply, expected=None):
    """
    Raises the error matching a negative reply and returns the reply otherwise.

    If `expected` is given (a collection of codes), any reply outside it that
    the table does not classify is reported as a permanent error.
    """
    kind = failure_kind(reply.code)
    if kind is FailureKind.SERVICE_UNAVAILABLE:
        raise ServiceUnavailableError(reply.code, reply.text)
    if kind is None and expected is not None and reply.code not in expected:
        kind = FailureKind.PERMANENT_ERROR
    if kind is not None:
        raise FTPReplyError(kind, reply.code, reply.text)
    return reply
