import pytest

from ftpclient.core.exceptions import FTPError, FTPReplyError, ServiceUnavailableError
from ftpclient.core.parser import Reply
from ftpclient.core.reply_codes import FailureKind, ReplyCode, check_reply, failure_kind


@pytest.mark.parametrize("code,kind", [
    (ReplyCode.CANT_OPEN_DATA_CONNECTION, FailureKind.CANT_OPEN_DATA_CONNECTION),
    (ReplyCode.CONNECTION_CLOSED, FailureKind.CONNECTION_CLOSED),
    (ReplyCode.FILE_ACTION_NOT_TAKEN, FailureKind.FILE_ACTION_NOT_TAKEN),
    (ReplyCode.LOCAL_ERROR_IN_PROCESSING, FailureKind.LOCAL_ERROR_IN_PROCESSING),
    (ReplyCode.INSUFFICIENT_STORAGE_SPACE, FailureKind.INSUFFICIENT_STORAGE_SPACE),
    (ReplyCode.NOT_LOGGED_IN, FailureKind.NOT_LOGGED_IN),
    (ReplyCode.NEED_ACCOUNT_FOR_STORING_FILES, FailureKind.NEED_ACCOUNT_FOR_STORING_FILES),
    (ReplyCode.FILE_UNAVAILABLE, FailureKind.FILE_UNAVAILABLE),
    (ReplyCode.FILE_ACTION_ABORTED, FailureKind.FILE_ACTION_ABORTED),
    (ReplyCode.FILE_NAME_NOT_ALLOWED, FailureKind.FILE_NAME_NOT_ALLOWED),
    (ReplyCode.NEED_ACCOUNT_FOR_LOGIN, FailureKind.NEED_ACCOUNT),
    (434, FailureKind.TRANSIENT_ERROR),
    (500, FailureKind.PERMANENT_ERROR),
])
def test_check_reply_raises_tagged_error(code, kind):
    with pytest.raises(FTPReplyError) as excinfo:
        check_reply(Reply(code, "nope"))
    assert excinfo.value.kind is kind
    assert excinfo.value.code == code
    assert excinfo.value.message == "nope"
    assert isinstance(excinfo.value, FTPError)


def test_service_unavailable_has_own_type():
    with pytest.raises(ServiceUnavailableError) as excinfo:
        check_reply(Reply(421, "bye"))
    assert excinfo.value.kind is FailureKind.SERVICE_UNAVAILABLE


@pytest.mark.parametrize("code", [150, 200, 226, 257, 331, 350])
def test_positive_replies_pass_through(code):
    reply = Reply(code, "fine")
    assert check_reply(reply) is reply
    assert failure_kind(code) is None


def test_unexpected_positive_reply():
    with pytest.raises(FTPReplyError) as excinfo:
        check_reply(Reply(200, "odd"), expected=(227,))
    assert excinfo.value.kind is FailureKind.PERMANENT_ERROR
    assert check_reply(Reply(227, "ok"), expected=(227,)).code == 227
