import socket
import threading
import time

import pytest

from ftpclient.core.data_connection import DataConnectionManager, negotiate_passive
from ftpclient.core.exceptions import FTPReplyError, ServiceUnavailableError, TruncatedStreamError
from ftpclient.core.parser import Parser, Reply
from ftpclient.core.reply_codes import FailureKind


class RecordingSocket:
    def __init__(self):
        self.writes = []
        self.closed = False

    def sendall(self, data):
        self.writes.append(bytes(data))

    def close(self):
        self.closed = True


class FakeControl:
    def __init__(self, reply):
        self.reply = reply
        self.parser = Parser()
        self.sent = []

    def send_command(self, command):
        self.sent.append(command)
        return self.reply


def attached(sock, **kwargs):
    """A DataConnectionManager already wired to `sock`."""
    data_conn = DataConnectionManager("127.0.0.1", 0, **kwargs)
    data_conn._used = True
    data_conn.data_socket = sock
    return data_conn


def feed(sock, chunks, delay=0.01):
    """Writes `chunks` to `sock` from a thread, pausing between them, then closes it."""
    def run():
        for chunk in chunks:
            sock.sendall(chunk)
            time.sleep(delay)
        sock.close()
    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


@pytest.fixture
def pair():
    client, server = socket.socketpair()
    yield client, server
    client.close()
    server.close()


# ---------------------------------------------------------------------------
# PASV negotiation
# ---------------------------------------------------------------------------

def test_negotiate_passive():
    control = FakeControl(Reply(227, "Entering Passive Mode (127,0,0,1,200,15)."))
    assert negotiate_passive(control) == ("127.0.0.1", 51215)
    assert control.sent == ["PASV"]


def test_negotiate_passive_not_logged_in():
    control = FakeControl(Reply(530, "Please login with USER and PASS."))
    with pytest.raises(FTPReplyError) as excinfo:
        negotiate_passive(control)
    assert excinfo.value.kind is FailureKind.NOT_LOGGED_IN


def test_negotiate_passive_service_unavailable():
    control = FakeControl(Reply(421, "Timeout"))
    with pytest.raises(ServiceUnavailableError):
        negotiate_passive(control)


def test_open_passive_connects_to_announced_address():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]
    control = FakeControl(Reply(227, f"Entering Passive Mode (127,0,0,1,{port // 256},{port % 256})"))
    try:
        data_conn = DataConnectionManager.open_passive(control, timeout=5)
        accepted, _ = listener.accept()
        accepted.sendall(b"hello\r\nworld\r\n")
        accepted.close()
        assert (data_conn.ip, data_conn.port) == ("127.0.0.1", port)
        assert data_conn.receive_lines() == ["hello", "world"]
    finally:
        listener.close()


def test_connect_only_once():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    try:
        data_conn = DataConnectionManager("127.0.0.1", listener.getsockname()[1], timeout=5)
        data_conn.connect()
        data_conn.close()
        with pytest.raises(RuntimeError):
            data_conn.connect()
    finally:
        listener.close()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def test_receive_lines_closes_socket(pair):
    client, server = pair
    data_conn = attached(client)
    feed(server, [b"-rw-r--r-- 1 a b 1 Jan 1 00:00 x\r\n", b"drwxr-xr-x 2 a b 4096 Jan 1 00:00 y\r\n"])
    lines = data_conn.receive_lines()
    assert lines == ["-rw-r--r-- 1 a b 1 Jan 1 00:00 x", "drwxr-xr-x 2 a b 4096 Jan 1 00:00 y"]
    assert not data_conn.is_open


def test_get_bytes_across_chunks(pair):
    client, server = pair
    payload = bytes(range(256)) * 20
    chunks = [payload[:100], payload[100:3000], payload[3000:]]
    data_conn = attached(client)
    progress = []
    feed(server, chunks)

    result = data_conn.get_bytes(len(payload), lambda total, current: progress.append((total, current)))

    assert result == payload
    assert all(total == len(payload) for total, _ in progress)
    currents = [current for _, current in progress]
    assert currents == sorted(set(currents))
    assert currents[-1] == len(payload)
    assert not data_conn.is_open


def test_get_bytes_truncated(pair):
    client, server = pair
    data_conn = attached(client)
    feed(server, [b"x" * 10])
    with pytest.raises(TruncatedStreamError) as excinfo:
        data_conn.get_bytes(20)
    assert excinfo.value.expected == 20
    assert excinfo.value.received == 10
    assert not data_conn.is_open


def test_get_bytes_zero(pair):
    client, _ = pair
    data_conn = attached(client)
    assert data_conn.get_bytes(0) == b""
    assert not data_conn.is_open


def test_read_all_reports_unknown_total(pair):
    client, server = pair
    data_conn = attached(client)
    progress = []
    feed(server, [b"abc", b"defg"])
    assert data_conn.read_all(lambda total, current: progress.append((total, current))) == b"abcdefg"
    assert progress[-1] == (None, 7)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def test_write_bytes_in_blocks():
    sock = RecordingSocket()
    data_conn = attached(sock)
    payload = b"z" * 2500
    progress = []

    data_conn.write_bytes(payload, lambda total, current: progress.append((total, current)))

    assert [len(w) for w in sock.writes] == [1024, 1024, 452]
    assert b"".join(sock.writes) == payload
    assert progress == [(2500, 1024), (2500, 2048), (2500, 2500)]
    assert sock.closed
    assert not data_conn.is_open


def test_write_bytes_smaller_than_block():
    sock = RecordingSocket()
    data_conn = attached(sock)
    progress = []
    data_conn.write_bytes(b"tiny", lambda total, current: progress.append((total, current)))
    assert sock.writes == [b"tiny"]
    assert progress == [(4, 4)]


def test_write_bytes_exact_multiple():
    sock = RecordingSocket()
    data_conn = attached(sock, block_size=512)
    data_conn.write_bytes(b"a" * 1024)
    assert [len(w) for w in sock.writes] == [512, 512]


def test_write_failure_still_closes():
    class BrokenSocket(RecordingSocket):
        def sendall(self, data):
            raise BrokenPipeError("peer went away")

    sock = BrokenSocket()
    data_conn = attached(sock)
    with pytest.raises(BrokenPipeError):
        data_conn.write_bytes(b"data")
    assert sock.closed
