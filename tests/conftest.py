import os
import socket
import sys
import threading
import time

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ftpclient.core.connection import ControlConnectionManager


class ScriptedPeer:
    """
    Plays the server side of a control connection over a socketpair.

    The script is a list of steps:
        ("send", b"...")    write raw bytes to the client
        ("expect", None)    read one command line from the client
        ("sleep", seconds)  pause before the next step
        ("close", None)     close the server end
    """

    def __init__(self, script):
        self.client_sock, self.server_sock = socket.socketpair()
        self.server_sock.settimeout(5)
        self.script = script
        self.received = []
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def _run(self):
        reader = self.server_sock.makefile('rb')
        for action, value in self.script:
            if action == "send":
                self.server_sock.sendall(value)
            elif action == "expect":
                line = reader.readline()
                if not line:
                    return
                self.received.append(line.decode().rstrip("\r\n"))
            elif action == "sleep":
                time.sleep(value)
            elif action == "close":
                reader.close()
                self.server_sock.close()
                return

    def wait(self):
        self.thread.join(timeout=5)
        assert not self.thread.is_alive(), "peer script did not finish"


def login_script(greeting=b"220 ready\r\n", after_login=b""):
    return [
        ("send", greeting),
        ("expect", None),
        ("send", b"331 need password\r\n"),
        ("expect", None),
        ("send", b"230 logged in\r\n" + after_login),
    ]


@pytest.fixture
def peers():
    """Queue of ScriptedPeers handed out, in order, to each socket a control connection opens."""
    queue = []
    yield queue
    for peer in queue:
        peer.client_sock.close()
        try:
            peer.server_sock.close()
        except OSError:
            pass


@pytest.fixture
def control(peers):
    conn = ControlConnectionManager(timeout=5)
    conn.opened = []

    def open_socket(host, port):
        peer = peers[len(conn.opened)]
        conn.opened.append((host, port))
        return peer.client_sock

    conn._open_socket = open_socket
    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# Real FTP server
# ---------------------------------------------------------------------------

FTP_USER = "tester"
FTP_PASSWORD = "secret"


class FTPServerThread:
    def __init__(self, root):
        from pyftpdlib.authorizers import DummyAuthorizer
        from pyftpdlib.handlers import FTPHandler
        from pyftpdlib.servers import FTPServer

        authorizer = DummyAuthorizer()
        authorizer.add_user(FTP_USER, FTP_PASSWORD, str(root), perm="elradfmwMT")
        handler = type("TestFTPHandler", (FTPHandler,), {
            "authorizer": authorizer,
            "auth_failed_timeout": 0.01,
        })
        self.root = root
        self.server = FTPServer(("127.0.0.1", 0), handler)
        self.host, self.port = self.server.address[:2]
        self._stop = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            self.server.serve_forever(timeout=0.05, blocking=False, handle_exit=False)
        self.server.close_all()

    def start(self):
        self.thread.start()

    def stop(self):
        self._stop.set()
        self.thread.join(timeout=5)


@pytest.fixture
def ftp_server(tmp_path):
    pytest.importorskip("pyftpdlib")
    root = tmp_path / "ftproot"
    root.mkdir()
    server = FTPServerThread(root)
    server.start()
    yield server
    server.stop()
