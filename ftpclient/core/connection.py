import dataclasses
import logging
import select
import socket
from dataclasses import dataclass
from typing import Optional

from .exceptions import (
    FTPReplyError,
    MalformedReplyError,
    NoConnectionError,
    ServiceUnavailableError,
)
from .parser import Parser, Reply
from .reply_codes import ReplyCode, check_reply

logger = logging.getLogger(__name__)

DEFAULT_PORT = 21
MAX_RECONNECT_ATTEMPTS = 3
MAX_LINE_LENGTH = 8192


@dataclass(frozen=True)
class SessionDescriptor:
    """Everything needed to re-open and re-authenticate a control session."""
    host: str
    port: int = DEFAULT_PORT
    user: Optional[str] = None
    password: Optional[str] = None

    def with_credentials(self, user: str, password: str) -> "SessionDescriptor":
        return dataclasses.replace(self, user=user, password=password)


class ControlConnectionManager:
    """
    Owns the command socket of one FTP session.

    Commands are strictly request/response: send_command() writes one line
    and returns the one reply that answers it. Replies the server pushed on
    its own between commands are drained first. When the server reports
    421 after a login succeeded, the session is re-opened and re-authenticated
    from its SessionDescriptor, up to `max_reconnect_attempts` times per call.
    """

    def __init__(self, timeout: Optional[float] = 10.0, encoding: str = "utf-8",
                 max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS):
        self.timeout = timeout
        self.encoding = encoding
        self.max_reconnect_attempts = max_reconnect_attempts
        self.parser = Parser()
        self.socket: Optional[socket.socket] = None
        self.session: Optional[SessionDescriptor] = None
        self.connected = False
        self.connection_established = False
        self._buffer = bytearray()

    def __repr__(self):
        target = f"{self.session.host}:{self.session.port}" if self.session else "-"
        return (f"ControlConnectionManager({target}, connected={self.connected}, "
                f"established={self.connection_established})")

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def open(self, host: str, port: int = DEFAULT_PORT) -> Reply:
        """Connects and reads the greeting. Returns the greeting reply."""
        if self.socket is not None:
            self.close()
        # Credentials survive a re-open of the same server
        if self.session is None or (self.session.host, self.session.port) != (host, port):
            self.session = SessionDescriptor(host, port)

        self.socket = self._open_socket(host, port)
        self._buffer.clear()
        greeting = self.read_reply()
        if greeting.code in (ReplyCode.SERVICE_READY_IN_NNN_MINUTES, ReplyCode.SERVICE_UNAVAILABLE):
            logger.warning(f"Server {host}:{port} unavailable: {greeting}")
            self.close()
            raise ServiceUnavailableError(greeting.code, greeting.text)

        self.connected = True
        logger.info(f"✓ Connected to {host}:{port}: {greeting}")
        return greeting

    def _open_socket(self, host: str, port: int) -> socket.socket:
        try:
            logger.info(f"Connecting to {host}:{port} (timeout={self.timeout}s)")
            return socket.create_connection((host, port), timeout=self.timeout)
        except OSError as e:
            logger.error(f"✗ Failed to connect to {host}:{port} - {e}")
            raise ConnectionError(f"Failed to connect to {host}:{port} - {e}") from e

    def login(self, user: str, password: str) -> Reply:
        """Runs the USER/PASS exchange. Returns the final reply."""
        if not self.connected:
            raise NoConnectionError()
        logger.info(f"Logging in as {user}")

        reply = self._exchange(f"USER {user}")
        if reply.code != ReplyCode.USER_LOGGED_IN:
            self._check_login_reply(reply, (ReplyCode.NEED_PASSWORD,))
            reply = self._exchange(f"PASS {password}", shown="PASS ****")
            self._check_login_reply(reply, (ReplyCode.USER_LOGGED_IN, ReplyCode.COMMAND_SUPERFLUOUS))

        self.session = self.session.with_credentials(user, password)
        self.connection_established = True
        logger.info(f"✓ Logged in as {user}")
        return reply

    def _check_login_reply(self, reply: Reply, expected):
        try:
            check_reply(reply, expected)
        except ServiceUnavailableError:
            self.close()
            raise
        except FTPReplyError as e:
            logger.warning(f"Login rejected: {e}")
            raise

    def restore_connection(self, session: SessionDescriptor) -> Reply:
        """Re-opens the control socket and logs in again with `session`."""
        logger.warning(f"Restoring connection to {session.host}:{session.port}")
        self.open(session.host, session.port)
        return self.login(session.user, session.password)

    def close(self):
        """Closes the control socket. Safe to call more than once."""
        self.connected = False
        if self.socket is None:
            return
        target = f"{self.session.host}:{self.session.port}" if self.session else "server"
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer already gone
            pass
        self.socket.close()
        self.socket = None
        self._buffer.clear()
        logger.info(f"✓ Disconnected from {target}")

    # ------------------------------------------------------------------
    # Request/response
    # ------------------------------------------------------------------

    def send_command(self, command: str) -> Reply:
        """Sends one command line and returns the reply that answers it."""
        shown = "PASS ****" if command.upper().startswith("PASS ") else command
        attempts = 0
        while True:
            if not self.connected:
                if not self.connection_established:
                    raise NoConnectionError()
                if attempts >= self.max_reconnect_attempts:
                    raise ServiceUnavailableError(
                        ReplyCode.SERVICE_UNAVAILABLE,
                        f"Service still unavailable after {attempts} reconnect attempts")
                attempts += 1
                self.restore_connection(self.session)
                continue

            if self.has_unread_reply():
                try:
                    stale = self.read_reply()
                except NoConnectionError:
                    if not self.connection_established:
                        raise
                    continue
                if stale.code == ReplyCode.SERVICE_UNAVAILABLE:
                    if not self.connection_established:
                        raise ServiceUnavailableError(stale.code, stale.text)
                    continue
                logger.warning(f"Discarding unsolicited reply: {stale}")
                continue

            return self._exchange(command, shown)

    def _exchange(self, command: str, shown: Optional[str] = None) -> Reply:
        if self.socket is None:
            raise NoConnectionError()
        logger.debug(f"→ SEND: {shown or command}")
        self.socket.sendall(f"{command}\r\n".encode(self.encoding))
        return self.read_reply()

    def read_reply(self) -> Reply:
        """Reads one logical reply. A 421 reply leaves the channel disconnected."""
        if self.socket is None:
            raise NoConnectionError()
        try:
            first = self._read_line()
            if first is None:
                logger.warning("Control connection closed by server")
                self.close()
                raise NoConnectionError("Control connection closed by server.")

            pending = [first]

            def read_line():
                return pending.pop() if pending else self._read_line()

            reply = self.parser.read_reply(read_line)
        except MalformedReplyError:
            self.close()
            raise
        logger.debug(f"← RECV: {reply}")

        if reply.code == ReplyCode.SERVICE_UNAVAILABLE:
            logger.warning(f"Server closing control connection: {reply}")
            self.close()
        return reply

    def has_unread_reply(self) -> bool:
        if self._buffer:
            return True
        readable, _, _ = select.select([self.socket], [], [], 0)
        return bool(readable)

    def _read_line(self) -> Optional[str]:
        while b"\n" not in self._buffer:
            data = self.socket.recv(4096)
            if not data:
                if not self._buffer:
                    return None
                # Unterminated trailing line
                line = bytes(self._buffer)
                self._buffer.clear()
                return line.decode(self.encoding, errors="replace").rstrip("\r")
            self._buffer.extend(data)
            if len(self._buffer) > MAX_LINE_LENGTH and b"\n" not in self._buffer:
                logger.error(f"Reply line exceeds {MAX_LINE_LENGTH} bytes")
                raise MalformedReplyError(f"Reply line longer than {MAX_LINE_LENGTH} bytes")
        index = self._buffer.index(b"\n")
        line = bytes(self._buffer[:index])
        del self._buffer[:index + 1]
        return line.decode(self.encoding, errors="replace").rstrip("\r")
