import logging
import socket
from typing import Callable, List, Optional

from .exceptions import TruncatedStreamError
from .parser import Parser
from .reply_codes import ReplyCode, check_reply

logger = logging.getLogger(__name__)

BLOCK_SIZE = 1024

ProgressCallback = Callable[[int, int], None]


def negotiate_passive(control, parser: Optional[Parser] = None):
    """
    Sends PASV over the control channel and returns the (ip, port) the
    server is listening on for the next transfer.
    """
    parser = parser or Parser()
    reply = control.send_command("PASV")
    check_reply(reply, (ReplyCode.ENTERING_PASSIVE_MODE,))
    return parser.parse_pasv_response(reply.text)


class DataConnectionManager:
    def __init__(self, ip: str, port: int, timeout: Optional[float] = 10.0,
                 encoding: str = "utf-8", block_size: int = BLOCK_SIZE):
        """
        One instance carries exactly one transfer: it is connected once and
        closed at the end of the transfer, after which it cannot be reused.
        """
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self.encoding = encoding
        self.block_size = block_size
        self.data_socket: Optional[socket.socket] = None
        self._used = False

    @classmethod
    def open_passive(cls, control, **kwargs) -> "DataConnectionManager":
        """Negotiates PASV on `control` and connects a fresh data channel."""
        ip, port = negotiate_passive(control, control.parser)
        data_conn = cls(ip, port, **kwargs)
        data_conn.connect()
        return data_conn

    def connect(self):
        """
        Establece la conexión TCP con el servidor en el canal de datos.
        """
        if self._used:
            raise RuntimeError("Data connection already used for a transfer.")
        self._used = True
        try:
            self.data_socket = socket.create_connection((self.ip, self.port), timeout=self.timeout)
        except OSError as e:
            logger.error(f"[DATA] Failed to connect to {self.ip}:{self.port} - {e}")
            raise ConnectionError(f"Failed to open data connection to {self.ip}:{self.port} - {e}") from e
        logger.info(f"[DATA] Connected to {self.ip}:{self.port}")

    def close(self):
        """
        Cierra la conexión de datos.
        """
        if self.data_socket:
            self.data_socket.close()
            self.data_socket = None
            logger.info(f"[DATA] Disconnected from {self.ip}:{self.port}")

    @property
    def is_open(self) -> bool:
        return self.data_socket is not None

    def receive_lines(self) -> List[str]:
        """
        Reads text lines until end of stream, then closes the socket.
        """
        try:
            data = self._read_to_end()
        finally:
            self.close()
        lines = data.decode(self.encoding, errors="replace").splitlines()
        logger.debug(f"[DATA] Received {len(lines)} lines")
        return lines

    def get_bytes(self, size: int, on_bytes_read: Optional[ProgressCallback] = None) -> bytes:
        """
        Reads exactly `size` bytes, calling on_bytes_read(size, so_far) after
        every read. Raises TruncatedStreamError if the stream ends early.
        """
        logger.debug(f"[DATA] Reading {size} bytes")
        buffer = bytearray(size)
        view = memoryview(buffer)
        total = 0
        try:
            while total < size:
                count = self.data_socket.recv_into(view[total:], size - total)
                if count == 0:
                    logger.error(f"[DATA] Data stream ended prematurely at {total}/{size} bytes")
                    raise TruncatedStreamError(size, total)
                total += count
                if on_bytes_read is not None:
                    on_bytes_read(size, total)
        finally:
            self.close()
        return bytes(buffer)

    def read_all(self, on_bytes_read: Optional[Callable[[Optional[int], int], None]] = None) -> bytes:
        """
        Reads until end of stream when the transfer size is unknown.
        on_bytes_read receives None as the total.
        """
        try:
            data = self._read_to_end(on_bytes_read)
        finally:
            self.close()
        logger.debug(f"[DATA] Received {len(data)} bytes")
        return data

    def write_bytes(self, data: bytes, on_bytes_write: Optional[ProgressCallback] = None):
        """
        Sends `data` in blocks of `block_size` bytes, calling on_bytes_write(len(data), so_far) after each block.
        """
        total = len(data)
        logger.debug(f"[DATA] Writing {total} bytes")
        written = 0
        try:
            while written < total:
                chunk = data[written:written + self.block_size]
                self.data_socket.sendall(chunk)
                written += len(chunk)
                if on_bytes_write is not None:
                    on_bytes_write(total, written)
        finally:
            self.close()

    def _read_to_end(self, on_bytes_read=None) -> bytes:
        chunks = []
        total = 0
        while True:
            data = self.data_socket.recv(4096)
            if not data:
                break
            chunks.append(data)
            total += len(data)
            if on_bytes_read is not None:
                on_bytes_read(None, total)
        return b''.join(chunks)
