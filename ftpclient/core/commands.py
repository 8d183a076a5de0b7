import logging
import os
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ftpclient.core.connection import DEFAULT_PORT, ControlConnectionManager
from ftpclient.core.data_connection import DataConnectionManager
from ftpclient.core.exceptions import FTPError
from ftpclient.core.parser import Reply
from ftpclient.core.remote_file import RemoteFile, parse_listing
from ftpclient.core.reply_codes import ReplyCode, check_reply

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"

TRANSFER_STARTED = (ReplyCode.DATA_CONNECTION_ALREADY_OPEN, ReplyCode.FILE_STATUS_OKAY)
TRANSFER_COMPLETE = (ReplyCode.CLOSING_DATA_CONNECTION, ReplyCode.FILE_ACTION_OKAY)


class ClientCommandHandler:
    def __init__(self, connection: Optional[ControlConnectionManager] = None):
        self.conn = connection or ControlConnectionManager()
        self.parser = self.conn.parser
        self.data_conn: Optional[DataConnectionManager] = None
        # history as list of dicts: {"time":..., "command":..., "reply":..., "error":bool}
        self.history = []

    def _record(self, command: str, reply: Optional[Reply], error: bool = False, **extra):
        entry = {
            "time": datetime.now(timezone.utc),
            "command": "PASS ****" if command.upper().startswith("PASS ") else command,
            "reply": reply,
            "error": error or (reply is not None and reply.is_error),
        }
        entry.update(extra)
        self.history.append(entry)

    # Comandos estandar, que no requieren conexion de datos
    def _execute(self, command: str, expected=None) -> Reply:
        try:
            reply = self.conn.send_command(command)
        except FTPError as e:
            self._record(command, None, error=True, message=str(e))
            raise
        self._record(command, reply)
        return check_reply(reply, expected)

    def connect(self, host: str, port: int = DEFAULT_PORT) -> Reply:
        try:
            greeting = self.conn.open(host, port)
        except (FTPError, ConnectionError) as e:
            self._record(f"CONNECT {host}:{port}", None, error=True, message=str(e))
            raise
        self._record(f"CONNECT {host}:{port}", greeting)
        return greeting

    def login(self, user: str = ANONYMOUS, password: str = "") -> Reply:
        try:
            reply = self.conn.login(user, password)
        except FTPError as e:
            self._record(f"LOGIN {user}", None, error=True, message=str(e))
            raise
        self._record(f"LOGIN {user}", reply)
        return reply

    def pwd(self) -> str:
        reply = self._execute("PWD", (ReplyCode.PATHNAME_CREATED,))
        return self.parser.parse_pwd_response(reply.text)

    def cwd(self, path: str) -> Reply:
        return self._execute(f"CWD {path}")

    def cdup(self) -> Reply:
        return self._execute("CDUP")

    def mkd(self, path: str) -> Reply:
        return self._execute(f"MKD {path}")

    def rmd(self, path: str) -> Reply:
        return self._execute(f"RMD {path}")

    def dele(self, path: str) -> Reply:
        return self._execute(f"DELE {path}")

    def rename(self, source: str, target: str) -> Reply:
        self._execute(f"RNFR {source}", (ReplyCode.FILE_ACTION_PENDING,))
        return self._execute(f"RNTO {target}")

    def noop(self) -> Reply:
        return self._execute("NOOP")

    def quit(self) -> Optional[Reply]:
        """Sends QUIT if the control channel is up, then closes everything."""
        if not self.conn.connected:
            self.close()
            return None
        try:
            return self._execute("QUIT")
        finally:
            self.close()

    def close(self):
        if self.data_conn is not None:
            self.data_conn.close()
            self.data_conn = None
        self.conn.close()

    # Comandos que requieren conexion de datos
    def _open_data_connection(self) -> DataConnectionManager:
        # Never more than one data channel, and never reused
        if self.data_conn is not None:
            self.data_conn.close()
        self.data_conn = DataConnectionManager.open_passive(
            self.conn, timeout=self.conn.timeout, encoding=self.conn.encoding)
        return self.data_conn

    def _transfer(self, command: str, move: Callable[[DataConnectionManager, Reply], object], **extra):
        """
        Runs one data transfer: PASV, the transfer command, the byte movement
        done by `move`, and the final reply on the control channel.
        """
        data_conn = self._open_data_connection()
        started = None
        try:
            started = self._execute(command, TRANSFER_STARTED)
            result = move(data_conn, started)
        except Exception:
            if started is not None:
                # The server still owes the final reply of the accepted transfer
                data_conn.close()
                self._discard_final_reply(command)
            raise
        finally:
            data_conn.close()
            self.data_conn = None

        reply = self.conn.read_reply()
        self._record(f"{command} (complete)", reply, **extra)
        check_reply(reply, TRANSFER_COMPLETE)
        return result, reply

    def _discard_final_reply(self, command: str):
        try:
            reply = self.conn.read_reply()
        except (FTPError, OSError) as e:
            logger.warning(f"No final reply after failed {command}: {e}")
            return
        logger.warning(f"Discarding final reply of failed {command}: {reply}")
        self._record(f"{command} (aborted)", reply, error=True)

    def list(self, path: str = "") -> List[RemoteFile]:
        command = f"LIST {path}".strip()
        self._execute("TYPE A")
        lines, _ = self._transfer(command, lambda data_conn, _: data_conn.receive_lines())
        return parse_listing(lines)

    def retr(self, path: str, size: Optional[int] = None,
             on_bytes_read: Optional[Callable] = None) -> bytes:
        """
        Downloads a remote file into memory.

        The expected size is `size` when given, otherwise the "(N bytes)"
        figure of the 150 reply; with neither the stream is read to its end.
        """
        def move(data_conn: DataConnectionManager, started: Reply):
            expected = size if size is not None else self.parser.parse_150_size(started.text)
            if expected is None:
                return data_conn.read_all(on_bytes_read)
            return data_conn.get_bytes(expected, on_bytes_read)

        self._execute("TYPE I")
        content, _ = self._transfer(f"RETR {path}", move)
        return content

    def stor(self, path: str, data: bytes, on_bytes_write: Optional[Callable] = None) -> Reply:
        self._execute("TYPE I")
        _, reply = self._transfer(f"STOR {path}",
                                  lambda data_conn, _: data_conn.write_bytes(data, on_bytes_write),
                                  size=len(data))
        return reply

    def retr_file(self, remote_filename: str, local_path: str, size: Optional[int] = None,
                  on_bytes_read: Optional[Callable] = None) -> str:
        """
        Descarga un archivo desde el servidor y lo guarda en local_path.
        """
        content = self.retr(remote_filename, size, on_bytes_read)
        with open(local_path, 'wb') as f:
            f.write(content)
        logger.info(f"Downloaded {remote_filename} to {local_path} ({len(content)} bytes)")
        return local_path

    def stor_file(self, local_path: str, remote_filename: Optional[str] = None,
                  on_bytes_write: Optional[Callable] = None) -> Reply:
        """
        Sube un archivo local al servidor.
        Si remote_filename no se especifica, se usa el mismo nombre del archivo local.
        """
        if remote_filename is None:
            remote_filename = os.path.basename(local_path)
        with open(local_path, 'rb') as f:
            content = f.read()
        reply = self.stor(remote_filename, content, on_bytes_write)
        logger.info(f"Uploaded {local_path} as {remote_filename} ({len(content)} bytes)")
        return reply

    # Helpers for UI
    def get_history(self):
        """Return a copy of the history list."""
        return list(self.history)

    def clear_history(self):
        self.history.clear()
