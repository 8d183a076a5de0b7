import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import MalformedReplyError

logger = logging.getLogger(__name__)

RESPONSE_TYPES = {
    '1': 'preliminary',
    '2': 'success',
    '3': 'missing_info',
    '4': 'error',
    '5': 'error'
}

_SIZE_IN_150 = re.compile(r"\((\d+) bytes\)", re.IGNORECASE)


@dataclass(frozen=True)
class Reply:
    code: int
    text: str

    @property
    def type(self) -> str:
        return RESPONSE_TYPES.get(str(self.code)[0], 'unknown')

    @property
    def is_error(self) -> bool:
        return self.type in ('error', 'unknown')

    def __str__(self) -> str:
        return f"{self.code} {self.text}"


class Parser:
    """
    Frames server replies and decodes reply payloads.

    read_reply() consumes lines from a `read_line` callable, which returns
    one decoded line without its terminator, or None at end of stream.
    """

    def read_reply(self, read_line: Callable[[], Optional[str]]) -> Reply:
        line = read_line()
        if line is None:
            raise MalformedReplyError("Stream ended before a reply was received")
        code = self._parse_code(line)

        if line[3:4] != '-':
            reply = Reply(code, line[4:])
            logger.debug(f"Parsed reply: code={code}, type={reply.type}, text={reply.text[:50]}")
            return reply

        # Multi-line: runs until a line starting with the same code and a space
        terminator = line[:3] + " "
        lines = [line[4:]]
        while True:
            line = read_line()
            if line is None:
                raise MalformedReplyError(f"Stream ended inside multi-line {code} reply")
            if line.startswith(terminator):
                lines.append(line[4:])
                break
            lines.append(line)

        reply = Reply(code, "\n".join(lines))
        logger.debug(f"Parsed multi-line reply: code={code}, lines={len(lines)}")
        return reply

    def _parse_code(self, line: str) -> int:
        code = line[:3]
        if len(code) != 3 or not code.isdigit():
            logger.error(f"Invalid FTP reply format: {line!r}")
            raise MalformedReplyError(f"Invalid FTP reply: {line!r}")
        return int(code)

    def parse_pasv_response(self, message: str):
        """Parses the PASV response to extract IP and port."""
        try:
            start = message.index('(') + 1
            end = message.index(')')
            parts = [int(p) for p in message[start:end].split(',')]
            if len(parts) != 6:
                raise ValueError(f"expected 6 fields, got {len(parts)}")
            ip = '.'.join(str(p) for p in parts[:4])
            port = parts[4] * 256 + parts[5]
            logger.debug(f"PASV parsed: {ip}:{port}")
            return ip, port
        except ValueError as e:
            logger.error(f"Failed to parse PASV response: {message}")
            raise MalformedReplyError(f"Invalid PASV response format: {message!r}") from e

    def parse_pwd_response(self, message: str) -> str:
        """Returns the quoted directory name of a 257 reply, or the text unchanged."""
        if not message.startswith('"'):
            return message
        name = []
        i = 1
        while i < len(message):
            c = message[i]
            if c == '"':
                # A doubled quote stands for a literal one
                if message[i + 1:i + 2] == '"':
                    name.append('"')
                    i += 2
                    continue
                break
            name.append(c)
            i += 1
        return ''.join(name)

    def parse_150_size(self, message: str) -> Optional[int]:
        """Returns the transfer size announced by a 150 reply, if any."""
        match = _SIZE_IN_150.search(message)
        return int(match.group(1)) if match else None
