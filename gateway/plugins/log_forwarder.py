"""Forwards plugin server output to the gateway log, one record per line."""

import asyncio
import logging
from typing import Optional

# Severity between INFO and WARNING for process lifecycle events
NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

COMPONENT = "pluginserver"

logger = logging.getLogger(__name__)


def log_notice(log: logging.Logger, message: str, *args) -> None:
    """Log at NOTICE level."""
    log.log(NOTICE, message, *args)


class LogForwarder:
    """Writes each output line of a plugin server as an INFO record."""

    CHUNK_SIZE = 4096

    def __init__(self, log: Optional[logging.Logger] = None):
        self.logger = log or logger

    def forward(self, server_name: str, line: str) -> None:
        """Log one line of server output, tagged with the server name."""
        line = line.rstrip("\r\n")
        if not line:
            return
        self.logger.info(
            f"[{COMPONENT}] [{server_name}] {line}",
            extra={"server_name": server_name, "component": COMPONENT},
        )

    async def pump(self, server_name: str, stream: asyncio.StreamReader) -> None:
        """Forward a stream line by line until it closes.

        A trailing partial line is flushed when the stream ends.
        """
        pending = b""
        while True:
            chunk = await stream.read(self.CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            while True:
                newline = pending.find(b"\n")
                if newline < 0:
                    break
                self.forward(server_name, _decode(pending[:newline]))
                pending = pending[newline + 1:]

        if pending:
            self.forward(server_name, _decode(pending))


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
