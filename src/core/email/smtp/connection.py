"""SMTP transport - opens the (optionally implicit-TLS) byte stream and
exchanges CRLF-terminated lines with the server."""

import asyncio
import ssl
import time
from enum import Enum
from typing import List, Optional

from src.utils.errors import (
    ConnectionFailedError,
    NetworkTimeoutError,
    SMTPProtocolError,
    TLSError,
)
from src.utils.logging import get_logger

from .constants import CRLF, MAX_REPLY_LINE, SMTPStage, Timeouts
from .models import ReplyLine

logger = get_logger(__name__)


class ConnectionState(Enum):
    """Lifecycle of a single SMTP connection."""

    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CLOSED = "closed"


class SMTPConnection:
    """One SMTP transport, owned by exactly one send or test call.

    The connection is never reused: create it, enter it with ``async with``
    and let the context manager close it on every exit path.
    """

    def __init__(
        self,
        host: str,
        port: int,
        use_tls: bool = True,
        connect_timeout: float = Timeouts.SMTP_CONNECT,
        command_timeout: Optional[float] = Timeouts.SMTP_COMMAND,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        """Initialise the transport without touching the network.

        Args:
            host: SMTP server hostname
            port: SMTP server port
            use_tls: Negotiate TLS as part of connecting (implicit TLS)
            connect_timeout: Deadline for reaching the ready state, TLS included
            command_timeout: Deadline for each reply, None to wait forever
            ssl_context: Custom TLS context (defaults to system trust store)
        """
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._ssl_context = ssl_context
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self.state = ConnectionState.CONNECTING

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    def _details(self, **extra) -> dict:
        return {"server": self.host, "port": self.port, "use_tls": self.use_tls, **extra}

    async def open(self) -> "SMTPConnection":
        """Connect to the server, racing the connect timeout.

        Returns:
            This connection, in the ready state

        Raises:
            NetworkTimeoutError: If the connection is not ready by the deadline
            TLSError: If TLS negotiation fails
            ConnectionFailedError: If the server cannot be reached
        """
        self.state = ConnectionState.CONNECTING
        start_time = time.time()

        ssl_context = None
        if self.use_tls:
            ssl_context = self._ssl_context or ssl.create_default_context()

        logger.info(
            "Connecting to SMTP server",
            extra={
                "server": self.host,
                "port": self.port,
                "ssl_mode": "implicit" if self.use_tls else "plain",
            },
        )

        try:
            # wait_for cancels the pending connect on timeout, so no
            # half-open socket outlives the call
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.host, self.port, ssl=ssl_context, limit=MAX_REPLY_LINE
                ),
                timeout=self.connect_timeout,
            )

        except asyncio.TimeoutError as e:
            self.state = ConnectionState.CANCELLED
            logger.error(
                f"SMTP connection timed out after {time.time() - start_time:.2f}s",
                extra={"server": self.host, "port": self.port},
            )
            raise NetworkTimeoutError(
                f"SMTP connection to {self.host}:{self.port} was not ready "
                f"within {self.connect_timeout}s",
                details=self._details(stage=SMTPStage.CONNECT.value),
            ) from e

        except asyncio.CancelledError:
            self.state = ConnectionState.CANCELLED
            raise

        except ssl.SSLError as e:
            self.state = ConnectionState.FAILED
            logger.error(
                "TLS negotiation with SMTP server failed",
                extra={"server": self.host, "port": self.port, "error": str(e)},
            )
            raise TLSError(
                f"TLS negotiation with {self.host}:{self.port} failed: {e}",
                details=self._details(),
            ) from e

        except OSError as e:
            self.state = ConnectionState.FAILED
            reason = str(e) or e.__class__.__name__
            logger.error(
                "Failed to connect to SMTP server",
                extra={"server": self.host, "port": self.port, "error": reason},
            )
            raise ConnectionFailedError(reason, details=self._details()) from e

        self.state = ConnectionState.READY
        logger.debug(
            "SMTP connection established",
            extra={
                "server": self.host,
                "duration_seconds": round(time.time() - start_time, 2),
            },
        )
        return self

    def _ensure_ready(self) -> asyncio.StreamWriter:
        if not self.is_ready or self._writer is None:
            raise SMTPProtocolError(
                f"SMTP connection is not ready (state: {self.state.value})",
                details=self._details(),
            )
        return self._writer

    async def write_line(self, line: str) -> None:
        """Write one command line, appending CRLF.

        Raises:
            SMTPProtocolError: If the line holds a CR or LF of its own
        """
        if "\r" in line or "\n" in line:
            raise SMTPProtocolError(
                "SMTP command line must not contain line breaks",
                details=self._details(),
            )
        await self.write_data(line + CRLF)

    async def write_data(self, data: str) -> None:
        """Write raw text to the server and wait until it is flushed.

        Raises:
            ConnectionFailedError: If the server dropped the connection
        """
        writer = self._ensure_ready()

        try:
            writer.write(data.encode("utf-8"))
            await writer.drain()

        except OSError as e:
            self.state = ConnectionState.FAILED
            raise ConnectionFailedError(
                f"Lost connection while writing: {str(e) or e.__class__.__name__}",
                details=self._details(),
            ) from e

    async def read_reply(self, stage: Optional[SMTPStage] = None) -> ReplyLine:
        """Read one complete (possibly multi-line) reply.

        Args:
            stage: Protocol stage, for diagnostics only

        Returns:
            Parsed ReplyLine

        Raises:
            NetworkTimeoutError: If no complete reply arrives within command_timeout
            ConnectionFailedError: If the server closes the connection
            SMTPProtocolError: If a reply line is too long to be valid
        """
        self._ensure_ready()
        stage_name = stage.value if stage is not None else None

        try:
            if self.command_timeout is None:
                return await self._read_reply_lines()
            return await asyncio.wait_for(
                self._read_reply_lines(), timeout=self.command_timeout
            )

        except asyncio.TimeoutError as e:
            self.state = ConnectionState.FAILED
            raise NetworkTimeoutError(
                f"No reply from {self.host} within {self.command_timeout}s",
                details=self._details(stage=stage_name),
            ) from e

        except ValueError as e:
            # StreamReader.readline raises ValueError when the limit is exceeded
            self.state = ConnectionState.FAILED
            raise SMTPProtocolError(
                f"Server reply line exceeds {MAX_REPLY_LINE} bytes",
                details=self._details(stage=stage_name),
            ) from e

        except OSError as e:
            self.state = ConnectionState.FAILED
            raise ConnectionFailedError(
                f"Lost connection while reading: {str(e) or e.__class__.__name__}",
                details=self._details(stage=stage_name),
            ) from e

    async def _read_reply_lines(self) -> ReplyLine:
        assert self._reader is not None
        lines: List[str] = []

        while True:
            raw = await self._reader.readline()
            if not raw:
                self.state = ConnectionState.FAILED
                raise ConnectionFailedError(
                    "Server closed the connection", details=self._details()
                )

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            lines.append(line)

            # "250-..." continues the reply, "250 ..." (or bare "250") ends it
            if len(line) < 4 or line[3] != "-":
                return ReplyLine.parse(lines)

    async def close(self) -> None:
        """Release the transport. Safe to call more than once."""
        writer, self._writer, self._reader = self._writer, None, None

        if self.state is ConnectionState.READY:
            self.state = ConnectionState.CLOSED

        if writer is None:
            return

        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=Timeouts.SMTP_CLOSE)
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Error closing SMTP connection: {e!r}")

    ## Context Manager Support

    async def __aenter__(self):
        """Enter async context manager."""
        if not self.is_ready:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        await self.close()
