"""SMTP protocol session - sequences commands and validates every reply.

A session walks a fixed path of states::

    INIT -> GREETED -> EHLO_SENT -> AUTHENTICATED -> MAIL_FROM_ACCEPTED
         -> RECIPIENTS_ACCEPTED -> DATA_ACCEPTED -> MESSAGE_SENT -> CLOSED

Every command is written only after the previous reply has been read, and
the first reply with the wrong status code moves the session to ERROR and
raises. ``SMTPClient.test_connection`` jumps from AUTHENTICATED to CLOSED.
"""

from contextlib import contextmanager
from typing import List, Optional, Sequence

from src.utils.errors import (
    GlanceError,
    InvalidConfigurationError,
    SendFailedError,
    SMTPProtocolError,
    UnexpectedReplyError,
)
from src.utils.logging import get_logger

from .auth import LoginAuthenticator
from .connection import SMTPConnection
from .constants import CRLF, SessionState, SMTPResponse, SMTPStage
from .models import ReplyLine

logger = get_logger(__name__)


def frame_data(content: str) -> str:
    """Frame message content for the DATA stage.

    Line endings are normalised to CRLF, lines starting with "." are
    dot-stuffed and the <CRLF>.<CRLF> terminator is appended.
    """
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    stuffed = ("." + line if line.startswith(".") else line for line in lines)
    return CRLF.join(stuffed) + CRLF + "." + CRLF


class SMTPSession:
    """Strictly sequential SMTP conversation over one ready connection."""

    def __init__(self, connection: SMTPConnection, client_id: str):
        """Initialise a session.

        Args:
            connection: Ready SMTPConnection, owned by the caller
            client_id: Name announced with EHLO
        """
        self.connection = connection
        self.client_id = client_id
        self.state = SessionState.INIT
        self.history: List[SessionState] = [SessionState.INIT]
        self.ehlo_reply: Optional[ReplyLine] = None

    @contextmanager
    def _transition(self, expected: SessionState, target: SessionState):
        """Guard one step: require `expected`, move to `target` or ERROR."""
        if self.state is not expected:
            raise SMTPProtocolError(
                f"Cannot move from {self.state.name} to {target.name}",
                details={"state": self.state.name, "expected": expected.name},
            )

        try:
            yield
        except BaseException:
            self.state = SessionState.ERROR
            self.history.append(SessionState.ERROR)
            raise

        self.state = target
        self.history.append(target)

    async def exchange(
        self, line: str, stage: SMTPStage, log_as: Optional[str] = None
    ) -> ReplyLine:
        """Write one command and read exactly one reply.

        Args:
            line: Command line without CRLF
            stage: Protocol stage, for diagnostics
            log_as: Text logged in place of `line` (for credentials)
        """
        logger.debug(f"C: {log_as or line}", extra={"stage": stage.value})
        await self.connection.write_line(line)
        reply = await self.connection.read_reply(stage)
        logger.debug(f"S: {reply.raw}", extra={"stage": stage.value})
        return reply

    async def greet(self) -> ReplyLine:
        """Read the server greeting (220)."""
        with self._transition(SessionState.INIT, SessionState.GREETED):
            reply = await self.connection.read_reply(SMTPStage.GREETING)
            logger.debug(f"S: {reply.raw}", extra={"stage": SMTPStage.GREETING.value})
            if not reply.has_code(SMTPResponse.SERVICE_READY):
                raise UnexpectedReplyError(SMTPStage.GREETING.value, reply.raw)
        return reply

    async def ehlo(self) -> ReplyLine:
        """Send EHLO (250)."""
        with self._transition(SessionState.GREETED, SessionState.EHLO_SENT):
            reply = await self.exchange(f"EHLO {self.client_id}", SMTPStage.EHLO)
            if not reply.has_code(SMTPResponse.OK):
                raise UnexpectedReplyError(SMTPStage.EHLO.value, reply.raw)
            self.ehlo_reply = reply
        return reply

    async def authenticate(self, authenticator: LoginAuthenticator) -> ReplyLine:
        """Run AUTH LOGIN (334, 334, 235)."""
        with self._transition(SessionState.EHLO_SENT, SessionState.AUTHENTICATED):
            reply = await authenticator.authenticate(self.exchange)
        return reply

    async def mail_from(self, sender: str) -> ReplyLine:
        """Send MAIL FROM (250)."""
        with self._transition(SessionState.AUTHENTICATED, SessionState.MAIL_FROM_ACCEPTED):
            reply = await self.exchange(f"MAIL FROM:<{sender}>", SMTPStage.MAIL_FROM)
            if not reply.has_code(SMTPResponse.OK):
                raise SendFailedError(
                    SMTPStage.MAIL_FROM.value,
                    f"MAIL FROM rejected: {reply.raw}",
                    details={"reply": reply.raw},
                )
        return reply

    async def rcpt_to(self, recipients: Sequence[str]) -> None:
        """Send RCPT TO for each recipient in order (250 each).

        The first rejection aborts the session; DATA is never reached.
        """
        with self._transition(
            SessionState.MAIL_FROM_ACCEPTED, SessionState.RECIPIENTS_ACCEPTED
        ):
            if not recipients:
                raise InvalidConfigurationError("At least one recipient is required")

            for recipient in recipients:
                reply = await self.exchange(f"RCPT TO:<{recipient}>", SMTPStage.RCPT_TO)
                if not reply.has_code(SMTPResponse.OK):
                    raise SendFailedError(
                        SMTPStage.RCPT_TO.value,
                        f"RCPT TO rejected for {recipient}: {reply.raw}",
                        address=recipient,
                        details={"reply": reply.raw},
                    )

    async def data(self) -> ReplyLine:
        """Send DATA (354)."""
        with self._transition(
            SessionState.RECIPIENTS_ACCEPTED, SessionState.DATA_ACCEPTED
        ):
            reply = await self.exchange("DATA", SMTPStage.DATA)
            if not reply.has_code(SMTPResponse.START_MAIL):
                raise SendFailedError(
                    SMTPStage.DATA.value,
                    f"DATA command rejected: {reply.raw}",
                    details={"reply": reply.raw},
                )
        return reply

    async def send_message(self, content: str) -> ReplyLine:
        """Transmit the composed message and its terminator (250)."""
        with self._transition(SessionState.DATA_ACCEPTED, SessionState.MESSAGE_SENT):
            logger.debug(
                "C: <message>", extra={"stage": SMTPStage.MESSAGE.value, "size": len(content)}
            )
            await self.connection.write_data(frame_data(content))
            reply = await self.connection.read_reply(SMTPStage.MESSAGE)
            logger.debug(f"S: {reply.raw}", extra={"stage": SMTPStage.MESSAGE.value})
            if not reply.has_code(SMTPResponse.OK):
                raise SendFailedError(
                    SMTPStage.MESSAGE.value,
                    f"Message rejected: {reply.raw}",
                    details={"reply": reply.raw},
                )
        return reply

    async def quit(self) -> None:
        """Send QUIT without waiting for the reply.

        Many servers close the connection before answering, so QUIT never
        fails the call.
        """
        if self.state not in (SessionState.AUTHENTICATED, SessionState.MESSAGE_SENT):
            raise SMTPProtocolError(
                f"Cannot QUIT from {self.state.name}",
                details={"state": self.state.name},
            )

        try:
            logger.debug("C: QUIT", extra={"stage": SMTPStage.QUIT.value})
            await self.connection.write_line("QUIT")
        except GlanceError as e:
            logger.debug(f"QUIT not delivered: {e}")

        self.state = SessionState.CLOSED
        self.history.append(SessionState.CLOSED)
