"""SMTP client for submitting daily reports to an SMTP server"""

import ssl
import time
from typing import Optional, Sequence

from src.utils.errors import GlanceError, InvalidConfigurationError
from src.utils.logging import async_log_call, get_logger

from .auth import LoginAuthenticator
from .composer import MessageComposer
from .connection import SMTPConnection
from .constants import SMTPPorts, Timeouts
from .models import OutboundMessage, ReplyLine, SMTPCredentials
from .protocol import SMTPSession


def _has_line_break(value: str) -> bool:
    return "\r" in value or "\n" in value


class SMTPClient:
    """Asynchronous SMTP submission client.

    Every call opens its own connection, runs the whole conversation one
    step at a time and closes the connection before returning. Nothing is
    retried; the first failure is raised as a typed GlanceError.
    """

    def __init__(
        self,
        credentials: SMTPCredentials,
        sender: Optional[str] = None,
        client_id: Optional[str] = None,
        connect_timeout: float = Timeouts.SMTP_CONNECT,
        command_timeout: Optional[float] = Timeouts.SMTP_COMMAND,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        """Initialize SMTP client.

        Args:
            credentials: Server address and login
            sender: Envelope and From address (defaults to the username)
            client_id: Name announced with EHLO (defaults to the SMTP host)
            connect_timeout: Deadline for connecting, TLS included
            command_timeout: Deadline for each reply, None to wait forever
            ssl_context: Custom TLS context for implicit TLS
        """
        self.credentials = credentials
        self.sender = sender or credentials.username
        self.client_id = client_id or credentials.host
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._ssl_context = ssl_context
        self._log = get_logger(__name__, server=credentials.host, port=credentials.port)

    def _validate_credentials(self) -> None:
        """Reject incomplete settings before any network activity.

        Raises:
            InvalidConfigurationError: If a required setting is missing
        """
        creds = self.credentials
        missing = [
            name
            for name, value in (
                ("host", creds.host),
                ("username", creds.username),
                ("password", creds.password),
                ("sender", self.sender),
            )
            if not value or not str(value).strip()
        ]
        if missing:
            raise InvalidConfigurationError(
                f"Missing SMTP settings: {', '.join(missing)}",
                details={"missing": missing},
            )

        if not isinstance(creds.port, int) or not 0 < creds.port < 65536:
            raise InvalidConfigurationError(
                f"Invalid SMTP port: {creds.port}", details={"port": creds.port}
            )

        broken = [
            name
            for name, value in (("sender", self.sender), ("client_id", self.client_id))
            if _has_line_break(value)
        ]
        if broken:
            raise InvalidConfigurationError(
                f"SMTP settings must not contain line breaks: {', '.join(broken)}",
                details={"fields": broken},
            )

        if SMTPPorts.is_implicit_ssl(creds.port) != creds.use_tls:
            self._log.warning(
                "SMTP port and TLS setting look mismatched",
                extra={"use_tls": creds.use_tls},
            )

    @staticmethod
    def _validate_message(message: OutboundMessage) -> None:
        if not message.recipients:
            raise InvalidConfigurationError("At least one recipient is required")

        if any(not address or not address.strip() for address in message.recipients):
            raise InvalidConfigurationError(
                "Recipient addresses must not be blank",
                details={"recipients": list(message.recipients)},
            )

        if any(_has_line_break(address) for address in message.recipients):
            raise InvalidConfigurationError(
                "Recipient addresses must not contain line breaks",
                details={"recipients": [a for a in message.recipients if _has_line_break(a)]},
            )

    def _new_connection(self) -> SMTPConnection:
        return SMTPConnection(
            self.credentials.host,
            self.credentials.port,
            use_tls=self.credentials.use_tls,
            connect_timeout=self.connect_timeout,
            command_timeout=self.command_timeout,
            ssl_context=self._ssl_context,
        )

    async def _login(self, session: SMTPSession) -> None:
        await session.greet()
        await session.ehlo()
        await session.authenticate(
            LoginAuthenticator(self.credentials.username, self.credentials.password)
        )

    @async_log_call
    async def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        sender_name: Optional[str] = None,
        is_html: bool = False,
    ) -> ReplyLine:
        """Send one message to every recipient.

        Args:
            recipients: Recipient addresses, RCPT TO is issued in this order
            subject: Subject line (any Unicode)
            body: Plain text or HTML body, sent verbatim
            sender_name: Optional display name for the From header
            is_html: Send as text/html instead of text/plain

        Returns:
            The server's reply to the message data (250)

        Raises:
            InvalidConfigurationError: If settings or recipients are incomplete
            NetworkTimeoutError: If connecting or waiting for a reply times out
            TLSError: If TLS negotiation fails
            ConnectionFailedError: If the server cannot be reached or hangs up
            UnexpectedReplyError: If the greeting or EHLO is refused
            AuthenticationFailedError: If AUTH LOGIN is refused
            SendFailedError: If the sender, a recipient, DATA or the message is refused
        """
        message = OutboundMessage.create(recipients, subject, body, sender_name, is_html)
        self._validate_credentials()
        self._validate_message(message)

        send_start = time.time()
        self._log.info(
            "Sending email",
            extra={
                "recipients": len(message.recipients),
                "subject": subject[:50],
            },
        )

        try:
            async with self._new_connection() as connection:
                session = SMTPSession(connection, self.client_id)
                await self._login(session)
                await session.mail_from(self.sender)
                await session.rcpt_to(message.recipients)
                await session.data()
                reply = await session.send_message(
                    MessageComposer(self.sender).compose(message)
                )
                await session.quit()

        except GlanceError as e:
            self._log.error(
                "Failed to send email",
                extra={
                    "error_type": e.__class__.__name__,
                    "error": e.message,
                    "duration_seconds": round(time.time() - send_start, 2),
                },
            )
            raise

        self._log.info(
            "Email sent successfully",
            extra={
                "recipients": len(message.recipients),
                "duration_seconds": round(time.time() - send_start, 2),
            },
        )
        return reply

    @async_log_call
    async def test_connection(self) -> bool:
        """Check server reachability and credentials without sending mail.

        Runs greeting, EHLO and AUTH LOGIN, then QUIT. MAIL FROM, RCPT TO
        and DATA are never issued.

        Returns:
            True when the server accepted the login

        Raises:
            GlanceError: The same typed errors as send(), up to authentication
        """
        self._validate_credentials()

        try:
            async with self._new_connection() as connection:
                session = SMTPSession(connection, self.client_id)
                await self._login(session)
                await session.quit()

        except GlanceError as e:
            self._log.warning(
                "SMTP connection test failed",
                extra={
                    "error_type": e.__class__.__name__,
                    "error": e.message,
                },
            )
            raise

        self._log.info("SMTP connection test passed")
        return True
