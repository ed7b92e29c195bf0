"""Report send service - turns a daily report into one SMTP submission."""

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.core.email.smtp.client import SMTPClient
from src.core.models.report import DailyReport
from src.utils.errors import ErrorHandler, GlanceError, format_error_message
from src.utils.logging import async_log_call, get_logger

logger = get_logger(__name__)


@dataclass
class SendResult:
    """Outcome of a send or connection test, ready for display."""

    success: bool = False
    message: Optional[str] = None
    error: Optional[GlanceError] = None
    duration: float = 0.0

    @classmethod
    def succeeded(cls, duration: float = 0.0) -> "SendResult":
        return cls(success=True, duration=duration)

    @classmethod
    def failed(cls, error: GlanceError, duration: float = 0.0) -> "SendResult":
        return cls(
            success=False,
            message=format_error_message(error),
            error=error,
            duration=duration,
        )


class ReportSendService:
    """Sends daily reports to the configured recipients.

    A failed send is returned as a SendResult, never retried; the caller
    decides whether to try again.
    """

    def __init__(
        self,
        client: SMTPClient,
        recipients: Sequence[str],
        sender_name: Optional[str] = None,
    ):
        """Initialise report send service.

        Args:
            client: SMTPClient bound to the account's credentials
            recipients: Report recipients, in RCPT TO order
            sender_name: Display name for the From header
        """
        self._client = client
        self.recipients: List[str] = list(recipients)
        self.sender_name = sender_name

    @property
    def client(self) -> SMTPClient:
        return self._client

    @async_log_call
    async def send_email(self, subject: str, body: str, is_html: bool = True) -> SendResult:
        """Send one message to all recipients.

        Args:
            subject: Subject line
            body: Message body
            is_html: Whether the body is HTML

        Returns:
            SendResult with the outcome
        """
        start_time = time.time()

        try:
            await self._client.send(
                self.recipients,
                subject,
                body,
                sender_name=self.sender_name,
                is_html=is_html,
            )

        except GlanceError as e:
            ErrorHandler.handle(e, "Report email not sent", log_traceback=False)
            return SendResult.failed(e, duration=time.time() - start_time)

        return SendResult.succeeded(duration=time.time() - start_time)

    async def send_report(self, report: DailyReport) -> SendResult:
        """Render and send a daily report as HTML."""
        logger.info(
            "Sending daily report",
            extra={"date": report.date, "entries": len(report.entries)},
        )
        return await self.send_email(
            report.generate_subject(), report.generate_html_report(), is_html=True
        )

    async def test_connection(self) -> SendResult:
        """Verify server and credentials without sending anything."""
        start_time = time.time()

        try:
            await self._client.test_connection()

        except GlanceError as e:
            ErrorHandler.handle(e, "SMTP connection test failed", log_traceback=False)
            return SendResult.failed(e, duration=time.time() - start_time)

        return SendResult.succeeded(duration=time.time() - start_time)
