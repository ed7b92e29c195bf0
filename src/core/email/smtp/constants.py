"""SMTP constants and configuration values."""

from enum import Enum

CRLF = "\r\n"

# Maximum bytes accepted for a single reply line before the server is
# considered broken (RFC 5321 limits reply lines to 512 octets)
MAX_REPLY_LINE = 8192


class SMTPResponse:
    """SMTP reply codes checked by the submission client."""

    SERVICE_READY = "220"  # Greeting
    OK = "250"  # Requested mail action okay, completed
    AUTH_SUCCESSFUL = "235"  # Authentication successful
    AUTH_CONTINUE = "334"  # Server challenge, send next AUTH line
    START_MAIL = "354"  # Start mail input; end with <CRLF>.<CRLF>


class SMTPStage(str, Enum):
    """Protocol stages, used to label failures."""

    CONNECT = "connect"
    GREETING = "greeting"
    EHLO = "ehlo"
    AUTH = "auth"
    MAIL_FROM = "mail_from_rejected"
    RCPT_TO = "rcpt_rejected"
    DATA = "data_rejected"
    MESSAGE = "message_rejected"
    QUIT = "quit"


class SessionState(Enum):
    """Protocol session states, in the order a send visits them."""

    INIT = 0
    GREETED = 1
    EHLO_SENT = 2
    AUTHENTICATED = 3
    MAIL_FROM_ACCEPTED = 4
    RECIPIENTS_ACCEPTED = 5
    DATA_ACCEPTED = 6
    MESSAGE_SENT = 7
    CLOSED = 8
    ERROR = 9


class Timeouts:
    """Timeout values for SMTP operations (in seconds)."""

    SMTP_CONNECT = 30.0  # Connect, including the implicit TLS handshake
    SMTP_COMMAND = 60.0  # Waiting for one reply (DATA can be slow)
    SMTP_CLOSE = 5.0  # Waiting for the socket to shut down


class SMTPPorts:
    """Standard SMTP port numbers."""

    SUBMISSION = 587  # STARTTLS (not supported by this client)
    SUBMISSION_SSL = 465  # Implicit TLS/SSL
    SMTP = 25  # Plain SMTP

    @classmethod
    def is_implicit_ssl(cls, port: int) -> bool:
        """Check if port conventionally uses implicit SSL.

        Args:
            port: SMTP port number

        Returns:
            True if implicit SSL, False otherwise
        """
        return port == cls.SUBMISSION_SSL
