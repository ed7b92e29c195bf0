"""Centralized error definitions for the Glance report mailer."""

from enum import Enum
from typing import Any, Dict, Optional

from src.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    CONFIGURATION = "configuration"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    PROTOCOL = "protocol"
    FILE_SYSTEM = "file_system"
    UNKNOWN = "unknown"


## Custom Exceptions


class GlanceError(Exception):
    """Base exception for all Glance errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise GlanceError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


## Configuration Errors


class ConfigurationError(GlanceError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class InvalidConfigurationError(ConfigurationError):
    """Mail settings are incomplete; raised before any network activity."""

    user_message = "Mail settings are incomplete, check the server, account and recipients"


class MissingConfigError(ConfigurationError):
    """Exception for unknown configuration keys."""

    user_message = "Missing configuration settings"


class ConfigFileError(ConfigurationError):
    """Exception for unreadable or malformed configuration files."""

    user_message = "The configuration file is invalid"


## Network Errors


class NetworkError(GlanceError):
    """Base exception for transport-level errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class ConnectionFailedError(NetworkError):
    """The TCP connection could not be established or was lost."""

    user_message = "Could not reach the mail server, check your network and the server address"

    def __init__(self, reason: str, details: Dict[str, Any] | None = None):
        self.reason = reason
        super().__init__(f"Connection failed: {reason}", details)


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    user_message = "The connection to the mail server timed out"


class TLSError(NetworkError):
    """Exception for TLS negotiation failures."""

    user_message = "Secure (TLS/SSL) connection to the mail server failed, check the port and TLS setting"


## Authentication Errors


class AuthenticationError(GlanceError):
    """Base exception for authentication-related errors."""

    category = ErrorCategory.AUTHENTICATION
    user_message = "An authentication error occurred"


class AuthenticationFailedError(AuthenticationError):
    """The server did not accept the AUTH LOGIN exchange."""

    user_message = (
        "SMTP authentication failed, check the email address and use an "
        "app-specific password if your provider requires one"
    )


class MissingCredentialsError(AuthenticationError):
    """Exception for missing login credentials."""

    user_message = "Email credentials not configured"


class KeyStoreError(AuthenticationError):
    """Exception for credential store failures."""

    user_message = "A key store error occurred"


## Protocol Errors


class SMTPProtocolError(GlanceError):
    """Base exception for SMTP conversation errors."""

    category = ErrorCategory.PROTOCOL
    user_message = "The mail server returned an unexpected response"


class UnexpectedReplyError(SMTPProtocolError):
    """A handshake reply did not carry the required status code."""

    def __init__(
        self, stage: str, raw_reply: str, details: Dict[str, Any] | None = None
    ):
        self.stage = stage
        self.raw_reply = raw_reply
        details = {"stage": stage, "reply": raw_reply, **(details or {})}
        super().__init__(f"Unexpected server reply during {stage}: {raw_reply}", details)


class SendFailedError(SMTPProtocolError):
    """The server rejected the sender, a recipient or the message."""

    user_message = "The mail server rejected the message or one of its recipients"

    def __init__(
        self,
        stage: str,
        detail: str,
        address: Optional[str] = None,
        details: Dict[str, Any] | None = None,
    ):
        self.stage = stage
        self.detail = detail
        self.address = address
        details = {"stage": stage, **(details or {})}
        if address is not None:
            details["address"] = address
        super().__init__(detail, details)


## File System Errors


class FileSystemError(GlanceError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    user_message = "A file system error occurred"


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Handle errors with logging and user-friendly message."""
        if isinstance(error, GlanceError):
            _get_logger().error(f"{context}: {error.message}", extra=error.details)
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    if isinstance(error, GlanceError):
        return error.user_message
    else:
        return "An unexpected error occurred - check logs for details."
