"""SMTP mail submission.

A small SMTP client written directly against an asyncio byte stream
(optionally implicit TLS, e.g. port 465):

- SMTPConnection: Transport setup, connect deadline, line I/O
- SMTPSession: Command sequencing and reply-code checks
- LoginAuthenticator: AUTH LOGIN exchange
- MessageComposer: Headers (RFC 2047 subject/display name) and body
- SMTPClient: send() and test_connection() entry points

Usage
-----

    >>> from src.core.email.smtp import SMTPClient, SMTPCredentials
    >>>
    >>> credentials = SMTPCredentials(
    ...     host="smtp.example.com",
    ...     port=465,
    ...     username="me@example.com",
    ...     password="app-password",
    ...     use_tls=True,
    ... )
    >>> client = SMTPClient(credentials)
    >>> await client.send(
    ...     ["boss@example.com"],
    ...     subject="日报",
    ...     body="<html>...</html>",
    ...     is_html=True,
    ... )

For report sending with configuration and keyring lookup, use
ReportSendServiceFactory from the services layer.
"""

from .auth import LoginAuthenticator
from .client import SMTPClient
from .composer import MessageComposer, encode_header_word
from .connection import ConnectionState, SMTPConnection
from .constants import SessionState, SMTPStage
from .models import OutboundMessage, ReplyLine, SMTPCredentials
from .protocol import SMTPSession

__all__ = [
    "ConnectionState",
    "LoginAuthenticator",
    "MessageComposer",
    "OutboundMessage",
    "ReplyLine",
    "SMTPClient",
    "SMTPConnection",
    "SMTPCredentials",
    "SMTPSession",
    "SMTPStage",
    "SessionState",
    "encode_header_word",
]
