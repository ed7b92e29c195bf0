"""Message composer - frames an RFC 5322 shaped message for the DATA stage.

The composer deliberately does very little:

- Subject and display name are always RFC 2047 encoded (``=?UTF-8?B?...?=``),
  even for plain ASCII text
- The Date header uses fixed English day/month names, whatever the locale
- Headers are joined with CRLF and separated from the body by a blank line
- The body is inserted verbatim; no folding, escaping or multipart
"""

import base64
from datetime import datetime
from email.utils import format_datetime
from typing import List, Optional, Tuple

from .constants import CRLF
from .models import OutboundMessage

CONTENT_TYPE_PLAIN = "text/plain; charset=UTF-8"
CONTENT_TYPE_HTML = "text/html; charset=UTF-8"


def encode_header_word(text: str) -> str:
    """Encode text as a single RFC 2047 base64 encoded-word."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"=?UTF-8?B?{encoded}?="


def format_date(moment: Optional[datetime] = None) -> str:
    """Format a timestamp as ``EEE, dd MMM yyyy HH:mm:ss Z``.

    Naive datetimes are taken as local time.
    """
    moment = moment or datetime.now()
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return format_datetime(moment)


class MessageComposer:
    """Builds the complete outbound message for one sender address."""

    def __init__(self, sender: str):
        self.sender = sender

    def from_header(self, sender_name: Optional[str]) -> str:
        if sender_name:
            return f"{encode_header_word(sender_name)} <{self.sender}>"
        return self.sender

    def build_headers(
        self, message: OutboundMessage, date: Optional[datetime] = None
    ) -> List[Tuple[str, str]]:
        """Header fields in their fixed order."""
        return [
            ("From", self.from_header(message.sender_name)),
            ("To", ", ".join(message.recipients)),
            ("Subject", encode_header_word(message.subject)),
            ("Date", format_date(date)),
            ("MIME-Version", "1.0"),
            ("Content-Type", CONTENT_TYPE_HTML if message.is_html else CONTENT_TYPE_PLAIN),
            ("Content-Transfer-Encoding", "8bit"),
        ]

    def compose(self, message: OutboundMessage, date: Optional[datetime] = None) -> str:
        """Return headers, blank line and body as one CRLF-delimited string."""
        header_block = CRLF.join(
            f"{name}: {value}" for name, value in self.build_headers(message, date)
        )
        return header_block + CRLF + CRLF + message.body
