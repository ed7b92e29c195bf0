"""Value objects exchanged by the SMTP submission client."""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .constants import CRLF


@dataclass(frozen=True)
class SMTPCredentials:
    """Server address and login for a single call."""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    use_tls: bool = True


@dataclass(frozen=True)
class OutboundMessage:
    """A message ready to be composed and submitted."""

    recipients: tuple[str, ...]
    subject: str
    body: str
    sender_name: Optional[str] = None
    is_html: bool = False

    @classmethod
    def create(
        cls,
        recipients: Sequence[str],
        subject: str,
        body: str,
        sender_name: Optional[str] = None,
        is_html: bool = False,
    ) -> "OutboundMessage":
        """Build a message, freezing the recipient order as given."""
        if isinstance(recipients, str):
            recipients = [recipients]
        return cls(tuple(recipients), subject, body, sender_name, is_html)


@dataclass(frozen=True)
class ReplyLine:
    """A complete server reply.

    Multi-line replies (``250-first``, ``250 last``) are folded into one
    ReplyLine; ``lines`` keeps every line without its CRLF.
    """

    code: str
    lines: tuple[str, ...]

    @classmethod
    def parse(cls, lines: Sequence[str]) -> "ReplyLine":
        """Build a reply from raw lines; the code is the first line's prefix."""
        first = lines[0] if lines else ""
        return cls(code=first[:3], lines=tuple(lines))

    @property
    def text(self) -> str:
        """Reply text of the last line, without the status code."""
        return self.lines[-1][4:] if self.lines else ""

    @property
    def raw(self) -> str:
        """The reply exactly as received, lines joined by CRLF."""
        return CRLF.join(self.lines)

    def has_code(self, code: str) -> bool:
        return self.code == code

    def __str__(self) -> str:
        return self.raw
