"""AUTH LOGIN authenticator."""

import base64
from typing import Awaitable, Callable, Optional

from src.utils.errors import AuthenticationFailedError
from src.utils.logging import get_logger

from .constants import SMTPResponse, SMTPStage
from .models import ReplyLine

logger = get_logger(__name__)

# (command line, stage, text to log instead of the line) -> reply
Exchange = Callable[[str, SMTPStage, Optional[str]], Awaitable[ReplyLine]]


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class LoginAuthenticator:
    """Drives the three-step AUTH LOGIN exchange.

    A rejected password and a malformed challenge both surface as
    AuthenticationFailedError; the server gives no finer signal.
    """

    def __init__(self, username: str, password: str):
        self.username = username
        self._password = password

    async def authenticate(self, exchange: Exchange) -> ReplyLine:
        """Log in over an EHLO'd session.

        Args:
            exchange: Writes one line and returns the matching reply

        Returns:
            The final 235 reply

        Raises:
            AuthenticationFailedError: If any step gets an unexpected reply
        """
        steps = [
            ("AUTH LOGIN", None, SMTPResponse.AUTH_CONTINUE),
            (_b64(self.username), "[username]", SMTPResponse.AUTH_CONTINUE),
            (_b64(self._password), "[REDACTED]", SMTPResponse.AUTH_SUCCESSFUL),
        ]

        reply = None
        for step, (line, log_as, expected) in enumerate(steps, start=1):
            reply = await exchange(line, SMTPStage.AUTH, log_as)
            if not reply.has_code(expected):
                logger.warning(
                    "SMTP authentication failed",
                    extra={"step": step, "code": reply.code, "username": self.username},
                )
                raise AuthenticationFailedError(
                    f"SMTP authentication failed: {reply.raw}",
                    details={"step": step, "reply": reply.raw},
                )

        logger.debug("SMTP authentication succeeded", extra={"username": self.username})
        return reply
