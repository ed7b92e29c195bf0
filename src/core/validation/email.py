"""Email address validation utilities."""

import re


class EmailValidator:
    """Validate email addresses entered in the mail settings"""

    PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

    @staticmethod
    def is_valid_email(email_address: str) -> bool:
        """Validate email address format"""
        if not email_address or not isinstance(email_address, str):
            return False

        return bool(EmailValidator.PATTERN.match(email_address.strip()))
