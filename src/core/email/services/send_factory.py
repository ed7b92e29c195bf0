"""Factory for ReportSendService wired from configuration and keyring."""

from typing import Optional

from src.core.email.services.send import ReportSendService
from src.core.email.smtp.client import SMTPClient
from src.core.email.smtp.models import SMTPCredentials
from src.security.key_store import KeyStore, get_keystore
from src.utils.config_manager import ConfigManager
from src.utils.errors import InvalidConfigurationError
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


class ReportSendServiceFactory:
    """Factory for creating ReportSendService from persisted settings."""

    @classmethod
    async def create(
        cls,
        config: Optional[ConfigManager] = None,
        keystore: Optional[KeyStore] = None,
        require_enabled: bool = True,
    ) -> ReportSendService:
        """Create a service for the configured mail account.

        Args:
            config: ConfigManager instance (creates new if None)
            keystore: KeyStore holding the SMTP password (singleton if None)
            require_enabled: Refuse to build a service while reporting is
                switched off; pass False for a settings-screen connection test

        Returns:
            ReportSendService ready to use

        Raises:
            InvalidConfigurationError: If reporting is disabled or no sender is set
            MissingCredentialsError: If no password is stored for the sender
        """
        if config is None:
            config = ConfigManager()
        if keystore is None:
            keystore = get_keystore()

        configure_logging(config.get_logging_config())
        mail = config.get_mail_config()

        if require_enabled and not mail.is_enabled:
            raise InvalidConfigurationError("Daily report email is disabled")

        if not mail.sender_email:
            raise InvalidConfigurationError("Sender email address is not configured")

        password = await keystore.require(mail.sender_email)

        credentials = SMTPCredentials(
            host=mail.smtp_host,
            port=mail.smtp_port,
            username=mail.sender_email,
            password=password,
            use_tls=mail.use_tls,
        )
        client = SMTPClient(
            credentials,
            sender=mail.sender_email,
            connect_timeout=mail.connect_timeout,
            command_timeout=mail.command_timeout,
        )

        logger.debug(
            "Created ReportSendService",
            extra={"server": mail.smtp_host, "port": mail.smtp_port},
        )

        return ReportSendService(
            client, mail.recipient_emails, sender_name=mail.sender_name or None
        )
