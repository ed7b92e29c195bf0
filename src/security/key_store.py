"""SMTP password storage in the system keyring.

Passwords are stored per sender account under the ``com.glance.app``
service, so the desktop app and this package share one keychain entry.
"""

import asyncio
from typing import Any, Callable, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from src.utils.errors import KeyStoreError, MissingCredentialsError
from src.utils.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "com.glance.app"


class KeyStore:
    """Async access to SMTP passwords kept in the system keyring.

    Backends may block on an unlock prompt, so every keyring call runs in a
    worker thread. Backend failures surface as KeyStoreError.
    """

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name

    async def _call(self, action: str, account: str, func: Callable[..., Any], *args) -> Any:
        try:
            return await asyncio.to_thread(func, self.service_name, account, *args)
        except PasswordDeleteError:
            raise
        except KeyringError as e:
            logger.error(
                f"Keyring {action} failed", extra={"account": account, "error": str(e)}
            )
            raise KeyStoreError(
                f"Could not {action} the SMTP password: {e}", details={"key": account}
            ) from e

    async def store(self, account: str, password: str) -> None:
        """Save the SMTP password for `account`, replacing any previous one."""
        await self._call("store", account, keyring.set_password, password)
        logger.info("SMTP password saved", extra={"account": account})

    async def retrieve(self, account: str) -> Optional[str]:
        """Return the stored SMTP password for `account`, or None."""
        password = await self._call("read", account, keyring.get_password)
        logger.debug(
            "SMTP password lookup", extra={"account": account, "found": bool(password)}
        )
        return password

    async def require(self, account: str) -> str:
        """Like retrieve(), but a missing password is an error.

        Raises:
            MissingCredentialsError: If no password is stored for `account`
            KeyStoreError: If the keyring backend fails
        """
        password = await self.retrieve(account)
        if not password:
            raise MissingCredentialsError(
                f"No SMTP password stored for {account}", details={"key": account}
            )
        return password

    async def delete(self, account: str) -> None:
        """Forget the SMTP password for `account`. Missing entries are ignored."""
        try:
            await self._call("delete", account, keyring.delete_password)
        except PasswordDeleteError:
            logger.debug("No SMTP password to delete", extra={"account": account})
            return
        logger.info("SMTP password deleted", extra={"account": account})


_keystore: Optional[KeyStore] = None


def get_keystore(service_name: str = SERVICE_NAME) -> KeyStore:
    """Shared KeyStore for the process."""
    global _keystore

    if _keystore is None:
        _keystore = KeyStore(service_name)

    return _keystore
