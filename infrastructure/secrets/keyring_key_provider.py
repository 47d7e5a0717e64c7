"""系统密钥链主密钥提供者"""

import logging
from typing import Optional

import keyring
from keyring.errors import InitError, KeyringError, NoKeyringError

from domain.common.exceptions import (
    InvalidValueObjectException,
    KeychainDeniedError,
    KeychainUnavailableError,
    SecretIoError,
)
from domain.secrets.services.key_provider import KeyProvider
from domain.secrets.value_objects.master_key import MasterKey


class KeyringKeyProvider(KeyProvider):
    """
    系统密钥链主密钥提供者

    通过 keyring 库把主密钥保存在操作系统的密钥链中（Secret Service、
    macOS Keychain、Windows Credential Locker 等）。
    """

    name = "keyring"
    SERVICE_NAME: str = "dev.lbeernaert.you-have-mail-cli"
    USERNAME: str = "YouHaveMailCLI"

    def __init__(
        self,
        service_name: str = SERVICE_NAME,
        username: str = USERNAME,
        logger: Optional[logging.Logger] = None,
    ):
        self._service_name = service_name
        self._username = username
        self._logger = logger or logging.getLogger(__name__)

    def load(self) -> Optional[MasterKey]:
        try:
            value = keyring.get_password(self._service_name, self._username)
        except (NoKeyringError, InitError) as e:
            raise KeychainUnavailableError(f"No usable system keychain: {e}") from e
        except KeyringError as e:
            raise KeychainDeniedError(f"System keychain access failed: {e}") from e

        if value is None:
            return None

        try:
            return MasterKey(material=value.encode("ascii"))
        except (InvalidValueObjectException, UnicodeEncodeError) as e:
            raise SecretIoError(f"Encryption key in system keychain is malformed: {e}") from e

    def store(self, key: MasterKey) -> None:
        try:
            keyring.set_password(
                self._service_name,
                self._username,
                key.material.decode("ascii"),
            )
        except (NoKeyringError, InitError) as e:
            raise KeychainUnavailableError(f"No usable system keychain: {e}") from e
        except KeyringError as e:
            raise KeychainDeniedError(f"System keychain access failed: {e}") from e

        self._logger.info(f"Encryption key stored in system keychain ({self._service_name})")
