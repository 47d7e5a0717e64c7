"""基于 Fernet 的密钥存储实现"""

import logging
import threading
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from domain.common.exceptions import (
    CorruptSecretError,
    SecretNotFoundError,
    SecretStoreError,
    WrongKeyError,
)
from domain.secrets.repositories.secret_blob_repository import SecretBlobRepository
from domain.secrets.services.key_provider import KeyProvider
from domain.secrets.services.secret_store import SecretStore
from domain.secrets.value_objects.master_key import MasterKey
from domain.secrets.value_objects.secret_blob import SecretBlob


class FernetSecretStore(SecretStore):
    """
    Fernet 密钥存储

    使用 Fernet（AES-128-CBC + HMAC-SHA256）对会话材料做认证加密，
    SecretBlob 记录加密时主密钥的指纹，用于识别已轮换的密钥。

    所有操作由一把可重入锁保护，可在多个工作线程中并发调用。
    """

    SCHEME: str = "fernet"

    def __init__(
        self,
        key_provider: KeyProvider,
        repository: SecretBlobRepository,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化密钥存储

        Args:
            key_provider: 主密钥提供者
            repository: 密文仓储
            logger: 可选的日志记录器
        """
        self._key_provider = key_provider
        self._repository = repository
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._key: Optional[MasterKey] = None
        self._fernet: Optional[Fernet] = None

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None

    def unlock(self) -> MasterKey:
        with self._lock:
            if self._key is not None:
                return self._key

            key = self._key_provider.load()
            if key is None:
                if self._repository.list_all():
                    self._logger.warning(
                        "Existing secrets found but a new encryption key was generated, "
                        "previous state will be lost"
                    )
                key = MasterKey.generate()
                self._key_provider.store(key)
                self._logger.info(
                    f"Generated new encryption key (key_id={key.key_id}, "
                    f"provider={self._key_provider.name})"
                )
            else:
                self._logger.info(
                    f"Encryption key loaded (key_id={key.key_id}, "
                    f"provider={self._key_provider.name})"
                )

            self._set_key(key)
            return key

    def seal(self, account_email: str, plaintext: bytes) -> SecretBlob:
        with self._lock:
            key, fernet = self._require_key()
            blob = SecretBlob(
                account_email=account_email,
                scheme=self.SCHEME,
                key_id=key.key_id,
                ciphertext=fernet.encrypt(plaintext),
            )
            self._repository.save(blob)
            return blob

    def open(self, blob: SecretBlob) -> bytes:
        with self._lock:
            key, fernet = self._require_key()

            if self._repository.get(blob.account_email) is None:
                raise SecretNotFoundError(
                    f"No stored secret for {blob.account_email}, it was purged"
                )
            if blob.scheme != self.SCHEME:
                raise CorruptSecretError(
                    f"Unsupported secret scheme '{blob.scheme}' for {blob.account_email}"
                )
            if blob.key_id != key.key_id:
                raise WrongKeyError(
                    f"Secret for {blob.account_email} was sealed with another key "
                    f"(key_id={blob.key_id})"
                )

            try:
                return fernet.decrypt(blob.ciphertext)
            except InvalidToken:
                raise CorruptSecretError(
                    f"Secret for {blob.account_email} failed authentication, "
                    f"data is corrupted or was tampered with"
                )

    def load(self, account_email: str) -> Optional[SecretBlob]:
        with self._lock:
            return self._repository.get(account_email)

    def purge(self, account_email: str) -> bool:
        with self._lock:
            removed = self._repository.remove(account_email)
            if removed:
                self._logger.info(f"[{account_email}] Stored secret purged")
            return removed

    def rotate_key(self) -> MasterKey:
        with self._lock:
            old_key, old_fernet = self._require_key()
            new_key = MasterKey.generate()
            rotator = MultiFernet([Fernet(new_key.material), old_fernet])

            rotated = []
            for blob in self._repository.list_all():
                if blob.key_id != old_key.key_id or blob.scheme != self.SCHEME:
                    self._logger.warning(
                        f"[{blob.account_email}] Skipping secret sealed with unknown key"
                    )
                    continue
                try:
                    ciphertext = rotator.rotate(blob.ciphertext)
                except InvalidToken:
                    self._logger.warning(
                        f"[{blob.account_email}] Skipping corrupted secret during rotation"
                    )
                    continue
                rotated.append(
                    SecretBlob(
                        account_email=blob.account_email,
                        scheme=self.SCHEME,
                        key_id=new_key.key_id,
                        ciphertext=ciphertext,
                    )
                )

            self._key_provider.store(new_key)
            for blob in rotated:
                self._repository.save(blob)
            self._set_key(new_key)

            self._logger.info(
                f"Encryption key rotated: {old_key.key_id} -> {new_key.key_id} "
                f"({len(rotated)} secret(s) re-sealed)"
            )
            return new_key

    def _set_key(self, key: MasterKey) -> None:
        self._key = key
        self._fernet = Fernet(key.material)

    def _require_key(self):
        if self._key is None or self._fernet is None:
            raise SecretStoreError("Secret store is locked, call unlock() first", code="SECRET_STORE_LOCKED")
        return self._key, self._fernet
