"""明文文件主密钥提供者"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from domain.common.exceptions import (
    InsecureSecretStorageError,
    InvalidValueObjectException,
    SecretIoError,
)
from domain.secrets.services.key_provider import KeyProvider
from domain.secrets.value_objects.master_key import MasterKey


class PlainKeyProvider(KeyProvider):
    """
    明文文件主密钥提供者

    主密钥以 base64 文本保存在配置目录下的 encryption_key 文件中，
    目录权限 0700、文件权限 0600。任何能读取该文件的人都能解密所有会话，
    因此必须由运维人员在配置中显式同意（accept_plain_secrets_insecure）。
    """

    name = "plain"
    KEY_FILE_NAME: str = "encryption_key"

    def __init__(
        self,
        config_dir: Union[str, Path],
        accept_insecure: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化提供者

        Args:
            config_dir: 配置目录
            accept_insecure: 运维人员是否已同意明文存储的风险
            logger: 可选的日志记录器
        """
        self._config_dir = Path(config_dir)
        self._accept_insecure = accept_insecure
        self._logger = logger or logging.getLogger(__name__)

    @property
    def key_path(self) -> Path:
        return self._config_dir / self.KEY_FILE_NAME

    def load(self) -> Optional[MasterKey]:
        self._check_consent()

        path = self.key_path
        if not path.exists():
            return None

        try:
            material = path.read_bytes().strip()
        except OSError as e:
            raise SecretIoError(f"Failed to read encryption key {path}: {e}") from e

        try:
            return MasterKey(material=material)
        except InvalidValueObjectException as e:
            raise SecretIoError(f"Encryption key {path} is malformed: {e.reason}") from e

    def store(self, key: MasterKey) -> None:
        self._check_consent()

        path = self.key_path
        try:
            self._config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key.material)
            os.chmod(path, 0o600)
        except OSError as e:
            raise SecretIoError(f"Failed to write encryption key {path}: {e}") from e

        self._logger.warning(f"Encryption key stored unencrypted at {path}")

    def _check_consent(self) -> None:
        if not self._accept_insecure:
            raise InsecureSecretStorageError(
                "Plain unencrypted secrets storage, please consent to the risks by setting "
                "`accept_plain_secrets_insecure=true` in your config file"
            )
