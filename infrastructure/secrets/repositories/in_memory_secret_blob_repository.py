"""内存密文仓储（测试和试运行使用）"""

import threading
from typing import Dict, List, Optional

from domain.secrets.repositories.secret_blob_repository import SecretBlobRepository
from domain.secrets.value_objects.secret_blob import SecretBlob


class InMemorySecretBlobRepository(SecretBlobRepository):
    """内存密文仓储，进程退出后数据丢失"""

    def __init__(self):
        self._blobs: Dict[str, SecretBlob] = {}
        self._lock = threading.Lock()

    def get(self, account_email: str) -> Optional[SecretBlob]:
        with self._lock:
            return self._blobs.get(account_email)

    def save(self, blob: SecretBlob) -> None:
        with self._lock:
            self._blobs[blob.account_email] = blob

    def remove(self, account_email: str) -> bool:
        with self._lock:
            return self._blobs.pop(account_email, None) is not None

    def list_all(self) -> List[SecretBlob]:
        with self._lock:
            return [self._blobs[email] for email in sorted(self._blobs)]
