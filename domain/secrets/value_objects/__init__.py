"""密钥值对象模块"""

from domain.secrets.value_objects.secret_blob import SecretBlob
from domain.secrets.value_objects.master_key import MasterKey

__all__ = [
    "SecretBlob",
    "MasterKey",
]
