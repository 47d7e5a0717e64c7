"""
密钥存储界限上下文

提供账号会话材料的加密存储模型，包括：
- SecretBlob 密文值对象
- MasterKey 主密钥值对象
- SecretStore / KeyProvider 能力接口
- SecretBlobRepository 仓储接口
"""

from domain.secrets.value_objects.secret_blob import SecretBlob
from domain.secrets.value_objects.master_key import MasterKey

__all__ = [
    "SecretBlob",
    "MasterKey",
]
