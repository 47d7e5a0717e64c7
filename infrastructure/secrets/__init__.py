"""
密钥存储基础设施模块
"""

from .fernet_secret_store import FernetSecretStore
from .keyring_key_provider import KeyringKeyProvider
from .plain_key_provider import PlainKeyProvider

__all__ = [
    "FernetSecretStore",
    "KeyringKeyProvider",
    "PlainKeyProvider",
]
