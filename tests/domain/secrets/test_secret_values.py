"""Tests for MasterKey and SecretBlob value objects"""

import pytest
from cryptography.fernet import Fernet

from domain.common.exceptions import InvalidValueObjectException
from domain.secrets.value_objects.master_key import MasterKey
from domain.secrets.value_objects.secret_blob import SecretBlob


class TestMasterKey:
    """MasterKey 值对象测试"""

    def test_generate_creates_valid_fernet_key(self):
        """测试生成的密钥可用于 Fernet"""
        key = MasterKey.generate()

        Fernet(key.material)
        assert len(key.key_id) == 16

    def test_key_id_is_stable(self):
        """测试同一密钥的指纹稳定，不同密钥指纹不同"""
        material = Fernet.generate_key()

        assert MasterKey(material).key_id == MasterKey(material).key_id
        assert MasterKey(material).key_id != MasterKey.generate().key_id

    def test_invalid_material_raises_error(self):
        """测试格式错误的密钥"""
        with pytest.raises(InvalidValueObjectException) as exc_info:
            MasterKey(b"too-short")

        assert "Invalid encryption key" in exc_info.value.message

    def test_repr_does_not_expose_material(self):
        key = MasterKey.generate()

        assert key.material.decode() not in repr(key)
        assert str(key) == "[REDACTED]"


class TestSecretBlob:
    """SecretBlob 值对象测试"""

    def test_repr_does_not_expose_ciphertext(self):
        """测试字符串表示不暴露密文"""
        blob = SecretBlob("alice@example.com", "fernet", "abc", b"opaque-bytes")

        assert "opaque-bytes" not in repr(blob)
        assert "alice@example.com" in repr(blob)
        assert str(blob) == "[ENCRYPTED]"

    def test_empty_ciphertext_raises_error(self):
        with pytest.raises(InvalidValueObjectException):
            SecretBlob("alice@example.com", "fernet", "abc", b"")

    def test_missing_account_raises_error(self):
        with pytest.raises(InvalidValueObjectException):
            SecretBlob("", "fernet", "abc", b"opaque-bytes")
