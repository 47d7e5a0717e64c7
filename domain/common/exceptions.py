"""
领域异常体系

所有领域异常都携带机器可读的 code 和人类可读的 message。

分类：
- SecretStoreError: 密钥不可用或密文损坏（不自动重试，报告一次）
- BackendError: 轮询/认证错误（Transient 重试、AuthExpired 需要重新提供凭据、Fatal 禁用账号）
- SinkDeliveryError: 单个通知渠道投递失败（仅记录日志，绝不上抛）
- ConfigurationError: 配置无效
"""

from typing import Any, Optional


class DomainException(Exception):
    """领域异常基类"""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class InvalidValueObjectException(DomainException):
    """值对象校验失败"""

    code = "INVALID_VALUE_OBJECT"

    def __init__(self, value_object_type: str, value: Any, reason: str):
        self.value_object_type = value_object_type
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {value_object_type}: {reason}")


class ConfigurationError(DomainException):
    """配置错误"""

    code = "CONFIGURATION_ERROR"


# ============ 密钥存储 ============


class SecretStoreError(DomainException):
    """密钥存储错误基类"""

    code = "SECRET_STORE_ERROR"


class SecretIoError(SecretStoreError):
    """密钥文件读写失败"""

    code = "SECRET_IO_ERROR"


class InsecureSecretStorageError(SecretStoreError):
    """明文密钥存储未获运维人员明确同意"""

    code = "INSECURE_SECRET_STORAGE"


class KeychainUnavailableError(SecretStoreError):
    """系统密钥链不可用"""

    code = "KEYCHAIN_UNAVAILABLE"


class KeychainDeniedError(SecretStoreError):
    """系统密钥链拒绝访问"""

    code = "KEYCHAIN_DENIED"


class CorruptSecretError(SecretStoreError):
    """密文认证标签不匹配（数据被篡改或损坏）"""

    code = "SECRET_CORRUPT"


class WrongKeyError(SecretStoreError):
    """密文由其他（已轮换的）主密钥加密"""

    code = "SECRET_WRONG_KEY"


class SecretNotFoundError(SecretStoreError):
    """密文已被清除"""

    code = "SECRET_NOT_FOUND"


# ============ 邮件后端 ============


class BackendError(DomainException):
    """邮件后端错误基类"""

    code = "BACKEND_ERROR"


class TransientBackendError(BackendError):
    """临时性错误（网络、超时），按退避策略重试"""

    code = "BACKEND_TRANSIENT"


class AuthExpiredError(BackendError):
    """会话或二次验证已过期，需要重新提供凭据"""

    code = "BACKEND_AUTH_EXPIRED"


class AuthFailedError(BackendError):
    """认证被拒绝（密码错误、缺少二次验证码等）"""

    code = "BACKEND_AUTH_FAILED"


class FatalBackendError(BackendError):
    """账号配置错误或不受支持，需要修改配置"""

    code = "BACKEND_FATAL"


# ============ 通知 ============


class SinkDeliveryError(DomainException):
    """通知渠道投递失败"""

    code = "SINK_DELIVERY_FAILED"

    def __init__(self, sink: str, message: str):
        self.sink = sink
        super().__init__(f"[{sink}] {message}")
