"""
账号界限上下文

提供被监视邮箱账号的领域模型，包括：
- Account 账号标识
- Credentials 凭据值对象
- SupervisorState 账号监督状态枚举
"""

from domain.account.entities.account import Account
from domain.account.value_objects.credentials import Credentials
from domain.account.value_objects.supervisor_state import SupervisorState

__all__ = [
    "Account",
    "Credentials",
    "SupervisorState",
]
