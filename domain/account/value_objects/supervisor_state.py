"""账号监督状态枚举"""

from enum import Enum


class SupervisorState(str, Enum):
    """
    账号监督状态

    状态迁移：
        UNAUTHENTICATED → AUTHENTICATING → IDLE ⇄ POLLING
        AUTHENTICATING / POLLING → BACKOFF_WAIT   （临时错误）
        AUTHENTICATING / POLLING → REAUTH_REQUIRED（认证过期）
        REAUTH_REQUIRED → AUTHENTICATING          （收到新凭据）
        任意状态 → DISABLED                        （致命错误，重新加载配置前不再调度）
    """

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    IDLE = "idle"
    POLLING = "polling"
    BACKOFF_WAIT = "backoff_wait"
    REAUTH_REQUIRED = "reauth_required"
    DISABLED = "disabled"

    @property
    def is_busy(self) -> bool:
        """是否有未完成的后端操作"""
        return self in (SupervisorState.AUTHENTICATING, SupervisorState.POLLING)

    @property
    def is_terminal(self) -> bool:
        """是否为终态（需要重新加载配置）"""
        return self == SupervisorState.DISABLED
