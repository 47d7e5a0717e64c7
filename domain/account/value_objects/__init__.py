"""账号值对象模块"""

from domain.account.value_objects.credentials import Credentials
from domain.account.value_objects.supervisor_state import SupervisorState

__all__ = [
    "Credentials",
    "SupervisorState",
]
