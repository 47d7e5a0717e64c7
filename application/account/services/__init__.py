"""账号应用服务模块"""

from application.account.services.account_supervisor import AccountSupervisor, SupervisorSnapshot
from application.account.services.backoff_policy import BackoffPolicy
from application.account.services.credential_broker import CredentialBroker

__all__ = [
    "AccountSupervisor",
    "SupervisorSnapshot",
    "BackoffPolicy",
    "CredentialBroker",
]
