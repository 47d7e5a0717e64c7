"""Observer 配置快照"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from domain.account.entities.account import Account
from domain.common.exceptions import ConfigurationError


@dataclass(frozen=True)
class BackoffSettings:
    """
    退避参数

    Attributes:
        multiplier: 每次失败的增长倍数
        max_factor: 上限相对轮询间隔的倍数
        jitter: 是否启用全抖动
        degraded_after: 连续失败多少次后报告降级
    """

    multiplier: float = 2.0
    max_factor: float = 32.0
    jitter: bool = True
    degraded_after: int = 3


@dataclass(frozen=True)
class ObserverConfig:
    """
    不可变的 Observer 配置快照

    reload 时整体替换，Observer 按邮箱地址比较新旧快照。

    Attributes:
        accounts: 被监视的账号（邮箱地址唯一）
        poll_interval: 共享轮询间隔（秒）
        poll_timeout: 单次后端调用的看门狗超时（秒）
        backoff: 退避参数
    """

    accounts: Tuple[Account, ...] = ()
    poll_interval: float = 300.0
    poll_timeout: float = 60.0
    backoff: BackoffSettings = field(default_factory=BackoffSettings)

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", tuple(self.accounts))
        if self.poll_interval <= 0:
            raise ConfigurationError(
                f"Poll interval must be positive, got {self.poll_interval}"
            )
        if self.poll_timeout <= 0:
            raise ConfigurationError(
                f"Poll timeout must be positive, got {self.poll_timeout}"
            )
        if self.backoff.degraded_after < 1:
            raise ConfigurationError(
                f"degraded_after must be >= 1, got {self.backoff.degraded_after}"
            )

        seen = set()
        for account in self.accounts:
            if account.email in seen:
                raise ConfigurationError(f"Duplicate account '{account.email}'")
            seen.add(account.email)

    @classmethod
    def of(
        cls,
        accounts: Iterable[Account],
        poll_interval: float = 300.0,
        poll_timeout: float = 60.0,
        backoff: Optional[BackoffSettings] = None,
    ) -> "ObserverConfig":
        return cls(
            accounts=tuple(accounts),
            poll_interval=poll_interval,
            poll_timeout=poll_timeout,
            backoff=backoff or BackoffSettings(),
        )

    def accounts_by_email(self) -> Dict[str, Account]:
        return {account.email: account for account in self.accounts}
