"""指数退避策略"""

import random
from typing import Optional

from domain.common.exceptions import ConfigurationError


class BackoffPolicy:
    """
    指数退避 + 全抖动

    第 n 次连续临时失败的等待上限为 min(base * multiplier^(n-1), base * max_factor)，
    实际等待时间在 [0, 上限] 内均匀随机，避免共享同一服务商的多个账号
    在同一时刻集中重试。
    """

    DEFAULT_MULTIPLIER: float = 2.0
    DEFAULT_MAX_FACTOR: float = 32.0

    def __init__(
        self,
        base: float,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_factor: float = DEFAULT_MAX_FACTOR,
        jitter: bool = True,
        rng: Optional[random.Random] = None,
    ):
        """
        初始化退避策略

        Args:
            base: 基础延迟（秒），通常等于轮询间隔
            multiplier: 每次失败的增长倍数
            max_factor: 上限相对 base 的倍数
            jitter: 是否启用全抖动
            rng: 随机数生成器（测试时可注入固定种子）
        """
        if multiplier < 1.0:
            raise ConfigurationError(f"Backoff multiplier must be >= 1, got {multiplier}")
        if max_factor < 1.0:
            raise ConfigurationError(f"Backoff max factor must be >= 1, got {max_factor}")
        self.base = base
        self._multiplier = multiplier
        self._max_factor = max_factor
        self._jitter = jitter
        self._rng = rng or random.Random()

    @property
    def base(self) -> float:
        """基础延迟（秒）"""
        return self._base

    @base.setter
    def base(self, value: float) -> None:
        if value <= 0:
            raise ConfigurationError(f"Backoff base must be positive, got {value}")
        self._base = float(value)

    @property
    def cap(self) -> float:
        """最大等待上限（秒）"""
        return self._base * self._max_factor

    @property
    def jitter(self) -> bool:
        return self._jitter

    def ceiling(self, attempt: int) -> float:
        """
        第 attempt 次连续失败的等待上限

        Args:
            attempt: 连续失败次数，从 1 开始

        Returns:
            等待上限（秒），随 attempt 单调不减，不超过 cap
        """
        if attempt < 1:
            return 0.0
        factor = 1.0
        # 逐步相乘，超过上限即停止，避免大指数溢出
        for _ in range(attempt - 1):
            factor *= self._multiplier
            if factor >= self._max_factor:
                return self.cap
        return min(self._base * factor, self.cap)

    def delay(self, attempt: int) -> float:
        """
        第 attempt 次连续失败后的实际等待时间

        Args:
            attempt: 连续失败次数，从 1 开始

        Returns:
            等待秒数
        """
        ceiling = self.ceiling(attempt)
        if not self._jitter:
            return ceiling
        return self._rng.uniform(0.0, ceiling)
