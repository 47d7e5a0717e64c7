"""Observer - 账号监督者集合的调度与生命周期管理"""

import asyncio
import logging
import random
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

from application.account.services.account_supervisor import (
    AccountSupervisor,
    SupervisorSnapshot,
)
from application.account.services.backoff_policy import BackoffPolicy
from application.account.services.credential_broker import CredentialBroker
from application.notification.services.notifier_bus import NotifierBus
from application.observer.observer_config import ObserverConfig
from application.observer.services.interval_clock import IntervalClock
from domain.account.entities.account import Account
from domain.account.value_objects.credentials import Credentials
from domain.account.value_objects.supervisor_state import SupervisorState
from domain.common.exceptions import SecretStoreError
from domain.mail.services.mail_backend import MailBackend
from domain.notification.events.notification_events import ConfigErrorEvent
from domain.secrets.services.secret_store import SecretStore


class BackendLookup(Protocol):
    """按名称查找邮件后端"""

    def get(self, name: str) -> Optional[MailBackend]:
        ...


@dataclass
class _AccountHandle:
    """单个账号的监督者及其调度任务"""

    supervisor: AccountSupervisor
    task: Optional[asyncio.Task] = None
    stopping: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass(frozen=True)
class ReloadResult:
    """
    重新加载配置的结果

    Attributes:
        added: 新增的账号
        removed: 移除的账号
        changed: 后端变更或已禁用（先移除再新增）的账号
        interval_changed: 轮询间隔是否变化
    """

    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()
    changed: Tuple[str, ...] = ()
    interval_changed: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed or self.interval_changed)


class Observer:
    """
    Observer

    管理所有账号的 AccountSupervisor：
    - 共享间隔时钟，启动后立即执行第一次 tick
    - 每个账号一个调度任务，账号之间互不阻塞
    - 账号忙碌期间到达的 tick 被丢弃
    - reload() 按邮箱地址增量应用新配置
    - 关闭时等待进行中的轮询完成，不在轮询中途取消

    阻塞的后端调用和密钥链调用在共享线程池中执行。
    """

    DEFAULT_MAX_WORKERS: int = 10
    SHUTDOWN_DRAIN_TIMEOUT: float = 5.0

    def __init__(
        self,
        config: ObserverConfig,
        backends: BackendLookup,
        secret_store: SecretStore,
        notifier_bus: NotifierBus,
        credential_broker: CredentialBroker,
        executor: Optional[Executor] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化 Observer

        Args:
            config: 初始配置快照
            backends: 后端注册表
            secret_store: 密钥存储
            notifier_bus: 通知总线
            credential_broker: 凭据经纪人
            executor: 共享线程池（None 时自行创建并在关闭时回收）
            max_workers: 自行创建线程池时的最大线程数
            rng: 退避抖动使用的随机数生成器（所有账号共享）
            logger: 可选的日志记录器
        """
        self._config = config
        self._backends = backends
        self._secret_store = secret_store
        self._bus = notifier_bus
        self._broker = credential_broker
        self._logger = logger or logging.getLogger(__name__)
        self._rng = rng or random.Random()

        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="mail-poll-",
        )

        self._clock = IntervalClock(config.poll_interval, logger=self._logger)
        self._handles: Dict[str, _AccountHandle] = {}
        self._reload_lock = asyncio.Lock()
        self._shutdown = asyncio.Event()
        self._running = False

        for account in config.accounts:
            self._handles[account.email] = _AccountHandle(self._new_supervisor(account))

    # ============ 查询 ============

    @property
    def is_running(self) -> bool:
        """检查 Observer 是否正在运行"""
        return self._running

    @property
    def poll_interval(self) -> float:
        """当前轮询间隔（秒）"""
        return self._clock.interval

    @property
    def config(self) -> ObserverConfig:
        return self._config

    def accounts(self) -> List[Account]:
        """当前被监视的账号"""
        return [handle.supervisor.account for handle in self._handles.values()]

    def get(self, email: str) -> Optional[AccountSupervisor]:
        """按邮箱获取账号监督者"""
        handle = self._handles.get(email)
        return handle.supervisor if handle else None

    def snapshots(self) -> List[SupervisorSnapshot]:
        """所有账号的状态快照"""
        return [handle.supervisor.snapshot() for handle in self._handles.values()]

    # ============ 运行 ============

    async def run(self) -> None:
        """
        运行 Observer 直到 request_shutdown()

        Raises:
            SecretStoreError: 主密钥无法获取（进程拒绝启动）
        """
        if self._running:
            self._logger.warning("Observer already running")
            return

        self._running = True
        self._shutdown.clear()
        await self._bus.start()

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self._secret_store.unlock)
        except SecretStoreError as e:
            self._logger.error(f"Failed to unlock secret store: {e.message}")
            self._bus.publish(ConfigErrorEvent(error=e.message))
            await self._bus.stop(timeout=self.SHUTDOWN_DRAIN_TIMEOUT)
            self._release_executor()
            self._running = False
            raise

        clock_task = asyncio.create_task(self._clock.run(), name="observer-clock")
        for handle in self._handles.values():
            self._start_runner(handle)

        self._logger.info(
            f"Observer started "
            f"(accounts={len(self._handles)}, "
            f"interval={self._clock.interval}s, "
            f"timeout={self._config.poll_timeout}s)"
        )

        try:
            await self._shutdown.wait()
        finally:
            await self._graceful_stop(clock_task)

    def request_shutdown(self) -> None:
        """请求关闭（可在信号处理器中调用）"""
        if not self._shutdown.is_set():
            self._logger.info("Shutdown requested")
            self._shutdown.set()

    async def _graceful_stop(self, clock_task: asyncio.Task) -> None:
        """等待进行中的 tick 完成，关闭监督者、通知总线和线程池"""
        handles = list(self._handles.values())
        for handle in handles:
            handle.stopping.set()
        await asyncio.gather(
            *(handle.task for handle in handles if handle.task is not None),
            return_exceptions=True,
        )
        for handle in handles:
            handle.task = None
            await handle.supervisor.close()

        clock_task.cancel()
        await asyncio.gather(clock_task, return_exceptions=True)

        await self._bus.stop(timeout=self.SHUTDOWN_DRAIN_TIMEOUT)
        self._release_executor()
        self._running = False
        self._logger.info("Observer stopped")

    def _release_executor(self) -> None:
        if self._owns_executor:
            # 被看门狗放弃的线程自然结束，不阻塞事件循环
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _start_runner(self, handle: _AccountHandle) -> None:
        handle.stopping.clear()
        handle.task = asyncio.create_task(
            self._run_account(handle),
            name=f"account-{handle.supervisor.email}",
        )

    async def _run_account(self, handle: _AccountHandle) -> None:
        """单账号调度循环：首次立即执行，之后等待 tick/唤醒/退避到期"""
        supervisor = handle.supervisor
        while not handle.stopping.is_set():
            supervisor.wakeup.clear()
            try:
                await supervisor.tick()
            except Exception:
                self._logger.exception(f"[{supervisor.email}] Unexpected error in tick")

            if handle.stopping.is_set():
                break
            # tick 完成之后才取下一次时钟信号，忙碌期间的 tick 被丢弃
            await self._wait_for_turn(handle, self._clock.next_tick())

    async def _wait_for_turn(self, handle: _AccountHandle, tick: asyncio.Event) -> None:
        supervisor = handle.supervisor
        waiters = [
            asyncio.create_task(tick.wait()),
            asyncio.create_task(supervisor.wakeup.wait()),
            asyncio.create_task(handle.stopping.wait()),
        ]
        remaining = supervisor.backoff_remaining()
        if remaining > 0:
            waiters.append(asyncio.create_task(asyncio.sleep(remaining)))

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

    def _new_supervisor(self, account: Account) -> AccountSupervisor:
        backoff = self._config.backoff
        backend = self._backends.get(account.backend)
        if backend is None:
            self._logger.error(f"[{account.email}] Unknown backend '{account.backend}'")
        return AccountSupervisor(
            account=account,
            backend=backend,
            secret_store=self._secret_store,
            notifier_bus=self._bus,
            credential_broker=self._broker,
            backoff=BackoffPolicy(
                base=self._config.poll_interval,
                multiplier=backoff.multiplier,
                max_factor=backoff.max_factor,
                jitter=backoff.jitter,
                rng=self._rng,
            ),
            executor=self._executor,
            poll_timeout=self._config.poll_timeout,
            degraded_after=backoff.degraded_after,
            logger=self._logger,
        )

    # ============ 重新加载 ============

    async def reload(self, config: ObserverConfig) -> ReloadResult:
        """
        增量应用新的配置快照

        - 新增账号：新建监督者，从 UNAUTHENTICATED 开始
        - 移除账号：等待进行中的 tick 完成后停止，注销会话、取消凭据请求并清除密文
        - 后端变更：先移除再新增
        - 已禁用的账号：即使配置未变也先移除再新增，从 UNAUTHENTICATED 重新开始
        - 轮询间隔变化：应用到时钟和之后的退避计算

        Args:
            config: 新的配置快照

        Returns:
            ReloadResult
        """
        async with self._reload_lock:
            old_accounts = self._config.accounts_by_email()
            new_accounts = config.accounts_by_email()

            removed = tuple(email for email in old_accounts if email not in new_accounts)
            changed = tuple(
                email
                for email, account in old_accounts.items()
                if email in new_accounts
                and (new_accounts[email] != account or self._is_disabled(email))
            )
            added = tuple(email for email in new_accounts if email not in old_accounts)
            interval_changed = config.poll_interval != self._config.poll_interval

            for email in removed + changed:
                await self._remove_account(email)

            self._config = config

            if interval_changed:
                self._clock.interval = config.poll_interval
                for handle in self._handles.values():
                    handle.supervisor.set_poll_interval(config.poll_interval)

            for email in changed + added:
                self._add_account(new_accounts[email])

            result = ReloadResult(
                added=added,
                removed=removed,
                changed=changed,
                interval_changed=interval_changed,
            )
            self._logger.info(
                f"Configuration reloaded: {len(added)} added, {len(removed)} removed, "
                f"{len(changed)} changed, interval={self._clock.interval}s"
            )
            return result

    def report_config_error(self, error: str) -> None:
        """报告配置错误（重新加载失败时调用，当前配置保持不变）"""
        self._logger.error(f"Configuration error: {error}")
        self._bus.publish(ConfigErrorEvent(error=error))

    def _is_disabled(self, email: str) -> bool:
        supervisor = self.get(email)
        return supervisor is not None and supervisor.state == SupervisorState.DISABLED

    def _add_account(self, account: Account) -> None:
        handle = _AccountHandle(self._new_supervisor(account))
        self._handles[account.email] = handle
        if self._running:
            self._start_runner(handle)
        self._logger.info(f"Account added: {account}")

    async def _remove_account(self, email: str) -> None:
        handle = self._handles.pop(email, None)
        if handle is None:
            return

        handle.stopping.set()
        if handle.task is not None:
            await asyncio.gather(handle.task, return_exceptions=True)
            handle.task = None

        supervisor = handle.supervisor
        await supervisor.close(logout=True)
        self._broker.cancel(email)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self._secret_store.purge, email)
        except SecretStoreError as e:
            self._logger.error(f"[{email}] Failed to purge stored session: {e.message}")
        self._logger.info(f"Account removed: {supervisor.account}")

    # ============ 凭据与会话 ============

    def supply_credentials(self, email: str, credentials: Credentials) -> bool:
        """
        为账号提供凭据

        Returns:
            True 如果账号存在
        """
        supervisor = self.get(email)
        if supervisor is None:
            return False
        supervisor.supply_credentials(credentials)
        return True

    async def logout_account(self, email: str) -> bool:
        """
        注销账号并删除保存的会话材料，账号回到 UNAUTHENTICATED

        Returns:
            True 如果账号存在
        """
        supervisor = self.get(email)
        if supervisor is None:
            return False
        await supervisor.logout()
        supervisor.wakeup.set()
        return True
