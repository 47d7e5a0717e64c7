"""账号监督者 - 单账号生命周期状态机"""

import asyncio
import functools
import hashlib
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from application.account.services.backoff_policy import BackoffPolicy
from application.account.services.credential_broker import CredentialBroker
from application.notification.services.notifier_bus import NotifierBus
from domain.account.entities.account import Account
from domain.account.value_objects.credentials import Credentials
from domain.account.value_objects.supervisor_state import SupervisorState
from domain.common.exceptions import (
    AuthExpiredError,
    AuthFailedError,
    FatalBackendError,
    SecretStoreError,
    TransientBackendError,
)
from domain.mail.services.mail_backend import BackendSession, MailBackend
from domain.mail.value_objects.poll_result import PollFailureKind, PollResult
from domain.notification.events.notification_events import (
    AccountDegradedEvent,
    AccountDisabledEvent,
    AccountErrorEvent,
    AccountLoggedOutEvent,
    NewMailEvent,
)
from domain.secrets.services.secret_store import SecretStore
from domain.secrets.value_objects.secret_blob import SecretBlob

T = TypeVar("T")


@dataclass(frozen=True)
class SupervisorSnapshot:
    """
    账号监督状态快照（供控制接口展示）

    Attributes:
        email: 账号邮箱
        backend: 后端名称
        state: 当前状态
        consecutive_failures: 连续临时失败次数
        retry_in: 距离下次重试的秒数（不在退避中为 None）
        last_error: 最近一次错误
        awaiting_credentials: 是否在等待凭据
    """

    email: str
    backend: str
    state: SupervisorState
    consecutive_failures: int
    retry_in: Optional[float]
    last_error: Optional[str]
    awaiting_credentials: bool


class AccountSupervisor:
    """
    账号监督者

    拥有单个账号的状态机，驱动认证、轮询、退避和重新认证，
    并把检测到的事件推送到 NotifierBus。

    状态迁移：
        UNAUTHENTICATED → AUTHENTICATING → IDLE ⇄ POLLING
        AUTHENTICATING / POLLING → BACKOFF_WAIT    临时错误，指数退避
        AUTHENTICATING / POLLING → REAUTH_REQUIRED 认证过期，请求新凭据
        REAUTH_REQUIRED → AUTHENTICATING           收到新凭据
        任意状态 → DISABLED                         致命错误

    并发保证：
    - 同一账号同一时刻最多一个认证/轮询操作在进行
    - 操作进行期间到达的 tick 直接丢弃，不排队
    - 看门狗超时后放弃等待的后端调用仍视为进行中，直到工作线程返回

    轮询/认证错误都在本类内部消化，不会影响其他账号或 Observer。
    """

    DEFAULT_POLL_TIMEOUT: float = 60.0  # 单次后端调用看门狗（秒）
    DEFAULT_DEGRADED_AFTER: int = 3  # 连续临时失败达到该次数报告降级

    def __init__(
        self,
        account: Account,
        backend: Optional[MailBackend],
        secret_store: SecretStore,
        notifier_bus: NotifierBus,
        credential_broker: CredentialBroker,
        backoff: BackoffPolicy,
        executor: Optional[Executor] = None,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        degraded_after: int = DEFAULT_DEGRADED_AFTER,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化账号监督者

        Args:
            account: 被监督的账号
            backend: 账号使用的邮件后端（None 表示后端名称无法识别，账号将被禁用）
            secret_store: 密钥存储
            notifier_bus: 通知总线
            credential_broker: 凭据经纪人
            backoff: 退避策略
            executor: 执行阻塞后端调用的线程池（None 使用事件循环默认线程池）
            poll_timeout: 单次后端调用的看门狗超时（秒）
            degraded_after: 连续临时失败多少次后报告账号降级
            clock: 单调时钟（测试时可注入）
            logger: 可选的日志记录器
        """
        self._account = account
        self._backend = backend
        self._secret_store = secret_store
        self._bus = notifier_bus
        self._broker = credential_broker
        self._backoff = backoff
        self._executor = executor
        self._poll_timeout = poll_timeout
        self._degraded_after = degraded_after
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

        self._state = SupervisorState.UNAUTHENTICATED
        self._session: Optional[BackendSession] = None
        self._material_digest: Optional[bytes] = None
        self._failures = 0
        self._retry_at: Optional[float] = None
        self._degraded_reported = False
        self._last_error: Optional[str] = None
        self._secret_error_reported = False

        self._credentials_request: Optional["asyncio.Future[Credentials]"] = None
        self._supplied_credentials: Optional[Credentials] = None
        self._retry_credentials: Optional[Credentials] = None

        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Future] = None
        self._closed = False
        self.wakeup = asyncio.Event()

    # ============ 属性 ============

    @property
    def account(self) -> Account:
        return self._account

    @property
    def email(self) -> str:
        return self._account.email

    @property
    def state(self) -> SupervisorState:
        """当前状态"""
        return self._state

    @property
    def consecutive_failures(self) -> int:
        """连续临时失败次数"""
        return self._failures

    @property
    def retry_at(self) -> Optional[float]:
        """下次重试的单调时钟时间（不在退避中为 None）"""
        return self._retry_at if self._state == SupervisorState.BACKOFF_WAIT else None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def has_session(self) -> bool:
        """是否持有活动会话"""
        return self._session is not None

    @property
    def is_busy(self) -> bool:
        """是否有未完成的操作（包括被看门狗放弃但线程仍在运行的后端调用）"""
        return self._lock.locked() or self._has_inflight_call()

    @property
    def awaiting_credentials(self) -> bool:
        """是否在等待外部凭据"""
        return self._credentials_request is not None and not self._credentials_request.done()

    def backoff_remaining(self) -> float:
        """距离退避结束的剩余秒数"""
        if self._state != SupervisorState.BACKOFF_WAIT or self._retry_at is None:
            return 0.0
        return max(0.0, self._retry_at - self._clock())

    def set_poll_interval(self, seconds: float) -> None:
        """更新轮询间隔（退避基础延迟随之变化）"""
        self._backoff.base = seconds

    def snapshot(self) -> SupervisorSnapshot:
        """获取状态快照"""
        remaining = self.backoff_remaining() if self._state == SupervisorState.BACKOFF_WAIT else None
        return SupervisorSnapshot(
            email=self._account.email,
            backend=self._account.backend,
            state=self._state,
            consecutive_failures=self._failures,
            retry_in=remaining,
            last_error=self._last_error,
            awaiting_credentials=self.awaiting_credentials,
        )

    # ============ 调度入口 ============

    async def tick(self) -> None:
        """
        一次调度机会

        由 Observer 按共享间隔调用。有操作在进行时直接返回（丢弃本次 tick）。
        """
        if self._closed:
            return
        if self._lock.locked() or self._has_inflight_call():
            self._logger.debug(f"[{self.email}] Tick dropped, operation still in flight")
            return

        async with self._lock:
            await self._step()

    async def _step(self) -> None:
        state = self._state

        if state == SupervisorState.DISABLED:
            return

        if self._backend is None:
            self._disable(f"Unknown backend '{self._account.backend}'")
            return

        if state == SupervisorState.BACKOFF_WAIT:
            if self.backoff_remaining() > 0:
                return
            if self._session is not None:
                await self._poll()
            else:
                await self._connect()
            return

        if state == SupervisorState.UNAUTHENTICATED:
            await self._connect()
            return

        if state == SupervisorState.REAUTH_REQUIRED:
            credentials = self._take_credentials()
            if credentials is not None:
                await self._authenticate(credentials)
            else:
                self._await_credentials()
            return

        if state == SupervisorState.IDLE:
            await self._poll()

    # ============ 凭据 ============

    def supply_credentials(self, credentials: Credentials) -> None:
        """
        提供外部凭据（带外履行）

        有未完成的凭据请求时通过 CredentialBroker 完成它，
        否则暂存，在下一次 tick 时使用。

        Args:
            credentials: 凭据
        """
        if self._state == SupervisorState.DISABLED:
            self._logger.warning(f"[{self.email}] Credentials ignored, account is disabled")
            return
        if not self._broker.fulfill(self.email, credentials):
            self._supplied_credentials = credentials
        self.wakeup.set()

    def _await_credentials(self) -> None:
        """确保有一个未完成的凭据请求"""
        if self._credentials_request is not None and not self._credentials_request.done():
            return
        request = self._broker.request_credentials(self._account)
        request.add_done_callback(self._on_credentials_ready)
        self._credentials_request = request

    def _on_credentials_ready(self, future: "asyncio.Future[Credentials]") -> None:
        if not future.cancelled():
            self.wakeup.set()

    def _take_credentials(self) -> Optional[Credentials]:
        """取出已到达的凭据（只取一次）"""
        if self._supplied_credentials is not None:
            credentials = self._supplied_credentials
            self._supplied_credentials = None
            return credentials

        request = self._credentials_request
        if request is not None and request.done():
            self._credentials_request = None
            if not request.cancelled():
                return request.result()
        return None

    # ============ 认证 ============

    async def _connect(self) -> None:
        """建立会话：优先使用外部凭据，其次从已保存的会话材料恢复，否则请求凭据"""
        credentials = self._take_credentials() or self._retry_credentials
        if credentials is not None:
            await self._authenticate(credentials)
            return

        if not self._secret_error_reported:
            blob = await self._load_blob()
            if blob is not None:
                await self._restore(blob)
                return

        if self._state == SupervisorState.BACKOFF_WAIT:
            self._transition(SupervisorState.UNAUTHENTICATED)
        self._await_credentials()

    async def _load_blob(self) -> Optional[SecretBlob]:
        try:
            return await self._call_store(self._secret_store.load, self.email)
        except SecretStoreError as e:
            self._report_secret_error(e)
            return None

    async def _restore(self, blob: SecretBlob) -> None:
        """从 SecretBlob 恢复会话"""
        try:
            material = await self._call_store(self._secret_store.open, blob)
        except SecretStoreError as e:
            self._report_secret_error(e)
            self._transition(SupervisorState.UNAUTHENTICATED)
            self._await_credentials()
            return

        self._transition(SupervisorState.AUTHENTICATING)
        self._logger.debug(f"[{self.email}] Restoring saved session")
        try:
            session = await self._call_backend(self._backend.restore, self.email, material)
        except asyncio.TimeoutError:
            self._on_transient(f"Session restore timed out after {self._poll_timeout}s")
        except TransientBackendError as e:
            self._on_transient(e.message)
        except (AuthExpiredError, AuthFailedError) as e:
            self._require_reauth(e.message)
        except FatalBackendError as e:
            self._disable(e.message)
        except Exception as e:
            self._logger.exception(f"[{self.email}] Unexpected error restoring session")
            self._on_transient(f"Unexpected error: {e}")
        else:
            self._material_digest = hashlib.sha256(material).digest()
            await self._on_session(session)

    async def _authenticate(self, credentials: Credentials) -> None:
        """使用外部凭据登录"""
        self._transition(SupervisorState.AUTHENTICATING)
        self._logger.info(f"[{self.email}] Authenticating with {self._backend.name}")
        try:
            session = await self._call_backend(
                self._backend.authenticate, self.email, credentials
            )
        except asyncio.TimeoutError:
            self._retry_credentials = credentials
            self._on_transient(f"Authentication timed out after {self._poll_timeout}s")
        except TransientBackendError as e:
            self._retry_credentials = credentials
            self._on_transient(e.message)
        except (AuthFailedError, AuthExpiredError) as e:
            self._retry_credentials = None
            self._last_error = e.message
            self._logger.warning(f"[{self.email}] Authentication rejected: {e.message}")
            self._bus.publish(AccountErrorEvent(account=self._account, error=e.message))
            self._require_reauth(e.message, notify=False)
        except FatalBackendError as e:
            self._retry_credentials = None
            self._disable(e.message)
        except Exception as e:
            self._logger.exception(f"[{self.email}] Unexpected error during authentication")
            self._retry_credentials = credentials
            self._on_transient(f"Unexpected error: {e}")
        else:
            self._retry_credentials = None
            self._material_digest = None
            self._secret_error_reported = False
            await self._on_session(session)
            self._logger.info(f"[{self.email}] Logged in")

    async def _on_session(self, session: BackendSession) -> None:
        self._session = session
        await self._persist_session()
        self._reset_failures()
        self._transition(SupervisorState.IDLE)

    async def _persist_session(self) -> None:
        """会话材料变化时重新加密保存"""
        if self._session is None:
            return
        try:
            material = self._session.export()
        except Exception as e:
            self._logger.warning(f"[{self.email}] Failed to export session: {e}")
            return

        digest = hashlib.sha256(material).digest()
        if digest == self._material_digest:
            return
        try:
            await self._call_store(self._secret_store.seal, self.email, material)
        except SecretStoreError as e:
            self._report_secret_error(e)
            return
        self._material_digest = digest
        self._logger.debug(f"[{self.email}] Session saved")

    # ============ 轮询 ============

    async def _poll(self) -> None:
        session = self._session
        if session is None or not session.is_valid():
            self._drop_session()
            self._require_reauth("Session is no longer valid")
            return

        self._transition(SupervisorState.POLLING)
        try:
            result = await self._call_backend(session.poll)
        except asyncio.TimeoutError:
            result = PollResult.transient(f"Poll timed out after {self._poll_timeout}s")
        except TransientBackendError as e:
            result = PollResult.transient(e.message)
        except (AuthExpiredError, AuthFailedError) as e:
            result = PollResult.auth_expired(e.message)
        except FatalBackendError as e:
            result = PollResult.fatal(e.message)
        except Exception as e:
            self._logger.exception(f"[{self.email}] Unexpected error during poll")
            result = PollResult.transient(f"Unexpected error: {e}")

        await self._handle_poll_result(result)

    async def _handle_poll_result(self, result: PollResult) -> None:
        if result.is_success:
            if result.has_new_messages:
                self._logger.info(
                    f"[{self.email}] {len(result.messages)} new message(s)"
                )
                self._bus.publish(NewMailEvent(account=self._account, messages=result.messages))
            else:
                self._logger.debug(f"[{self.email}] No new messages")
            await self._persist_session()
            self._reset_failures()
            self._transition(SupervisorState.IDLE)
            return

        failure = result.failure
        if failure.kind == PollFailureKind.TRANSIENT:
            self._on_transient(failure.reason)
        elif failure.kind == PollFailureKind.AUTH_EXPIRED:
            self._drop_session()
            self._require_reauth(failure.reason)
        else:
            self._disable(failure.reason)

    # ============ 失败处理 ============

    def _on_transient(self, reason: str) -> None:
        self._failures += 1
        delay = self._backoff.delay(self._failures)
        self._retry_at = self._clock() + delay
        self._last_error = reason
        self._transition(SupervisorState.BACKOFF_WAIT)
        self._logger.warning(
            f"[{self.email}] Transient failure ({self._failures} in a row): {reason}; "
            f"retrying in {delay:.1f}s"
        )

        if self._failures >= self._degraded_after:
            self._logger.warning(
                f"[{self.email}] Account degraded after {self._failures} consecutive failures"
            )
            if not self._degraded_reported:
                self._degraded_reported = True
                self._bus.publish(
                    AccountDegradedEvent(
                        account=self._account,
                        consecutive_failures=self._failures,
                        retry_in=delay,
                        reason=reason,
                    )
                )

    def _reset_failures(self) -> None:
        if self._failures:
            self._logger.info(f"[{self.email}] Recovered after {self._failures} failure(s)")
        self._failures = 0
        self._retry_at = None
        self._degraded_reported = False
        self._last_error = None

    def _require_reauth(self, reason: str, notify: bool = True) -> None:
        self._reset_failures()
        self._last_error = reason
        self._transition(SupervisorState.REAUTH_REQUIRED)
        self._logger.warning(f"[{self.email}] Logged out or session expired: {reason}")
        if notify:
            self._bus.publish(AccountLoggedOutEvent(account=self._account, reason=reason))
        self._await_credentials()

    def _disable(self, reason: str) -> None:
        self._drop_session()
        self._last_error = reason
        self._retry_at = None
        self._transition(SupervisorState.DISABLED)
        self._broker.cancel(self.email)
        self._logger.error(f"[{self.email}] Account disabled: {reason}")
        self._bus.publish(AccountDisabledEvent(account=self._account, reason=reason))

    def _report_secret_error(self, error: SecretStoreError) -> None:
        """密钥存储错误只报告一次，不静默重试"""
        self._last_error = error.message
        if self._secret_error_reported:
            return
        self._secret_error_reported = True
        self._logger.error(f"[{self.email}] Secret store error: {error.message}")
        self._bus.publish(AccountErrorEvent(account=self._account, error=error.message))

    def _drop_session(self) -> None:
        self._session = None
        self._material_digest = None

    def _transition(self, new_state: SupervisorState) -> None:
        if new_state != self._state:
            self._logger.debug(f"[{self.email}] {self._state.value} -> {new_state.value}")
            self._state = new_state

    # ============ 后端调用 ============

    async def _call_backend(self, func: Callable[..., T], *args: Any) -> T:
        """
        在线程池中执行阻塞的后端调用，并施加看门狗超时

        超时只放弃等待，不取消工作线程；该调用在线程返回前仍视为进行中。

        Raises:
            asyncio.TimeoutError: 看门狗超时
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, functools.partial(func, *args))
        future.add_done_callback(self._on_backend_call_done)
        self._inflight = future
        return await asyncio.wait_for(asyncio.shield(future), timeout=self._poll_timeout)

    def _on_backend_call_done(self, future: asyncio.Future) -> None:
        # 被看门狗放弃的调用结束后在这里取走异常
        if not future.cancelled() and future.exception() is not None:
            self._logger.debug(
                f"[{self.email}] Backend call finished with {type(future.exception()).__name__}"
            )
        if self._inflight is future:
            self._inflight = None
        if not self._lock.locked():
            self.wakeup.set()

    async def _call_store(self, func: Callable[..., T], *args: Any) -> T:
        """在线程池中执行密钥存储调用（可能持锁访问数据库），不阻塞事件循环"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    def _has_inflight_call(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    # ============ 生命周期 ============

    async def logout(self) -> None:
        """
        注销账号并删除保存的会话材料

        等待进行中的操作完成，然后回到 UNAUTHENTICATED，下一次 tick 重新请求凭据。
        """
        async with self._lock:
            await self._wait_inflight(self._poll_timeout)
            session = self._session
            self._drop_session()
            if session is not None:
                await self._logout_session(session)
            self._broker.cancel(self.email)
            self._credentials_request = None
            self._retry_credentials = None
            self._secret_error_reported = False
            self._reset_failures()
            if self._state != SupervisorState.DISABLED:
                self._transition(SupervisorState.UNAUTHENTICATED)
            try:
                await self._call_store(self._secret_store.purge, self.email)
            except SecretStoreError as e:
                self._report_secret_error(e)
                return
            self._logger.info(f"[{self.email}] Logged out and session deleted")

    async def close(self, timeout: Optional[float] = None, logout: bool = False) -> None:
        """
        停止监督

        等待进行中的后端调用到达安全停止点（不中途取消），然后释放会话。

        Args:
            timeout: 等待进行中调用的最长时间（None 使用看门狗超时）
            logout: 是否注销会话（账号被移除时为 True）
        """
        self._closed = True
        self._broker.cancel(self.email)
        async with self._lock:
            await self._wait_inflight(self._poll_timeout if timeout is None else timeout)
            session = self._session
            self._drop_session()
            if logout and session is not None:
                await self._logout_session(session)

    async def _wait_inflight(self, timeout: float) -> None:
        inflight = self._inflight
        if inflight is None or inflight.done():
            return
        self._logger.info(f"[{self.email}] Waiting for in-flight backend call to finish")
        try:
            await asyncio.wait_for(asyncio.shield(inflight), timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warning(
                f"[{self.email}] Backend call still running after {timeout}s, abandoning it"
            )
        except Exception as e:
            self._logger.debug(f"[{self.email}] In-flight call ended with error: {e}")

    async def _logout_session(self, session: BackendSession) -> None:
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(self._executor, session.logout),
                timeout=self._poll_timeout,
            )
        except Exception as e:
            self._logger.warning(f"[{self.email}] Failed to log out: {e}")
