"""Observer 单元测试"""

import asyncio
import random
import threading
from typing import List

import pytest

from application.notification.services.notifier_bus import NotifierBus
from application.observer.observer_config import ObserverConfig
from application.observer.services.observer import Observer
from conftest import MemoryKeyProvider, ScriptedBackend, ScriptedSession
from domain.account.entities.account import Account
from domain.account.value_objects.supervisor_state import SupervisorState
from domain.common.exceptions import KeychainUnavailableError
from domain.mail.value_objects.poll_result import PollResult
from domain.notification.events.notification_events import ConfigErrorEvent, NotificationEvent
from domain.notification.services.notifier_sink import NotifierSink
from infrastructure.backends.registry import BackendRegistry
from infrastructure.secrets.fernet_secret_store import FernetSecretStore


class CollectingSink(NotifierSink):
    name = "collecting"

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def deliver(self, event: NotificationEvent) -> None:
        self.events.append(event)


class UnavailableKeyProvider(MemoryKeyProvider):
    def load(self):
        raise KeychainUnavailableError("No keyring backend")


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_observer(backend, secret_store, broker, sink):
    def _make(accounts, poll_interval: float = 0.05, **kwargs):
        config = ObserverConfig.of(accounts, poll_interval=poll_interval, poll_timeout=5.0)
        kwargs.setdefault("secret_store", secret_store)
        return Observer(
            config=config,
            backends=BackendRegistry([backend]),
            notifier_bus=NotifierBus([sink]),
            credential_broker=broker,
            **kwargs,
        )

    return _make


async def wait_until(predicate, timeout: float = 3.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


async def stop(observer: Observer, task: asyncio.Task) -> None:
    observer.request_shutdown()
    await asyncio.wait_for(task, timeout=5)


class TestObserverRun:
    """运行与关闭测试"""

    @pytest.mark.asyncio
    async def test_accounts_are_restored_and_polled(
        self, make_observer, backend, secret_store, account
    ):
        """测试启动后立即恢复会话，并按间隔轮询"""
        secret_store.seal(account.email, b"saved")
        observer = make_observer([account])

        task = asyncio.create_task(observer.run())
        await wait_until(lambda: backend.session.poll_calls >= 2)

        assert observer.is_running
        assert backend.restore_calls == [b"saved"]
        assert observer.get(account.email).state == SupervisorState.IDLE
        await stop(observer, task)
        assert not observer.is_running

    @pytest.mark.asyncio
    async def test_account_without_session_waits_for_credentials(
        self, make_observer, broker, backend, account, credentials
    ):
        """测试没有会话的账号请求凭据，提供后立即登录"""
        observer = make_observer([account], poll_interval=60.0)

        task = asyncio.create_task(observer.run())
        await wait_until(lambda: broker.is_pending(account.email))

        assert observer.supply_credentials(account.email, credentials)
        await wait_until(lambda: observer.get(account.email).state == SupervisorState.IDLE)

        assert backend.authenticate_calls == [credentials]
        await stop(observer, task)

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_inflight_poll(
        self, make_observer, backend, secret_store, account
    ):
        """测试关闭时不在轮询中途取消"""
        secret_store.seal(account.email, b"saved")
        backend.session.gate = threading.Event()
        observer = make_observer([account])

        task = asyncio.create_task(observer.run())
        await wait_until(lambda: backend.session.poll_calls == 1)

        observer.request_shutdown()
        await asyncio.sleep(0.05)
        assert not task.done()

        backend.session.gate.set()
        await asyncio.wait_for(task, timeout=5)

        assert backend.session.active == 0
        assert backend.session.poll_calls == 1

    @pytest.mark.asyncio
    async def test_unlock_failure_refuses_to_start(
        self, make_observer, blob_repository, sink, account
    ):
        """测试主密钥不可用时拒绝启动并报告一次"""
        store = FernetSecretStore(UnavailableKeyProvider(), blob_repository)
        observer = make_observer([account], secret_store=store)

        with pytest.raises(KeychainUnavailableError):
            await observer.run()

        assert not observer.is_running
        assert len([e for e in sink.events if isinstance(e, ConfigErrorEvent)]) == 1


class TestObserverReload:
    """重新加载配置测试"""

    @pytest.mark.asyncio
    async def test_removal_waits_for_inflight_poll_then_purges(
        self, make_observer, backend, secret_store, account
    ):
        """测试移除账号时等待进行中的轮询结束，然后清除保存的会话"""
        secret_store.seal(account.email, b"saved")
        backend.session.gate = threading.Event()
        observer = make_observer([account])

        task = asyncio.create_task(observer.run())
        await wait_until(lambda: backend.session.poll_calls == 1)

        reload = asyncio.create_task(observer.reload(ObserverConfig.of([], poll_interval=0.05)))
        await asyncio.sleep(0.05)
        assert not reload.done()
        assert secret_store.load(account.email) is not None

        backend.session.gate.set()
        result = await asyncio.wait_for(reload, timeout=5)

        assert result.removed == (account.email,)
        assert secret_store.load(account.email) is None
        assert observer.get(account.email) is None
        assert backend.session.logged_out
        assert backend.session.poll_calls == 1
        await stop(observer, task)

    @pytest.mark.asyncio
    async def test_added_account_starts_unauthenticated(
        self, make_observer, broker, account
    ):
        """测试新增账号从未认证状态开始并请求凭据"""
        observer = make_observer([])
        task = asyncio.create_task(observer.run())
        await wait_until(lambda: observer.is_running)

        result = await observer.reload(ObserverConfig.of([account], poll_interval=0.05))

        assert result.added == (account.email,)
        await wait_until(lambda: broker.is_pending(account.email))
        assert observer.accounts() == [account]
        await stop(observer, task)

    @pytest.mark.asyncio
    async def test_interval_change_is_applied(self, make_observer, account):
        """测试轮询间隔变化"""
        observer = make_observer([account], poll_interval=60.0)

        result = await observer.reload(ObserverConfig.of([account], poll_interval=30.0))

        assert result.interval_changed
        assert not result.added and not result.removed
        assert observer.poll_interval == 30.0

    @pytest.mark.asyncio
    async def test_changed_backend_replaces_supervisor(self, make_observer, account):
        """测试后端变更时先移除再新增"""
        observer = make_observer([account])
        old = observer.get(account.email)

        moved = Account(email=account.email, backend="Unknown")
        result = await observer.reload(ObserverConfig.of([moved], poll_interval=0.05))

        assert result.changed == (account.email,)
        new = observer.get(account.email)
        assert new is not old
        await new.tick()
        assert new.state == SupervisorState.DISABLED

    @pytest.mark.asyncio
    async def test_reload_revives_disabled_account(
        self, make_observer, backend, broker, secret_store, account
    ):
        """测试重新加载后被禁用的账号从未认证状态重新开始"""
        secret_store.seal(account.email, b"saved")
        backend.session = ScriptedSession(results=[PollResult.fatal("Account suspended")])
        observer = make_observer([account])
        disabled = observer.get(account.email)
        await disabled.tick()
        await disabled.tick()
        assert disabled.state == SupervisorState.DISABLED

        result = await observer.reload(ObserverConfig.of([account], poll_interval=0.05))

        assert result.changed == (account.email,)
        revived = observer.get(account.email)
        assert revived is not disabled
        assert revived.state == SupervisorState.UNAUTHENTICATED
        await revived.tick()
        assert broker.is_pending(account.email)

    @pytest.mark.asyncio
    async def test_unchanged_config_has_no_changes(self, make_observer, account):
        """测试配置未变化"""
        observer = make_observer([account])

        result = await observer.reload(ObserverConfig.of([account], poll_interval=0.05))

        assert not result.has_changes


class TestObserverAccounts:
    """账号操作测试"""

    @pytest.mark.asyncio
    async def test_backoff_jitter_spreads_accounts(
        self, make_observer, backend, secret_store
    ):
        """测试共享同一服务商的账号退避时间被抖动分散"""
        accounts = [Account("a@example.com", "Scripted"), Account("b@example.com", "Scripted")]
        for item in accounts:
            secret_store.seal(item.email, b"saved")
        backend.session = ScriptedSession(
            results=[PollResult.transient("Provider down"), PollResult.transient("Provider down")]
        )
        observer = make_observer(accounts, poll_interval=100.0, rng=random.Random(3))

        for item in accounts:
            supervisor = observer.get(item.email)
            await supervisor.tick()
            await supervisor.tick()
            assert supervisor.state == SupervisorState.BACKOFF_WAIT

        first, second = (observer.get(item.email).snapshot() for item in accounts)
        assert 0 <= first.retry_in <= 100.0
        assert 0 <= second.retry_in <= 100.0
        assert first.retry_in != second.retry_in

    @pytest.mark.asyncio
    async def test_unknown_account_operations(self, make_observer, credentials):
        """测试操作不存在的账号"""
        observer = make_observer([])

        assert not observer.supply_credentials("ghost@example.com", credentials)
        assert not await observer.logout_account("ghost@example.com")

    @pytest.mark.asyncio
    async def test_logout_account_purges_session(
        self, make_observer, secret_store, account
    ):
        """测试注销账号"""
        secret_store.seal(account.email, b"saved")
        observer = make_observer([account])
        supervisor = observer.get(account.email)
        await supervisor.tick()

        assert await observer.logout_account(account.email)

        assert supervisor.state == SupervisorState.UNAUTHENTICATED
        assert secret_store.load(account.email) is None
        assert supervisor.wakeup.is_set()
