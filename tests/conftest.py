"""测试共享的替身对象"""

import threading
from typing import Callable, List, Optional

import pytest

from application.account.services.credential_broker import CredentialBroker
from domain.account.entities.account import Account
from domain.account.value_objects.credentials import Credentials
from domain.mail.services.mail_backend import BackendSession, MailBackend
from domain.mail.value_objects.poll_result import PollResult
from domain.secrets.services.key_provider import KeyProvider
from domain.secrets.value_objects.master_key import MasterKey
from infrastructure.secrets.fernet_secret_store import FernetSecretStore
from infrastructure.secrets.repositories.in_memory_secret_blob_repository import (
    InMemorySecretBlobRepository,
)


class ScriptedSession(BackendSession):
    """
    按脚本返回结果的会话

    results 中的元素依次作为 poll() 的结果，Exception 会被抛出；
    脚本耗尽后返回空的成功结果。设置 gate 后 poll() 会阻塞到 gate 被设置。
    """

    def __init__(self, results=None, material: bytes = b"session-v1", valid: bool = True):
        self.results = list(results or [])
        self.material = material
        self.valid = valid
        self.gate: Optional[threading.Event] = None
        self.poll_calls = 0
        self.logged_out = False
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def poll(self) -> PollResult:
        with self._lock:
            self.poll_calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            outcome = self.results.pop(0) if self.results else PollResult.ok()
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            with self._lock:
                self.active -= 1

    def is_valid(self) -> bool:
        return self.valid

    def export(self) -> bytes:
        return self.material

    def logout(self) -> None:
        self.logged_out = True


class ScriptedBackend(MailBackend):
    """按脚本认证的后端"""

    name = "Scripted"

    def __init__(self, session: Optional[ScriptedSession] = None, auth_outcomes=None):
        self.session = session or ScriptedSession()
        self.auth_outcomes = list(auth_outcomes or [])
        self.restore_error: Optional[Exception] = None
        self.authenticate_calls: List[Credentials] = []
        self.restore_calls: List[bytes] = []
        self.on_authenticate: Optional[Callable[[], None]] = None

    def authenticate(self, email: str, credentials: Credentials) -> BackendSession:
        self.authenticate_calls.append(credentials)
        if self.on_authenticate is not None:
            self.on_authenticate()
        if self.auth_outcomes:
            outcome = self.auth_outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        return self.session

    def restore(self, email: str, material: bytes) -> BackendSession:
        self.restore_calls.append(material)
        if self.restore_error is not None:
            raise self.restore_error
        return self.session


class RecordingBus:
    """记录发布事件的通知总线替身"""

    def __init__(self):
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


class MemoryKeyProvider(KeyProvider):
    """内存主密钥提供者"""

    name = "memory"

    def __init__(self, key: Optional[MasterKey] = None):
        self.key = key
        self.store_calls = 0

    def load(self) -> Optional[MasterKey]:
        return self.key

    def store(self, key: MasterKey) -> None:
        self.store_calls += 1
        self.key = key


class FakeClock:
    """可手动推进的单调时钟"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def account() -> Account:
    return Account(email="alice@example.com", backend="Scripted")


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(password="hunter2", second_factor="123456")


@pytest.fixture
def key_provider() -> MemoryKeyProvider:
    return MemoryKeyProvider()


@pytest.fixture
def blob_repository() -> InMemorySecretBlobRepository:
    return InMemorySecretBlobRepository()


@pytest.fixture
def secret_store(key_provider, blob_repository) -> FernetSecretStore:
    """已解锁的密钥存储"""
    store = FernetSecretStore(key_provider=key_provider, repository=blob_repository)
    store.unlock()
    return store


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def broker() -> CredentialBroker:
    return CredentialBroker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
