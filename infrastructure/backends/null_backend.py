"""空后端 - 用于测试和试运行"""

import json
import logging
from typing import Optional

from domain.account.value_objects.credentials import Credentials
from domain.common.exceptions import AuthExpiredError
from domain.mail.services.mail_backend import BackendSession, MailBackend
from domain.mail.value_objects.poll_result import PollResult


class NullSession(BackendSession):
    """永远没有新邮件的会话"""

    def __init__(self, email: str, logger: Optional[logging.Logger] = None):
        self._email = email
        self._logger = logger or logging.getLogger(__name__)
        self._valid = True

    def poll(self) -> PollResult:
        self._logger.debug(f"[{self._email}] Null backend poll")
        return PollResult.ok()

    def is_valid(self) -> bool:
        return self._valid

    def export(self) -> bytes:
        return json.dumps({"backend": NullBackend.name, "email": self._email}).encode("utf-8")

    def logout(self) -> None:
        self._valid = False


class NullBackend(MailBackend):
    """
    空后端

    接受任何凭据，轮询永远返回空结果，不发起任何网络请求。
    """

    name = "Null"
    description = "Backend that never reports new mail (testing and dry runs)"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

    def authenticate(self, email: str, credentials: Credentials) -> BackendSession:
        self._logger.info(f"[{email}] Null backend login")
        return NullSession(email, logger=self._logger)

    def restore(self, email: str, material: bytes) -> BackendSession:
        try:
            state = json.loads(material.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise AuthExpiredError(f"Saved session is unreadable: {e}") from e
        if state.get("email") != email:
            raise AuthExpiredError("Saved session belongs to another account")
        return NullSession(email, logger=self._logger)
