"""凭据请求/履行握手"""

import asyncio
import logging
from typing import Dict, List, Optional

from domain.account.entities.account import Account
from domain.account.value_objects.credentials import Credentials


class CredentialBroker:
    """
    凭据经纪人

    账号需要交互式凭据（首次登录或会话过期）时，AccountSupervisor 通过
    request_credentials() 登记一个请求并拿到一个 Future，然后继续被调度，
    不会阻塞等待。外部协作者（控制 API 等）可以：
    - 通过 pending() 按登记顺序查看所有未完成请求
    - 通过 fulfill() 提交凭据，完成对应的 Future

    同一账号同时最多只有一个未完成请求，重复请求返回同一个 Future。
    所有方法都必须在事件循环线程中调用。
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        初始化凭据经纪人

        Args:
            logger: 可选的日志记录器
        """
        self._logger = logger or logging.getLogger(__name__)
        self._pending: Dict[str, "asyncio.Future[Credentials]"] = {}
        self._accounts: Dict[str, Account] = {}

    def request_credentials(self, account: Account) -> "asyncio.Future[Credentials]":
        """
        为账号登记凭据请求

        Args:
            account: 需要凭据的账号

        Returns:
            凭据到达时完成的 Future；账号被移除时会被取消
        """
        existing = self._pending.get(account.email)
        if existing is not None and not existing.done():
            return existing

        future: "asyncio.Future[Credentials]" = asyncio.get_running_loop().create_future()
        self._pending[account.email] = future
        self._accounts[account.email] = account
        self._logger.info(f"[{account.email}] Credentials requested, waiting for operator input")
        return future

    def is_pending(self, email: str) -> bool:
        """账号是否有未完成的凭据请求"""
        future = self._pending.get(email)
        return future is not None and not future.done()

    def pending(self) -> List[Account]:
        """
        获取所有未完成请求的账号

        Returns:
            账号列表（按登记顺序）
        """
        return [
            self._accounts[email]
            for email, future in self._pending.items()
            if not future.done()
        ]

    def fulfill(self, email: str, credentials: Credentials) -> bool:
        """
        提交凭据

        Args:
            email: 账号邮箱
            credentials: 凭据

        Returns:
            True 如果有对应的未完成请求并已完成，False 如果没有请求
        """
        future = self._pending.pop(email, None)
        self._accounts.pop(email, None)
        if future is None or future.done():
            self._logger.warning(f"[{email}] Credentials supplied but no request is pending")
            return False

        future.set_result(credentials)
        self._logger.info(f"[{email}] Credentials supplied")
        return True

    def cancel(self, email: str) -> bool:
        """
        取消账号的凭据请求（账号被移除时调用）

        Returns:
            True 如果取消了未完成的请求
        """
        future = self._pending.pop(email, None)
        self._accounts.pop(email, None)
        if future is None or future.done():
            return False

        future.cancel()
        self._logger.debug(f"[{email}] Credential request cancelled")
        return True
