"""邮件后端能力接口"""

from abc import ABC, abstractmethod

from domain.account.value_objects.credentials import Credentials
from domain.mail.value_objects.poll_result import PollResult


class BackendSession(ABC):
    """
    已认证的后端会话

    代表与某个邮件服务商的一个已认证连接。所有方法都是同步阻塞的，
    由调用方在线程池中执行并施加看门狗超时；实现应自行设置网络超时。
    """

    @abstractmethod
    def poll(self) -> PollResult:
        """
        检查新邮件

        Returns:
            PollResult，新邮件或类型化失败
        """
        raise NotImplementedError

    @abstractmethod
    def is_valid(self) -> bool:
        """
        检查会话是否仍然有效（本地判断，不发起网络请求）

        Returns:
            True 如果会话可用于轮询
        """
        raise NotImplementedError

    @abstractmethod
    def export(self) -> bytes:
        """
        导出会话材料，用于加密保存并在重启后恢复

        Returns:
            不透明的会话材料字节
        """
        raise NotImplementedError

    def logout(self) -> None:
        """注销会话（默认无操作）"""


class MailBackend(ABC):
    """
    邮件后端接口

    定义某个邮件服务商的认证契约。核心只消费类型化的
    PollResult / BackendError，从不解析服务商的协议内容。
    """

    name: str = "backend"
    description: str = ""

    @abstractmethod
    def authenticate(self, email: str, credentials: Credentials) -> BackendSession:
        """
        使用交互式凭据登录

        Args:
            email: 账号邮箱
            credentials: 密码及可选的二次验证码

        Returns:
            已认证的会话

        Raises:
            AuthFailedError: 凭据被拒绝或缺少二次验证码
            TransientBackendError: 网络错误
            FatalBackendError: 账号不受支持
        """
        raise NotImplementedError

    @abstractmethod
    def restore(self, email: str, material: bytes) -> BackendSession:
        """
        从之前导出的会话材料恢复会话

        Args:
            email: 账号邮箱
            material: BackendSession.export() 的输出

        Returns:
            恢复后的会话

        Raises:
            AuthExpiredError: 会话已过期
            TransientBackendError: 网络错误
            FatalBackendError: 材料无法识别
        """
        raise NotImplementedError
