"""邮件后端注册表"""

import logging
from typing import Dict, Iterable, List, Optional

from domain.common.exceptions import ConfigurationError
from domain.mail.services.mail_backend import MailBackend


class BackendRegistry:
    """
    按名称查找邮件后端

    名称不区分大小写；未注册的名称返回 None，对应账号会被禁用。
    """

    def __init__(
        self,
        backends: Iterable[MailBackend] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._backends: Dict[str, MailBackend] = {}
        for backend in backends:
            self.register(backend)

    def register(self, backend: MailBackend) -> None:
        key = backend.name.lower()
        if key in self._backends:
            raise ConfigurationError(f"Backend '{backend.name}' registered twice")
        self._backends[key] = backend
        self._logger.debug(f"Backend registered: {backend.name}")

    def get(self, name: str) -> Optional[MailBackend]:
        return self._backends.get(name.lower())

    def names(self) -> List[str]:
        return [backend.name for backend in self._backends.values()]

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._backends
