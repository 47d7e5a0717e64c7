"""邮件领域服务模块"""

from domain.mail.services.mail_backend import BackendSession, MailBackend

__all__ = [
    "BackendSession",
    "MailBackend",
]
