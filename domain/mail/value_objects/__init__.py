"""邮件值对象模块"""

from domain.mail.value_objects.poll_result import (
    NewMessage,
    PollFailure,
    PollFailureKind,
    PollResult,
)

__all__ = ["NewMessage", "PollFailure", "PollFailureKind", "PollResult"]
