"""邮件领域模块

该模块包含与邮件后端交互的领域模型，包括：
- MailBackend / BackendSession 后端能力接口
- PollResult / NewMessage 轮询结果值对象
"""
