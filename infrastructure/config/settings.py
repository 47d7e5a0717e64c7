"""
应用配置管理

使用 pydantic-settings 管理配置：
- 配置文件 <config_dir>/config.toml
- YHM_ 前缀的环境变量（优先于配置文件）
"""

import os
import tomllib
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from application.observer.observer_config import BackoffSettings, ObserverConfig
from domain.account.entities.account import Account
from domain.common.exceptions import ConfigurationError

APP_NAME = "mail-observer"
CONFIG_FILE_NAME = "config.toml"
DATABASE_FILE_NAME = "secrets.db"


def default_config_dir() -> Path:
    """配置目录：YHM_CONFIG_DIR 或 ~/.config/mail-observer"""
    override = os.environ.get("YHM_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / APP_NAME


def default_log_dir() -> Path:
    """日志目录：YHM_LOG_DIR 或 ~/.local/share/mail-observer"""
    override = os.environ.get("YHM_LOG_DIR")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / APP_NAME


class NotifierSettings(BaseModel):
    """[[notifiers]] 配置项"""

    kind: Literal["stdout", "ntfy", "unified_push"]
    name: Optional[str] = None
    url: Optional[str] = None
    auth_token: Optional[str] = None

    @model_validator(mode="after")
    def _check_url(self) -> "NotifierSettings":
        if self.kind != "stdout" and not self.url:
            raise ValueError(f"Notifier '{self.display_name}' ({self.kind}) requires a url")
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.kind


class AccountSettings(BaseModel):
    """[[accounts]] 配置项"""

    email: str
    backend: str

    @field_validator("email", "backend")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class BackoffConfig(BaseModel):
    """[backoff] 配置段"""

    multiplier: float = 2.0
    max_factor: float = 32.0
    jitter: bool = True
    degraded_after: int = 3

    @field_validator("multiplier", "max_factor")
    @classmethod
    def _at_least_one(cls, value: float) -> float:
        if value < 1.0:
            raise ValueError("must be >= 1")
        return value

    @field_validator("degraded_after")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value


class Settings(BaseSettings):
    """
    应用配置类

    通过 Settings.from_file() 从 TOML 文件加载，环境变量覆盖文件中的值
    """

    # ========== 目录 ==========
    config_dir: Path = default_config_dir()
    log_dir: Path = default_log_dir()

    # ========== 密钥存储 ==========
    secrets: Literal["plain", "keyring"] = "keyring"
    accept_plain_secrets_insecure: bool = False

    # ========== 轮询 ==========
    poll_interval: float = 300.0
    poll_timeout: float = 60.0
    backoff: BackoffConfig = BackoffConfig()

    # ========== 账号与通知 ==========
    notifiers: List[NotifierSettings] = []
    accounts: List[AccountSettings] = []

    # ========== 日志配置 ==========
    log_level: str = "INFO"

    # ========== 控制接口 ==========
    api_host: str = "127.0.0.1"
    api_port: int = 8750

    model_config = SettingsConfigDict(
        env_prefix="YHM_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # 环境变量优先于配置文件（文件内容通过 init 参数传入）
        return (env_settings, init_settings)

    @field_validator("poll_interval", "poll_timeout")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @model_validator(mode="after")
    def _check_notifiers(self) -> "Settings":
        if not self.notifiers:
            raise ValueError("No notifiers specified")
        emails = [account.email for account in self.accounts]
        duplicates = sorted({email for email in emails if emails.count(email) > 1})
        if duplicates:
            raise ValueError(f"Duplicate accounts: {', '.join(duplicates)}")
        return self

    @classmethod
    def from_file(cls, config_file: Path, **overrides) -> "Settings":
        """
        从 TOML 文件加载配置

        Args:
            config_file: 配置文件路径（不存在时视为空文件）
            overrides: 额外的初始值（优先级低于环境变量）

        Raises:
            ConfigurationError: 文件无法解析或配置无效
        """
        data = {}
        if config_file.exists():
            try:
                with config_file.open("rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigurationError(f"Failed to read {config_file}: {e}") from e

        data.setdefault("config_dir", config_file.parent)
        data.update(overrides)
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(_format_validation_error(e)) from e

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def database_path(self) -> Path:
        """密文数据库文件路径"""
        return self.config_dir / DATABASE_FILE_NAME

    def to_observer_config(self) -> ObserverConfig:
        """生成不可变的 Observer 配置快照"""
        return ObserverConfig(
            accounts=tuple(
                Account(email=account.email, backend=account.backend)
                for account in self.accounts
            ),
            poll_interval=self.poll_interval,
            poll_timeout=self.poll_timeout,
            backoff=BackoffSettings(
                multiplier=self.backoff.multiplier,
                max_factor=self.backoff.max_factor,
                jitter=self.backoff.jitter,
                degraded_after=self.backoff.degraded_after,
            ),
        )


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


DEFAULT_CONFIG_TEMPLATE = """\
# secrets = "keyring"                  # "keyring" or "plain"
# accept_plain_secrets_insecure = false
# poll_interval = 300
# poll_timeout = 60

# [backoff]
# multiplier = 2.0
# max_factor = 32.0
# jitter = true
# degraded_after = 3

# [[notifiers]]
# kind = "stdout"

# [[notifiers]]
# kind = "ntfy"
# name = "phone"
# url = "https://ntfy.sh/my-topic"
# auth_token = "..."

# [[accounts]]
# email = "me@example.com"
# backend = "Null"
"""


def write_default_config(config_file: Path) -> bool:
    """
    创建默认配置文件（已存在时不覆盖）

    Returns:
        True 如果创建了新文件
    """
    if config_file.exists():
        return False
    config_file.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    config_file.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return True


# 全局配置实例（单例）
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置实例（单例模式）

    Returns:
        Settings 实例
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_file(default_config_dir() / CONFIG_FILE_NAME)
    return _settings
