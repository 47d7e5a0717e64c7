"""
Mail Observer - 邮箱监视服务入口

运行：
    uv run python main.py

首次运行前创建配置文件：
    uv run python main.py --create-config

控制接口文档：
    http://127.0.0.1:8750/docs
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from domain.common.exceptions import ConfigurationError, DomainException, SecretStoreError
from infrastructure.config.settings import (
    CONFIG_FILE_NAME,
    Settings,
    default_config_dir,
    write_default_config,
)
from infrastructure.containers import Bootstrap, bootstrap
from infrastructure.logging.setup import setup_logging
from interfaces.api import create_app
from interfaces.api.dependencies import (
    set_broker_getter,
    set_config_loader,
    set_observer_getter,
)

logger = logging.getLogger("mail_observer")


class ControlServer(uvicorn.Server):
    """控制接口服务器，信号由入口统一处理"""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mail-observer",
        description="Watch mail accounts and push notifications about new messages",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="configuration directory (default: $YHM_CONFIG_DIR or ~/.config/mail-observer)",
    )
    parser.add_argument(
        "--create-config",
        action="store_true",
        help="create an empty configuration file and exit",
    )
    parser.add_argument(
        "--delete-accounts",
        action="store_true",
        help="log out every account and delete its stored session, then exit",
    )
    parser.add_argument(
        "--rotate-key",
        action="store_true",
        help="generate a new encryption key, re-encrypt stored sessions, then exit",
    )
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="do not start the HTTP control interface",
    )
    return parser.parse_args(argv)


def load_settings(config_dir: Path) -> Settings:
    return Settings.from_file(config_dir / CONFIG_FILE_NAME)


def delete_accounts(boot: Bootstrap, settings: Settings) -> None:
    """
    注销账号并删除保存的会话

    配置中列出了账号时只处理这些账号，否则处理所有保存了会话的账号。
    后端未知的账号无法注销，只删除保存的会话。
    """
    store = boot.infra.secret_store()
    backends = boot.infra.backend_registry()
    store.unlock()

    configured = {account.email: account.backend for account in settings.accounts}
    emails = list(configured) or [
        blob.account_email for blob in boot.infra.secret_blob_repository().list_all()
    ]

    for email in emails:
        blob = store.load(email)
        if blob is None:
            continue

        backend = backends.get(configured[email]) if email in configured else None
        if backend is None:
            logger.warning(f"[{email}] Backend unknown, deleting stored session without logout")
        else:
            try:
                backend.restore(email, store.open(blob)).logout()
                print(f"Logged out {email}")
            except DomainException as e:
                logger.warning(f"[{email}] Failed to log out: {e.message}")

        store.purge(email)
        print(f"Deleted stored session for {email}")


def rotate_key(boot: Bootstrap) -> None:
    store = boot.infra.secret_store()
    store.unlock()
    key = store.rotate_key()
    print(f"Encryption key rotated (key_id={key.key_id})")


async def serve(boot: Bootstrap, config_dir: Path, enable_api: bool) -> int:
    """运行 Observer 和控制接口，直到收到 SIGINT/SIGTERM"""
    settings = boot.config.settings()
    observer = boot.app.observer()

    set_observer_getter(boot.app.observer)
    set_broker_getter(boot.app.credential_broker)
    set_config_loader(lambda: load_settings(config_dir).to_observer_config())

    server: Optional[ControlServer] = None
    server_task: Optional[asyncio.Task] = None

    def shutdown() -> None:
        observer.request_shutdown()
        if server is not None:
            server.should_exit = True

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown)

    if enable_api:
        server = ControlServer(
            uvicorn.Config(
                create_app(),
                host=settings.api_host,
                port=settings.api_port,
                log_config=None,
            )
        )
        server_task = asyncio.create_task(server.serve(), name="control-api")
        logger.info(f"Control interface on http://{settings.api_host}:{settings.api_port}")

    exit_code = 0
    try:
        await observer.run()
    except SecretStoreError as e:
        print(f"Failed to unlock secrets: {e.message}", file=sys.stderr)
        exit_code = 1
    finally:
        if server is not None:
            server.should_exit = True
        if server_task is not None:
            await asyncio.gather(server_task, return_exceptions=True)

    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config_dir = args.config_dir or default_config_dir()
    config_file = config_dir / CONFIG_FILE_NAME

    if args.create_config:
        if write_default_config(config_file):
            print(f"Created configuration file {config_file}")
        else:
            print(f"Configuration file {config_file} already exists")
        return 0

    try:
        settings = load_settings(config_dir)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, settings.log_dir)
    boot = bootstrap(settings)

    try:
        if args.delete_accounts:
            delete_accounts(boot, settings)
            return 0
        if args.rotate_key:
            rotate_key(boot)
            return 0
    except SecretStoreError as e:
        print(f"Secret store error: {e.message}", file=sys.stderr)
        return 1

    return asyncio.run(
        serve(boot, config_dir, enable_api=not args.no_api)
    )


if __name__ == "__main__":
    sys.exit(main())
