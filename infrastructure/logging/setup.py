"""日志配置"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

LOG_FILE_NAME = "mail-observer.log"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3


def setup_logging(
    level: Union[str, int] = "INFO",
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    配置根日志记录器

    控制台输出 + （可选）日志目录下的滚动日志文件。重复调用会替换之前的处理器。

    Args:
        level: 日志级别
        log_dir: 日志目录（None 时只输出到控制台）

    Returns:
        根日志记录器
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # 第三方库的请求日志太吵
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root
