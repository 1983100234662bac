"""
日志模块（varexpr）

多等级文件日志，带基础的 Windows 兼容处理。
日志目录默认 "logs"，可通过环境变量 VAREXPR_LOG_DIR 覆盖。
"""

import logging
import os
from logging.handlers import RotatingFileHandler


LOG_DIR_ENV = "VAREXPR_LOG_DIR"
DEFAULT_LOG_NAME = "varexpr"

_DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
_SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
_ERROR_FORMAT = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

# (文件后缀, 等级, 格式)
_LEVEL_FILES = (
    ("debug", logging.DEBUG, _DETAILED_FORMAT),
    ("info", logging.INFO, _SIMPLE_FORMAT),
    ("warning", logging.WARNING, _SIMPLE_FORMAT),
    ("error", logging.ERROR, _ERROR_FORMAT),
)


class SafeRotatingFileHandler(RotatingFileHandler):
    """
    安全的日志轮转处理器

    在 Windows 上，如果日志文件被其他进程占用，轮转可能会失败。
    这个类会捕获轮转异常，继续写当前日志文件。
    """

    def doRollover(self) -> None:
        try:
            super().doRollover()
        except (PermissionError, OSError):
            # 文件被占用时放弃本次轮转，日志文件会继续增长
            pass


class Logger:
    """
    日志管理器。

    - 按等级输出到不同日志文件（debug/info/warning/error）。
    - 统一 logger 名称前缀为 "varexpr"。
    """

    def __init__(self, log_dir: str = "logs", name: str = DEFAULT_LOG_NAME) -> None:
        """
        Args:
            log_dir: 日志输出目录，默认 "logs"。
            name: 日志名称前缀，默认 "varexpr"。
        """
        self.log_dir = log_dir
        self.name = name

        os.makedirs(log_dir, exist_ok=True)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # 避免重复添加 handler
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self) -> None:
        """每个等级一个轮转文件，单文件 10MB，保留 5 个备份。"""
        for suffix, level, fmt in _LEVEL_FILES:
            handler = SafeRotatingFileHandler(
                os.path.join(self.log_dir, f"{self.name}_{suffix}.log"),
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
                delay=True,
            )
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(fmt))
            self.logger.addHandler(handler)

    def get_logger(self) -> logging.Logger:
        """获取底层 logger 实例。"""
        return self.logger

    def close(self) -> None:
        """
        关闭所有日志处理器。

        在程序退出前调用，确保日志文件被正确关闭，避免 Windows 上的文件占用问题。
        """
        for handler in list(self.logger.handlers):
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)


_LOGGER_INSTANCE: Logger | None = None


def get_logger(log_dir: str | None = None, name: str = DEFAULT_LOG_NAME) -> logging.Logger:
    """
    获取全局 logger 实例（单例）。

    Args:
        log_dir: 日志输出目录，None 时读取环境变量 VAREXPR_LOG_DIR，默认 "logs"。
        name: 日志名称前缀。
    """
    global _LOGGER_INSTANCE
    if _LOGGER_INSTANCE is None:
        _LOGGER_INSTANCE = Logger(log_dir or os.environ.get(LOG_DIR_ENV, "logs"), name)
    return _LOGGER_INSTANCE.get_logger()


def close_logger() -> None:
    """
    关闭全局 logger 实例。

    在长时间运行的进程退出前调用，确保日志文件句柄释放。
    """
    global _LOGGER_INSTANCE
    if _LOGGER_INSTANCE is not None:
        _LOGGER_INSTANCE.close()
        _LOGGER_INSTANCE = None
