"""
日志配置模块
"""
import logging
import sys
from pathlib import Path

from loguru import logger

from .config import settings

_configured = False

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# 需要桥接到 loguru 的标准库 logger
_BRIDGED_LOGGERS = ("asyncio", "httpx", "httpcore")


class InterceptHandler(logging.Handler):
    """将标准库 logging 记录转发给 loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_stream():
    for stream in (sys.stdout, sys.stderr, sys.__stdout__, sys.__stderr__):
        if stream is not None and hasattr(stream, "write"):
            return stream
    return None


def setup_logger(force: bool = False):
    """配置日志系统（重复调用时除非 force 否则不重建 sink）"""
    global _configured
    if _configured and not force:
        return logger

    # 移除默认处理器
    logger.remove()

    log_dir = Path(settings.log_path)
    log_dir.mkdir(parents=True, exist_ok=True)

    # 控制台输出
    console_missing = False
    if settings.log_console_enabled:
        stream = _console_stream()
        if stream is not None:
            logger.add(stream, level=settings.log_level, format=CONSOLE_FORMAT)
        else:
            console_missing = True

    # 文件输出 - 全局日志
    logger.add(
        log_dir / "app_{time:YYYY-MM-DD}.log",
        level=settings.log_level,
        format=FILE_FORMAT,
        rotation=settings.log_rotation,
        retention=f"{settings.log_retention_days} days",
        encoding="utf-8",
        serialize=settings.log_file_format == "json",
    )

    # 错误日志单独记录
    logger.add(
        log_dir / "error_{time:YYYY-MM-DD}.log",
        level="ERROR",
        format=FILE_FORMAT,
        rotation=settings.log_rotation,
        retention=f"{settings.log_retention_days * 2} days",
        encoding="utf-8",
    )

    intercept = InterceptHandler()
    for name in _BRIDGED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [intercept]
        std_logger.propagate = False

    if console_missing:
        logger.warning("未检测到可用控制台输出流，仅写入文件日志")

    _configured = True
    return logger


# 初始化日志系统
logger = setup_logger()
