"""
日志配置（loguru）
主日志与错误日志按大小轮转；访问日志与TBO外部调用通过 extra.channel 分流到独立文件，便于对账
"""

import multiprocessing
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from app.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

# channel -> (文件名, 保留份数)
CHANNEL_FILES = {
    "access": ("access.log", 3),
    "external": ("tbo.log", 5),
}


def _channel_filter(channel: str):
    return lambda record: record["extra"].get("channel") == channel


def setup_logging():
    logger.remove()
    log_dir = Path(settings.LOG_FILE).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    if settings.LOG_TO_CONSOLE:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=settings.LOG_LEVEL,
                   colorize=True, backtrace=True, diagnose=settings.DEBUG)

    if settings.LOG_TO_FILE:
        file_options = dict(format=FILE_FORMAT, compression=settings.LOG_COMPRESSION, encoding="utf-8")
        logger.add(settings.LOG_FILE, level=settings.LOG_LEVEL, rotation=settings.LOG_MAX_SIZE,
                   retention=settings.LOG_RETENTION, backtrace=True, diagnose=settings.DEBUG, **file_options)
        logger.add(str(log_dir / "error.log"), level="ERROR", rotation="5 MB", retention=3,
                   backtrace=True, diagnose=settings.DEBUG, **file_options)
        for channel, (filename, retention) in CHANNEL_FILES.items():
            logger.add(str(log_dir / filename), level="INFO", rotation="10 MB", retention=retention,
                       filter=_channel_filter(channel), **file_options)

    # Celery的prefork子进程不重复打印启动信息
    if multiprocessing.current_process().name == "MainProcess":
        logger.info(f"🚀 日志系统已启动 (级别: {settings.LOG_LEVEL}, 目录: {log_dir.absolute()})")

    return logger


def _duration(value: Optional[float], unit: str) -> str:
    return f" ({value:.2f}{unit})" if value is not None else ""


def log_api_access(method: str, path: str, status_code: int, duration: Optional[float] = None):
    logger.bind(channel="access").info(f"🌐 {method} {path} -> {status_code}{_duration(duration, 'ms')}")


def log_database_operation(operation: str, table: str, record_id=None):
    suffix = f" (ID: {record_id})" if record_id is not None else ""
    logger.info(f"🗄️ 数据库操作: {operation} {table}{suffix}")


def log_external_api_call(service: str, endpoint: str, status: str, duration: Optional[float] = None):
    """TBO等外部接口调用，写入 tbo.log"""
    logger.bind(channel="external").info(f"🔗 {service} {endpoint} -> {status}{_duration(duration, 'ms')}")


def log_task_execution(task_name: str, status: str, duration: Optional[float] = None):
    emoji = {"success": "✅", "error": "❌"}.get(status, "⏳")
    logger.info(f"{emoji} 任务 {task_name} -> {status}{_duration(duration, 's')}")
