# src/common/__init__.py
"""
Общие утилиты: логгер и перечисления (уровни логов, топики, события WebSocket).
"""

from src.common.logger import get_logger, setup_logging, log_info, log_error, log_warning, log_debug
from src.common.constants import ClientEvent, ServerEvent, TopicKind, TypeMsg

__all__ = [
    "get_logger",
    "setup_logging",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "TopicKind",
    "ClientEvent",
    "ServerEvent",
]
