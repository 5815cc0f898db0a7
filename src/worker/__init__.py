# src/worker/__init__.py
"""
Фоновые воркеры: периодическая очистка данных трекинга.
"""

from src.worker.base import BaseWorker
from src.worker.retention import RetentionWorker

__all__ = ["BaseWorker", "RetentionWorker"]
