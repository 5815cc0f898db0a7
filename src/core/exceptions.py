# src/core/exceptions.py
"""
Иерархия ошибок ядра трекинга.

Асимметрия обработки:
- ValidationError / NotFound — ошибка клиента (400 / 404), без ретраев
- PersistenceFailure — ошибка сервера (500), запись не состоялась
- TransportUnavailable — только логируется, вызывающему не пробрасывается
"""

from __future__ import annotations

from typing import Any


class TrackingError(Exception):
    """Базовая ошибка ядра трекинга."""

    error_code: str = "tracking_error"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TrackingError):
    """Некорректные входные данные (координаты, тип события и т.д.)."""

    error_code = "validation_error"
    status_code = 400


class NotFound(TrackingError):
    """Запрошенная сущность не найдена."""

    error_code = "not_found"
    status_code = 404


class TransportUnavailable(TrackingError):
    """Шина публикаций недоступна."""

    error_code = "transport_unavailable"
    status_code = 503


class PersistenceFailure(TrackingError):
    """Хранилище недоступно или запрос к нему завершился ошибкой."""

    error_code = "persistence_failure"
    status_code = 500
