# src/shared/models/common.py
"""
Общие модели для всех сервисов.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Стандартный ответ с ошибкой (тело для TrackingError и ошибок валидации)."""

    error_code: str
    message: str
    details: dict[str, Any] | None = None


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded, unhealthy
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_checks(
        cls,
        service: str,
        checks: dict[str, bool],
        version: str | None = None,
        failed_status: str = "degraded",
    ) -> HealthStatus:
        """
        Статус по результатам проверок зависимостей.

        Args:
            checks: {"postgres": True, "publish_channel": False}
            failed_status: статус сервиса, если хотя бы одна проверка не прошла
        """
        return cls(
            service=service,
            status="healthy" if all(checks.values()) else failed_status,
            version=version,
            dependencies={name: "healthy" if ok else "unhealthy" for name, ok in checks.items()},
        )
