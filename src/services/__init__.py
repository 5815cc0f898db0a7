# src/services/__init__.py
"""
Микросервисы трекинга.

Архитектура:
- Каждый сервис — независимое FastAPI-приложение
- Общая PostgreSQL (отправления, журнал событий, координаты)
- Redis Pub/Sub как шина живых обновлений координат

Сервисы:
- realtime_location: приём координат водителей и публикация в топики
- realtime_ws: WebSocket-шлюз для наблюдателей
- shipments: отправления, назначение водителя, смена статуса
- shipment_events: журнал событий отправлений (библиотека, без HTTP)
"""

__all__: list[str] = []
