# src/services/realtime_ws/__init__.py
"""
Realtime WebSocket Gateway — сервис для live-tracking.

Обеспечивает:
- WebSocket соединения для наблюдателей
- Реестр подписок на топики водителей и отправлений
- Рассылку сообщений шины публикаций подписчикам
"""
