# src/services/realtime_location/__init__.py
"""
Realtime Location Ingest — сервис приёма геолокации водителей.

Обеспечивает:
- Приём и валидацию координат (HTTP)
- Append-only хранение в PostgreSQL
- Поиск активных отправлений водителя
- Публикацию в топики водителя и отправлений
"""
