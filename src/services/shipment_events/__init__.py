# src/services/shipment_events/__init__.py
"""
Журнал событий отправлений.

- repository: запись и чтение shipment_events
- transitions: таблица статус -> тип события и конструкторы событий
"""
