# src/services/shipments/__init__.py
"""
Shipments Service — CRUD-оболочка отправлений.

Меняет status/driver_id и пишет событие журнала в той же транзакции.
"""
