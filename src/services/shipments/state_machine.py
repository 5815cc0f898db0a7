# src/services/shipments/state_machine.py
from src.shared.models.enums import ShipmentStatus


class ShipmentStateMachine:
    ALLOWED_TRANSITIONS = {
        ShipmentStatus.PENDING: [ShipmentStatus.ASSIGNED, ShipmentStatus.CANCELLED],
        ShipmentStatus.ASSIGNED: [ShipmentStatus.IN_TRANSIT, ShipmentStatus.PENDING, ShipmentStatus.CANCELLED],
        ShipmentStatus.IN_TRANSIT: [ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED],
        ShipmentStatus.DELIVERED: [],
        ShipmentStatus.CANCELLED: [],
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        """Допустим ли переход. Переход в тот же статус (no-op) допустим всегда."""
        try:
            curr = ShipmentStatus(current_status)
            new = ShipmentStatus(new_status)
        except ValueError:
            return False
        if curr == new:
            return True
        return new in ShipmentStateMachine.ALLOWED_TRANSITIONS.get(curr, [])
