"""In-memory delivery slot registry.

Slots are generated for a rolling week from a list of daily time ranges,
the same shape the storefront's slot picker shows.
"""

from datetime import UTC, date, datetime, timedelta

from ordering.delivery.port import DeliverySlot, DeliverySlotRegistry, slot_id_for

DEFAULT_TIME_SLOTS = [
    "9:00 AM - 11:00 AM",
    "11:00 AM - 1:00 PM",
    "2:00 PM - 4:00 PM",
    "4:00 PM - 6:00 PM",
]


class InMemoryDeliverySlotRegistry(DeliverySlotRegistry):
    def __init__(self, time_slots: list[str] | None = None, start: date | None = None, days: int = 7) -> None:
        self.time_slots = list(time_slots or DEFAULT_TIME_SLOTS)
        self._unavailable: set[str] = set()
        self._slots: dict[str, DeliverySlot] = {}
        self.generate_week(start, days)

    def generate_week(self, start: date | None = None, days: int = 7) -> list[DeliverySlot]:
        start = start or datetime.now(UTC).date()
        self._slots = {}
        for offset in range(days):
            slot_date = start + timedelta(days=offset)
            for time_slot in self.time_slots:
                slot_id = slot_id_for(slot_date, time_slot)
                self._slots[slot_id] = DeliverySlot(id=slot_id, date=slot_date, time_slot=time_slot)
        return list(self._slots.values())

    def mark_unavailable(self, slot_id: str) -> None:
        self._unavailable.add(slot_id)

    def get(self, slot_id: str) -> DeliverySlot | None:
        slot = self._slots.get(slot_id)
        if slot is None:
            return None
        return DeliverySlot(
            id=slot.id,
            date=slot.date,
            time_slot=slot.time_slot,
            available=slot_id not in self._unavailable,
        )

    def list_available(self) -> list[DeliverySlot]:
        return [self.get(slot_id) for slot_id in self._slots if slot_id not in self._unavailable]
