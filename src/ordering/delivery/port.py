"""Delivery slot registry port and slot id helpers.

A slot id is ``"<ISO date>_<time range>"``, e.g.
``"2024-06-01_10:00 AM - 12:00 PM"``. The id is stored on the order as-is;
``parse_slot_id`` and ``format_slot_text`` only derive display text from it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

STANDARD_DELIVERY = "Standard Delivery"


@dataclass(frozen=True)
class DeliverySlot:
    id: str
    date: date
    time_slot: str
    available: bool = True


def slot_id_for(slot_date: date, time_slot: str) -> str:
    return f"{slot_date.isoformat()}_{time_slot}"


def parse_slot_id(slot_id: str | None) -> tuple[date, str] | None:
    """Split a slot id into its date and time range, or None when it is malformed."""
    if not slot_id or "_" not in slot_id:
        return None

    date_part, time_slot = slot_id.split("_", 1)
    if not time_slot:
        return None
    try:
        return date.fromisoformat(date_part), time_slot
    except ValueError:
        return None


def slot_display(slot_id: str | None) -> str | None:
    """``"2024-06-01 | 10:00 AM - 12:00 PM"``, the form kept on the order record."""
    parsed = parse_slot_id(slot_id)
    if parsed is None:
        return None
    slot_date, time_slot = parsed
    return f"{slot_date.isoformat()} | {time_slot}"


def format_slot_text(slot_id: str | None) -> str:
    """``"Saturday, June 1, 2024 | 10:00 AM - 12:00 PM"`` for customer messages."""
    parsed = parse_slot_id(slot_id)
    if parsed is None:
        return STANDARD_DELIVERY
    slot_date, time_slot = parsed
    return f"{slot_date:%A}, {slot_date:%B} {slot_date.day}, {slot_date.year} | {time_slot}"


class DeliverySlotRegistry(ABC):
    @abstractmethod
    def get(self, slot_id: str) -> DeliverySlot | None: ...

    @abstractmethod
    def list_available(self) -> list[DeliverySlot]: ...
