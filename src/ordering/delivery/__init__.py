"""Delivery slot registry factory."""

from ordering.delivery.fake_adapter import InMemoryDeliverySlotRegistry
from ordering.delivery.port import DeliverySlotRegistry

_current_registry: DeliverySlotRegistry | None = None


def get_slot_registry() -> DeliverySlotRegistry:
    """Return the current slot registry. Defaults to a week of in-memory slots from today."""
    global _current_registry
    if _current_registry is None:
        _current_registry = InMemoryDeliverySlotRegistry()
    return _current_registry


def set_slot_registry(registry: DeliverySlotRegistry) -> None:
    global _current_registry
    _current_registry = registry


def reset_slot_registry() -> None:
    global _current_registry
    _current_registry = None
