"""Address book port (abstract interface)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Address:
    """A customer's shipping address. ``state`` doubles as the shipping region."""

    id: str
    customer_id: str
    line1: str
    city: str
    state: str
    postal_code: str
    line2: str | None = None
    is_default: bool = False

    def format(self) -> str:
        """Single-line text stored on the order, e.g. ``12 Main St, Apt 4, Springfield, IL 62701``."""
        parts = [self.line1]
        if self.line2:
            parts.append(self.line2)
        parts.append(self.city)
        parts.append(f"{self.state} {self.postal_code}")
        return ", ".join(parts)


class AddressBook(ABC):
    @abstractmethod
    def get(self, address_id: str) -> Address | None: ...

    @abstractmethod
    def list_for_customer(self, customer_id: str) -> list[Address]:
        """A customer's addresses, default first."""
        ...

    def default_for(self, customer_id: str) -> Address | None:
        """The customer's default address, else their first one, else None."""
        addresses = self.list_for_customer(customer_id)
        if not addresses:
            return None
        return next((a for a in addresses if a.is_default), addresses[0])
