"""In-memory address book for development and testing."""

from uuid import uuid4

from ordering.addresses.port import Address, AddressBook


class InMemoryAddressBook(AddressBook):
    def __init__(self) -> None:
        self._addresses: dict[str, Address] = {}

    def add(
        self,
        customer_id: str,
        line1: str,
        city: str,
        state: str,
        postal_code: str,
        line2: str | None = None,
        is_default: bool = False,
        address_id: str | None = None,
    ) -> Address:
        address = Address(
            id=address_id or str(uuid4()),
            customer_id=str(customer_id),
            line1=line1,
            line2=line2,
            city=city,
            state=state,
            postal_code=postal_code,
            is_default=is_default,
        )
        self._addresses[address.id] = address
        return address

    def get(self, address_id: str) -> Address | None:
        return self._addresses.get(str(address_id))

    def list_for_customer(self, customer_id: str) -> list[Address]:
        addresses = [a for a in self._addresses.values() if a.customer_id == str(customer_id)]
        return sorted(addresses, key=lambda a: not a.is_default)

    def reset(self) -> None:
        self._addresses.clear()
