"""Address book factory.

Provides get_address_book() / set_address_book() to swap implementations.
"""

from ordering.addresses.fake_adapter import InMemoryAddressBook
from ordering.addresses.port import AddressBook

_current_address_book: AddressBook | None = None


def get_address_book() -> AddressBook:
    """Return the current address book. Defaults to InMemoryAddressBook."""
    global _current_address_book
    if _current_address_book is None:
        _current_address_book = InMemoryAddressBook()
    return _current_address_book


def set_address_book(address_book: AddressBook) -> None:
    global _current_address_book
    _current_address_book = address_book


def reset_address_book() -> None:
    global _current_address_book
    _current_address_book = None
