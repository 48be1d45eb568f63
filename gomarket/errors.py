"""
Cart Errors

Exception hierarchy and shared error messages for the cart subsystem.
"""

# Error messages
ERROR_NO_PROVIDER = "use_cart must be used within a cart_provider"
ERROR_NOT_LOADED = "Cart store used before load() completed"
ERROR_ALREADY_LOADED = "Cart store is already loaded"
ERROR_CLOSED = "Cart store is closed"
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable"
ERROR_INVALID_SNAPSHOT = "Invalid cart snapshot"


class CartError(Exception):
    """Base class for cart errors."""


class CartContextError(CartError):
    """Raised when the cart is accessed outside an initialized provider."""


class CartStoreError(CartError):
    """Raised on misuse of a cart store (double load, use after close)."""


class CartNotLoadedError(CartStoreError):
    """Raised when a store is queried or mutated before load()."""


class StorageError(CartError):
    """A storage backend failed to read or write a key."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SnapshotDecodeError(StorageError):
    """The stored value could not be decoded into cart items."""
