"""
GoMarket Cart

Client-side shopping cart state:
- cart: CartStore, models, snapshot writer, provider context
- db: key-value storage backends (memory, file, Upstash Redis)
- services.money: Decimal helpers and value formatting

Note: Imports are lazy so that importing gomarket.config or
gomarket.logging does not pull in the whole cart stack.
"""

__all__ = [
    "CartStore",
    "cart_provider",
    "use_cart",
    "get_storage",
    "format_value",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name in ("CartStore", "cart_provider", "use_cart"):
        from gomarket import cart
        return getattr(cart, name)
    elif name == "get_storage":
        from gomarket.db import get_storage
        return get_storage
    elif name == "format_value":
        from gomarket.services.money import format_value
        return format_value
    raise AttributeError(f"module 'gomarket' has no attribute '{name}'")
