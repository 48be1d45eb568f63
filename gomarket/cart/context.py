"""
Cart context: binds a loaded CartStore to the current execution context.

Usage:
    async with cart_provider(storage) as cart:
        ...
        cart = use_cart()  # anywhere below, including child tasks
"""
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Optional

from gomarket.db import KeyValueStorage
from gomarket.errors import ERROR_NO_PROVIDER, CartContextError
from .service import CartStore

_current_cart: ContextVar[Optional[CartStore]] = ContextVar("gomarket_cart", default=None)


@asynccontextmanager
async def cart_provider(
    storage: Optional[KeyValueStorage] = None,
    **store_kwargs,
) -> AsyncIterator[CartStore]:
    """Create and load a store, expose it via use_cart(), close it on exit."""
    store = CartStore(storage, **store_kwargs)
    await store.load()
    token = _current_cart.set(store)
    try:
        yield store
    finally:
        _current_cart.reset(token)
        await store.close()


def use_cart() -> CartStore:
    """Return the store bound by the enclosing cart_provider."""
    store = _current_cart.get()
    if store is None:
        raise CartContextError(ERROR_NO_PROVIDER)
    return store
