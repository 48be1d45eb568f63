"""Cart store: in-memory cart state with snapshot persistence."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from gomarket import config
from gomarket.db import KeyValueStorage, StorageKeys, get_storage
from gomarket.errors import (
    ERROR_ALREADY_LOADED,
    ERROR_CLOSED,
    ERROR_NOT_LOADED,
    CartNotLoadedError,
    CartStoreError,
    SnapshotDecodeError,
    StorageError,
)
from gomarket.logging import get_logger, sanitize_id_for_logging
from gomarket.services.money import format_value, to_float
from .models import (
    CartItem,
    CartState,
    ProductLike,
    as_product,
    cart_total,
    decode_snapshot,
    encode_snapshot,
    total_item_count,
)
from .writer import PersistResult, SnapshotWriter

logger = get_logger(__name__)

Listener = Callable[[CartState], None]


@dataclass(frozen=True)
class Fault:
    """A recoverable persistence failure."""
    operation: str  # "load" or "persist"
    key: str
    error: BaseException


class CartStore:
    """
    Owns the cart contents and keeps storage in step with them.

    Features:
    - Hydrates once from a JSON snapshot via load()
    - Every mutation replaces the state, notifies subscribers, then hands
      the full snapshot to a single-writer queue (callers never wait on I/O)
    - Lookup misses are no-ops
    - Decrementing a line from 1 removes it, so quantities stay >= 1
    - Read, decode and write failures are logged and reported to on_fault
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        *,
        key: Optional[str] = None,
        on_fault: Optional[Callable[[Fault], None]] = None,
        persist_attempts: Optional[int] = None,
        persist_backoff_max: Optional[float] = None,
    ):
        self.storage = storage if storage is not None else get_storage()
        self.key = key or StorageKeys.products_key()
        self.on_fault = on_fault
        self._items: CartState = ()
        self._listeners: List[Listener] = []
        self._loaded = False
        self._writer = SnapshotWriter(
            self.storage,
            self.key,
            attempts=persist_attempts,
            backoff_max=persist_backoff_max,
            on_result=self._handle_persist_result,
        )

    # ----- lifecycle -----

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> CartState:
        """Hydrate the cart from storage. Call once before any other use."""
        if self._writer.closed:
            raise CartStoreError(ERROR_CLOSED)
        if self._loaded:
            raise CartStoreError(ERROR_ALREADY_LOADED)

        items: CartState = ()
        try:
            raw = await self.storage.get(self.key)
            if raw:
                items = decode_snapshot(raw)
        except SnapshotDecodeError as e:
            logger.warning(f"Corrupted cart snapshot under {self.key}, starting empty: {e}")
            self._report_fault("load", e)
        except StorageError as e:
            logger.warning(f"Failed to read cart snapshot, starting empty: {e}")
            self._report_fault("load", e)
        except Exception as e:
            logger.error(f"Unexpected error reading cart snapshot, starting empty: {e}", exc_info=True)
            self._report_fault("load", e)

        self._items = items
        self._loaded = True
        logger.info(f"Cart loaded with {len(items)} item(s)")
        self._notify()
        return self._items

    async def flush(self) -> None:
        """Wait until every scheduled snapshot write has finished."""
        await self._writer.flush()

    async def close(self) -> None:
        """Flush pending writes and stop persisting. The store is unusable afterwards."""
        await self._writer.close()
        self._listeners.clear()

    # ----- queries -----

    @property
    def products(self) -> CartState:
        """Current cart lines, in insertion order."""
        self._require_loaded()
        return self._items

    def get_item(self, product_id: str) -> Optional[CartItem]:
        self._require_loaded()
        return next((item for item in self._items if item.id == product_id), None)

    @property
    def cart_total(self) -> Decimal:
        return cart_total(self.products)

    @property
    def total_item_count(self) -> int:
        return total_item_count(self.products)

    @property
    def last_persist(self) -> Optional[PersistResult]:
        """Result of the most recent snapshot write, if any."""
        return self._writer.last_result

    def get_cart_summary(self, currency: Optional[str] = None) -> dict:
        """Get cart summary with display-ready totals."""
        currency = currency or config.CART_CURRENCY
        items = self.products

        if not items:
            return {
                "is_empty": True,
                "total_items": 0,
                "items": [],
                "total": 0.0,
                "total_display": format_value(0, currency),
                "currency": currency,
            }

        total = cart_total(items)
        return {
            "is_empty": False,
            "total_items": total_item_count(items),
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "image_url": item.image_url,
                    "quantity": item.quantity,
                    "unit_price": to_float(item.price),
                    "total": to_float(item.total_price),
                    "total_display": format_value(item.total_price, currency),
                }
                for item in items
            ],
            "total": to_float(total),
            "total_display": format_value(total, currency),
            "currency": currency,
        }

    # ----- subscriptions -----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with the new products after every change.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ----- mutations -----

    async def add_to_cart(self, product: ProductLike) -> CartState:
        """Add one unit of a product; an existing line is incremented instead."""
        self._require_open()
        product = as_product(product)

        if self.get_item(product.id) is not None:
            return await self.increment_quantity(product.id)

        logger.debug(f"Adding product {sanitize_id_for_logging(product.id)} to cart")
        return self._commit(self._items + (product.to_cart_item(quantity=1),))

    async def increment_quantity(self, product_id: str) -> CartState:
        """Increase a line's quantity by one. Unknown ids are ignored."""
        self._require_open()
        if self.get_item(product_id) is None:
            return self._items

        return self._commit(tuple(
            item.with_quantity(item.quantity + 1) if item.id == product_id else item
            for item in self._items
        ))

    async def decrement_quantity(self, product_id: str) -> CartState:
        """Decrease a line's quantity by one, removing it when it would reach zero."""
        self._require_open()
        current = self.get_item(product_id)
        if current is None:
            return self._items

        if current.quantity <= 1:
            return await self.remove_from_cart(product_id)

        return self._commit(tuple(
            item.with_quantity(item.quantity - 1) if item.id == product_id else item
            for item in self._items
        ))

    async def remove_from_cart(self, product_id: str) -> CartState:
        """Remove a line entirely. Unknown ids are ignored."""
        self._require_open()
        if self.get_item(product_id) is None:
            return self._items

        logger.debug(f"Removing product {sanitize_id_for_logging(product_id)} from cart")
        return self._commit(tuple(item for item in self._items if item.id != product_id))

    async def clear(self) -> CartState:
        """Remove every line and persist the empty cart."""
        self._require_open()
        return self._commit(())

    # ----- internals -----

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise CartNotLoadedError(ERROR_NOT_LOADED)

    def _require_open(self) -> None:
        if self._writer.closed:
            raise CartStoreError(ERROR_CLOSED)
        self._require_loaded()

    def _commit(self, items: CartState) -> CartState:
        # No await between computing and publishing the new state
        self._items = items
        self._notify()
        self._writer.submit(encode_snapshot(items))
        return self._items

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._items)
            except Exception as e:
                logger.error(f"Cart listener {listener!r} failed: {e}", exc_info=True)

    def _handle_persist_result(self, result: PersistResult) -> None:
        if not result.ok and result.error is not None:
            self._report_fault("persist", result.error)

    def _report_fault(self, operation: str, error: BaseException) -> None:
        if self.on_fault is None:
            return
        try:
            self.on_fault(Fault(operation=operation, key=self.key, error=error))
        except Exception as e:
            logger.error(f"Cart fault handler failed: {e}", exc_info=True)
