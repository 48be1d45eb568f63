"""Cart package: models, persistence writer, store and context."""
from .models import CartItem, Product, cart_total, total_item_count
from .writer import PersistResult, SnapshotWriter
from .service import CartStore, Fault
from .context import cart_provider, use_cart

__all__ = [
    "CartItem",
    "Product",
    "cart_total",
    "total_item_count",
    "PersistResult",
    "SnapshotWriter",
    "CartStore",
    "Fault",
    "cart_provider",
    "use_cart",
]
