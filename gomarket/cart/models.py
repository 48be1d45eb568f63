"""Cart models with Decimal-based pricing."""
import json
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Tuple, Union

from pydantic import BaseModel, Field

from gomarket.errors import ERROR_INVALID_SNAPSHOT, SnapshotDecodeError
from gomarket.services.money import multiply, round_money, to_decimal, to_float


def _parse_price(value: Any) -> Decimal:
    # Unlike to_decimal, never falls back to 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"price must be a number, got {type(value).__name__}")
    return Decimal(str(value).strip())


def _parse_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"quantity must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class CartItem:
    """Single product line in the cart."""
    id: str
    title: str
    image_url: str
    price: Decimal
    quantity: int = 1

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))

    @property
    def total_price(self) -> Decimal:
        """Total price for all units."""
        return round_money(multiply(self.price, self.quantity))

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to the snapshot representation."""
        return {
            "id": self.id,
            "title": self.title,
            "image_url": self.image_url,
            "price": to_float(self.price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartItem":
        """Create from a snapshot dictionary."""
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            image_url=str(data.get("image_url") or ""),
            price=_parse_price(data["price"]),
            quantity=_parse_quantity(data["quantity"]),
        )


class Product(BaseModel):
    """A catalog product being added to the cart (no quantity)."""
    id: str = Field(min_length=1)
    title: str
    image_url: str = ""
    price: Decimal = Field(ge=0)

    def to_cart_item(self, quantity: int = 1) -> CartItem:
        return CartItem(
            id=self.id,
            title=self.title,
            image_url=self.image_url,
            price=self.price,
            quantity=quantity,
        )


ProductLike = Union[Product, CartItem, Mapping[str, Any]]

# Ordered, id-unique cart contents
CartState = Tuple[CartItem, ...]


def as_product(value: ProductLike) -> Product:
    """Coerce a Product, CartItem or mapping into a validated Product.

    Raises pydantic.ValidationError for an empty id or a negative price.
    """
    if isinstance(value, Product):
        return value
    if isinstance(value, CartItem):
        return Product(id=value.id, title=value.title, image_url=value.image_url, price=value.price)
    return Product.model_validate(dict(value))


def cart_total(items: Iterable[CartItem]) -> Decimal:
    """Sum of price x quantity, rounded to cents."""
    return round_money(sum((multiply(item.price, item.quantity) for item in items), Decimal("0")))


def total_item_count(items: Iterable[CartItem]) -> int:
    """Total number of units in the cart."""
    return sum(item.quantity for item in items)


def encode_snapshot(items: Iterable[CartItem]) -> str:
    """Serialize cart contents to the JSON snapshot stored under the products key."""
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


def decode_snapshot(raw: str) -> CartState:
    """
    Parse a stored snapshot back into cart items.

    Lines with a quantity below 1 are dropped; older snapshots could hold
    zero-quantity lines. Duplicate ids, negative prices and malformed
    entries raise SnapshotDecodeError.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: {e}") from e

    if not isinstance(data, list):
        raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: expected a list, got {type(data).__name__}")

    items = []
    seen = set()
    for entry in data:
        try:
            item = CartItem.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
            raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: {e!r}") from e

        if not item.price.is_finite() or item.price < 0:
            raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: bad price for {item.id}")
        if item.id in seen:
            raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: duplicate id {item.id}")
        seen.add(item.id)

        if item.quantity < 1:
            continue
        items.append(item)

    return tuple(items)
