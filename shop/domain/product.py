"""
Domain model for catalog products.
"""
from __future__ import annotations

from decimal import Decimal


class Product:
    """Read-only snapshot of a catalog product."""

    def __init__(
        self,
        id: int,
        name: str,
        price: Decimal,
        stock: int,
        category_id: int | None = None,
        category_name: str = "",
        description: str = "",
    ):
        if price < 0:
            raise ValueError("Price must be non-negative")
        if stock < 0:
            raise ValueError("Stock must be non-negative")

        self.id = id
        self.name = name
        self.price = price
        self.stock = stock
        self.category_id = category_id
        self.category_name = category_name
        self.description = description

    def has_stock_for(self, quantity: int) -> bool:
        """Check whether current stock covers the requested quantity."""
        return self.stock >= quantity


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class ProductPatch:
    """
    Explicit partial update for a product.

    Each field is either UNSET (keep the stored value) or a new value.
    Stock is deliberately absent: it only changes through restock and the
    order decrement primitive.
    """

    FIELDS = ("name", "description", "price", "category_id")

    def __init__(
        self,
        name=UNSET,
        description=UNSET,
        price=UNSET,
        category_id=UNSET,
    ):
        values = {"name": name, "description": description, "price": price, "category_id": category_id}
        for field, value in values.items():
            if value is None:
                raise ValueError(f"{field} cannot be null; leave it unset to keep the stored value")
        if price is not UNSET and price < 0:
            raise ValueError("Price must be non-negative")
        if name is not UNSET and not name:
            raise ValueError("Name cannot be empty")

        self.name = name
        self.description = description
        self.price = price
        self.category_id = category_id

    @classmethod
    def from_dict(cls, data: dict) -> "ProductPatch":
        """Build a patch from the keys present in ``data``."""
        unknown = set(data) - set(cls.FIELDS)
        if unknown:
            raise ValueError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        return cls(**data)

    def changes(self) -> dict:
        """Fields that are present in this patch."""
        return {
            field: getattr(self, field)
            for field in self.FIELDS
            if getattr(self, field) is not UNSET
        }

    @property
    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, target) -> list[str]:
        """Set present fields on ``target`` one by one; return their names."""
        changed = []
        for field, value in self.changes().items():
            setattr(target, field, value)
            changed.append(field)
        return changed
