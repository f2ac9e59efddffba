from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from checkout_api.core.domain.model.product import Product, ProductId, UserId


@dataclass(frozen=True)
class CartId:
    value: str


@dataclass(frozen=True)
class CartLine:
    product_id: ProductId
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(
                f"quantity must be > 0: {self.product_id.value}={self.quantity}"
            )


@dataclass(frozen=True)
class Cart:
    cart_id: CartId
    user_id: UserId | None
    lines: Tuple[CartLine, ...] = ()
    version: int = 0

    def with_lines(self, lines: Sequence[CartLine]) -> "Cart":
        return replace(self, lines=tuple(lines), version=self.version + 1)


@dataclass(frozen=True)
class ResolvedLine:
    """A cart line joined with the product snapshot it refers to (if any)."""

    line: CartLine
    product: Product | None
