from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from returns.result import Result

from checkout_api.core.domain.model.errors import CheckoutError
from checkout_api.core.domain.model.product import Money, Product, ProductId


@dataclass(frozen=True)
class Reservation:
    """Stock taken from one product, priced at the moment it was taken."""

    product_id: ProductId
    quantity: int
    unit_price: Money


class InventoryRepository(Protocol):
    """
    try_reserve は「在庫チェック + 減算」を他の予約者から見て不可分に行うこと。
    実DBでは UPDATE ... SET stock = stock - :q WHERE id = :id AND stock >= :q
    のような条件付き更新で実現する想定。
    """

    def get(self, product_id: ProductId) -> Result[Product, CheckoutError]: ...

    def try_reserve(
        self, product_id: ProductId, quantity: int
    ) -> Result[Reservation, CheckoutError]:
        """Failure is always an ItemRejected; nothing is mutated on failure."""
        ...

    def release(self, reservation: Reservation) -> Result[None, CheckoutError]:
        """Give back stock taken by a reservation (compensation only)."""
        ...
