from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Sequence

from returns.result import Failure, Result, Success

from checkout_api.core.domain.model.cart import Cart, CartId, CartLine
from checkout_api.core.domain.model.errors import (
    CartNotFound,
    CartVersionConflict,
    CheckoutError,
)
from checkout_api.core.ports.outbound.carts import CartRepository


@dataclass
class InMemoryCartRepository(CartRepository):
    _store: Dict[str, Cart] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def add(self, cart: Cart) -> None:
        with self._lock:
            self._store[cart.cart_id.value] = cart

    def get(self, cart_id: CartId) -> Result[Cart, CheckoutError]:
        cart = self._store.get(cart_id.value)
        if cart is None:
            return Failure(CartNotFound(message="cart not found", cart_id=cart_id.value))
        return Success(cart)

    def replace(
        self,
        cart_id: CartId,
        lines: Sequence[CartLine],
        expected_version: int | None = None,
    ) -> Result[Cart, CheckoutError]:
        with self._lock:
            cart = self._store.get(cart_id.value)
            if cart is None:
                return Failure(
                    CartNotFound(message="cart not found", cart_id=cart_id.value)
                )
            if expected_version is not None and cart.version != expected_version:
                return Failure(
                    CartVersionConflict(
                        message="cart was modified concurrently",
                        cart_id=cart_id.value,
                        expected=expected_version,
                        actual=cart.version,
                    )
                )
            updated = cart.with_lines(lines)
            self._store[cart_id.value] = updated
            return Success(updated)
