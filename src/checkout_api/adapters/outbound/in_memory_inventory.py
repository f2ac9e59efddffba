from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable

import structlog
from returns.result import Failure, Result, Success

from checkout_api.core.domain.model.errors import (
    CheckoutError,
    InsufficientStock,
    ProductMissing,
    ReservationTimeout,
)
from checkout_api.core.domain.model.product import Product, ProductId
from checkout_api.core.ports.outbound.inventory import InventoryRepository, Reservation

logger = structlog.get_logger(__name__)


@dataclass
class InMemoryInventory(InventoryRepository):
    """Product records guarded by one lock per product.

    A product's lock is held only for the check-and-decrement (or increment)
    of that product, so reservations of different products never contend.
    """

    lock_timeout_seconds: float = 2.0
    _products: Dict[str, Product] = field(default_factory=dict)
    _locks: Dict[str, threading.Lock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def with_products(
        cls, products: Iterable[Product], lock_timeout_seconds: float = 2.0
    ) -> "InMemoryInventory":
        inv = cls(lock_timeout_seconds=lock_timeout_seconds)
        for p in products:
            inv.add(p)
        return inv

    def add(self, product: Product) -> None:
        key = product.product_id.value
        with self._registry_lock:
            self._locks.setdefault(key, threading.Lock())
            self._products[key] = product

    def get(self, product_id: ProductId) -> Result[Product, CheckoutError]:
        product = self._products.get(product_id.value)
        if product is None:
            return Failure(
                ProductMissing(message="product not found", product_id=product_id.value)
            )
        return Success(product)

    def try_reserve(
        self, product_id: ProductId, quantity: int
    ) -> Result[Reservation, CheckoutError]:
        key = product_id.value
        lock = self._lock_for(key)
        if lock is None:
            return Failure(ProductMissing(message="product not found", product_id=key))

        if not lock.acquire(timeout=self.lock_timeout_seconds):
            logger.warning("Stock lock wait timed out", product_id=key)
            return Failure(
                ReservationTimeout(message="stock lock wait timed out", product_id=key)
            )
        try:
            product = self._products.get(key)
            if product is None:
                return Failure(
                    ProductMissing(message="product not found", product_id=key)
                )
            if product.stock < quantity:
                return Failure(
                    InsufficientStock(
                        message="insufficient stock",
                        product_id=key,
                        requested=quantity,
                        available=product.stock,
                    )
                )
            self._products[key] = replace(product, stock=product.stock - quantity)
            return Success(Reservation(product_id, quantity, product.price))
        finally:
            lock.release()

    def release(self, reservation: Reservation) -> Result[None, CheckoutError]:
        key = reservation.product_id.value
        lock = self._lock_for(key)
        if lock is None:
            return Failure(ProductMissing(message="product not found", product_id=key))

        # unbounded wait: a release must never be dropped
        with lock:
            product = self._products.get(key)
            if product is None:
                return Failure(
                    ProductMissing(message="product not found", product_id=key)
                )
            self._products[key] = replace(
                product, stock=product.stock + reservation.quantity
            )
        return Success(None)

    def _lock_for(self, key: str) -> threading.Lock | None:
        with self._registry_lock:
            return self._locks.get(key)
