from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover
        return self.message


@dataclass(frozen=True)
class ValidationError(CheckoutError):
    pass


@dataclass(frozen=True)
class CartNotFound(CheckoutError):
    cart_id: str

    def __str__(self) -> str:  # pragma: no cover
        return f"cart_not_found: {self.cart_id} ({self.message})"


@dataclass(frozen=True)
class NoAssociatedUser(CheckoutError):
    cart_id: str

    def __str__(self) -> str:  # pragma: no cover
        return f"no_associated_user: cart={self.cart_id} ({self.message})"


# ---- per-item rejections (collected, never surfaced) ------------------------


@dataclass(frozen=True)
class ItemRejected(CheckoutError):
    product_id: str


@dataclass(frozen=True)
class InsufficientStock(ItemRejected):
    requested: int
    available: int

    def __str__(self) -> str:  # pragma: no cover
        return (
            f"insufficient_stock: product={self.product_id} "
            f"requested={self.requested} available={self.available}"
        )


@dataclass(frozen=True)
class ProductMissing(ItemRejected):
    def __str__(self) -> str:  # pragma: no cover
        return f"product_missing: {self.product_id} ({self.message})"


@dataclass(frozen=True)
class ReservationTimeout(ItemRejected):
    def __str__(self) -> str:  # pragma: no cover
        return f"reservation_timeout: {self.product_id} ({self.message})"


@dataclass(frozen=True)
class ReservationFailed(ItemRejected):
    def __str__(self) -> str:  # pragma: no cover
        return f"reservation_failed: {self.product_id} ({self.message})"


# ---- storage ----------------------------------------------------------------


@dataclass(frozen=True)
class PersistenceError(CheckoutError):
    pass


@dataclass(frozen=True)
class CartVersionConflict(PersistenceError):
    cart_id: str
    expected: int
    actual: int

    def __str__(self) -> str:  # pragma: no cover
        return (
            f"cart_version_conflict: {self.cart_id} "
            f"expected={self.expected} actual={self.actual}"
        )


@dataclass(frozen=True)
class TicketNotFound(PersistenceError):
    code: str

    def __str__(self) -> str:  # pragma: no cover
        return f"ticket_not_found: {self.code} ({self.message})"


@dataclass(frozen=True)
class TicketCodeExhausted(PersistenceError):
    attempts: int

    def __str__(self) -> str:  # pragma: no cover
        return f"ticket_code_exhausted: attempts={self.attempts} ({self.message})"


@dataclass(frozen=True)
class PublishError(CheckoutError):
    pass
