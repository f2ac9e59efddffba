from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ProductId:
    value: str


@dataclass(frozen=True)
class UserId:
    value: str


@dataclass(frozen=True)
class Money:
    amount: Decimal

    @staticmethod
    def of(amount: Decimal | int | str) -> "Money":
        dec = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
        return Money(dec)

    @staticmethod
    def zero() -> "Money":
        return Money.of(0)

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def __mul__(self, n: int) -> "Money":
        # amounts are already cent-quantized, so this never rounds
        return Money((self.amount * Decimal(n)).quantize(CENT))

    def __str__(self) -> str:
        return str(self.amount)


@dataclass(frozen=True)
class Product:
    product_id: ProductId
    price: Money
    stock: int

    def __post_init__(self) -> None:
        if self.price.amount < 0:
            raise ValueError(f"price must be >= 0: {self.product_id.value}")
        if self.stock < 0:
            raise ValueError(f"stock must be >= 0: {self.product_id.value}")


def fold_money(values: Iterable[Money]) -> Money:
    total = Money.zero()
    for v in values:
        total = total + v
    return total


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
