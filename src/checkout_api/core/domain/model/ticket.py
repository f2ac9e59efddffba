from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from checkout_api.core.domain.model.product import (
    Money,
    ProductId,
    UserId,
    fold_money,
)

# Crockford base32 (no I, L, O, U)
CODE_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


@dataclass(frozen=True)
class TicketCode:
    value: str

    @staticmethod
    def new(length: int = 16) -> "TicketCode":
        return TicketCode("".join(secrets.choice(CODE_ALPHABET) for _ in range(length)))


@dataclass(frozen=True)
class TicketLine:
    product_id: ProductId
    quantity: int
    unit_price: Money

    def subtotal(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Ticket:
    code: TicketCode
    user_id: UserId
    lines: Tuple[TicketLine, ...]
    total: Money
    created_at: datetime

    def lines_total(self) -> Money:
        return fold_money(li.subtotal() for li in self.lines)
