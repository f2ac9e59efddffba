from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

from returns.result import Result

from checkout_api.core.domain.model.errors import CheckoutError
from checkout_api.core.domain.model.product import Money, UserId
from checkout_api.core.domain.model.ticket import TicketCode


@dataclass(frozen=True)
class GetTicketQuery:
    code: str


@dataclass(frozen=True)
class TicketLineView:
    product_id: str
    unit_price: Money
    quantity: int
    subtotal: Money


@dataclass(frozen=True)
class TicketView:
    code: TicketCode
    user_id: UserId
    total: Money
    created_at: datetime
    lines: Sequence[TicketLineView]


class GetTicketUseCase(Protocol):
    def get_ticket(self, query: GetTicketQuery) -> Result[TicketView, CheckoutError]: ...
