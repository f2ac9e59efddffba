from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from checkout_api.core.domain.model.errors import CheckoutError
from checkout_api.core.domain.model.product import Money, UserId
from checkout_api.core.domain.model.ticket import Ticket, TicketCode, TicketLine


class TicketLedger(Protocol):
    """Append-only ledger: create and read, no update or delete."""

    def create(
        self, user_id: UserId, lines: Sequence[TicketLine], total: Money
    ) -> Result[Ticket, CheckoutError]: ...

    def get(self, code: TicketCode) -> Result[Ticket, CheckoutError]: ...
