from __future__ import annotations

from dataclasses import dataclass

from returns.result import Failure, Result

from checkout_api.core.domain.model.errors import CheckoutError, ValidationError
from checkout_api.core.domain.model.ticket import CODE_ALPHABET, Ticket, TicketCode
from checkout_api.core.ports.inbound.get_ticket import (
    GetTicketQuery,
    GetTicketUseCase,
    TicketLineView,
    TicketView,
)
from checkout_api.core.ports.outbound.tickets import TicketLedger


@dataclass(frozen=True)
class GetTicketDeps:
    tickets: TicketLedger


@dataclass(frozen=True)
class GetTicketService(GetTicketUseCase):
    deps: GetTicketDeps

    def get_ticket(self, query: GetTicketQuery) -> Result[TicketView, CheckoutError]:
        code = query.code.strip().upper()
        if not code or any(ch not in CODE_ALPHABET for ch in code):
            return Failure(ValidationError(message="code must be a ticket code"))

        return self.deps.tickets.get(TicketCode(code)).map(to_view)


def to_view(ticket: Ticket) -> TicketView:
    lines = tuple(
        TicketLineView(
            product_id=li.product_id.value,
            unit_price=li.unit_price,
            quantity=li.quantity,
            subtotal=li.subtotal(),
        )
        for li in ticket.lines
    )
    return TicketView(
        code=ticket.code,
        user_id=ticket.user_id,
        total=ticket.total,
        created_at=ticket.created_at,
        lines=lines,
    )
