from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Sequence

from returns.result import Failure, Result, Success

from checkout_api.core.domain.model.errors import (
    CheckoutError,
    PersistenceError,
    TicketCodeExhausted,
    TicketNotFound,
)
from checkout_api.core.domain.model.product import Money, UserId, fold_money, now_utc
from checkout_api.core.domain.model.ticket import Ticket, TicketCode, TicketLine
from checkout_api.core.ports.outbound.tickets import TicketLedger


@dataclass
class InMemoryTicketLedger(TicketLedger):
    code_length: int = 16
    max_code_attempts: int = 8
    _store: Dict[str, Ticket] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def create(
        self, user_id: UserId, lines: Sequence[TicketLine], total: Money
    ) -> Result[Ticket, CheckoutError]:
        items = tuple(lines)
        if fold_money(li.subtotal() for li in items) != total:
            return Failure(
                PersistenceError(message="ticket total does not match its lines")
            )

        with self._lock:
            for _ in range(self.max_code_attempts):
                code = self._new_code()
                if code.value in self._store:
                    continue
                ticket = Ticket(
                    code=code,
                    user_id=user_id,
                    lines=items,
                    total=total,
                    created_at=now_utc(),
                )
                self._store[code.value] = ticket
                return Success(ticket)

        return Failure(
            TicketCodeExhausted(
                message="could not draw an unused ticket code",
                attempts=self.max_code_attempts,
            )
        )

    def get(self, code: TicketCode) -> Result[Ticket, CheckoutError]:
        ticket = self._store.get(code.value)
        if ticket is None:
            return Failure(TicketNotFound(message="ticket not found", code=code.value))
        return Success(ticket)

    def _new_code(self) -> TicketCode:
        return TicketCode.new(self.code_length)
