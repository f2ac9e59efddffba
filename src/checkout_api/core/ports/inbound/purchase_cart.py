from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from returns.result import Result

from checkout_api.core.domain.model.errors import CheckoutError
from checkout_api.core.domain.model.product import ProductId
from checkout_api.core.domain.model.ticket import Ticket


@dataclass(frozen=True)
class PurchaseCartCommand:
    cart_id: str


@dataclass(frozen=True)
class PurchaseReceipt:
    ticket: Ticket
    not_processed: Sequence[ProductId]


class PurchaseCartUseCase(Protocol):
    def purchase(
        self, command: PurchaseCartCommand
    ) -> Result[PurchaseReceipt, CheckoutError]: ...
