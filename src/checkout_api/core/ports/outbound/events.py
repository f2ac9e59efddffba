from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Tuple

from returns.result import Result

from checkout_api.core.domain.model.cart import CartId
from checkout_api.core.domain.model.errors import CheckoutError
from checkout_api.core.domain.model.product import ProductId
from checkout_api.core.domain.model.ticket import TicketCode


@dataclass(frozen=True)
class PurchaseCompleted:
    cart_id: CartId
    ticket_code: TicketCode
    not_processed: Tuple[ProductId, ...]


class EventPublisher(Protocol):
    def publish(self, event: PurchaseCompleted) -> Result[None, CheckoutError]: ...
