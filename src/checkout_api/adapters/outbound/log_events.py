from __future__ import annotations

from dataclasses import dataclass

import structlog
from returns.result import Failure, Result, Success

from checkout_api.core.domain.model.errors import CheckoutError, PublishError
from checkout_api.core.ports.outbound.events import EventPublisher, PurchaseCompleted

logger = structlog.get_logger("checkout_api.events")


@dataclass
class LogEventPublisher(EventPublisher):
    fail: bool = False

    def publish(self, event: PurchaseCompleted) -> Result[None, CheckoutError]:
        if self.fail:
            return Failure(PublishError(message="publisher is down"))
        logger.info(
            "purchase_completed",
            cart_id=event.cart_id.value,
            ticket_code=event.ticket_code.value,
            not_processed=[p.value for p in event.not_processed],
        )
        return Success(None)
