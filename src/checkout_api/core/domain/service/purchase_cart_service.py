"""Checkout: turn a cart into a ticket plus a residual cart.

Every line is reserved on its own; a line either gets its full quantity or
goes to the not-processed partition untouched. The residual cart is written
before the ticket so that both persistence steps can be compensated:

    reserve lines -> replace cart (residual) -> create ticket -> publish

A failed cart write releases the reservations. A failed ticket write puts
the original lines back into the cart and releases the reservations.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Tuple, TypeVar

import structlog
from returns.pipeline import flow
from returns.pointfree import bind, map_
from returns.result import Failure, Result, Success

from checkout_api.core.domain.model.cart import Cart, CartId, CartLine, ResolvedLine
from checkout_api.core.domain.model.errors import (
    CheckoutError,
    ItemRejected,
    NoAssociatedUser,
    PersistenceError,
    ProductMissing,
    ReservationFailed,
    ValidationError,
)
from checkout_api.core.domain.model.product import Money, ProductId, UserId
from checkout_api.core.domain.model.ticket import Ticket, TicketLine
from checkout_api.core.ports.inbound.purchase_cart import (
    PurchaseCartCommand,
    PurchaseCartUseCase,
    PurchaseReceipt,
)
from checkout_api.core.ports.outbound.carts import CartRepository
from checkout_api.core.ports.outbound.events import EventPublisher, PurchaseCompleted
from checkout_api.core.ports.outbound.inventory import InventoryRepository, Reservation
from checkout_api.core.ports.outbound.tickets import TicketLedger

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PurchaseCartDeps:
    inventory: InventoryRepository
    carts: CartRepository
    tickets: TicketLedger
    events: EventPublisher


@dataclass(frozen=True)
class Rejection:
    line: CartLine
    reason: ItemRejected


@dataclass(frozen=True)
class PurchaseContext:
    cart: Cart
    user_id: UserId
    resolved: Tuple[ResolvedLine, ...] = ()
    reserved: Tuple[Reservation, ...] = ()
    rejected: Tuple[Rejection, ...] = ()
    total: Money = Money.zero()


@dataclass(frozen=True)
class ResidualWritten:
    ctx: PurchaseContext
    residual: Cart


@dataclass(frozen=True)
class Committed:
    ctx: PurchaseContext
    ticket: Ticket


@dataclass(frozen=True)
class PurchaseCartService(PurchaseCartUseCase):
    deps: PurchaseCartDeps

    def purchase(
        self, command: PurchaseCartCommand
    ) -> Result[PurchaseReceipt, CheckoutError]:
        return flow(
            command,
            _validate_command,
            bind(self._load_cart),
            bind(self._begin),
            map_(self._reserve_lines),
            bind(self._persist_residual),
            bind(self._persist_ticket),
            map_(self._publish),
            map_(_to_receipt),
        )

    # ---- preconditions (no side effects) -----------------------------------

    def _load_cart(self, cmd: PurchaseCartCommand) -> Result[Cart, CheckoutError]:
        return self.deps.carts.get(CartId(cmd.cart_id.strip()))

    def _begin(self, cart: Cart) -> Result[PurchaseContext, CheckoutError]:
        return _require_user(cart).map(
            lambda user_id: PurchaseContext(
                cart=cart, user_id=user_id, resolved=self._resolve(cart)
            )
        )

    def _resolve(self, cart: Cart) -> Tuple[ResolvedLine, ...]:
        return tuple(
            ResolvedLine(
                line=ln,
                product=self.deps.inventory.get(ln.product_id).value_or(None),
            )
            for ln in cart.lines
        )

    # ---- side effects ------------------------------------------------------

    def _reserve_lines(self, ctx: PurchaseContext) -> PurchaseContext:
        reserved: list[Reservation] = []
        rejected: list[Rejection] = []
        total = Money.zero()

        # stored order: same stock picture, same partition
        for rl in ctx.resolved:
            outcome = self._try_reserve(rl)
            if isinstance(outcome, Success):
                r = outcome.unwrap()
                reserved.append(r)
                total = total + r.unit_price * r.quantity
                continue

            reason = outcome.failure()
            rejected.append(Rejection(line=rl.line, reason=reason))
            logger.warning(
                "Line item not processed",
                cart_id=ctx.cart.cart_id.value,
                product_id=rl.line.product_id.value,
                quantity=rl.line.quantity,
                reason=type(reason).__name__,
            )

        return replace(
            ctx, reserved=tuple(reserved), rejected=tuple(rejected), total=total
        )

    def _try_reserve(self, rl: ResolvedLine) -> Result[Reservation, ItemRejected]:
        pid = rl.line.product_id
        if rl.product is None:
            return Failure(
                ProductMissing(message="product not found", product_id=pid.value)
            )
        try:
            result = self.deps.inventory.try_reserve(pid, rl.line.quantity)
        except Exception:  # noqa: BLE001
            logger.exception("Reservation raised", product_id=pid.value)
            return Failure(
                ReservationFailed(message="inventory call raised", product_id=pid.value)
            )
        return result

    def _persist_residual(
        self, ctx: PurchaseContext
    ) -> Result[ResidualWritten, CheckoutError]:
        residual_lines = tuple(rj.line for rj in ctx.rejected)
        written = _guard(
            "cart replace",
            lambda: self.deps.carts.replace(
                ctx.cart.cart_id, residual_lines, expected_version=ctx.cart.version
            ),
        )
        if isinstance(written, Failure):
            logger.warning(
                "Residual cart write failed; releasing reservations",
                cart_id=ctx.cart.cart_id.value,
                error=str(written.failure()),
            )
            self._release_all(ctx)
            return written
        return Success(ResidualWritten(ctx=ctx, residual=written.unwrap()))

    def _persist_ticket(
        self, step: ResidualWritten
    ) -> Result[Committed, CheckoutError]:
        ctx = step.ctx
        lines = tuple(
            TicketLine(
                product_id=r.product_id, quantity=r.quantity, unit_price=r.unit_price
            )
            for r in ctx.reserved
        )
        created = _guard(
            "ticket create",
            lambda: self.deps.tickets.create(ctx.user_id, lines, ctx.total),
        )
        if isinstance(created, Failure):
            logger.warning(
                "Ticket write failed; restoring cart and releasing reservations",
                cart_id=ctx.cart.cart_id.value,
                error=str(created.failure()),
            )
            self._restore_cart(ctx, step.residual)
            self._release_all(ctx)
            return created
        return Success(Committed(ctx=ctx, ticket=created.unwrap()))

    def _publish(self, done: Committed) -> Committed:
        event = PurchaseCompleted(
            cart_id=done.ctx.cart.cart_id,
            ticket_code=done.ticket.code,
            not_processed=_not_processed(done.ctx),
        )
        published = self.deps.events.publish(event)
        if isinstance(published, Failure):
            # the purchase is already committed
            logger.warning(
                "Purchase event not published",
                ticket_code=done.ticket.code.value,
                error=str(published.failure()),
            )
        return done

    # ---- compensation ------------------------------------------------------

    def _release_all(self, ctx: PurchaseContext) -> None:
        for r in ctx.reserved:
            released = _guard("stock release", lambda r=r: self.deps.inventory.release(r))
            if isinstance(released, Failure):
                logger.error(
                    "Stock release failed; stock is short",
                    cart_id=ctx.cart.cart_id.value,
                    product_id=r.product_id.value,
                    quantity=r.quantity,
                    error=str(released.failure()),
                )

    def _restore_cart(self, ctx: PurchaseContext, residual: Cart) -> None:
        restored = _guard(
            "cart restore",
            lambda: self.deps.carts.replace(
                ctx.cart.cart_id, ctx.cart.lines, expected_version=residual.version
            ),
        )
        if isinstance(restored, Failure):
            logger.error(
                "Cart restore failed; cart holds the residual lines only",
                cart_id=ctx.cart.cart_id.value,
                error=str(restored.failure()),
            )


# ---- pure helpers ----------------------------------------------------------


def _validate_command(
    cmd: PurchaseCartCommand,
) -> Result[PurchaseCartCommand, CheckoutError]:
    if not cmd.cart_id.strip():
        return Failure(ValidationError("cart_id is required"))
    return Success(cmd)


def _require_user(cart: Cart) -> Result[UserId, CheckoutError]:
    if cart.user_id is None or not cart.user_id.value.strip():
        return Failure(
            NoAssociatedUser(
                message="cart has no associated user",
                cart_id=cart.cart_id.value,
            )
        )
    return Success(cart.user_id)


def _guard(
    operation: str, call: Callable[[], Result[T, CheckoutError]]
) -> Result[T, CheckoutError]:
    try:
        return call()
    except Exception:  # noqa: BLE001
        logger.exception("Storage call raised", operation=operation)
        return Failure(PersistenceError(message=f"{operation} failed"))


def _not_processed(ctx: PurchaseContext) -> Tuple[ProductId, ...]:
    return tuple(rj.line.product_id for rj in ctx.rejected)


def _to_receipt(done: Committed) -> PurchaseReceipt:
    return PurchaseReceipt(ticket=done.ticket, not_processed=_not_processed(done.ctx))
