from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from returns.result import Success

from checkout_api.core.domain.model.errors import (
    CartNotFound,
    CartVersionConflict,
    CheckoutError,
    NoAssociatedUser,
    TicketNotFound,
    ValidationError,
)
from checkout_api.core.domain.model.ticket import Ticket
from checkout_api.core.domain.service.get_ticket_service import to_view
from checkout_api.core.ports.inbound.get_ticket import (
    GetTicketQuery,
    GetTicketUseCase,
    TicketView,
)
from checkout_api.core.ports.inbound.purchase_cart import (
    PurchaseCartCommand,
    PurchaseCartUseCase,
)
from checkout_api.utils.logging import bind_request_context, clear_request_context

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"

# ---- HTTP DTOs (adapter layer) ---------------------------------------------


class TicketLineOut(BaseModel):
    product_id: str
    quantity: int
    unit_price: str
    subtotal: str


class TicketOut(BaseModel):
    code: str
    user_id: str
    total: str
    created_at: str
    lines: list[TicketLineOut]


class PurchaseResponse(BaseModel):
    message: str
    ticket: TicketOut
    not_processed: list[str]


class ErrorResponse(BaseModel):
    type: str
    message: str
    details: list[dict[str, Any]] | None = None


def _ticket_out(view: TicketView) -> TicketOut:
    return TicketOut(
        code=view.code.value,
        user_id=view.user_id.value,
        total=str(view.total.amount),
        created_at=view.created_at.isoformat(),
        lines=[
            TicketLineOut(
                product_id=ln.product_id,
                quantity=ln.quantity,
                unit_price=str(ln.unit_price.amount),
                subtotal=str(ln.subtotal.amount),
            )
            for ln in view.lines
        ],
    )


def _map_error_to_http(err: CheckoutError) -> tuple[int, ErrorResponse]:
    if isinstance(err, (ValidationError, NoAssociatedUser)):
        return 400, ErrorResponse(type=type(err).__name__, message=str(err))

    if isinstance(err, (CartNotFound, TicketNotFound)):
        return 404, ErrorResponse(type=type(err).__name__, message=str(err))

    if isinstance(err, CartVersionConflict):
        return 409, ErrorResponse(type=type(err).__name__, message=str(err))

    return 500, ErrorResponse(type=type(err).__name__, message=INTERNAL_ERROR_MESSAGE)


def create_app(
    purchase_cart_uc: PurchaseCartUseCase,
    get_ticket_uc: GetTicketUseCase,
) -> FastAPI:
    app = FastAPI(title="checkout_api")

    # --- exception handlers ---------------------------------------------------

    @app.exception_handler(CheckoutError)
    async def handle_domain_error(request: Request, exc: CheckoutError) -> JSONResponse:
        status, body = _map_error_to_http(exc)
        if status >= 500:
            logger.error(
                "Checkout request failed",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = ErrorResponse(
            type="RequestValidationError",
            message="invalid request",
            details=[
                {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
                for e in exc.errors()
            ],
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path)
        body = ErrorResponse(type=type(exc).__name__, message=INTERNAL_ERROR_MESSAGE)
        return JSONResponse(status_code=500, content=body.model_dump())

    # --- routes --------------------------------------------------------------

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(
        "/carts/{cart_id}/purchase",
        response_model=PurchaseResponse,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
    )
    def purchase_cart(cart_id: str) -> Any:
        bind_request_context(cart_id=cart_id)
        try:
            result = purchase_cart_uc.purchase(PurchaseCartCommand(cart_id=cart_id))
        finally:
            clear_request_context()

        if isinstance(result, Success):
            receipt = result.unwrap()
            ticket: Ticket = receipt.ticket
            return PurchaseResponse(
                message="purchase completed",
                ticket=_ticket_out(to_view(ticket)),
                not_processed=[p.value for p in receipt.not_processed],
            )

        raise result.failure()

    @app.get(
        "/tickets/{code}",
        response_model=TicketOut,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
    )
    def get_ticket(code: str) -> Any:
        result = get_ticket_uc.get_ticket(GetTicketQuery(code=code))

        if isinstance(result, Success):
            return _ticket_out(result.unwrap())

        raise result.failure()

    return app
