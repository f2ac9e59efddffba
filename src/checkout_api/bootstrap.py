from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from checkout_api.adapters.outbound.in_memory_carts import InMemoryCartRepository
from checkout_api.adapters.outbound.in_memory_inventory import InMemoryInventory
from checkout_api.adapters.outbound.in_memory_tickets import InMemoryTicketLedger
from checkout_api.adapters.outbound.log_events import LogEventPublisher
from checkout_api.config import Settings, load_settings
from checkout_api.core.domain.model.cart import Cart, CartId, CartLine
from checkout_api.core.domain.model.product import Money, Product, ProductId, UserId
from checkout_api.core.domain.service.get_ticket_service import (
    GetTicketDeps,
    GetTicketService,
)
from checkout_api.core.domain.service.purchase_cart_service import (
    PurchaseCartDeps,
    PurchaseCartService,
)

DEMO_SEED: dict[str, Any] = {
    "products": [
        {"id": "P1", "price": "3.00", "stock": 10},
        {"id": "P2", "price": "7.00", "stock": 1},
    ],
    "carts": [
        {
            "id": "C1",
            "user": "U1",
            "lines": [
                {"product": "P1", "quantity": 2},
                {"product": "P2", "quantity": 5},
            ],
        },
        {"id": "C2", "user": None, "lines": [{"product": "P1", "quantity": 1}]},
    ],
}


@dataclass(frozen=True)
class UseCases:
    purchase_cart: PurchaseCartService
    get_ticket: GetTicketService


@dataclass(frozen=True)
class Stores:
    inventory: InMemoryInventory
    carts: InMemoryCartRepository
    tickets: InMemoryTicketLedger


def build_stores(settings: Settings, seed: dict[str, Any] | None = None) -> Stores:
    seed = seed if seed is not None else _load_seed(settings)
    inventory = InMemoryInventory.with_products(
        (_product_from_seed(p) for p in seed.get("products", [])),
        lock_timeout_seconds=settings.lock_timeout_seconds,
    )
    carts = InMemoryCartRepository()
    for c in seed.get("carts", []):
        carts.add(_cart_from_seed(c))
    tickets = InMemoryTicketLedger(
        code_length=settings.ticket_code_length,
        max_code_attempts=settings.ticket_code_attempts,
    )
    return Stores(inventory=inventory, carts=carts, tickets=tickets)


def build_usecases(stores: Stores) -> UseCases:
    events = LogEventPublisher()

    purchase_cart = PurchaseCartService(
        PurchaseCartDeps(
            inventory=stores.inventory,
            carts=stores.carts,
            tickets=stores.tickets,
            events=events,
        )
    )
    get_ticket = GetTicketService(GetTicketDeps(tickets=stores.tickets))

    return UseCases(purchase_cart=purchase_cart, get_ticket=get_ticket)


# ---- seed parsing ----------------------------------------------------------


def _load_seed(settings: Settings) -> dict[str, Any]:
    if settings.seed_file is None:
        return DEMO_SEED
    return json.loads(Path(settings.seed_file).read_text(encoding="utf-8"))


def _product_from_seed(raw: dict[str, Any]) -> Product:
    return Product(
        product_id=ProductId(str(raw["id"])),
        price=Money.of(str(raw["price"])),
        stock=int(raw["stock"]),
    )


def _cart_from_seed(raw: dict[str, Any]) -> Cart:
    user = raw.get("user")
    return Cart(
        cart_id=CartId(str(raw["id"])),
        user_id=UserId(str(user)) if user else None,
        lines=tuple(
            CartLine(ProductId(str(ln["product"])), int(ln["quantity"]))
            for ln in raw.get("lines", [])
        ),
    )


def build_default() -> tuple[Settings, Stores, UseCases]:
    settings = load_settings()
    stores = build_stores(settings)
    return settings, stores, build_usecases(stores)
