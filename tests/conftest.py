import pytest

from checkout_api.adapters.outbound.in_memory_carts import InMemoryCartRepository
from checkout_api.adapters.outbound.in_memory_inventory import InMemoryInventory
from checkout_api.adapters.outbound.in_memory_tickets import InMemoryTicketLedger
from checkout_api.adapters.outbound.log_events import LogEventPublisher
from checkout_api.core.domain.model.cart import Cart, CartId, CartLine
from checkout_api.core.domain.model.product import Money, Product, ProductId, UserId
from checkout_api.core.domain.service.purchase_cart_service import (
    PurchaseCartDeps,
    PurchaseCartService,
)


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(item.path)
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def make_product():
    def _make(pid: str, price: str, stock: int) -> Product:
        return Product(ProductId(pid), Money.of(price), stock)

    return _make


@pytest.fixture()
def make_cart():
    def _make(cid: str, user: str | None, *lines: tuple[str, int]) -> Cart:
        return Cart(
            cart_id=CartId(cid),
            user_id=UserId(user) if user is not None else None,
            lines=tuple(CartLine(ProductId(pid), qty) for pid, qty in lines),
        )

    return _make


@pytest.fixture()
def inventory(make_product):
    return InMemoryInventory.with_products(
        [make_product("P1", "3.00", 10), make_product("P2", "7.00", 1)]
    )


@pytest.fixture()
def carts():
    return InMemoryCartRepository()


@pytest.fixture()
def tickets():
    return InMemoryTicketLedger()


@pytest.fixture()
def events():
    return LogEventPublisher()


@pytest.fixture()
def service(inventory, carts, tickets, events):
    return PurchaseCartService(
        PurchaseCartDeps(inventory=inventory, carts=carts, tickets=tickets, events=events)
    )


@pytest.fixture()
def stock_of(inventory):
    def _stock(pid: str) -> int:
        return inventory.get(ProductId(pid)).unwrap().stock

    return _stock
