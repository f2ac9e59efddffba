"""Tests for the checkout orchestrator against in-memory adapters."""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace

import pytest
from returns.result import Failure, Success

from checkout_api.adapters.outbound.in_memory_carts import InMemoryCartRepository
from checkout_api.adapters.outbound.in_memory_inventory import InMemoryInventory
from checkout_api.adapters.outbound.in_memory_tickets import InMemoryTicketLedger
from checkout_api.adapters.outbound.log_events import LogEventPublisher
from checkout_api.core.domain.model.cart import CartId, CartLine, ResolvedLine
from checkout_api.core.domain.model.errors import (
    CartNotFound,
    CartVersionConflict,
    NoAssociatedUser,
    PersistenceError,
    ReservationFailed,
    ValidationError,
)
from checkout_api.core.domain.model.product import Money, ProductId
from checkout_api.core.domain.service.purchase_cart_service import (
    PurchaseCartDeps,
    PurchaseCartService,
)
from checkout_api.core.ports.inbound.purchase_cart import PurchaseCartCommand


def _purchase(service, cart_id="C1"):
    return service.purchase(PurchaseCartCommand(cart_id=cart_id))


def _lines(cart):
    return [(ln.product_id.value, ln.quantity) for ln in cart.lines]


def _ticket_lines(ticket):
    return [(li.product_id.value, li.quantity, li.unit_price) for li in ticket.lines]


# ---- failure-injection adapters ---------------------------------------------


@dataclass
class BrokenReplaceCarts(InMemoryCartRepository):
    def replace(self, cart_id, lines, expected_version=None):
        return Failure(PersistenceError(message="cart storage unavailable"))


@dataclass
class RaisingReplaceCarts(InMemoryCartRepository):
    def replace(self, cart_id, lines, expected_version=None):
        raise ConnectionError("cart storage went away")


@dataclass
class BrokenLedger(InMemoryTicketLedger):
    def create(self, user_id, lines, total):
        return Failure(PersistenceError(message="ledger unavailable"))


@dataclass
class RaisingLedger(InMemoryTicketLedger):
    def create(self, user_id, lines, total):
        raise TimeoutError("ledger timed out")


@dataclass
class FlakyInventory(InMemoryInventory):
    def try_reserve(self, product_id, quantity):
        if product_id.value == "P2":
            raise ConnectionError("inventory node unreachable")
        return super().try_reserve(product_id, quantity)


@dataclass
class ConcurrentEditCarts(InMemoryCartRepository):
    """Simulates another writer touching the cart between load and write."""

    def replace(self, cart_id, lines, expected_version=None):
        current = self._store[cart_id.value]
        self._store[cart_id.value] = replace(current, version=current.version + 1)
        return super().replace(cart_id, lines, expected_version=expected_version)


def _service(inventory, carts, tickets, events=None):
    return PurchaseCartService(
        PurchaseCartDeps(
            inventory=inventory,
            carts=carts,
            tickets=tickets,
            events=events or LogEventPublisher(),
        )
    )


class TestPurchaseScenario:
    def test_partial_purchase(self, service, carts, tickets, make_cart, stock_of):
        carts.add(make_cart("C1", "U1", ("P1", 2), ("P2", 5)))

        result = _purchase(service)

        assert isinstance(result, Success)
        receipt = result.unwrap()
        assert _ticket_lines(receipt.ticket) == [("P1", 2, Money.of("3.00"))]
        assert receipt.ticket.total == Money.of("6.00")
        assert receipt.ticket.user_id.value == "U1"
        assert [p.value for p in receipt.not_processed] == ["P2"]

        assert stock_of("P1") == 8
        assert stock_of("P2") == 1
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("P2", 5)]
        assert tickets.get(receipt.ticket.code).unwrap() == receipt.ticket

    def test_everything_purchased_empties_cart(self, service, carts, make_cart, stock_of):
        carts.add(make_cart("C1", "U1", ("P1", 10), ("P2", 1)))

        receipt = _purchase(service).unwrap()

        assert receipt.ticket.total == Money.of("37.00")
        assert list(receipt.not_processed) == []
        assert carts.get(CartId("C1")).unwrap().lines == ()
        assert (stock_of("P1"), stock_of("P2")) == (0, 0)

    def test_nothing_purchasable_still_issues_empty_ticket(
        self, service, carts, tickets, make_cart, stock_of
    ):
        carts.add(make_cart("C1", "U1", ("P1", 11), ("P2", 2)))

        receipt = _purchase(service).unwrap()

        assert receipt.ticket.lines == ()
        assert receipt.ticket.total == Money.zero()
        assert [p.value for p in receipt.not_processed] == ["P1", "P2"]
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("P1", 11), ("P2", 2)]
        assert (stock_of("P1"), stock_of("P2")) == (10, 1)
        assert len(tickets._store) == 1

    def test_empty_cart_issues_empty_ticket(self, service, carts, make_cart):
        carts.add(make_cart("C1", "U1"))

        receipt = _purchase(service).unwrap()

        assert receipt.ticket.lines == ()
        assert list(receipt.not_processed) == []

    def test_missing_product_goes_to_not_processed(
        self, service, carts, make_cart, stock_of
    ):
        carts.add(make_cart("C1", "U1", ("GHOST", 1), ("P1", 1)))

        receipt = _purchase(service).unwrap()

        assert [p.value for p in receipt.not_processed] == ["GHOST"]
        assert _ticket_lines(receipt.ticket) == [("P1", 1, Money.of("3.00"))]
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("GHOST", 1)]
        assert stock_of("P1") == 9

    def test_unmerged_duplicates_reserve_line_by_line(
        self, service, carts, make_cart, stock_of
    ):
        carts.add(make_cart("C1", "U1", ("P1", 6), ("P1", 6), ("P1", 4)))

        receipt = _purchase(service).unwrap()

        assert _ticket_lines(receipt.ticket) == [
            ("P1", 6, Money.of("3.00")),
            ("P1", 4, Money.of("3.00")),
        ]
        assert receipt.ticket.total == Money.of("30.00")
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("P1", 6)]
        assert stock_of("P1") == 0

    def test_raising_reservation_is_reported_as_failed_not_missing(
        self, carts, tickets, make_cart, make_product
    ):
        inventory = FlakyInventory.with_products(
            [make_product("P1", "3.00", 10), make_product("P2", "7.00", 1)]
        )
        carts.add(make_cart("C1", "U1", ("P1", 2), ("P2", 1)))
        service = _service(inventory, carts, tickets)

        receipt = _purchase(service).unwrap()

        assert [p.value for p in receipt.not_processed] == ["P2"]
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("P2", 1)]
        assert inventory.get(ProductId("P2")).unwrap().stock == 1

        line = ResolvedLine(
            line=CartLine(ProductId("P2"), 1),
            product=inventory.get(ProductId("P2")).unwrap(),
        )
        reason = service._try_reserve(line).failure()
        assert isinstance(reason, ReservationFailed)
        assert reason.product_id == "P2"


class TestInvariants:
    def test_line_items_are_conserved(self, service, carts, make_cart):
        original = make_cart("C1", "U1", ("P1", 3), ("P2", 2), ("P1", 7), ("P3", 1))
        carts.add(original)

        receipt = _purchase(service).unwrap()

        bought = Counter((li.product_id, li.quantity) for li in receipt.ticket.lines)
        left = Counter(
            (ln.product_id, ln.quantity) for ln in carts.get(CartId("C1")).unwrap().lines
        )
        assert bought + left == Counter(
            (ln.product_id, ln.quantity) for ln in original.lines
        )
        assert not (set(bought) & set(left))

    def test_total_is_frozen_against_later_price_changes(
        self, service, inventory, carts, tickets, make_cart, make_product
    ):
        carts.add(make_cart("C1", "U1", ("P1", 2)))
        receipt = _purchase(service).unwrap()

        inventory.add(make_product("P1", "99.00", 8))

        stored = tickets.get(receipt.ticket.code).unwrap()
        assert stored.total == Money.of("6.00")
        assert stored.lines_total() == stored.total

    def test_rerun_on_residual_does_not_rebuy(
        self, service, inventory, carts, make_cart, make_product, stock_of
    ):
        carts.add(make_cart("C1", "U1", ("P1", 2), ("P2", 5)))
        _purchase(service).unwrap()

        second = _purchase(service).unwrap()

        assert second.ticket.lines == ()
        assert stock_of("P1") == 8

        inventory.add(make_product("P2", "7.00", 5))
        third = _purchase(service).unwrap()
        assert _ticket_lines(third.ticket) == [("P2", 5, Money.of("7.00"))]
        assert stock_of("P1") == 8
        assert stock_of("P2") == 0
        assert carts.get(CartId("C1")).unwrap().lines == ()


class TestPreconditions:
    def test_unknown_cart(self, service, tickets, stock_of):
        result = _purchase(service, "C404")

        assert isinstance(result.failure(), CartNotFound)
        assert tickets._store == {}
        assert (stock_of("P1"), stock_of("P2")) == (10, 1)

    def test_cart_without_user_mutates_nothing(
        self, service, carts, tickets, make_cart, stock_of
    ):
        cart = make_cart("C1", None, ("P1", 2))
        carts.add(cart)

        result = _purchase(service)

        assert isinstance(result.failure(), NoAssociatedUser)
        assert carts.get(CartId("C1")).unwrap() == cart
        assert tickets._store == {}
        assert stock_of("P1") == 10

    def test_blank_user_counts_as_missing(self, service, carts, make_cart):
        carts.add(make_cart("C1", "  ", ("P1", 2)))
        assert isinstance(_purchase(service).failure(), NoAssociatedUser)

    def test_blank_cart_id(self, service):
        assert isinstance(_purchase(service, "  ").failure(), ValidationError)


class TestPersistenceFailures:
    @pytest.mark.parametrize("carts_cls", [BrokenReplaceCarts, RaisingReplaceCarts])
    def test_cart_write_failure_releases_stock(
        self, inventory, tickets, make_cart, stock_of, carts_cls
    ):
        carts = carts_cls()
        cart = make_cart("C1", "U1", ("P1", 2), ("P2", 1))
        carts.add(cart)
        service = _service(inventory, carts, tickets)

        result = _purchase(service)

        assert isinstance(result.failure(), PersistenceError)
        assert (stock_of("P1"), stock_of("P2")) == (10, 1)
        assert carts.get(CartId("C1")).unwrap() == cart
        assert tickets._store == {}

    @pytest.mark.parametrize("ledger_cls", [BrokenLedger, RaisingLedger])
    def test_ticket_write_failure_restores_cart_and_stock(
        self, inventory, carts, make_cart, stock_of, ledger_cls
    ):
        carts.add(make_cart("C1", "U1", ("P1", 2), ("P2", 5)))
        service = _service(inventory, carts, ledger_cls())

        result = _purchase(service)

        assert isinstance(result.failure(), PersistenceError)
        assert (stock_of("P1"), stock_of("P2")) == (10, 1)
        assert _lines(carts.get(CartId("C1")).unwrap()) == [("P1", 2), ("P2", 5)]

    def test_concurrent_cart_edit_is_a_conflict(
        self, inventory, tickets, make_cart, stock_of
    ):
        carts = ConcurrentEditCarts()
        carts.add(make_cart("C1", "U1", ("P1", 2)))
        service = _service(inventory, carts, tickets)

        result = _purchase(service)

        assert isinstance(result.failure(), CartVersionConflict)
        assert stock_of("P1") == 10
        assert tickets._store == {}

    def test_publish_failure_does_not_undo_purchase(
        self, inventory, carts, tickets, make_cart, stock_of
    ):
        carts.add(make_cart("C1", "U1", ("P1", 2)))
        service = _service(inventory, carts, tickets, LogEventPublisher(fail=True))

        receipt = _purchase(service).unwrap()

        assert receipt.ticket.total == Money.of("6.00")
        assert stock_of("P1") == 8


class TestConcurrentCheckouts:
    def test_shared_product_is_never_oversold(self, make_product, make_cart):
        inventory = InMemoryInventory.with_products([make_product("P1", "2.50", 10)])
        carts = InMemoryCartRepository()
        tickets = InMemoryTicketLedger()
        for i in range(40):
            carts.add(make_cart(f"C{i}", f"U{i}", ("P1", 1 + i % 3)))
        service = _service(inventory, carts, tickets)

        with ThreadPoolExecutor(max_workers=12) as pool:
            receipts = [
                r.unwrap()
                for r in pool.map(lambda i: _purchase(service, f"C{i}"), range(40))
            ]

        sold = sum(li.quantity for r in receipts for li in r.ticket.lines)
        stock = inventory.get(ProductId("P1")).unwrap().stock
        assert stock >= 0
        assert sold + stock == 10
        assert sum((r.ticket.total for r in receipts), Money.zero()) == Money.of("2.50") * sold

        for i in range(40):
            cart = carts.get(CartId(f"C{i}")).unwrap()
            assert len(cart.lines) in (0, 1)

    def test_same_cart_twice_buys_once(self, make_product, make_cart):
        inventory = InMemoryInventory.with_products([make_product("P1", "1.00", 100)])
        carts = InMemoryCartRepository()
        carts.add(make_cart("C1", "U1", ("P1", 5)))
        tickets = InMemoryTicketLedger()
        service = _service(inventory, carts, tickets)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: _purchase(service), range(8)))

        bought = sum(
            li.quantity
            for r in results
            if isinstance(r, Success)
            for li in r.unwrap().ticket.lines
        )
        assert bought == 5
        assert inventory.get(ProductId("P1")).unwrap().stock == 95
        assert carts.get(CartId("C1")).unwrap().lines == ()


def test_cart_line_values_are_kept_intact(service, carts, make_cart):
    carts.add(make_cart("C1", "U1", ("P2", 5)))

    _purchase(service).unwrap()

    assert carts.get(CartId("C1")).unwrap().lines == (CartLine(ProductId("P2"), 5),)
