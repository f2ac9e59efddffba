from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from checkout_api.core.domain.model.cart import Cart, CartId, CartLine
from checkout_api.core.domain.model.errors import CheckoutError


class CartRepository(Protocol):
    def get(self, cart_id: CartId) -> Result[Cart, CheckoutError]: ...

    def replace(
        self,
        cart_id: CartId,
        lines: Sequence[CartLine],
        expected_version: int | None = None,
    ) -> Result[Cart, CheckoutError]:
        """
        lines で全置換する（マージではない）。
        expected_version 指定時は保存中の version と一致した場合のみ書き込む。
        """
        ...
