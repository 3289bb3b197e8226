# smart_food_store/application/cart_response.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from smart_food_store.domain.entities import Cart, Unit
from smart_food_store.domain.repositories import ProductReadRepo

log = logging.getLogger("app.cart_response")


@dataclass(frozen=True)
class CartItemResponse:
    id: str
    product_id: int
    product_name: str
    price: float
    quantity: float
    unit: Unit
    subtotal: float


@dataclass(frozen=True)
class CartResponse:
    id: str
    items: List[CartItemResponse]
    total_price: float
    item_count: int

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        for it in out["items"]:
            it["unit"] = Unit(it["unit"]).value
        return out


class CartResponseBuilder:
    """
    The one place a cart gets priced. Prices come from the catalog at build time;
    an item whose product no longer resolves is left out instead of failing the render.
    """

    def __init__(self, products: ProductReadRepo) -> None:
        self.products = products

    def build(self, cart: Cart) -> CartResponse:
        by_id = {p.id: p for p in self.products.by_ids(it.product_id for it in cart.items)}

        items: List[CartItemResponse] = []
        total = 0.0
        for it in cart.items:
            p = by_id.get(it.product_id)
            if p is None:
                log.warning("cart %s: product %s no longer resolvable, hidden", cart.id, it.product_id)
                continue
            subtotal = p.price * it.quantity
            total += subtotal
            items.append(
                CartItemResponse(
                    id=it.id,
                    product_id=p.id,
                    product_name=p.name,
                    price=p.price,
                    quantity=it.quantity,
                    unit=p.unit,
                    subtotal=subtotal,
                )
            )

        return CartResponse(id=cart.id, items=items, total_price=total, item_count=len(items))
