# smart_food_store/application/cart_service.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List

from smart_food_store.application.cart_response import CartResponse, CartResponseBuilder
from smart_food_store.core.errors import InsufficientStock, InvalidQuantity, ProductNotFound, StoreError
from smart_food_store.domain.entities import Cart, Product, is_positive_quantity
from smart_food_store.domain.repositories import CartRepo, ProductReadRepo

log = logging.getLogger("app.cart_service")


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: float


class CartService:
    """
    Cart operations for one authenticated user.

    Single-item calls are strict and raise. `add_multiple` is best effort:
    unknown products are skipped and quantities are clamped to stock.
    """

    def __init__(self, carts: CartRepo, products: ProductReadRepo, builder: CartResponseBuilder | None = None) -> None:
        self.carts = carts
        self.products = products
        self.builder = builder or CartResponseBuilder(products)

    def _product(self, product_id: int) -> Product:
        p = self.products.by_id(product_id)
        if p is None:
            raise ProductNotFound(f"Product not found: {product_id}")
        return p

    def _render(self, user_id: int) -> CartResponse:
        return self.builder.build(self.carts.get_or_create(user_id))

    def get_cart(self, user_id: int) -> CartResponse:
        return self._render(user_id)

    def add_item(self, user_id: int, product_id: int, quantity: float) -> CartResponse:
        if not is_positive_quantity(quantity):
            raise InvalidQuantity(f"quantity must be > 0, got {quantity}")
        p = self._product(product_id)
        cart = self.carts.get_or_create(user_id)

        current = cart.item_for(product_id)
        wanted = quantity + (current.quantity if current else 0.0)
        if wanted > p.stock:
            raise InsufficientStock(f"Insufficient stock for {p.name}: requested {wanted}, available {p.stock}")

        self.carts.add_item(cart.id, product_id, quantity)
        return self._render(user_id)

    def update_quantity(self, user_id: int, product_id: int, quantity: float) -> CartResponse:
        if not math.isfinite(quantity):
            raise InvalidQuantity(f"quantity must be finite, got {quantity}")
        cart = self.carts.get_or_create(user_id)
        if quantity <= 0:
            self.carts.remove_item(cart.id, product_id)
            return self._render(user_id)

        p = self._product(product_id)
        if quantity > p.stock:
            raise InsufficientStock(f"Insufficient stock for {p.name}: requested {quantity}, available {p.stock}")
        self.carts.set_quantity(cart.id, product_id, quantity)
        return self._render(user_id)

    def remove_item(self, user_id: int, product_id: int) -> CartResponse:
        cart = self.carts.get_or_create(user_id)
        self.carts.remove_item(cart.id, product_id)
        return self._render(user_id)

    def clear(self, user_id: int) -> None:
        cart = self.carts.get_or_create(user_id)
        self.carts.clear(cart.id)

    def add_multiple(self, user_id: int, lines: Iterable[CartLine]) -> CartResponse:
        cart = self.carts.get_or_create(user_id)
        added = skipped = 0

        for line in lines:
            if not is_positive_quantity(line.quantity):
                skipped += 1
                continue
            p = self.products.by_id(line.product_id)
            if p is None:
                log.info("add_multiple: unknown product %s skipped", line.product_id)
                skipped += 1
                continue

            qty = min(float(line.quantity), p.stock)
            if qty <= 0:
                skipped += 1
                continue
            if qty < line.quantity:
                log.info("add_multiple: product %s clamped %s -> %s", p.id, line.quantity, qty)

            try:
                self.carts.add_item(cart.id, p.id, qty)
                added += 1
            except StoreError as e:
                log.warning("add_multiple: product %s not added: %s", p.id, e)
                skipped += 1

        log.info("add_multiple user=%s added=%d skipped=%d", user_id, added, skipped)
        return self._render(user_id)

    def cart(self, user_id: int) -> Cart:
        return self.carts.get_or_create(user_id)

    def product_ids(self, user_id: int) -> List[int]:
        return [it.product_id for it in self.cart(user_id).items]

    def item_names(self, user_id: int) -> List[str]:
        return [it.product_name for it in self._render(user_id).items]
