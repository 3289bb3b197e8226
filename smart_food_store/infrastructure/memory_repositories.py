# =========================
# FILE: smart_food_store/infrastructure/memory_repositories.py
# (in-process stores for local runs and tests)
# =========================
from __future__ import annotations

import itertools
import math
import threading
from typing import Dict, Iterable, List, Optional

from smart_food_store.core.errors import CartNotFound, InvalidQuantity, ProductNotFound
from smart_food_store.domain.entities import Cart, CartItem, Product, ProductPatch, Recipe, is_positive_quantity
from smart_food_store.domain.repositories import CartRepo, ProductReadRepo, RecipeReadRepo


class InMemoryProductRepository(ProductReadRepo):
    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._lock = threading.Lock()
        self._data: Dict[int, Product] = {p.id: p for p in products}

    def put(self, product: Product) -> None:
        with self._lock:
            self._data[product.id] = product

    def delete(self, product_id: int) -> None:
        with self._lock:
            self._data.pop(product_id, None)

    def by_id(self, product_id: int) -> Optional[Product]:
        return self._data.get(product_id)

    def by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        seen = dict.fromkeys(product_ids)
        return [self._data[i] for i in seen if i in self._data]

    def all_in_stock(self) -> List[Product]:
        return [p for p in self._data.values() if p.stock > 0]

    def update(self, product_id: int, patch: ProductPatch) -> Product:
        with self._lock:
            p = self._data.get(product_id)
            if p is None:
                raise ProductNotFound(f"Product not found: {product_id}")
            p = patch.apply(p)
            self._data[product_id] = p
            return p


class InMemoryRecipeRepository(RecipeReadRepo):
    def __init__(self, recipes: Iterable[Recipe] = ()) -> None:
        self._data: Dict[int, Recipe] = {r.id: r for r in recipes}

    def by_id(self, recipe_id: int) -> Optional[Recipe]:
        return self._data.get(recipe_id)


class InMemoryCartRepository(CartRepo):
    """One lock guards everything, so get_or_create cannot race."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._cart_by_user: Dict[int, str] = {}
        self._owner: Dict[str, int] = {}
        # cart_id -> product_id -> item (insertion ordered)
        self._items: Dict[str, Dict[int, CartItem]] = {}

    def _snapshot(self, cart_id: str) -> Cart:
        return Cart(id=cart_id, user_id=self._owner[cart_id], items=list(self._items[cart_id].values()))

    def _items_of(self, cart_id: str) -> Dict[int, CartItem]:
        items = self._items.get(cart_id)
        if items is None:
            raise CartNotFound(f"Cart not found: {cart_id}")
        return items

    def get_or_create(self, user_id: int) -> Cart:
        with self._lock:
            cart_id = self._cart_by_user.get(user_id)
            if cart_id is None:
                cart_id = str(next(self._ids))
                self._cart_by_user[user_id] = cart_id
                self._owner[cart_id] = user_id
                self._items[cart_id] = {}
            return self._snapshot(cart_id)

    def by_user(self, user_id: int) -> Optional[Cart]:
        with self._lock:
            cart_id = self._cart_by_user.get(user_id)
            return self._snapshot(cart_id) if cart_id is not None else None

    def add_item(self, cart_id: str, product_id: int, quantity: float) -> None:
        if not is_positive_quantity(quantity):
            raise InvalidQuantity(f"quantity must be > 0, got {quantity}")
        with self._lock:
            items = self._items_of(cart_id)
            cur = items.get(product_id)
            if cur is None:
                items[product_id] = CartItem(id=str(next(self._ids)), product_id=product_id, quantity=float(quantity))
            else:
                items[product_id] = CartItem(id=cur.id, product_id=product_id, quantity=cur.quantity + float(quantity))

    def set_quantity(self, cart_id: str, product_id: int, quantity: float) -> None:
        if not math.isfinite(quantity):
            raise InvalidQuantity(f"quantity must be finite, got {quantity}")
        with self._lock:
            items = self._items_of(cart_id)
            cur = items.get(product_id)
            if cur is None:
                return
            if quantity <= 0:
                items.pop(product_id, None)
            else:
                items[product_id] = CartItem(id=cur.id, product_id=product_id, quantity=float(quantity))

    def remove_item(self, cart_id: str, product_id: int) -> None:
        with self._lock:
            self._items_of(cart_id).pop(product_id, None)

    def clear(self, cart_id: str) -> None:
        with self._lock:
            self._items_of(cart_id).clear()
