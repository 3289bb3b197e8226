# smart_food_store/domain/repositories.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from smart_food_store.domain.entities import Cart, Product, ProductPatch, Recipe


class ProductReadRepo(ABC):
    """Catalog lookups. The only source of price, stock and unit."""

    @abstractmethod
    def by_id(self, product_id: int) -> Optional[Product]:
        raise NotImplementedError

    @abstractmethod
    def by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        """Resolve a set of ids; unknown ids are simply absent from the result."""
        raise NotImplementedError

    @abstractmethod
    def all_in_stock(self) -> List[Product]:
        raise NotImplementedError

    @abstractmethod
    def update(self, product_id: int, patch: ProductPatch) -> Product:
        """Apply a partial patch. Raises ProductNotFound."""
        raise NotImplementedError


class RecipeReadRepo(ABC):
    @abstractmethod
    def by_id(self, recipe_id: int) -> Optional[Recipe]:
        raise NotImplementedError


class CartRepo(ABC):
    """
    Per-user cart storage.
    - get_or_create must never produce two carts for one user
    - add_item merges additively
    - mutations on an unknown cart_id raise CartNotFound
    """

    @abstractmethod
    def get_or_create(self, user_id: int) -> Cart:
        raise NotImplementedError

    @abstractmethod
    def by_user(self, user_id: int) -> Optional[Cart]:
        raise NotImplementedError

    @abstractmethod
    def add_item(self, cart_id: str, product_id: int, quantity: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_quantity(self, cart_id: str, product_id: int, quantity: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_item(self, cart_id: str, product_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self, cart_id: str) -> None:
        raise NotImplementedError
