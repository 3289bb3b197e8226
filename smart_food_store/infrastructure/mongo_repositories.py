# smart_food_store/infrastructure/mongo_repositories.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging
import math

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from smart_food_store.core.errors import CartNotFound, InvalidQuantity, ProductNotFound
from smart_food_store.domain.entities import (
    Cart,
    CartItem,
    Product,
    ProductPatch,
    Recipe,
    RecipeIngredient,
    Unit,
    is_positive_quantity,
)
from smart_food_store.domain.repositories import CartRepo, ProductReadRepo, RecipeReadRepo

log = logging.getLogger("infra.mongo_repo")


def _as_str_id(v: Any) -> str:
    return str(v)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MongoProductRepository(ProductReadRepo):
    """Products keyed by integer `_id`."""

    def __init__(self, col: Collection) -> None:
        self._col = col

    def _parse_product(self, x: Dict[str, Any]) -> Optional[Product]:
        try:
            return Product(
                id=int(x["_id"]),
                name=str(x.get("name") or "").strip(),
                price=max(0.0, float(x.get("price", 0))),
                stock=max(0.0, float(x.get("stock") or 0)),
                unit=Unit.parse(x.get("unit") or "g", default=Unit.GRAM),
            )
        except (KeyError, TypeError, ValueError) as e:
            log.error("Invalid product document %s: %s", x.get("_id"), e)
            return None

    def by_id(self, product_id: int) -> Optional[Product]:
        doc = self._col.find_one({"_id": int(product_id)})
        return self._parse_product(doc) if doc else None

    def by_ids(self, product_ids: Iterable[int]) -> List[Product]:
        ids = list(dict.fromkeys(int(i) for i in product_ids))
        if not ids:
            return []
        found: Dict[int, Product] = {}
        for doc in self._col.find({"_id": {"$in": ids}}):
            p = self._parse_product(doc)
            if p is not None:
                found[p.id] = p
        # keep caller order
        return [found[i] for i in ids if i in found]

    def all_in_stock(self) -> List[Product]:
        cursor = self._col.find({"stock": {"$gt": 0}}).sort("_id", ASCENDING)
        return [p for p in (self._parse_product(doc) for doc in cursor) if p is not None]

    def update(self, product_id: int, patch: ProductPatch) -> Product:
        changes = {k: (v.value if isinstance(v, Unit) else v) for k, v in patch.changes.items()}
        if not changes:
            p = self.by_id(product_id)
            if p is None:
                raise ProductNotFound(f"Product not found: {product_id}")
            return p
        doc = self._col.find_one_and_update(
            {"_id": int(product_id)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        p = self._parse_product(doc) if doc else None
        if p is None:
            raise ProductNotFound(f"Product not found: {product_id}")
        log.info("Product %s patched: %s", product_id, sorted(changes))
        return p


class MongoRecipeRepository(RecipeReadRepo):
    """Recipes keyed by integer `_id`, ingredients embedded."""

    def __init__(self, col: Collection) -> None:
        self._col = col

    def _parse_recipe(self, doc: Dict[str, Any]) -> Recipe:
        try:
            ingredients = [
                RecipeIngredient(
                    product_id=int(i["product_id"]),
                    base_quantity=float(i.get("quantity") or 0),
                    unit=Unit.parse(i.get("unit") or "g", default=Unit.GRAM),
                    notes=(i.get("notes") or "").strip(),
                )
                for i in (doc.get("ingredients") or [])
            ]
            return Recipe(
                id=int(doc["_id"]),
                name=(doc.get("name") or "").strip(),
                base_servings=max(1, int(doc.get("servings") or 1)),
                ingredients=ingredients,
                description=(doc.get("description") or "").strip(),
                instructions=(doc.get("instructions") or "").strip(),
                prep_time=int(doc.get("prep_time") or 0),
                cook_time=int(doc.get("cook_time") or 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            log.exception("Invalid recipe document: %s", doc.get("_id"))
            raise ValueError(f"Invalid recipe document: {e}") from e

    def by_id(self, recipe_id: int) -> Recipe | None:
        doc = self._col.find_one({"_id": int(recipe_id)})
        return self._parse_recipe(doc) if doc else None


class MongoCartRepository(CartRepo):
    """
    carts:      {_id: ObjectId, user_id: int (unique), created_at}
    cart_items: {_id: ObjectId, cart_id: str, product_id: int, quantity: float}
                unique on (cart_id, product_id)

    Quantity merges use $inc so concurrent adds commute.
    """

    def __init__(self, carts: Collection, items: Collection) -> None:
        self._carts = carts
        self._items = items

    def ensure_indexes(self) -> None:
        self._carts.create_index([("user_id", ASCENDING)], unique=True, name="uniq_user_cart")
        self._items.create_index(
            [("cart_id", ASCENDING), ("product_id", ASCENDING)], unique=True, name="uniq_cart_product"
        )

    def _load(self, doc: Dict[str, Any]) -> Cart:
        cart_id = _as_str_id(doc["_id"])
        items = [
            CartItem(id=_as_str_id(i["_id"]), product_id=int(i["product_id"]), quantity=float(i["quantity"]))
            for i in self._items.find({"cart_id": cart_id}).sort("_id", ASCENDING)
        ]
        return Cart(id=cart_id, user_id=int(doc["user_id"]), items=items)

    def _require_cart(self, cart_id: str) -> None:
        try:
            oid = ObjectId(cart_id)
        except (InvalidId, TypeError):
            raise CartNotFound(f"Cart not found: {cart_id}")
        if self._carts.count_documents({"_id": oid}, limit=1) == 0:
            raise CartNotFound(f"Cart not found: {cart_id}")

    def get_or_create(self, user_id: int) -> Cart:
        query = {"user_id": int(user_id)}
        try:
            doc = self._carts.find_one_and_update(
                query,
                {"$setOnInsert": {"user_id": int(user_id), "created_at": _now()}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # lost the upsert race; the winner's row is there now
            doc = self._carts.find_one(query)
        return self._load(doc)

    def by_user(self, user_id: int) -> Optional[Cart]:
        doc = self._carts.find_one({"user_id": int(user_id)})
        return self._load(doc) if doc else None

    def add_item(self, cart_id: str, product_id: int, quantity: float) -> None:
        if not is_positive_quantity(quantity):
            raise InvalidQuantity(f"quantity must be > 0, got {quantity}")
        self._require_cart(cart_id)
        query = {"cart_id": cart_id, "product_id": int(product_id)}
        update = {"$inc": {"quantity": float(quantity)}, "$setOnInsert": {"created_at": _now()}}
        try:
            self._items.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            self._items.update_one(query, {"$inc": {"quantity": float(quantity)}})

    def set_quantity(self, cart_id: str, product_id: int, quantity: float) -> None:
        if not math.isfinite(quantity):
            raise InvalidQuantity(f"quantity must be finite, got {quantity}")
        self._require_cart(cart_id)
        query = {"cart_id": cart_id, "product_id": int(product_id)}
        if quantity <= 0:
            self._items.delete_one(query)
            return
        self._items.update_one(query, {"$set": {"quantity": float(quantity)}})

    def remove_item(self, cart_id: str, product_id: int) -> None:
        self._require_cart(cart_id)
        self._items.delete_one({"cart_id": cart_id, "product_id": int(product_id)})

    def clear(self, cart_id: str) -> None:
        self._require_cart(cart_id)
        res = self._items.delete_many({"cart_id": cart_id})
        log.info("Cart %s cleared (%d items)", cart_id, res.deleted_count)
