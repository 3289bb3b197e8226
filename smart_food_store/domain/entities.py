# smart_food_store/domain/entities.py
from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class Unit(str, Enum):
    GRAM = "g"
    KILOGRAM = "kg"
    LITER = "l"
    MILLILITER = "ml"
    PIECE = "pcs"

    @classmethod
    def parse(cls, value: Any, default: Optional["Unit"] = None) -> "Unit":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            if default is not None:
                return default
            raise


def is_positive_quantity(quantity: float) -> bool:
    # NaN compares False both ways, so `<= 0` alone lets it through
    return math.isfinite(quantity) and quantity > 0


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float  # per unit
    stock: float
    unit: Unit


@dataclass(frozen=True)
class CartItem:
    id: str
    product_id: int
    quantity: float


@dataclass(frozen=True)
class Cart:
    id: str
    user_id: int
    items: List[CartItem] = field(default_factory=list)

    def item_for(self, product_id: int) -> Optional[CartItem]:
        for it in self.items:
            if it.product_id == product_id:
                return it
        return None


@dataclass(frozen=True)
class RecipeIngredient:
    product_id: int
    base_quantity: float
    unit: Unit
    notes: str = ""


@dataclass(frozen=True)
class Recipe:
    id: int
    name: str
    base_servings: int
    ingredients: List[RecipeIngredient]
    description: str = ""
    instructions: str = ""
    prep_time: int = 0
    cook_time: int = 0


@dataclass(frozen=True)
class ScaledIngredient:
    product_id: int
    product_name: str
    quantity: float
    unit: Unit
    available: bool
    line_price: float


@dataclass(frozen=True)
class ScaledIngredientResult:
    ingredients: List[ScaledIngredient]
    total_price: float


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


_PATCHABLE = ("name", "price", "stock", "unit")


@dataclass(frozen=True)
class ProductPatch:
    """Explicit diff over a Product: only keys present in `changes` are applied."""

    changes: Mapping[str, Any]

    @classmethod
    def from_changes(cls, changes: Mapping[str, Any]) -> "ProductPatch":
        unknown = sorted(set(changes) - set(_PATCHABLE))
        if unknown:
            raise ValueError(f"unpatchable product fields: {', '.join(unknown)}")
        out: Dict[str, Any] = dict(changes)
        nulls = sorted(k for k, v in out.items() if v is None)
        if nulls:
            raise ValueError(f"product fields cannot be null: {', '.join(nulls)}")
        if "unit" in out:
            out["unit"] = Unit.parse(out["unit"])
        if "price" in out:
            out["price"] = float(out["price"])
            if out["price"] <= 0:
                raise ValueError("price must be > 0")
        if "stock" in out:
            out["stock"] = float(out["stock"])
            if out["stock"] < 0:
                raise ValueError("stock must be >= 0")
        return cls(changes=out)

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def apply(self, product: Product) -> Product:
        return replace(product, **dict(self.changes))
