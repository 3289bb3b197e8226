# =========================
# FILE: smart_food_store/api/schemas.py
# =========================
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from smart_food_store.domain.entities import Unit


class CartItemRequest(BaseModel):
    product_id: int
    quantity: float = Field(..., gt=0, allow_inf_nan=False, examples=[3])


class QuantityRequest(BaseModel):
    # <= 0 removes the item
    quantity: float = Field(..., allow_inf_nan=False)


class CartItemOut(BaseModel):
    id: str
    product_id: int
    product_name: str
    price: float
    quantity: float
    unit: str
    subtotal: float


class CartOut(BaseModel):
    id: str
    items: List[CartItemOut] = Field(default_factory=list)
    total_price: float
    item_count: int


class ScaledIngredientOut(BaseModel):
    product_id: int
    product_name: str
    quantity: float
    unit: str
    available: bool
    price: float


class ScaledIngredientsOut(BaseModel):
    ingredients: List[ScaledIngredientOut]
    total_price: float


class AddRecipeToCartRequest(BaseModel):
    recipe_id: int
    servings: int = Field(..., ge=1)


class DishToIngredientsRequest(BaseModel):
    dish_name: str = Field(..., examples=["Borscht"])
    servings: Optional[int] = None  # defaults to 2


class ProductsToRecipesRequest(BaseModel):
    product_ids: List[int]


class ProductPatchRequest(BaseModel):
    """Fields left out of the body are left untouched."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    price: Optional[float] = Field(default=None, gt=0)
    stock: Optional[float] = Field(default=None, ge=0)
    unit: Optional[Unit] = None


class ProductOut(BaseModel):
    id: int
    name: str
    price: float
    stock: float
    unit: str
