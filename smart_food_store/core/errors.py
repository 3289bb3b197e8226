# smart_food_store/core/errors.py
from __future__ import annotations


class StoreError(Exception):
    """Base error: carries a stable machine-readable kind plus a readable message."""

    kind: str = "store_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


# --- validation (ValueError family -> 400 in routes) ---
class InvalidQuantity(StoreError, ValueError):
    kind = "invalid_quantity"


class InvalidServings(StoreError, ValueError):
    kind = "invalid_servings"


class EmptyInput(StoreError, ValueError):
    kind = "empty_input"


class NoAvailableIngredients(StoreError, ValueError):
    kind = "no_available_ingredients"


class InsufficientStock(StoreError, ValueError):
    kind = "insufficient_stock"


# --- lookups (LookupError family -> 404 in routes) ---
class ProductNotFound(StoreError, LookupError):
    kind = "product_not_found"


class CartNotFound(StoreError, LookupError):
    kind = "cart_not_found"


class RecipeNotFound(StoreError, LookupError):
    kind = "recipe_not_found"


# --- external generator ---
class AIProviderUnavailable(StoreError):
    kind = "ai_provider_unavailable"


class AIResponseMalformed(StoreError):
    kind = "ai_response_malformed"

    def __init__(self, message: str, excerpt: str = "") -> None:
        super().__init__(message)
        self.excerpt = excerpt

    def to_dict(self) -> dict:
        out = super().to_dict()
        if self.excerpt:
            out["excerpt"] = self.excerpt
        return out
