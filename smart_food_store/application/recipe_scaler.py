# smart_food_store/application/recipe_scaler.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from smart_food_store.application.cart_response import CartResponse
from smart_food_store.application.cart_service import CartLine, CartService
from smart_food_store.core.errors import InvalidServings, RecipeNotFound
from smart_food_store.domain.entities import Recipe, ScaledIngredient, ScaledIngredientResult
from smart_food_store.domain.repositories import ProductReadRepo, RecipeReadRepo

log = logging.getLogger("app.recipe_scaler")


def check_servings(servings: Any) -> int:
    # bool is an int subclass; "True servings" is not a serving count
    if isinstance(servings, bool) or not isinstance(servings, int) or servings < 1:
        raise InvalidServings(f"servings must be an integer >= 1, got {servings!r}")
    return servings


def scaled_result_to_dict(result: ScaledIngredientResult) -> Dict[str, Any]:
    return {
        "ingredients": [
            {
                "product_id": i.product_id,
                "product_name": i.product_name,
                "quantity": i.quantity,
                "unit": i.unit.value,
                "available": i.available,
                "price": i.line_price,
            }
            for i in result.ingredients
        ],
        "total_price": result.total_price,
    }


class RecipeScaler:
    """recipe -> linear scale by servings -> priced ingredient list -> cart."""

    def __init__(self, recipes: RecipeReadRepo, products: ProductReadRepo, cart_service: CartService) -> None:
        self.recipes = recipes
        self.products = products
        self.cart_service = cart_service

    def _recipe(self, recipe_id: int) -> Recipe:
        r = self.recipes.by_id(recipe_id)
        if r is None:
            raise RecipeNotFound(f"Recipe not found: {recipe_id}")
        return r

    def scale(self, recipe: Recipe, target_servings: int) -> ScaledIngredientResult:
        check_servings(target_servings)
        ratio = target_servings / recipe.base_servings

        by_id = {p.id: p for p in self.products.by_ids(ing.product_id for ing in recipe.ingredients)}

        out: List[ScaledIngredient] = []
        total = 0.0
        for ing in recipe.ingredients:
            p = by_id.get(ing.product_id)
            if p is None:
                log.debug("recipe %s: product %s gone, dropped", recipe.id, ing.product_id)
                continue
            qty = ing.base_quantity * ratio
            line_price = p.price * qty
            total += line_price
            out.append(
                ScaledIngredient(
                    product_id=p.id,
                    product_name=p.name,
                    quantity=qty,
                    unit=ing.unit,
                    available=p.stock >= qty,
                    line_price=line_price,
                )
            )
        return ScaledIngredientResult(ingredients=out, total_price=total)

    def calculate(self, recipe_id: int, servings: int) -> ScaledIngredientResult:
        check_servings(servings)
        return self.scale(self._recipe(recipe_id), servings)

    def add_to_cart(self, user_id: int, recipe_id: int, servings: int) -> CartResponse:
        result = self.calculate(recipe_id, servings)
        lines = [CartLine(i.product_id, i.quantity) for i in result.ingredients if i.available]
        log.info(
            "recipe %s x%d -> cart user=%s (%d/%d available)",
            recipe_id, servings, user_id, len(lines), len(result.ingredients),
        )
        return self.cart_service.add_multiple(user_id, lines)
