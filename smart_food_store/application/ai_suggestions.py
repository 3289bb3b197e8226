# smart_food_store/application/ai_suggestions.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import anyio
from pydantic import BaseModel, Field

from smart_food_store.application import prompt_templates as pt
from smart_food_store.application.cart_response import CartResponse
from smart_food_store.application.cart_service import CartLine, CartService
from smart_food_store.core.config import AISettings
from smart_food_store.core.errors import AIProviderUnavailable, EmptyInput, NoAvailableIngredients
from smart_food_store.domain.entities import Product, is_positive_quantity
from smart_food_store.domain.repositories import ProductReadRepo
from smart_food_store.services.ai_parsing import RequiredIngredient, parse_dish, parse_recipe_suggestions
from smart_food_store.services.llm_client import TextGenerator

log = logging.getLogger("app.ai_suggestions")


# ----------------------------
# Sanitized outputs
# ----------------------------
class MatchedProduct(BaseModel):
    id: int
    name: str
    price: float
    unit: str


class AIDishResponse(BaseModel):
    dish_name: str
    description: str = ""
    servings: int
    required_ingredients: List[RequiredIngredient] = Field(default_factory=list)
    matched_products: List[MatchedProduct] = Field(default_factory=list)
    cooking_tips: str = ""
    total_price: float = 0.0


class AIIngredient(BaseModel):
    product_id: int
    product_name: str = ""
    quantity: float = Field(0.0, allow_inf_nan=False)
    unit: str = ""
    available: bool = False
    price: float = 0.0


class AIRecipeSuggestion(BaseModel):
    name: str
    description: str = ""
    steps: List[str] = Field(default_factory=list)
    prep_time: int = 0
    cook_time: int = 0
    servings: int = 1
    ingredients: List[AIIngredient] = Field(default_factory=list)
    total_price: float = 0.0
    confidence: float = 0.0


class CartRecipes(BaseModel):
    cart_items: List[str]
    recipes: List[AIRecipeSuggestion]


def ingredient_price(product: Product, quantity: float) -> float:
    # price is read as per kg/l and quantity as g/ml, whatever the unit says
    return product.price * quantity / 1000


class AISuggestionService:
    """
    Two pipelines over an untrusted text generator:
      A) dish name -> ingredients + matched store products
      B) product ids (or the user's cart) -> recipe suggestions
    Every id the generator mentions is re-resolved against the catalog; its prices never survive.
    """

    def __init__(
        self,
        products: ProductReadRepo,
        generator: TextGenerator,
        cart_service: CartService,
        settings: Optional[AISettings] = None,
    ) -> None:
        self.products = products
        self.generator = generator
        self.cart_service = cart_service
        self.settings = settings or AISettings()

    async def _generate(self, prompt: str) -> str:
        timeout = self.settings.timeout_s
        try:
            with anyio.fail_after(timeout):
                return await self.generator.generate(prompt, timeout)
        except TimeoutError as e:
            log.warning("generator call exceeded %.1fs", timeout)
            raise AIProviderUnavailable("AI provider timed out") from e

    # ----------------------------
    # A) dish -> ingredients
    # ----------------------------
    async def dish_to_ingredients(self, dish_name: str, servings: Optional[int] = None) -> AIDishResponse:
        dish = (dish_name or "").strip()
        if not dish:
            raise EmptyInput("dish_name is required")
        if not servings or servings < 1:
            servings = self.settings.default_dish_servings

        in_stock = await anyio.to_thread.run_sync(self.products.all_in_stock)
        prompt = pt.dish_to_ingredients_prompt(dish, servings, pt.product_listing(in_stock))
        raw = await self._generate(prompt)
        payload = parse_dish(raw, self.settings.excerpt_chars)

        claimed_ids = [mp.id for mp in payload.matched_products]
        resolved = await anyio.to_thread.run_sync(self.products.by_ids, claimed_ids)
        by_id = {p.id: p for p in resolved}

        matched: List[MatchedProduct] = []
        for pid in claimed_ids:
            p = by_id.get(pid)
            if p is None:
                continue
            matched.append(MatchedProduct(id=p.id, name=p.name, price=p.price, unit=p.unit.value))

        dropped = len(claimed_ids) - len(matched)
        if dropped:
            log.info("dish %r: dropped %d unverifiable product(s)", dish, dropped)

        return AIDishResponse(
            dish_name=payload.dish_name,
            description=payload.description,
            servings=payload.servings if payload.servings >= 1 else servings,
            required_ingredients=payload.required_ingredients,
            matched_products=matched,
            cooking_tips=payload.cooking_tips,
            total_price=sum(m.price for m in matched),
        )

    # ----------------------------
    # B) products -> recipes
    # ----------------------------
    async def products_to_recipes(self, product_ids: Iterable[int]) -> List[AIRecipeSuggestion]:
        ids = list(dict.fromkeys(product_ids or []))
        if not ids:
            raise EmptyInput("product_ids must not be empty")

        resolved = await anyio.to_thread.run_sync(self.products.by_ids, ids)
        if not resolved:
            raise EmptyInput("none of the requested products exist")
        by_id: Dict[int, Product] = {p.id: p for p in resolved}

        prompt = pt.products_to_recipes_prompt(pt.cart_listing(resolved), self.settings.max_suggestions)
        raw = await self._generate(prompt)
        payloads = parse_recipe_suggestions(raw, self.settings.excerpt_chars)

        out: List[AIRecipeSuggestion] = []
        for s in payloads[: self.settings.max_suggestions]:
            ingredients: List[AIIngredient] = []
            total = 0.0
            for ing in s.ingredients:
                p = by_id.get(ing.product_id)
                if p is None:
                    ingredients.append(
                        AIIngredient(
                            product_id=ing.product_id,
                            product_name=ing.product_name,
                            quantity=ing.quantity,
                            unit=ing.unit,
                            available=False,
                            price=0.0,
                        )
                    )
                    continue
                price = ingredient_price(p, ing.quantity)
                total += price
                ingredients.append(
                    AIIngredient(
                        product_id=p.id,
                        product_name=p.name,
                        quantity=ing.quantity,
                        unit=ing.unit or p.unit.value,
                        available=True,
                        price=price,
                    )
                )
            out.append(
                AIRecipeSuggestion(
                    name=s.name,
                    description=s.description,
                    steps=s.steps,
                    prep_time=s.prep_time,
                    cook_time=s.cook_time,
                    servings=max(1, s.servings),
                    ingredients=ingredients,
                    total_price=total,
                    confidence=s.confidence,
                )
            )
        return out

    async def cart_to_recipes(self, user_id: int) -> CartRecipes:
        ids = await anyio.to_thread.run_sync(self.cart_service.product_ids, user_id)
        if not ids:
            raise EmptyInput("Cart is empty")
        names = await anyio.to_thread.run_sync(self.cart_service.item_names, user_id)
        recipes = await self.products_to_recipes(ids)
        return CartRecipes(cart_items=names, recipes=recipes)

    # ----------------------------
    # promotion
    # ----------------------------
    def promote_to_cart(self, user_id: int, suggestion: AIRecipeSuggestion) -> CartResponse:
        flagged = [i for i in suggestion.ingredients if i.available and is_positive_quantity(i.quantity)]
        # the client's "available" only nominates; the catalog decides
        in_stock = {p.id for p in self.products.by_ids(i.product_id for i in flagged) if p.stock > 0}
        lines = [CartLine(i.product_id, i.quantity) for i in flagged if i.product_id in in_stock]
        if not lines:
            raise NoAvailableIngredients("No available ingredients to add")
        if len(lines) < len(flagged):
            log.info("promote user=%s: %d flagged ingredient(s) not in stock", user_id, len(flagged) - len(lines))
        # add_multiple clamps to stock
        return self.cart_service.add_multiple(user_id, lines)
