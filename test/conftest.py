from __future__ import annotations

from typing import Callable, List, Optional, Union

import anyio
import pytest

from smart_food_store.application.ai_suggestions import AISuggestionService
from smart_food_store.application.cart_service import CartService
from smart_food_store.application.recipe_scaler import RecipeScaler
from smart_food_store.core.config import AISettings
from smart_food_store.domain.entities import Product, Recipe, RecipeIngredient, Unit
from smart_food_store.infrastructure.memory_repositories import (
    InMemoryCartRepository,
    InMemoryProductRepository,
    InMemoryRecipeRepository,
)
from smart_food_store.services.llm_client import TextGenerator

TOMATO = Product(id=1, name="Tomato", price=2.50, stock=100, unit=Unit.KILOGRAM)
ONION = Product(id=2, name="Onion", price=1.20, stock=5, unit=Unit.KILOGRAM)
MILK = Product(id=3, name="Milk", price=0.90, stock=20, unit=Unit.LITER)
SAFFRON = Product(id=4, name="Saffron", price=12.00, stock=0, unit=Unit.GRAM)

SOUP = Recipe(
    id=10,
    name="Tomato soup",
    base_servings=2,
    ingredients=[
        RecipeIngredient(product_id=1, base_quantity=4, unit=Unit.KILOGRAM),
        RecipeIngredient(product_id=2, base_quantity=2, unit=Unit.KILOGRAM, notes="chopped"),
        RecipeIngredient(product_id=3, base_quantity=1, unit=Unit.LITER),
    ],
)


class FakeGenerator(TextGenerator):
    """Scripted generator: returns `reply` (or calls it), records every prompt."""

    def __init__(self, reply: Union[str, Callable[[str], str], Exception] = "", delay: float = 0.0) -> None:
        self.reply = reply
        self.delay = delay
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str, timeout: float) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await anyio.sleep(self.delay)
        if isinstance(self.reply, Exception):
            raise self.reply
        if callable(self.reply):
            return self.reply(prompt)
        return self.reply


@pytest.fixture
def product_repo() -> InMemoryProductRepository:
    return InMemoryProductRepository([TOMATO, ONION, MILK, SAFFRON])


@pytest.fixture
def recipe_repo() -> InMemoryRecipeRepository:
    return InMemoryRecipeRepository([SOUP])


@pytest.fixture
def cart_repo() -> InMemoryCartRepository:
    return InMemoryCartRepository()


@pytest.fixture
def cart_service(cart_repo, product_repo) -> CartService:
    return CartService(cart_repo, product_repo)


@pytest.fixture
def scaler(recipe_repo, product_repo, cart_service) -> RecipeScaler:
    return RecipeScaler(recipe_repo, product_repo, cart_service)


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def ai_settings() -> AISettings:
    return AISettings(timeout_s=2.0, max_suggestions=3, excerpt_chars=200, default_dish_servings=2)


@pytest.fixture
def ai_service(product_repo, generator, cart_service, ai_settings) -> AISuggestionService:
    return AISuggestionService(product_repo, generator, cart_service, ai_settings)
