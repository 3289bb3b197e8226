from __future__ import annotations

import logging
import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient

from smart_food_store.core import config
from smart_food_store.api.routes import router
from smart_food_store.application.ai_suggestions import AISuggestionService
from smart_food_store.application.cart_response import CartResponseBuilder
from smart_food_store.application.cart_service import CartService
from smart_food_store.application.recipe_scaler import RecipeScaler
from smart_food_store.infrastructure.memory_repositories import (
    InMemoryCartRepository,
    InMemoryProductRepository,
    InMemoryRecipeRepository,
)
from smart_food_store.infrastructure.mongo_repositories import (
    MongoCartRepository,
    MongoProductRepository,
    MongoRecipeRepository,
)
from smart_food_store.services.llm_client import GeminiTextGenerator

log = logging.getLogger("app")
app = FastAPI(title="Smart Food Store")
app.include_router(router)

_mongo_client: MongoClient | None = None


def _repositories():
    global _mongo_client

    if config.STORE_BACKEND == "memory":
        log.warning("STORE_BACKEND=memory: carts and catalog live in process memory only")
        return InMemoryProductRepository(), InMemoryRecipeRepository(), InMemoryCartRepository()

    _mongo_client = MongoClient(config.MONGO_URI, serverSelectionTimeoutMS=3000)
    db = _mongo_client[config.MONGO_DB]
    product_repo = MongoProductRepository(db[config.MONGO_PRODUCTS_COL])
    recipe_repo = MongoRecipeRepository(db[config.MONGO_RECIPES_COL])
    cart_repo = MongoCartRepository(db[config.MONGO_CARTS_COL], db[config.MONGO_CART_ITEMS_COL])
    cart_repo.ensure_indexes()
    return product_repo, recipe_repo, cart_repo


@app.on_event("startup")
def on_startup() -> None:
    product_repo, recipe_repo, cart_repo = _repositories()

    builder = CartResponseBuilder(product_repo)
    cart_service = CartService(cart_repo, product_repo, builder)
    recipe_scaler = RecipeScaler(recipe_repo, product_repo, cart_service)

    generator = GeminiTextGenerator(
        api_key=config.GEMINI_API_KEY,
        model=config.GEMINI_MODEL,
        api_base=config.GEMINI_API_BASE,
        temperature=config.AI_TEMPERATURE,
    )
    if not generator.configured:
        log.warning("GEMINI_API_KEY not set: /ai endpoints will answer 503")
    ai_service = AISuggestionService(product_repo, generator, cart_service, config.AISettings())

    # DI for routes.py
    app.state.product_repo = product_repo
    app.state.cart_service = cart_service
    app.state.recipe_scaler = recipe_scaler
    app.state.ai_service = ai_service

    log.info("Startup complete (backend=%s)", config.STORE_BACKEND)


@app.on_event("shutdown")
def on_shutdown() -> None:
    global _mongo_client
    if _mongo_client:
        _mongo_client.close()
        _mongo_client = None


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT, reload=False)
