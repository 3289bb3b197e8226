# smart_food_store/core/config.py
from __future__ import annotations
from dataclasses import dataclass
import os
import logging

from dotenv import load_dotenv

load_dotenv()

# Storage
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "mongo").strip().lower()  # mongo | memory
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB: str = os.getenv("MONGO_DB", "smart_food_store")
MONGO_PRODUCTS_COL: str = os.getenv("MONGO_PRODUCTS_COL", "products")
MONGO_RECIPES_COL: str = os.getenv("MONGO_RECIPES_COL", "recipes")
MONGO_CARTS_COL: str = os.getenv("MONGO_CARTS_COL", "carts")
MONGO_CART_ITEMS_COL: str = os.getenv("MONGO_CART_ITEMS_COL", "cart_items")

# Gemini text generation
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE: str = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1").rstrip("/")
AI_TIMEOUT_S: float = float(os.getenv("AI_TIMEOUT_S", "30"))
AI_TEMPERATURE: float = float(os.getenv("AI_TEMPERATURE", "0.7"))
AI_MAX_SUGGESTIONS: int = int(os.getenv("AI_MAX_SUGGESTIONS", "3"))
AI_EXCERPT_CHARS: int = int(os.getenv("AI_EXCERPT_CHARS", "200"))
DEFAULT_DISH_SERVINGS: int = int(os.getenv("DEFAULT_DISH_SERVINGS", "2"))

PORT: int = int(os.getenv("PORT", "8080"))


@dataclass(frozen=True)
class AISettings:
    timeout_s: float = AI_TIMEOUT_S
    max_suggestions: int = AI_MAX_SUGGESTIONS
    excerpt_chars: int = AI_EXCERPT_CHARS
    default_dish_servings: int = DEFAULT_DISH_SERVINGS


# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
LOGGER = logging.getLogger("smart_food_store")
