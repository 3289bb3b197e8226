# =========================
# FILE: smart_food_store/services/ai_parsing.py
# Generator output is untrusted text: strip fences, then strict typed parse.
# =========================
from __future__ import annotations

import logging
import re
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from smart_food_store.core.errors import AIResponseMalformed

log = logging.getLogger("services.ai_parsing")

_FENCED = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?[ \t]*```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """
    "```json\\n{...}\\n```"  -> "{...}"
    "Sure! ```{...}``` ok"   -> "{...}"
    plain text               -> stripped text
    """
    t = (text or "").strip()
    m = _FENCED.search(t)
    if m:
        return m.group(1).strip()
    # unterminated fence
    if t.startswith("```"):
        t = re.sub(r"^```[A-Za-z0-9_-]*", "", t).strip()
    return t


def excerpt(text: str, limit: int = 200) -> str:
    return (text or "")[:max(0, limit)]


class _Untrusted(BaseModel):
    # unknown keys (e.g. a generator-supplied "available" or "total_price") are dropped
    model_config = ConfigDict(extra="ignore")


# ----------------------------
# dish -> ingredients
# ----------------------------
class RequiredIngredient(_Untrusted):
    name: str
    quantity: float = 0.0
    unit: str = ""


class ClaimedProduct(_Untrusted):
    id: int
    name: str = ""
    price: float | None = None
    unit: str = ""


class DishPayload(_Untrusted):
    dish_name: str
    description: str = ""
    servings: int
    required_ingredients: List[RequiredIngredient]
    matched_products: List[ClaimedProduct]
    cooking_tips: str = ""


# ----------------------------
# products -> recipes
# ----------------------------
class SuggestedIngredient(_Untrusted):
    product_id: int
    product_name: str = ""
    quantity: float = Field(ge=0, allow_inf_nan=False)
    unit: str = ""


class RecipeSuggestionPayload(_Untrusted):
    name: str
    description: str = ""
    steps: List[str] = Field(default_factory=list)
    prep_time: int = 0
    cook_time: int = 0
    servings: int = 1
    ingredients: List[SuggestedIngredient]
    confidence: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _instructions_as_steps(cls, data: Any) -> Any:
        # older prompt shape: one "instructions" string instead of "steps"
        if isinstance(data, dict) and "steps" not in data and isinstance(data.get("instructions"), str):
            data = dict(data)
            data["steps"] = [ln.strip() for ln in data["instructions"].splitlines() if ln.strip()]
        return data

    @field_validator("steps")
    @classmethod
    def _drop_blank_steps(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]


_SUGGESTIONS = TypeAdapter(List[RecipeSuggestionPayload])


def _malformed(e: ValidationError, cleaned: str, limit: int) -> AIResponseMalformed:
    log.warning("AI response rejected (%d errors)", e.error_count())
    return AIResponseMalformed(
        f"failed to parse AI response ({e.error_count()} validation errors)",
        excerpt=excerpt(cleaned, limit),
    )


def parse_dish(raw: str, excerpt_chars: int = 200) -> DishPayload:
    cleaned = strip_code_fences(raw)
    try:
        return DishPayload.model_validate_json(cleaned)
    except ValidationError as e:
        raise _malformed(e, cleaned, excerpt_chars) from e


def parse_recipe_suggestions(raw: str, excerpt_chars: int = 200) -> List[RecipeSuggestionPayload]:
    cleaned = strip_code_fences(raw)
    try:
        return _SUGGESTIONS.validate_json(cleaned)
    except ValidationError as e:
        raise _malformed(e, cleaned, excerpt_chars) from e
