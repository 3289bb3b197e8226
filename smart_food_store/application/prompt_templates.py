# =========================
# FILE: smart_food_store/application/prompt_templates.py
# =========================
from __future__ import annotations

from typing import Iterable

from smart_food_store.domain.entities import Product

_UNITS_RULE = 'Units: "g", "kg", "l", "ml", "pcs"'


def product_listing(products: Iterable[Product]) -> str:
    """Compact catalog lines used to anchor the generator to real ids."""
    return "\n".join(
        f"- ID: {p.id}, Name: {p.name}, Price: {p.price:.2f} per {p.unit.value}, "
        f"Stock: {p.stock:.0f} {p.unit.value}"
        for p in products
    )


def cart_listing(products: Iterable[Product]) -> str:
    return "\n".join(
        f"- {p.name} (ID: {p.id}, Unit: {p.unit.value}, Price: {p.price:.2f})"
        for p in products
    )


def dish_to_ingredients_prompt(dish_name: str, servings: int, listing: str) -> str:
    return f"""You are a cooking assistant for a food store. A user wants to make "{dish_name}" for {servings} servings.

Here are the available products in our store:
{listing}

Based on these available products, provide the ingredients needed in the following JSON format (ONLY JSON, no other text):
{{
  "dish_name": "{dish_name}",
  "description": "Brief description of the dish",
  "servings": {servings},
  "required_ingredients": [
    {{"name": "Ingredient Name", "quantity": 500, "unit": "g"}}
  ],
  "matched_products": [
    {{"id": 1, "name": "Product Name", "price": 5.99, "unit": "kg"}}
  ],
  "cooking_tips": "Brief cooking tips"
}}

Important rules:
1. In matched_products, ONLY include products from the store list above
2. Use the exact product ID from the store list
3. required_ingredients lists what you need for the recipe
4. matched_products lists which store products to buy
5. {_UNITS_RULE}
6. Return ONLY valid JSON, no markdown code blocks"""


def products_to_recipes_prompt(listing: str, max_suggestions: int) -> str:
    return f"""You are a creative cooking assistant. A user has the following products:

{listing}

Suggest up to {max_suggestions} different recipes they can make with these ingredients. Return ONLY a JSON array (no other text):
[
  {{
    "name": "Recipe Name",
    "description": "Brief description",
    "steps": ["First step", "Second step"],
    "prep_time": 15,
    "cook_time": 30,
    "servings": 4,
    "ingredients": [
      {{"product_id": 1, "product_name": "Product Name", "quantity": 200, "unit": "g"}}
    ],
    "confidence": 0.9
  }}
]

Rules:
1. ONLY use products from the list (use exact product_id)
2. {_UNITS_RULE}
3. Order recipes by how well they use the available ingredients (best first)
4. confidence reflects how complete the recipe is with available ingredients
5. Return ONLY valid JSON array"""
