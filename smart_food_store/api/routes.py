# smart_food_store/api/routes.py
from __future__ import annotations

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from smart_food_store.api.schemas import (
    AddRecipeToCartRequest,
    CartItemRequest,
    CartOut,
    DishToIngredientsRequest,
    ProductOut,
    ProductPatchRequest,
    ProductsToRecipesRequest,
    QuantityRequest,
    ScaledIngredientsOut,
)
from smart_food_store.application.ai_suggestions import (
    AIDishResponse,
    AIRecipeSuggestion,
    AISuggestionService,
    CartRecipes,
)
from smart_food_store.application.cart_service import CartLine, CartService
from smart_food_store.application.recipe_scaler import RecipeScaler, scaled_result_to_dict
from smart_food_store.core.errors import (
    AIProviderUnavailable,
    AIResponseMalformed,
    InsufficientStock,
    StoreError,
)
from smart_food_store.domain.entities import Identity, ProductPatch, Role
from smart_food_store.domain.repositories import ProductReadRepo

log = logging.getLogger("api.routes")
router = APIRouter()


# -------------------------
# Dependencies via app.state
# -------------------------
def _state(request: Request, name: str) -> Any:
    svc = getattr(request.app.state, name, None)
    if svc is None:
        raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
    return svc


def get_cart_service(request: Request) -> CartService:
    return _state(request, "cart_service")


def get_recipe_scaler(request: Request) -> RecipeScaler:
    return _state(request, "recipe_scaler")


def get_ai_service(request: Request) -> AISuggestionService:
    return _state(request, "ai_service")


def get_product_repo(request: Request) -> ProductReadRepo:
    return _state(request, "product_repo")


def get_identity(
    x_user_id: int | None = Header(default=None),
    x_user_role: str = Header(default="user"),
) -> Identity:
    """The upstream gateway verifies the token and forwards who the caller is."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        role = Role(x_user_role.strip().lower())
    except ValueError:
        role = Role.USER
    return Identity(user_id=x_user_id, role=role)


def _http_error(e: StoreError) -> HTTPException:
    if isinstance(e, LookupError):
        status = 404
    elif isinstance(e, InsufficientStock):
        status = 409
    elif isinstance(e, AIProviderUnavailable):
        status = 503
    elif isinstance(e, AIResponseMalformed):
        status = 502
    else:
        status = 400
    return HTTPException(status_code=status, detail=e.to_dict())


def _internal(where: str) -> HTTPException:
    log.exception("Processing %s error", where)
    return HTTPException(status_code=500, detail={"error": "internal", "message": "Internal server error"})


# -------------------------
# /cart
# -------------------------
@router.get("/cart", response_model=CartOut)
def get_cart(who: Identity = Depends(get_identity), carts: CartService = Depends(get_cart_service)) -> Any:
    try:
        return carts.get_cart(who.user_id).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("GET /cart")


@router.post("/cart/items", response_model=CartOut)
def add_cart_item(
    req: CartItemRequest,
    who: Identity = Depends(get_identity),
    carts: CartService = Depends(get_cart_service),
) -> Any:
    try:
        return carts.add_item(who.user_id, req.product_id, req.quantity).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /cart/items")


@router.post("/cart/items/bulk", response_model=CartOut)
def add_cart_items_bulk(
    req: List[CartItemRequest],
    who: Identity = Depends(get_identity),
    carts: CartService = Depends(get_cart_service),
) -> Any:
    try:
        lines = [CartLine(r.product_id, r.quantity) for r in req]
        return carts.add_multiple(who.user_id, lines).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /cart/items/bulk")


@router.put("/cart/items/{product_id}", response_model=CartOut)
def update_cart_item(
    product_id: int,
    req: QuantityRequest,
    who: Identity = Depends(get_identity),
    carts: CartService = Depends(get_cart_service),
) -> Any:
    try:
        return carts.update_quantity(who.user_id, product_id, req.quantity).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("PUT /cart/items")


@router.delete("/cart/items/{product_id}", response_model=CartOut)
def remove_cart_item(
    product_id: int,
    who: Identity = Depends(get_identity),
    carts: CartService = Depends(get_cart_service),
) -> Any:
    try:
        return carts.remove_item(who.user_id, product_id).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("DELETE /cart/items")


@router.delete("/cart")
def clear_cart(who: Identity = Depends(get_identity), carts: CartService = Depends(get_cart_service)) -> Any:
    try:
        carts.clear(who.user_id)
        return {"message": "Cart cleared successfully"}
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("DELETE /cart")


# -------------------------
# /recipes
# -------------------------
@router.get("/recipes/{recipe_id}/ingredients", response_model=ScaledIngredientsOut)
def recipe_ingredients(
    recipe_id: int,
    servings: int = Query(..., description="Target number of servings"),
    scaler: RecipeScaler = Depends(get_recipe_scaler),
) -> Any:
    try:
        return scaled_result_to_dict(scaler.calculate(recipe_id, servings))
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("GET /recipes/ingredients")


@router.post("/recipes/add-to-cart", response_model=CartOut)
def add_recipe_to_cart(
    req: AddRecipeToCartRequest,
    who: Identity = Depends(get_identity),
    scaler: RecipeScaler = Depends(get_recipe_scaler),
) -> Any:
    try:
        return scaler.add_to_cart(who.user_id, req.recipe_id, req.servings).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /recipes/add-to-cart")


# -------------------------
# /ai
# -------------------------
@router.post("/ai/dish-to-ingredients", response_model=AIDishResponse)
async def dish_to_ingredients(req: DishToIngredientsRequest, ai: AISuggestionService = Depends(get_ai_service)) -> Any:
    try:
        return await ai.dish_to_ingredients(req.dish_name, req.servings)
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /ai/dish-to-ingredients")


@router.post("/ai/products-to-recipes", response_model=List[AIRecipeSuggestion])
async def products_to_recipes(req: ProductsToRecipesRequest, ai: AISuggestionService = Depends(get_ai_service)) -> Any:
    try:
        return await ai.products_to_recipes(req.product_ids)
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /ai/products-to-recipes")


@router.get("/ai/cart-to-recipes", response_model=CartRecipes)
async def cart_to_recipes(who: Identity = Depends(get_identity), ai: AISuggestionService = Depends(get_ai_service)) -> Any:
    try:
        return await ai.cart_to_recipes(who.user_id)
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("GET /ai/cart-to-recipes")


@router.post("/ai/add-to-cart", response_model=CartOut)
def add_suggestion_to_cart(
    suggestion: AIRecipeSuggestion,
    who: Identity = Depends(get_identity),
    ai: AISuggestionService = Depends(get_ai_service),
) -> Any:
    try:
        return ai.promote_to_cart(who.user_id, suggestion).to_dict()
    except StoreError as e:
        raise _http_error(e)
    except Exception:
        raise _internal("POST /ai/add-to-cart")


# -------------------------
# /products (admin patch)
# -------------------------
@router.patch("/products/{product_id}", response_model=ProductOut)
def patch_product(
    product_id: int,
    req: ProductPatchRequest,
    who: Identity = Depends(get_identity),
    products: ProductReadRepo = Depends(get_product_repo),
) -> Any:
    if not who.is_admin:
        raise HTTPException(status_code=403, detail={"error": "forbidden", "message": "Admin role required"})
    try:
        patch = ProductPatch.from_changes(req.model_dump(exclude_unset=True))
        p = products.update(product_id, patch)
        return {"id": p.id, "name": p.name, "price": p.price, "stock": p.stock, "unit": p.unit.value}
    except StoreError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": "invalid_patch", "message": str(e)})
    except Exception:
        raise _internal("PATCH /products")
