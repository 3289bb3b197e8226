from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from smart_food_store.api.routes import router

USER = {"X-User-Id": "7"}
ADMIN = {"X-User-Id": "1", "X-User-Role": "admin"}


@pytest.fixture
def client(product_repo, cart_service, scaler, ai_service):
    app = FastAPI()
    app.include_router(router)
    app.state.product_repo = product_repo
    app.state.cart_service = cart_service
    app.state.recipe_scaler = scaler
    app.state.ai_service = ai_service
    return TestClient(app)


def test_cart_requires_identity(client):
    assert client.get("/cart").status_code == 401
    assert client.post("/cart/items", json={"product_id": 1, "quantity": 1}).status_code == 401


def test_add_tomatoes(client):
    r = client.post("/cart/items", json={"product_id": 1, "quantity": 3}, headers=USER)
    assert r.status_code == 200
    body = r.json()
    assert body["item_count"] == 1
    assert body["items"][0]["product_name"] == "Tomato"
    assert body["items"][0]["subtotal"] == pytest.approx(7.5)
    assert body["total_price"] == pytest.approx(7.5)

    again = client.get("/cart", headers=USER).json()
    assert again["id"] == body["id"]


def test_carts_are_per_user(client):
    client.post("/cart/items", json={"product_id": 1, "quantity": 3}, headers=USER)
    other = client.get("/cart", headers={"X-User-Id": "8"}).json()
    assert other["items"] == []


@pytest.mark.parametrize("qty", [0, -1])
def test_add_rejects_non_positive_body(client, qty):
    r = client.post("/cart/items", json={"product_id": 1, "quantity": qty}, headers=USER)
    assert r.status_code == 422


def test_error_kinds(client):
    r = client.post("/cart/items", json={"product_id": 999, "quantity": 1}, headers=USER)
    assert r.status_code == 404
    assert r.json()["detail"]["error"] == "product_not_found"

    r = client.post("/cart/items", json={"product_id": 2, "quantity": 6}, headers=USER)
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "insufficient_stock"


def test_update_and_remove(client):
    client.post("/cart/items", json={"product_id": 1, "quantity": 3}, headers=USER)
    r = client.put("/cart/items/1", json={"quantity": 5}, headers=USER)
    assert r.json()["items"][0]["quantity"] == 5

    r = client.put("/cart/items/1", json={"quantity": 0}, headers=USER)
    assert r.json()["items"] == []

    r = client.delete("/cart/items/1", headers=USER)
    assert r.status_code == 200


def test_bulk_add_and_clear(client):
    r = client.post(
        "/cart/items/bulk",
        json=[{"product_id": 1, "quantity": 500}, {"product_id": 999, "quantity": 1}, {"product_id": 3, "quantity": 2}],
        headers=USER,
    )
    assert r.status_code == 200
    assert {it["product_id"]: it["quantity"] for it in r.json()["items"]} == {1: 100, 3: 2}

    r = client.delete("/cart", headers=USER)
    assert r.json() == {"message": "Cart cleared successfully"}
    assert client.get("/cart", headers=USER).json()["item_count"] == 0


def test_recipe_ingredients(client):
    r = client.get("/recipes/10/ingredients", params={"servings": 4})
    assert r.status_code == 200
    body = r.json()
    assert [i["quantity"] for i in body["ingredients"]] == [8, 4, 2]
    assert body["total_price"] == pytest.approx(2.5 * 8 + 1.2 * 4 + 0.9 * 2)


def test_recipe_ingredients_errors(client):
    assert client.get("/recipes/10/ingredients", params={"servings": 0}).status_code == 400
    assert client.get("/recipes/77/ingredients", params={"servings": 2}).status_code == 404


def test_recipe_add_to_cart(client):
    r = client.post("/recipes/add-to-cart", json={"recipe_id": 10, "servings": 2}, headers=USER)
    assert r.status_code == 200
    assert r.json()["item_count"] == 3


def test_dish_to_ingredients(client, generator):
    generator.reply = json.dumps(
        {
            "dish_name": "Soup",
            "servings": 2,
            "required_ingredients": [],
            "matched_products": [{"id": 1, "name": "Tomato", "price": 0.01, "unit": "kg"}],
        }
    )
    r = client.post("/ai/dish-to-ingredients", json={"dish_name": "Soup"})
    assert r.status_code == 200
    body = r.json()
    assert body["matched_products"][0]["price"] == 2.5
    assert body["total_price"] == 2.5


def test_ai_error_statuses(client, generator):
    generator.reply = "not json at all"
    r = client.post("/ai/products-to-recipes", json={"product_ids": [1]})
    assert r.status_code == 502
    assert r.json()["detail"]["excerpt"] == "not json at all"

    r = client.post("/ai/products-to-recipes", json={"product_ids": []})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "empty_input"


def test_cart_to_recipes_empty_cart(client):
    r = client.get("/ai/cart-to-recipes", headers=USER)
    assert r.status_code == 400


def test_ai_add_to_cart(client):
    suggestion = {
        "name": "Salad",
        "ingredients": [
            {"product_id": 1, "quantity": 2, "available": True},
            {"product_id": 2, "quantity": 1, "available": False},
        ],
    }
    r = client.post("/ai/add-to-cart", json=suggestion, headers=USER)
    assert r.status_code == 200
    assert [it["product_id"] for it in r.json()["items"]] == [1]

    suggestion["ingredients"][0]["available"] = False
    r = client.post("/ai/add-to-cart", json=suggestion, headers=USER)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "no_available_ingredients"


def test_patch_product_requires_admin(client):
    r = client.patch("/products/1", json={"price": 3.0}, headers=USER)
    assert r.status_code == 403


def test_patch_product(client, product_repo):
    r = client.patch("/products/1", json={"price": 3.0, "unit": "g"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"id": 1, "name": "Tomato", "price": 3.0, "stock": 100, "unit": "g"}
    assert product_repo.by_id(1).price == 3.0


def test_patch_product_errors(client):
    assert client.patch("/products/999", json={"price": 3.0}, headers=ADMIN).status_code == 404
    assert client.patch("/products/1", json={"price": None}, headers=ADMIN).status_code == 400
    assert client.patch("/products/1", json={"colour": "red"}, headers=ADMIN).status_code == 422


def test_nan_quantity_rejected(client, cart_service):
    client.post("/cart/items", json={"product_id": 1, "quantity": 3}, headers=USER)
    nan_body = {"content-type": "application/json", **USER}

    r = client.put("/cart/items/1", content='{"quantity": NaN}', headers=nan_body)
    assert r.status_code == 422

    r = client.post(
        "/ai/add-to-cart",
        content='{"name": "x", "ingredients": [{"product_id": 1, "quantity": NaN, "available": true}]}',
        headers=nan_body,
    )
    assert r.status_code == 422
    assert [it.quantity for it in cart_service.cart(7).items] == [3]


def test_ai_add_to_cart_unknown_products_only(client, cart_service):
    suggestion = {"name": "x", "ingredients": [{"product_id": 999, "quantity": 1, "available": True}]}
    r = client.post("/ai/add-to-cart", json=suggestion, headers=USER)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "no_available_ingredients"
    assert cart_service.carts.by_user(7) is None
