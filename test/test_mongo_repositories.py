from __future__ import annotations

import mongomock
import pytest

from smart_food_store.core.errors import CartNotFound, InvalidQuantity, ProductNotFound
from smart_food_store.domain.entities import ProductPatch, Unit
from smart_food_store.infrastructure.mongo_repositories import (
    MongoCartRepository,
    MongoProductRepository,
    MongoRecipeRepository,
)


@pytest.fixture
def db():
    return mongomock.MongoClient()["smart_food_store_test"]


@pytest.fixture
def products(db):
    db.products.insert_many(
        [
            {"_id": 1, "name": "Tomato", "price": 2.5, "stock": 100, "unit": "kg"},
            {"_id": 2, "name": "Onion", "price": 1.2, "stock": 0, "unit": "kg"},
            {"_id": 3, "name": "Milk", "price": 0.9, "stock": 20, "unit": "L"},
            {"_id": 4, "name": "Broken", "price": "n/a", "stock": 1},
        ]
    )
    return MongoProductRepository(db.products)


@pytest.fixture
def carts(db):
    repo = MongoCartRepository(db.carts, db.cart_items)
    repo.ensure_indexes()
    return repo


def test_product_lookup(products):
    p = products.by_id(3)
    assert (p.name, p.unit) == ("Milk", Unit.LITER)
    assert products.by_id(99) is None
    assert products.by_id(4) is None


def test_by_ids_keeps_caller_order_and_drops_unknown(products):
    assert [p.id for p in products.by_ids([3, 99, 1, 3])] == [3, 1]
    assert products.by_ids([]) == []


def test_all_in_stock(products):
    assert [p.id for p in products.all_in_stock()] == [1, 3]


def test_product_patch(products):
    p = products.update(1, ProductPatch.from_changes({"price": 3, "unit": "g"}))
    assert (p.price, p.unit, p.stock) == (3.0, Unit.GRAM, 100)
    assert products.by_id(1).unit == Unit.GRAM

    with pytest.raises(ProductNotFound):
        products.update(99, ProductPatch.from_changes({"stock": 1}))


def test_recipe_parse(db):
    db.recipes.insert_one(
        {
            "_id": 10,
            "name": " Soup ",
            "servings": 0,
            "ingredients": [{"product_id": 1, "quantity": 4, "unit": "kg", "notes": "ripe"}],
        }
    )
    r = MongoRecipeRepository(db.recipes).by_id(10)
    assert r.name == "Soup"
    assert r.base_servings == 1
    assert r.ingredients[0].base_quantity == 4
    assert r.ingredients[0].notes == "ripe"
    assert MongoRecipeRepository(db.recipes).by_id(11) is None


def test_get_or_create_is_idempotent(carts, db):
    a = carts.get_or_create(5)
    b = carts.get_or_create(5)
    assert a.id == b.id
    assert db.carts.count_documents({"user_id": 5}) == 1
    assert carts.by_user(6) is None


def test_add_item_merges_with_inc(carts, db):
    cart = carts.get_or_create(5)
    carts.add_item(cart.id, 1, 2)
    carts.add_item(cart.id, 1, 3)
    carts.add_item(cart.id, 3, 1)

    cart = carts.by_user(5)
    assert [(i.product_id, i.quantity) for i in cart.items] == [(1, 5), (3, 1)]
    assert db.cart_items.count_documents({"cart_id": cart.id}) == 2


def test_set_quantity_and_remove(carts):
    cart = carts.get_or_create(5)
    carts.add_item(cart.id, 1, 2)
    carts.set_quantity(cart.id, 1, 7)
    assert carts.by_user(5).items[0].quantity == 7

    carts.set_quantity(cart.id, 3, 4)  # absent: no-op
    assert len(carts.by_user(5).items) == 1

    carts.set_quantity(cart.id, 1, 0)
    assert carts.by_user(5).items == []

    carts.add_item(cart.id, 1, 1)
    carts.remove_item(cart.id, 1)
    carts.remove_item(cart.id, 1)
    assert carts.by_user(5).items == []


def test_clear_keeps_cart_row(carts):
    cart = carts.get_or_create(5)
    carts.add_item(cart.id, 1, 2)
    carts.add_item(cart.id, 3, 2)
    carts.clear(cart.id)
    after = carts.get_or_create(5)
    assert after.id == cart.id
    assert after.items == []


@pytest.mark.parametrize("cart_id", ["not-an-object-id", "5f0000000000000000000000"])
def test_unknown_cart(carts, cart_id):
    with pytest.raises(CartNotFound):
        carts.add_item(cart_id, 1, 1)
    with pytest.raises(CartNotFound):
        carts.set_quantity(cart_id, 1, 1)
    with pytest.raises(CartNotFound):
        carts.clear(cart_id)


def test_add_item_rejects_non_positive(carts):
    cart = carts.get_or_create(5)
    with pytest.raises(InvalidQuantity):
        carts.add_item(cart.id, 1, 0)


def test_non_finite_quantities_rejected(carts):
    cart = carts.get_or_create(5)
    carts.add_item(cart.id, 1, 2)
    with pytest.raises(InvalidQuantity):
        carts.add_item(cart.id, 1, float("nan"))
    with pytest.raises(InvalidQuantity):
        carts.set_quantity(cart.id, 1, float("inf"))
    assert carts.by_user(5).items[0].quantity == 2
