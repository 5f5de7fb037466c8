import pytest

from models.cart import Cart, CartItem
from routes import cart as cart_ops
from utils.errors import (
    InvalidQuantity, InvalidSize, InsufficientStock, ItemNotFound, ProductNotFound, UserNotFound
)


def _lines(db, user_id):
    db.expire_all()
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if cart is None:
        return []
    return [(it.product_id, it.size_id, it.quantity) for it in cart.items]


# ---- operations ----

def test_get_or_create_persists_empty_cart(db, customer):
    cart = cart_ops.get_or_create_cart(db, customer.id)
    assert cart.items == []
    again = cart_ops.get_or_create_cart(db, customer.id)
    assert again.id == cart.id
    assert db.query(Cart).count() == 1


def test_get_or_create_unknown_user(db):
    with pytest.raises(UserNotFound):
        cart_ops.get_or_create_cart(db, 999)


def test_add_to_empty_cart_creates_single_line(db, customer, make_product, sizes):
    product = make_product(stock=5)
    eu42 = sizes[0]

    cart_ops.add_item(db, customer.id, product.id, eu42.id, 3)

    assert _lines(db, customer.id) == [(product.id, eu42.id, 3)]


def test_adding_same_product_and_size_merges_quantities(db, customer, make_product, sizes):
    product = make_product(stock=5)
    eu42 = sizes[0]

    cart_ops.add_item(db, customer.id, product.id, eu42.id, 2)
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 3)

    assert _lines(db, customer.id) == [(product.id, eu42.id, 5)]
    assert db.query(CartItem).count() == 1


def test_different_sizes_are_separate_lines(db, customer, make_product, sizes):
    product = make_product(stock=5)
    eu42, eu43, _ = sizes

    cart_ops.add_item(db, customer.id, product.id, eu42.id, 1)
    cart_ops.add_item(db, customer.id, product.id, eu43.id, 1)

    assert sorted(_lines(db, customer.id)) == sorted([(product.id, eu42.id, 1), (product.id, eu43.id, 1)])


def test_add_over_stock_is_rejected_without_mutation(db, customer, make_product, sizes):
    product = make_product(stock=4)
    eu42 = sizes[0]

    with pytest.raises(InsufficientStock) as exc:
        cart_ops.add_item(db, customer.id, product.id, eu42.id, 5)
    assert exc.value.shortfall == 1
    assert _lines(db, customer.id) == []


def test_merge_checks_new_total_against_stock(db, customer, make_product, sizes):
    product = make_product(stock=4)
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 3)

    with pytest.raises(InsufficientStock) as exc:
        cart_ops.add_item(db, customer.id, product.id, eu42.id, 2)

    assert exc.value.requested == 5
    assert exc.value.available == 4
    assert _lines(db, customer.id) == [(product.id, eu42.id, 3)]


def test_add_rejects_size_not_offered_for_product(db, customer, make_product, sizes):
    product = make_product()
    kids = sizes[2]
    with pytest.raises(InvalidSize):
        cart_ops.add_item(db, customer.id, product.id, kids.id, 1)


def test_add_unknown_product(db, customer, sizes):
    with pytest.raises(ProductNotFound):
        cart_ops.add_item(db, customer.id, 12345, sizes[0].id, 1)


@pytest.mark.parametrize("quantity", [0, -2, True])
def test_add_rejects_non_positive_quantity(db, customer, make_product, sizes, quantity):
    product = make_product()
    with pytest.raises(InvalidQuantity):
        cart_ops.add_item(db, customer.id, product.id, sizes[0].id, quantity)


def test_update_sets_absolute_quantity(db, customer, make_product, sizes):
    product = make_product(stock=6)
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 2)

    cart_ops.update_item_quantity(db, customer.id, product.id, eu42.id, 6)

    assert _lines(db, customer.id) == [(product.id, eu42.id, 6)]


def test_update_checks_absolute_quantity_against_stock(db, customer, make_product, sizes):
    product = make_product(stock=6)
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 5)

    with pytest.raises(InsufficientStock):
        cart_ops.update_item_quantity(db, customer.id, product.id, eu42.id, 7)
    assert _lines(db, customer.id) == [(product.id, eu42.id, 5)]


@pytest.mark.parametrize("quantity", [0, -1])
def test_update_with_non_positive_quantity_is_not_a_not_found(db, customer, make_product, sizes, quantity):
    product = make_product()
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 1)

    with pytest.raises(InvalidQuantity) as exc:
        cart_ops.update_item_quantity(db, customer.id, product.id, eu42.id, quantity)
    assert "remove" in exc.value.message
    assert _lines(db, customer.id) == [(product.id, eu42.id, 1)]


def test_update_missing_line(db, customer, make_product, sizes):
    product = make_product()
    with pytest.raises(ItemNotFound):
        cart_ops.update_item_quantity(db, customer.id, product.id, sizes[0].id, 1)


def test_remove_twice_reports_not_found_the_second_time(db, customer, make_product, sizes):
    product = make_product()
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 1)

    cart_ops.remove_item(db, customer.id, product.id, eu42.id)
    with pytest.raises(ItemNotFound):
        cart_ops.remove_item(db, customer.id, product.id, eu42.id)
    assert _lines(db, customer.id) == []


def test_remove_line_of_deleted_product(db, customer, make_product, sizes):
    product = make_product()
    eu42 = sizes[0]
    cart_ops.add_item(db, customer.id, product.id, eu42.id, 1)
    pid = product.id
    db.delete(product)
    db.commit()

    cart_ops.remove_item(db, customer.id, pid, eu42.id)
    assert _lines(db, customer.id) == []


def test_clear_without_cart_is_not_an_error(db, customer):
    assert cart_ops.clear_cart(db, customer.id) is None


def test_clear_empties_cart(db, customer, make_product, sizes):
    product = make_product()
    cart_ops.add_item(db, customer.id, product.id, sizes[0].id, 2)
    cart_ops.add_item(db, customer.id, product.id, sizes[1].id, 1)

    cart = cart_ops.clear_cart(db, customer.id)

    assert cart.items == []
    assert db.query(CartItem).count() == 0


def test_view_uses_live_discounted_price(db, customer, make_product, sizes):
    product = make_product(price=200000, stock=5)
    eu42 = sizes[0]
    cart = cart_ops.add_item(db, customer.id, product.id, eu42.id, 2)
    assert cart_ops.cart_view(cart).items_price == 400000

    product.is_on_sale = True
    product.discount = 25
    db.commit()
    db.expire_all()

    view = cart_ops.cart_view(cart_ops.get_or_create_cart(db, customer.id))
    line = view.items[0]
    assert line.product.discounted_price == 150000
    assert line.line_total == 300000
    assert line.size.label == "EU 42"
    assert view.total_quantity == 2


def test_view_keeps_line_of_deleted_product_without_price(db, customer, make_product, sizes):
    kept = make_product(name="Kept", price=100000)
    gone = make_product(name="Gone", price=900000)
    cart_ops.add_item(db, customer.id, kept.id, sizes[0].id, 1)
    cart_ops.add_item(db, customer.id, gone.id, sizes[0].id, 1)
    db.delete(gone)
    db.commit()
    db.expire_all()

    view = cart_ops.cart_view(cart_ops.get_or_create_cart(db, customer.id))

    assert len(view.items) == 2
    orphan = [line for line in view.items if line.product is None]
    assert len(orphan) == 1 and orphan[0].line_total is None
    assert view.items_price == 100000


# ---- HTTP ----

def test_get_cart_requires_token(client):
    res = client.get("/cart")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_get_cart_rejects_garbage_token(client):
    res = client.get("/cart", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


def test_get_cart_creates_empty_cart(client, auth):
    res = client.get("/cart", headers=auth)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["items"] == []
    assert body["data"]["total_quantity"] == 0


def test_add_item_returns_enriched_cart(client, auth, make_product, sizes):
    product = make_product(price=1000000, stock=3)
    eu42 = sizes[0]

    res = client.post("/cart/items", json={"productId": product.id, "sizeId": eu42.id, "quantity": 2}, headers=auth)

    assert res.status_code == 200
    data = res.json()["data"]
    assert len(data["items"]) == 1
    line = data["items"][0]
    assert line["quantity"] == 2
    assert line["product"]["name"] == "Runner"
    assert line["product"]["stock"] == 3
    assert line["size"]["value"] == "42"
    assert line["line_total"] == 2000000
    assert data["items_price"] == 2000000


def test_add_item_errors_map_to_http(client, auth, make_product, sizes):
    product = make_product(stock=1)
    eu42, _, kids = sizes

    over = client.post("/cart/items", json={"productId": product.id, "sizeId": eu42.id, "quantity": 2}, headers=auth)
    assert over.status_code == 400
    assert "Insufficient stock" in over.json()["message"]

    bad_size = client.post("/cart/items", json={"productId": product.id, "sizeId": kids.id, "quantity": 1}, headers=auth)
    assert bad_size.status_code == 400

    missing = client.post("/cart/items", json={"productId": 999, "sizeId": eu42.id, "quantity": 1}, headers=auth)
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "Product not found"}

    malformed = client.post("/cart/items", json={"productId": product.id, "quantity": 1}, headers=auth)
    assert malformed.status_code == 400
    assert "sizeId" in malformed.json()["message"]


def test_update_and_remove_over_http(client, auth, make_product, sizes):
    product = make_product(stock=5)
    eu42 = sizes[0]
    client.post("/cart/items", json={"productId": product.id, "sizeId": eu42.id, "quantity": 1}, headers=auth)

    updated = client.put(f"/cart/items/{product.id}/{eu42.id}", json={"quantity": 4}, headers=auth)
    assert updated.status_code == 200
    assert updated.json()["data"]["items"][0]["quantity"] == 4

    zero = client.put(f"/cart/items/{product.id}/{eu42.id}", json={"quantity": 0}, headers=auth)
    assert zero.status_code == 400

    first = client.delete(f"/cart/items/{product.id}/{eu42.id}", headers=auth)
    assert first.status_code == 200
    assert first.json()["data"]["items"] == []

    second = client.delete(f"/cart/items/{product.id}/{eu42.id}", headers=auth)
    assert second.status_code == 404


def test_clear_over_http(client, auth, make_product, sizes):
    assert client.delete("/cart", headers=auth).status_code == 200

    product = make_product()
    client.post("/cart/items", json={"productId": product.id, "sizeId": sizes[0].id, "quantity": 1}, headers=auth)
    res = client.delete("/cart", headers=auth)
    assert res.status_code == 200
    assert res.json()["data"]["items"] == []


def test_ids_beyond_the_column_range_are_rejected(client, auth, make_product, sizes):
    product = make_product()
    huge = 10**20

    body = client.post("/cart/items", json={"productId": huge, "sizeId": sizes[0].id, "quantity": 1}, headers=auth)
    assert body.status_code == 400
    assert body.json()["success"] is False
    assert "productId" in body.json()["message"]

    path = client.put(f"/cart/items/{product.id}/{huge}", json={"quantity": 1}, headers=auth)
    assert path.status_code == 400
    assert path.json()["success"] is False


def test_add_with_out_of_range_product_id_is_not_found(db, customer, sizes):
    with pytest.raises(ProductNotFound):
        cart_ops.add_item(db, customer.id, 10**20, sizes[0].id, 1)


def test_boolean_quantity_is_rejected_over_http(client, auth, make_product, sizes):
    product = make_product()
    eu42 = sizes[0]

    added = client.post("/cart/items", json={"productId": product.id, "sizeId": eu42.id, "quantity": True}, headers=auth)
    assert added.status_code == 400
    assert "quantity" in added.json()["message"]

    client.post("/cart/items", json={"productId": product.id, "sizeId": eu42.id, "quantity": 1}, headers=auth)
    updated = client.put(f"/cart/items/{product.id}/{eu42.id}", json={"quantity": True}, headers=auth)
    assert updated.status_code == 400
    assert client.get("/cart", headers=auth).json()["data"]["items"][0]["quantity"] == 1
