from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select, update
from sqlalchemy.orm import sessionmaker

from storefront.data.database import Base
from storefront.data.models import (
    CartItemModel,
    CartModel,
    ProductColorModel,
    ProductModel,
    UserModel,
)
from storefront.domain.errors import ConflictError, InvalidInputError, NotFoundError
from storefront.domain.schemas import CartItemIn, CartItemUpdate
from storefront.services.cart_service import CartService


@pytest.fixture
def svc(db):
    return CartService(db)


@pytest.fixture
def chair(make_user, make_product):
    make_user(1)
    return make_product(price="100", sale=10, colors=(("Red", "#ff0000", 3), ("Blue", "#0000ff", 0)))


def stored_cart(db, user_id=1):
    db.expire_all()
    return db.execute(select(CartModel).where(CartModel.user_id == user_id)).scalar_one_or_none()


def test_add_clamps_to_stock_and_merges(svc, db, chair):
    cart = svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=5, color_hex="#ff0000")])

    assert len(cart["products"]) == 1
    assert cart["products"][0]["quantity"] == 3
    assert cart["products"][0]["subtotal"] == Decimal("270.00")
    assert cart["total_price"] == Decimal("270.00")

    cart = svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=2, color_hex="#ff0000")])

    assert len(cart["products"]) == 1
    assert cart["products"][0]["quantity"] == 3
    assert cart["total_price"] == Decimal("270.00")
    assert stored_cart(db).total_price == Decimal("270.00")


def test_add_same_line_twice_in_one_request_merges(svc, make_user, make_product):
    make_user(1)
    lamp = make_product(name="Lamp", price="20", colors=(("White", "#ffffff", 10),))

    cart = svc.add_items(1, [
        CartItemIn(product_id=lamp.id, quantity=2),
        CartItemIn(product_id=lamp.id, quantity=3),
    ])

    assert [p["quantity"] for p in cart["products"]] == [5]
    assert cart["total_price"] == Decimal("100.00")


def test_add_defaults_to_first_color(svc, chair):
    cart = svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])

    line = cart["products"][0]
    assert line["color"] == {"name": "Red", "hex": "#ff0000"}
    assert line["price"] == Decimal("90.00")
    assert line["image"].endswith("ff0000.png")


def test_add_unknown_color_is_invalid(svc, db, chair):
    with pytest.raises(InvalidInputError):
        svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1, color_hex="#123456")])
    assert stored_cart(db) is None


def test_add_product_without_colors_is_invalid(svc, make_product, chair):
    bare = make_product(name="Bare", colors=())
    with pytest.raises(InvalidInputError, match="no available colors"):
        svc.add_items(1, [CartItemIn(product_id=bare.id, quantity=1)])


def test_add_unknown_product_is_not_found(svc, chair):
    with pytest.raises(NotFoundError):
        svc.add_items(1, [CartItemIn(product_id=999, quantity=1)])


@pytest.mark.parametrize("quantity", [0, -1])
def test_add_rejects_bad_quantity(svc, chair, quantity):
    with pytest.raises(InvalidInputError):
        svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=quantity)])


def test_add_empty_list_is_invalid(svc, chair):
    with pytest.raises(InvalidInputError):
        svc.add_items(1, [])


def test_add_out_of_stock_variant_is_dropped(svc, db, chair):
    cart = svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=2, color_hex="#0000ff")])

    assert cart["products"] == []
    assert cart["total_price"] == Decimal("0.00")
    # cart still created lazily
    assert stored_cart(db) is not None


def test_add_for_unknown_user_is_not_found(svc, make_product):
    product = make_product()
    with pytest.raises(NotFoundError, match="User"):
        svc.add_items(42, [CartItemIn(product_id=product.id, quantity=1)])


def test_get_cart_without_cart_is_not_found(svc, chair):
    with pytest.raises(NotFoundError):
        svc.get_cart(1)


def test_get_cart_reflects_live_price_and_stock(svc, db, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=3)])

    product = db.get(ProductModel, chair.id)
    product.sale = 0
    product.colors[0].quantity = 2
    db.commit()

    cart = svc.get_cart(1)

    assert cart["products"][0]["quantity"] == 2
    assert cart["products"][0]["price"] == Decimal("100.00")
    assert cart["total_price"] == Decimal("200.00")


def test_update_replaces_quantity_without_clamping(svc, db, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])

    svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=10, color_hex="#ff0000"))

    cart = stored_cart(db)
    assert cart.items[0].quantity == 10
    assert cart.total_price == Decimal("900.00")
    # the read view is still capped at stock
    assert svc.get_cart(1)["products"][0]["quantity"] == 3


def test_update_zero_removes_line(svc, db, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=2)])

    cart = svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=0))

    assert cart["products"] == []
    assert cart["total_price"] == Decimal("0.00")
    assert db.execute(select(CartItemModel)).scalars().all() == []


def test_update_negative_quantity_is_invalid(svc, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])
    with pytest.raises(InvalidInputError):
        svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=-1))


def test_update_without_cart_is_not_found(svc, chair):
    with pytest.raises(NotFoundError, match="Cart not found"):
        svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=1))


def test_update_missing_line_is_not_found(svc, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])
    with pytest.raises(NotFoundError, match="not found in cart"):
        svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=1, color_hex="#0000ff"))


def test_save_discards_lines_of_deleted_products(svc, db, chair, make_product):
    lamp = make_product(name="Lamp", price="20", colors=(("White", "#ffffff", 10),))
    svc.add_items(1, [
        CartItemIn(product_id=chair.id, quantity=1),
        CartItemIn(product_id=lamp.id, quantity=1),
    ])

    db.get(ProductModel, lamp.id).deleted = True
    db.commit()

    cart = svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])

    assert [p["product_id"] for p in cart["products"]] == [chair.id]
    stored = stored_cart(db)
    assert [i.product_id for i in stored.items] == [chair.id]
    assert stored.total_price == Decimal("180.00")


def test_concurrent_modification_is_rejected(svc, db, chair):
    svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])

    # another request saved the cart in the meantime
    db.execute(
        update(CartModel)
        .where(CartModel.user_id == 1)
        .values(version=CartModel.version + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    with pytest.raises(ConflictError):
        svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=2))

    assert stored_cart(db).items[0].quantity == 1


@pytest.fixture
def file_sessions(tmp_path):
    """Independent sessions over a file database, one connection each."""
    file_engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'carts.db'}")
    Base.metadata.create_all(bind=file_engine)
    yield sessionmaker(bind=file_engine, autoflush=True, expire_on_commit=False)
    file_engine.dispose()


def test_same_new_line_from_two_sessions_is_a_conflict(file_sessions):
    with file_sessions() as setup:
        setup.add(UserModel(id=1, name="Ala"))
        chair = ProductModel(
            name="Chair",
            price=Decimal("100"),
            sale=0,
            colors=[
                ProductColorModel(position=0, name="Red", hex="#f00", quantity=5, images=[]),
                ProductColorModel(position=1, name="Blue", hex="#00f", quantity=5, images=[]),
            ],
        )
        setup.add(chair)
        setup.commit()
        product_id = chair.id

    first, second = file_sessions(), file_sessions()
    try:
        first_svc = CartService(first)
        first_svc.add_items(1, [CartItemIn(product_id=product_id, quantity=1, color_hex="#f00")])

        # first request has the cart loaded when the second one adds Blue
        cart = first_svc.repo.get_cart_by_user(1)
        CartService(second).add_items(1, [CartItemIn(product_id=product_id, quantity=1, color_hex="#00f")])

        cart.items.append(
            CartItemModel(
                product_id=product_id,
                color_name="Blue",
                color_hex="#00f",
                quantity=1,
                subtotal=Decimal("0"),
            )
        )
        with pytest.raises(ConflictError):
            first_svc._save(cart)

        # the session is usable again and a retry merges into the stored line
        view = first_svc.add_items(1, [CartItemIn(product_id=product_id, quantity=1, color_hex="#00f")])
        assert {p["color"]["hex"]: p["quantity"] for p in view["products"]} == {"#f00": 1, "#00f": 2}
    finally:
        first.close()
        second.close()


# ---------------------------------------------------------------- http

def test_http_add_and_get_cart(client, chair):
    resp = client.post(
        "/cart/items?user_id=1",
        json=[{"product_id": chair.id, "quantity": 5, "color_hex": "#ff0000"}],
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["products"][0]["quantity"] == 3
    assert Decimal(body["total_price"]) == Decimal("270")

    resp = client.get("/cart/?user_id=1")
    assert resp.status_code == 200
    assert Decimal(resp.json()["total_price"]) == Decimal("270")


def test_http_get_missing_cart(client, chair):
    resp = client.get("/cart/?user_id=1")
    assert resp.status_code == 404
    assert resp.json() == {"status": "fail", "message": "Cart not found."}


def test_http_add_bad_color(client, chair):
    resp = client.post(
        "/cart/items?user_id=1",
        json=[{"product_id": chair.id, "quantity": 1, "color_hex": "#abcdef"}],
    )
    assert resp.status_code == 400
    assert resp.json()["status"] == "fail"


def test_http_add_malformed_body(client, chair):
    resp = client.post("/cart/items?user_id=1", json=[{"product_id": "abc", "quantity": 1}])
    assert resp.status_code == 400
    assert resp.json()["status"] == "fail"


def test_http_update_line(client, chair):
    client.post("/cart/items?user_id=1", json=[{"product_id": chair.id, "quantity": 1}])

    resp = client.patch("/cart/items?user_id=1", json={"product_id": chair.id, "quantity": 2})

    assert resp.status_code == 200
    assert Decimal(resp.json()["total_price"]) == Decimal("180")


def test_http_update_missing_line(client, chair):
    client.post("/cart/items?user_id=1", json=[{"product_id": chair.id, "quantity": 1}])

    resp = client.patch(
        "/cart/items?user_id=1",
        json={"product_id": chair.id, "quantity": 2, "color_hex": "#0000ff"},
    )
    assert resp.status_code == 404
