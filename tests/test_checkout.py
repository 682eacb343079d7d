from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import RedisError
from sqlalchemy import func, select

from storefront.api.deps import get_lock_service, get_notification_service
from storefront.data.models import CartModel, OrderModel
from storefront.domain.errors import ConflictError, InvalidStateError
from storefront.domain.pricing import VariantInfo
from storefront.domain.schemas import CartItemIn, CartItemUpdate, PlaceOrderIn
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.main import create_app

from tests.conftest import SHIPPING, FakeLockService

RED = "#ff0000"


@pytest.fixture
def chair(make_user, make_product):
    make_user(1)
    make_user(2)
    return make_product(price="100", sale=10, colors=(("Red", RED, 3),))


@pytest.fixture
def cart_svc(db):
    return CartService(db)


@pytest.fixture
def svc(db, lock_service, notifier):
    return CheckoutService(db, lock_service=lock_service, notification_service=notifier)


def order_count(db):
    return db.execute(select(func.count()).select_from(OrderModel)).scalar_one()


def cart_of(db, user_id):
    db.expire_all()
    return db.execute(select(CartModel).where(CartModel.user_id == user_id)).scalar_one_or_none()


def payload():
    return PlaceOrderIn(**SHIPPING)


def test_checkout_creates_order_and_clears_cart(svc, cart_svc, db, chair, stock_of, notifier, lock_service):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=3)])

    order = svc.place_order(1, payload())

    assert order["total_amount"] == Decimal("270.00")
    assert order["status"] == "pending"
    assert order["order_number"].startswith("ORD-")
    assert order["items"] == [{
        "product_id": chair.id,
        "name": "Chair",
        "quantity": 3,
        "price": Decimal("90.00"),
        "subtotal": Decimal("270.00"),
        "color": {"name": "Red", "hex": RED},
    }]
    assert order["shipping_address"]["city"] == "Warszawa"
    assert stock_of(chair.id, RED) == 0
    assert cart_of(db, 1) is None
    assert notifier.sent == [(1, order["id"], order["order_number"])]
    assert lock_service.locks == {}


def test_checkout_without_cart_fails(svc, db, chair):
    with pytest.raises(InvalidStateError, match="Cart is empty"):
        svc.place_order(1, payload())
    assert order_count(db) == 0


def test_checkout_with_emptied_cart_fails(svc, cart_svc, db, chair):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])
    cart_svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=0))

    with pytest.raises(InvalidStateError, match="Cart is empty"):
        svc.place_order(1, payload())
    assert order_count(db) == 0


def test_checkout_insufficient_stock_changes_nothing(svc, cart_svc, db, chair, stock_of, notifier):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])
    cart_svc.update_item(1, CartItemUpdate(product_id=chair.id, quantity=5))

    with pytest.raises(InvalidStateError, match="Available: 3 Requested: 5"):
        svc.place_order(1, payload())

    assert order_count(db) == 0
    assert stock_of(chair.id, RED) == 3
    assert cart_of(db, 1).items[0].quantity == 5
    assert notifier.sent == []


def test_last_unit_goes_to_one_buyer(svc, cart_svc, db, make_product, make_user, stock_of):
    make_user(1)
    make_user(2)
    vase = make_product(name="Vase", price="40", colors=(("Green", "#00ff00", 1),))
    cart_svc.add_items(1, [CartItemIn(product_id=vase.id, quantity=1)])
    cart_svc.add_items(2, [CartItemIn(product_id=vase.id, quantity=1)])

    svc.place_order(1, payload())
    with pytest.raises(InvalidStateError):
        svc.place_order(2, payload())

    assert order_count(db) == 1
    assert stock_of(vase.id, "#00ff00") == 0
    assert cart_of(db, 2) is not None


class StaleCatalog:
    """Reports more stock than the database has, like a read taken before a competing checkout."""

    def __init__(self, inner_price, stock):
        self.price = inner_price
        self.stock = stock

    def resolve(self, product_id, color_hex=None, color_name=None):
        return VariantInfo(
            product_id=product_id,
            name="Chair",
            color_name="Red",
            color_hex=RED,
            unit_price=Decimal(self.price),
            available_quantity=self.stock,
        )


def test_stock_guard_rolls_back_whole_order(db, cart_svc, chair, stock_of, lock_service, notifier):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=3)])
    # someone else bought two units after our cart was priced
    assert ProductRepo(db).decrement_stock(chair.id, RED, 2)
    db.commit()

    svc = CheckoutService(
        db,
        lock_service=lock_service,
        notification_service=notifier,
        catalog=StaleCatalog("90", stock=3),
    )
    with pytest.raises(InvalidStateError, match="Not enough stock"):
        svc.place_order(1, payload())

    assert order_count(db) == 0
    assert stock_of(chair.id, RED) == 1
    assert cart_of(db, 1).items[0].quantity == 3
    assert lock_service.locks == {}


def test_decrement_stock_guard(db, chair, stock_of):
    repo = ProductRepo(db)

    assert repo.decrement_stock(chair.id, RED, 4) is False
    assert repo.decrement_stock(chair.id, RED, 3) is True
    db.commit()

    assert stock_of(chair.id, RED) == 0


def test_checkout_in_progress_is_rejected(svc, cart_svc, db, chair, lock_service):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])
    lock_service.locks[1] = "someone-else"

    with pytest.raises(ConflictError):
        svc.place_order(1, payload())

    assert order_count(db) == 0
    assert lock_service.locks == {1: "someone-else"}


def test_order_keeps_snapshot_after_catalog_changes(svc, cart_svc, db, chair):
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=2)])
    order = svc.place_order(1, payload())

    chair.price = Decimal("500")
    chair.name = "Throne"
    db.commit()
    db.expire_all()

    stored = db.get(OrderModel, order["id"])
    assert stored.items[0].name == "Chair"
    assert stored.items[0].price == Decimal("90.00")
    assert stored.total_amount == Decimal("180.00")


# ---------------------------------------------------------------- http

def test_http_place_order(client, chair, stock_of):
    client.post("/cart/items?user_id=1", json=[{"product_id": chair.id, "quantity": 3}])

    resp = client.post("/checkout/?user_id=1", json=SHIPPING)

    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(body["total_amount"]) == Decimal("270")
    assert body["items"][0]["quantity"] == 3
    assert stock_of(chair.id, RED) == 0
    assert client.get("/cart/?user_id=1").status_code == 404


def test_http_place_order_empty_cart(client, chair):
    resp = client.post("/checkout/?user_id=1", json=SHIPPING)

    assert resp.status_code == 400
    assert resp.json() == {"status": "fail", "message": "Cart is empty"}


def test_http_place_order_missing_shipping(client, chair):
    client.post("/cart/items?user_id=1", json=[{"product_id": chair.id, "quantity": 1}])

    resp = client.post("/checkout/?user_id=1", json={"payment_method": "card"})

    assert resp.status_code == 400


class UnreachableRedisLock(FakeLockService):
    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on

    def acquire_checkout_lock(self, user_id, token, ttl):
        if self.fail_on == "acquire":
            raise RedisError("Connection refused")
        return super().acquire_checkout_lock(user_id, token, ttl)

    def release_checkout_lock(self, user_id, token):
        if self.fail_on == "release":
            raise RedisError("Connection refused")
        return super().release_checkout_lock(user_id, token)


def test_failed_lock_release_keeps_checkout_error(db, chair, notifier, caplog):
    svc = CheckoutService(db, lock_service=UnreachableRedisLock("release"), notification_service=notifier)

    with pytest.raises(InvalidStateError, match="Cart is empty"):
        svc.place_order(1, payload())

    assert "Failed to release checkout lock for user 1" in caplog.text


def test_failed_lock_release_keeps_placed_order(db, cart_svc, chair, notifier, stock_of):
    svc = CheckoutService(db, lock_service=UnreachableRedisLock("release"), notification_service=notifier)
    cart_svc.add_items(1, [CartItemIn(product_id=chair.id, quantity=1)])

    order = svc.place_order(1, payload())

    assert order["total_amount"] == Decimal("90.00")
    assert stock_of(chair.id, RED) == 2
    assert len(notifier.sent) == 1


def test_http_lock_backend_down_is_internal_error(chair, notifier):
    app = create_app()
    app.dependency_overrides[get_lock_service] = lambda: UnreachableRedisLock("acquire")
    app.dependency_overrides[get_notification_service] = lambda: notifier
    client = TestClient(app, raise_server_exceptions=False)
    client.post("/cart/items?user_id=1", json=[{"product_id": chair.id, "quantity": 1}])

    resp = client.post("/checkout/?user_id=1", json=SHIPPING)

    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "Internal server error"}
    assert notifier.sent == []
