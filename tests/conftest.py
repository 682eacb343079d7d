import os

# must be set before storefront.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

import storefront.data.models  # noqa: F401
from storefront.api.deps import get_lock_service, get_notification_service
from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import CategoryModel, ProductColorModel, ProductModel, UserModel
from storefront.main import create_app


class FakeLockService:
    def __init__(self):
        self.locks = {}
        self.acquired = []

    def acquire_checkout_lock(self, user_id, token, ttl):
        if user_id in self.locks:
            return False
        self.locks[user_id] = token
        self.acquired.append(user_id)
        return True

    def release_checkout_lock(self, user_id, token):
        if self.locks.get(user_id) == token:
            del self.locks[user_id]
            return True
        return False


class FakeNotificationService:
    def __init__(self):
        self.sent = []

    def send_order_notification(self, user_id, order_id, order_number):
        self.sent.append((user_id, order_id, order_number))


SHIPPING = {
    "shipping_address": {
        "name": "Jan Kowalski",
        "phone": "+48 600 100 200",
        "email": "jan@example.com",
        "address": "Marszalkowska 1",
        "city": "Warszawa",
        "zip_code": "00-001",
        "country": "Poland",
    },
    "payment_method": "card",
    "transaction_id": "tx-123",
}


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return FakeNotificationService()


@pytest.fixture
def client(lock_service, notifier):
    app = create_app()
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(user_id=1, name="Ala", is_admin=False):
        user = UserModel(id=user_id, name=name, is_admin=is_admin)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Chair", price="100", sale=0, colors=(("Red", "#ff0000", 3),), categories=()):
        product = ProductModel(
            name=name,
            price=Decimal(price),
            sale=sale,
            colors=[
                ProductColorModel(
                    position=index,
                    name=color_name,
                    hex=color_hex,
                    quantity=quantity,
                    images=[f"https://img.example.com/{name.lower()}/{color_hex.lstrip('#')}.png"],
                )
                for index, (color_name, color_hex, quantity) in enumerate(colors)
            ],
            categories=list(categories),
        )
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def make_category(db):
    def _make(name="Chairs", description=None):
        category = CategoryModel(name=name, description=description)
        db.add(category)
        db.commit()
        return category
    return _make


@pytest.fixture
def stock_of(db):
    def _stock(product_id, color_hex):
        db.expire_all()
        return db.execute(
            select(ProductColorModel.quantity).where(
                ProductColorModel.product_id == product_id,
                ProductColorModel.hex == color_hex,
            )
        ).scalar_one()
    return _stock


@pytest.fixture
def place_order(client):
    """Add one line to the user's cart through the API and check out."""
    def _place(user_id, product_id, quantity, color_hex=None):
        item = {"product_id": product_id, "quantity": quantity}
        if color_hex:
            item["color_hex"] = color_hex
        resp = client.post(f"/cart/items?user_id={user_id}", json=[item])
        assert resp.status_code == 201, resp.text
        resp = client.post(f"/checkout/?user_id={user_id}", json=SHIPPING)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _place
