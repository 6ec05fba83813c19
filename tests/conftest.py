import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import config
from auth import create_access_token, hash_password
from client import Session, StorefrontClient
from database import get_db
from main import app
from pricing import calculate_prices

SHIPPING = {
    "name": "Asha Rao",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "country": "India",
    "phone": "9876543210",
}

CHAIRS = [{"product_id": "p-chair", "name": "Teak Chair", "image": "/uploads/chair.jpg", "price": 1000, "quantity": 2}]


def order_payload(method="cod", items=None, **extra):
    items = items or CHAIRS
    return {
        "order_items": items,
        "shipping_address": SHIPPING,
        "payment_method": method,
        **calculate_prices(items),
        **extra,
    }


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    return mongomock.MongoClient()["furniture_store_test"]


@pytest.fixture
def api(db, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _user(db, name, email, is_admin=False):
    user_id = ObjectId()
    db["user"].insert_one({
        "_id": user_id,
        "name": name,
        "email": email,
        "password_hash": hash_password("Secret@123"),
        "is_admin": is_admin,
    })
    return {"id": str(user_id), "name": name, "email": email, "is_admin": is_admin,
            "token": create_access_token({"sub": str(user_id)})}


@pytest.fixture
def customer(db):
    return _user(db, "Asha Rao", "asha@example.com")


@pytest.fixture
def other_customer(db):
    return _user(db, "Vikram Shah", "vikram@example.com")


@pytest.fixture
def admin(db):
    return _user(db, "Admin", "admin@example.com", is_admin=True)


@pytest.fixture
def customer_client(api, customer):
    session = Session(token=customer["token"], user={"name": customer["name"], "email": customer["email"]})
    return StorefrontClient(base_url="http://testserver/api", session=session, http=api)


@pytest.fixture
def admin_client(api, admin):
    session = Session(admin_token=admin["token"], user={"name": admin["name"], "email": admin["email"]})
    return StorefrontClient(base_url="http://testserver/api", session=session, http=api)


@pytest.fixture
def place_order(api):
    def _place(user, method="cod", items=None, **extra):
        resp = api.post("/api/orders", json=order_payload(method, items, **extra), headers=bearer(user["token"]))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _place
