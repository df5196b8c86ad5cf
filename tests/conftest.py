from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_token, hash_password
from config import Settings
from database import Database
from main import create_app

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", app_env="test")


@pytest.fixture
def db():
    database = Database(mongomock.MongoClient(), "storefront_test")
    database.ensure_indexes()
    return database


@pytest.fixture
def client(settings, db):
    with TestClient(create_app(settings, db)) as c:
        yield c


@pytest.fixture
def make_user(db, settings):
    def _make(name="Asha", email="asha@example.com", password="secret1", is_admin=False):
        res = db["user"].insert_one({
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            "phone": None,
            "is_admin": is_admin,
            "created_at": BASE_TIME,
        })
        user_id = str(res.inserted_id)
        token = create_token(user_id, settings)
        return {"id": user_id, "name": name, "email": email,
                "headers": {"Authorization": f"Bearer {token}"}}
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(name="Ravi", email="ravi@example.com")


@pytest.fixture
def admin_user(make_user):
    return make_user(name="Admin", email="admin@shop.com", is_admin=True)


@pytest.fixture
def add_product(db):
    """Insert a product straight into the store; the nth call is n minutes newer."""
    counter = {"n": 0}

    def _add(**overrides):
        counter["n"] += 1
        doc = {
            "name": f"Product {counter['n']}",
            "description": "A lovely item",
            "price": 100.0,
            "category": "Jewellery",
            "subcategory": None,
            "images": [f"https://img.example.com/{counter['n']}.jpg"],
            "features": [],
            "stock": 10,
            "ratings": {"average": 4.0, "count": 3},
            "featured": False,
            "new_arrival": False,
            "new_arrival_date": None,
            "created_at": BASE_TIME + timedelta(minutes=counter["n"]),
        }
        doc.update(overrides)
        return str(db["product"].insert_one(doc).inserted_id)
    return _add


@pytest.fixture
def address():
    return {
        "name": "Asha K",
        "phone": "9876543210",
        "street": "12 Temple Road",
        "city": "Madurai",
        "state": "Tamil Nadu",
        "pincode": "625001",
        "country": "India",
    }
