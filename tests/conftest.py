import asyncio
import os

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-secret")
os.environ.setdefault("EMERGENCY_ROLE_KEY", "break-glass")

from lms.auth.tokens import create_access_token
from lms.config import reset_config
from lms.database import LMSStore, create_indexes, get_store
from lms.main import app
from lms.payments.gateway import PaymentGateway, get_payment_gateway


def run(coro):
    return asyncio.run(coro)


class FakeGateway:
    """Records intents instead of calling Razorpay"""

    def __init__(self):
        self.calls = []

    def create_payment_intent(self, price, currency=None, receipt=None):
        amount = PaymentGateway.to_minor_units(price)
        self.calls.append((amount, currency or "USD"))
        return {
            "clientSecret": f"order_test_{len(self.calls)}",
            "amount": amount,
            "currency": currency or "USD",
            "key_id": "rzp_test",
        }


@pytest.fixture(autouse=True)
def _config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def store():
    store = LMSStore(AsyncMongoMockClient()["lms_test"])
    run(create_indexes(store))
    return store


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(store, gateway):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(email, name="Test User", role="user"):
    return {"Authorization": f"Bearer {create_access_token(email, name, role)}"}


def add_user(store, email, role=None, name="Test User"):
    doc = {"email": email, "name": name}
    if role:
        doc["role"] = role
    return run(store.users.insert_one(doc)).inserted_id


def add_class(store, instructor="teacher@example.com", status="pending", seats=10, price=49.99, **extra):
    doc = {
        "name": extra.pop("name", "Intro to Python"),
        "instructorEmail": instructor,
        "instructorName": "Teacher",
        "availableSeats": seats,
        "price": price,
        "status": status,
        "totalEnrolled": extra.pop("totalEnrolled", 0),
    }
    doc.update(extra)
    return str(run(store.classes.insert_one(doc)).inserted_id)


def find_class(store, class_id):
    return run(store.classes.find_one({"_id": ObjectId(class_id)}))


@pytest.fixture
def admin(store):
    add_user(store, "admin@example.com", "admin", name="Admin")
    return auth("admin@example.com", "Admin", "admin")


@pytest.fixture
def instructor(store):
    add_user(store, "teacher@example.com", "instructor", name="Teacher")
    return auth("teacher@example.com", "Teacher", "instructor")


@pytest.fixture
def student(store):
    add_user(store, "student@example.com", name="Student")
    return auth("student@example.com", "Student")
