from datetime import datetime, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth as firebase_auth

import auth
import database
from main import app

ADMIN_EMAIL = "admin@example.com"
ALICE_EMAIL = "alice@example.com"
BOB_EMAIL = "bob@example.com"

TOKENS = {
    "admin-token": {"uid": "admin-uid", "email": ADMIN_EMAIL},
    "alice-token": {"uid": "alice-uid", "email": ALICE_EMAIL},
    "bob-token": {"uid": "bob-uid", "email": BOB_EMAIL},
    "phone-token": {"uid": "phone-uid", "phone_number": "+15550100"},
}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def fake_decode(token):
    if token == "expired-token":
        raise firebase_auth.ExpiredIdTokenError("Token expired", cause=None)
    if token == "garbage":
        raise ValueError("Illegal ID token provided")
    if token not in TOKENS:
        raise firebase_auth.InvalidIdTokenError("Could not verify token signature.")
    return dict(TOKENS[token])


@pytest.fixture
def db():
    return mongomock.MongoClient()["homeNestDB"]


@pytest.fixture(autouse=True)
def firebase_tokens(monkeypatch):
    calls = []

    def decode(token):
        calls.append(token)
        return fake_decode(token)

    monkeypatch.setattr(auth, "decode_token", decode)
    return calls


@pytest.fixture
def client(db):
    app.dependency_overrides[database.get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db):
    db[database.USERS].insert_one({"email": ADMIN_EMAIL, "name": "Admin", "role": "admin"})


@pytest.fixture
def regular_users(db):
    db[database.USERS].insert_many([
        {"email": ALICE_EMAIL, "name": "Alice", "role": "user"},
        {"email": BOB_EMAIL, "name": "Bob", "role": "user"},
    ])


@pytest.fixture
def properties(db):
    base = datetime(2025, 1, 1, 12, 0, 0)
    docs = [
        {"propertyName": "Lakeside Cottage", "category": "Rent", "price": 1200.0,
         "location": "Lake Town", "ownerEmail": ALICE_EMAIL, "status": "available",
         "createdAt": base},
        {"propertyName": "City Loft", "category": "Sale", "price": 350000.0,
         "location": "Downtown", "ownerEmail": BOB_EMAIL, "status": "available",
         "createdAt": base + timedelta(days=1)},
        {"propertyName": "Garden Cottage", "category": "Rent", "price": 900.0,
         "location": "Old Village", "ownerEmail": ALICE_EMAIL, "status": "available",
         "createdAt": base + timedelta(days=2)},
        {"propertyName": "Office Floor", "category": "Commercial", "price": 5000.0,
         "location": "Business Park", "ownerEmail": BOB_EMAIL, "status": "available",
         "createdAt": base + timedelta(days=3)},
    ]
    result = db[database.PROPERTIES].insert_many(docs)
    return [str(i) for i in result.inserted_ids]
