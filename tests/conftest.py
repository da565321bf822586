import os
import uuid

# Must be set before the application modules read their configuration.
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret"
os.environ.pop("DATABASE_URL", None)

import mongomock
import pytest
from fastapi.testclient import TestClient

import accounts
from database import get_db
from main import app
from security import create_access_token

OWNER_EMAIL = "owner@excellenceacademy.edu"
OWNER_PASSWORD = "Owner@12345"
STAFF_EMAIL = "staff@excellenceacademy.edu"
STAFF_PASSWORD = "Staff@12345"


def bearer(account):
    token = create_access_token({"sub": account["id"], "email": account["email"], "role": account["role"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    return mongomock.MongoClient()[f"test_{uuid.uuid4().hex}"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def owner(db):
    return accounts.create_account(db, OWNER_EMAIL, OWNER_PASSWORD, "School Owner", role="super_admin")


@pytest.fixture
def staff(db):
    return accounts.create_account(db, STAFF_EMAIL, STAFF_PASSWORD, "Front Desk", role="admin")


@pytest.fixture
def owner_headers(owner):
    return bearer(owner)


@pytest.fixture
def staff_headers(staff):
    return bearer(staff)
