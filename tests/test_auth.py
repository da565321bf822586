from datetime import timedelta

from conftest import OWNER_EMAIL, OWNER_PASSWORD, STAFF_EMAIL, bearer
from database import ACCOUNT_COLLECTION
from security import create_access_token


def test_login_returns_token_and_account(client, owner):
    res = client.post("/admin/login", json={"email": OWNER_EMAIL.upper(), "password": OWNER_PASSWORD})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["tokenType"] == "bearer"
    assert data["admin"]["email"] == OWNER_EMAIL
    assert data["admin"]["role"] == "super_admin"
    assert data["admin"]["lastLogin"] is not None
    assert "passwordHash" not in data["admin"]

    verify = client.get("/admin/verify", headers={"Authorization": f"Bearer {data['token']}"})
    assert verify.status_code == 200
    assert verify.json()["data"]["admin"]["email"] == OWNER_EMAIL


def test_login_rejects_bad_credentials(client, owner):
    res = client.post("/admin/login", json={"email": OWNER_EMAIL, "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials."}

    res = client.post("/admin/login", json={"email": "nobody@example.com", "password": OWNER_PASSWORD})
    assert res.status_code == 401


def test_login_rejects_inactive_account(client, db, staff):
    db[ACCOUNT_COLLECTION].update_one({"email": STAFF_EMAIL}, {"$set": {"is_active": False}})
    res = client.post("/admin/login", json={"email": STAFF_EMAIL, "password": "Staff@12345"})
    assert res.status_code == 401
    assert "inactive" in res.json()["message"]


def test_login_validates_payload(client):
    res = client.post("/admin/login", json={"email": "not-an-email", "password": "short"})
    assert res.status_code == 400


def test_protected_route_requires_token(client):
    res = client.get("/enquiries")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_garbage_token_is_rejected(client):
    res = client.get("/admin/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert res.status_code == 401


def test_expired_token_is_rejected(client, owner):
    token = create_access_token({"sub": owner["id"]}, expires_delta=timedelta(minutes=-5))
    res = client.get("/admin/profile", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_for_deleted_or_inactive_account_is_rejected(client, db, staff):
    headers = bearer(staff)
    db[ACCOUNT_COLLECTION].update_one({"email": STAFF_EMAIL}, {"$set": {"is_active": False}})
    assert client.get("/admin/profile", headers=headers).status_code == 401

    db[ACCOUNT_COLLECTION].delete_one({"email": STAFF_EMAIL})
    assert client.get("/admin/profile", headers=headers).status_code == 401


def test_profile(client, staff, staff_headers):
    res = client.get("/admin/profile", headers=staff_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["id"] == staff["id"]
    assert data["name"] == "Front Desk"
    assert data["adminId"].startswith("ADM-")
