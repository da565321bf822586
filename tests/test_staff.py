import pytest

from conftest import STAFF_EMAIL


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("get", "/staff", None),
        ("post", "/staff", {}),
        ("post", "/staff", {"email": "x@example.com", "password": "Password1", "name": "New Person"}),
        ("patch", "/staff/000000000000000000000000", {"role": "nonsense"}),
        ("delete", "/staff/000000000000000000000000", None),
        ("post", "/staff/000000000000000000000000/reset-password", {"password": "x"}),
    ],
)
def test_non_owner_is_forbidden(client, staff_headers, method, path, body):
    kwargs = {"headers": staff_headers}
    if body is not None:
        kwargs["json"] = body
    res = getattr(client, method)(path, **kwargs)
    assert res.status_code == 403
    assert res.json()["success"] is False


def test_staff_requires_authentication(client):
    assert client.get("/staff").status_code == 401


def test_owner_creates_and_lists_staff(client, owner_headers):
    res = client.post(
        "/staff",
        headers=owner_headers,
        json={"email": "Teacher@Example.com", "password": "Teacher@123", "name": "Ms Rao"},
    )
    assert res.status_code == 201
    created = res.json()["data"]
    assert created["email"] == "teacher@example.com"
    assert created["role"] == "admin"
    assert created["isActive"] is True
    assert "passwordHash" not in created

    listing = client.get("/staff", headers=owner_headers).json()["data"]
    emails = [a["email"] for a in listing]
    assert "teacher@example.com" in emails
    assert all("passwordHash" not in a for a in listing)


def test_duplicate_email_is_invalid_operation(client, owner_headers, staff):
    res = client.post(
        "/staff",
        headers=owner_headers,
        json={"email": STAFF_EMAIL, "password": "Another@123", "name": "Copy"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Email already exists."


def test_owner_cannot_modify_own_account(client, owner, owner_headers):
    path = f"/staff/{owner['id']}"
    assert client.patch(path, headers=owner_headers, json={"isActive": False}).status_code == 400
    assert client.patch(path, headers=owner_headers, json={"role": "admin"}).status_code == 400
    assert client.delete(path, headers=owner_headers).status_code == 400
    res = client.post(f"{path}/reset-password", headers=owner_headers, json={"password": "Changed@123"})
    assert res.status_code == 400
    assert res.json()["success"] is False

    # still an active owner
    me = client.get("/admin/profile", headers=owner_headers).json()["data"]
    assert me["role"] == "super_admin"
    assert me["isActive"] is True


def test_owner_manages_other_accounts(client, owner_headers, staff):
    path = f"/staff/{staff['id']}"

    res = client.patch(path, headers=owner_headers, json={"name": "Front Office", "role": "super_admin"})
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Front Office"
    assert res.json()["data"]["role"] == "super_admin"

    res = client.post(f"{path}/reset-password", headers=owner_headers, json={"password": "Fresh@Pass1"})
    assert res.status_code == 200
    login = client.post("/admin/login", json={"email": STAFF_EMAIL, "password": "Fresh@Pass1"})
    assert login.status_code == 200

    res = client.patch(path, headers=owner_headers, json={"isActive": False})
    assert res.json()["data"]["isActive"] is False

    assert client.delete(path, headers=owner_headers).status_code == 200
    assert client.get(path, headers=owner_headers).status_code == 404


def test_staff_lookup_by_business_id(client, owner_headers, staff):
    res = client.get(f"/staff/{staff['adminId']}", headers=owner_headers)
    assert res.status_code == 200
    assert res.json()["data"]["email"] == STAFF_EMAIL


def test_missing_staff_is_404(client, owner_headers):
    assert client.delete("/staff/000000000000000000000000", headers=owner_headers).status_code == 404
