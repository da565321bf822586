import pytest

import accounts
import database
from errors import InvalidOperation


def test_default_admin_is_created_once(db):
    assert accounts.ensure_default_admin(db, "Admin@ExcellenceAcademy.edu", "Admin@123") is True
    assert accounts.ensure_default_admin(db, "admin@excellenceacademy.edu", "Other@456") is False

    owners = list(db[database.ACCOUNT_COLLECTION].find())
    assert len(owners) == 1
    assert owners[0]["email"] == "admin@excellenceacademy.edu"
    assert owners[0]["role"] == "super_admin"
    assert owners[0]["is_active"] is True


def test_bootstrapped_owner_can_log_in(client, db):
    accounts.ensure_default_admin(db, "admin@excellenceacademy.edu", "Admin@123")
    res = client.post("/admin/login", json={"email": "admin@excellenceacademy.edu", "password": "Admin@123"})
    assert res.status_code == 200
    assert res.json()["data"]["admin"]["role"] == "super_admin"


def test_indexes_and_duplicate_accounts(db):
    database.ensure_indexes(db)
    accounts.create_account(db, "one@example.com", "Password1", "One")
    with pytest.raises(InvalidOperation):
        accounts.create_account(db, "ONE@example.com", "Password2", "Copy")


def test_business_ids():
    ids = {database.new_business_id("ENQ") for _ in range(200)}
    assert len(ids) == 200
    for value in ids:
        prefix, suffix = value.split("-")
        assert prefix == "ENQ"
        assert len(suffix) == 8
        assert suffix == suffix.upper()
        int(suffix, 16)
