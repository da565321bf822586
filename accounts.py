"""
Staff accounts: login, owner-only staff management and the first-run owner bootstrap.
"""

import logging
from typing import List, Tuple

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import ACCOUNT_COLLECTION, BUSINESS_ID_FIELDS, new_business_id, utcnow
from errors import InvalidOperation, NotFound, Unauthorized
from resources import lookup, serialize_document
from schemas import StaffCreate, StaffUpdate
from security import OWNER_ROLE, AuthContext, create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

ID_FIELD = BUSINESS_ID_FIELDS[ACCOUNT_COLLECTION]
NO_PASSWORD = {"password_hash": 0}


def _find(db, account_id: str) -> dict:
    account = db[ACCOUNT_COLLECTION].find_one(lookup(ID_FIELD, account_id), NO_PASSWORD)
    if not account:
        raise NotFound("Staff member not found.")
    return account


def _guard_self(current: AuthContext, target: dict, action: str) -> None:
    if str(target["_id"]) == current.account_id:
        logger.warning("Account %s attempted to %s their own account", current.account.get("email"), action)
        raise InvalidOperation(f"Cannot {action} your own account.")


def get_account(db, account_id: str) -> dict:
    return serialize_document(_find(db, account_id))


def create_account(db, email: str, password: str, name: str, role: str = "admin", is_active: bool = True) -> dict:
    email = email.lower()
    if db[ACCOUNT_COLLECTION].find_one({"email": email}):
        raise InvalidOperation("Email already exists.")
    now = utcnow()
    doc = {
        ID_FIELD: new_business_id("ADM"),
        "email": email,
        "password_hash": get_password_hash(password),
        "name": name,
        "role": role,
        "is_active": is_active,
        "last_login": None,
        "created_at": now,
        "updated_at": now,
    }
    try:
        db[ACCOUNT_COLLECTION].insert_one(doc)
    except DuplicateKeyError:
        raise InvalidOperation("Email already exists.")
    return serialize_document(doc)


# ----------------------- Login -----------------------

def login(db, email: str, password: str) -> Tuple[str, dict]:
    account = db[ACCOUNT_COLLECTION].find_one({"email": email.lower()})
    if not account:
        logger.info("Failed login for unknown email %s", email)
        raise Unauthorized("Invalid credentials.")
    if not account.get("is_active", True):
        logger.info("Rejected login for inactive account %s", email)
        raise Unauthorized("Account is inactive. Please contact the owner.")
    if not verify_password(password, account.get("password_hash", "")):
        logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid credentials.")

    now = utcnow()
    db[ACCOUNT_COLLECTION].update_one({"_id": account["_id"]}, {"$set": {"last_login": now}})
    account["last_login"] = now

    token = create_access_token({
        "sub": str(account["_id"]),
        "email": account["email"],
        "role": account.get("role", "admin"),
    })
    logger.info("Account %s logged in", account["email"])
    return token, serialize_document(account)


# ----------------------- Staff management -----------------------

def list_staff(db) -> List[dict]:
    docs = db[ACCOUNT_COLLECTION].find({}, NO_PASSWORD).sort([("created_at", DESCENDING)])
    return [serialize_document(d) for d in docs]


def create_staff(db, payload: StaffCreate, current: AuthContext) -> dict:
    account = create_account(db, payload.email, payload.password, payload.name, payload.role)
    logger.info("%s created staff account %s (%s)", current.account.get("email"), account["email"], account["role"])
    return account


def update_staff(db, account_id: str, payload: StaffUpdate, current: AuthContext) -> dict:
    target = _find(db, account_id)
    _guard_self(current, target, "modify")
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        return serialize_document(target)
    changes["updated_at"] = utcnow()
    doc = db[ACCOUNT_COLLECTION].find_one_and_update(
        {"_id": target["_id"]},
        {"$set": changes},
        projection=NO_PASSWORD,
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFound("Staff member not found.")
    logger.info("%s updated staff account %s", current.account.get("email"), doc["email"])
    return serialize_document(doc)


def delete_staff(db, account_id: str, current: AuthContext) -> None:
    target = _find(db, account_id)
    _guard_self(current, target, "delete")
    result = db[ACCOUNT_COLLECTION].delete_one({"_id": target["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Staff member not found.")
    logger.info("%s deleted staff account %s", current.account.get("email"), target["email"])


def reset_password(db, account_id: str, password: str, current: AuthContext) -> None:
    target = _find(db, account_id)
    _guard_self(current, target, "reset the password of")
    db[ACCOUNT_COLLECTION].update_one(
        {"_id": target["_id"]},
        {"$set": {"password_hash": get_password_hash(password), "updated_at": utcnow()}},
    )
    logger.info("%s reset the password of %s", current.account.get("email"), target["email"])


# ----------------------- Bootstrap -----------------------

def ensure_default_admin(db, email: str, password: str, name: str = "System Administrator") -> bool:
    """Create the owner account for ``email`` unless one exists. Returns True when created."""
    if db[ACCOUNT_COLLECTION].find_one({"email": email.lower()}):
        return False
    create_account(db, email, password, name, role=OWNER_ROLE)
    logger.info("Default admin created")
    logger.info("   Email: %s", email.lower())
    logger.info("   Password: %s", password)
    return True
