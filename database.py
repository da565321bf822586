"""
MongoDB connection and shared persistence helpers.

The client is created lazily from DATABASE_URL / DATABASE_NAME; when either is
missing ``db`` stays ``None`` and every request that needs the store fails with
an InternalFault.
"""

import logging
import uuid
from datetime import datetime, timezone

from pymongo import ASCENDING, MongoClient

import config
from errors import InternalFault

logger = logging.getLogger(__name__)

ACCOUNT_COLLECTION = "account"

# collection -> business id field
BUSINESS_ID_FIELDS = {
    "account": "admin_id",
    "enquiry": "enquiry_id",
    "announcement": "announcement_id",
    "gallery": "image_id",
    "slide": "slider_id",
    "syllabus": "syllabus_id",
}

_client = None
db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


def get_db():
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise InternalFault("Database not configured")
    return db


def utcnow() -> datetime:
    # Mongo hands back naive UTC datetimes, so everything is stored that way.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_business_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def ensure_indexes(database) -> None:
    database[ACCOUNT_COLLECTION].create_index([("email", ASCENDING)], unique=True)
    for collection, field in BUSINESS_ID_FIELDS.items():
        database[collection].create_index([(field, ASCENDING)], unique=True)
    database["enquiry"].create_index([("branch", ASCENDING), ("status", ASCENDING)])
    database["slide"].create_index([("is_active", ASCENDING), ("order", ASCENDING)])
    database["syllabus"].create_index([("class_name", ASCENDING), ("subject", ASCENDING)])
    logger.info("Database indexes ensured")
