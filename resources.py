"""
Generic CRUD service shared by the content collections.

A ResourceService is configured per collection with its business id prefix,
what the public site is allowed to see, and how public and administrative
listings are sorted. Enquiries add statistics; announcements check their
active window against the stored dates on update; slides keep their ``order``
values a dense 1..N sequence.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from database import ACCOUNT_COLLECTION, BUSINESS_ID_FIELDS, new_business_id, utcnow
from errors import NotFound, ValidationError
from schemas import CLASS_NAMES, ENQUIRY_STATUSES
from security import AuthContext

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING)]

# Stored keys whose wire name is not the plain camelCase form
WIRE_NAMES = {"_id": "id", "class_name": "class"}
HIDDEN_FIELDS = {"password_hash"}


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert a stored document into its JSON shape (camelCase keys, string ids, UTC datetimes)."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key in HIDDEN_FIELDS:
            continue
        if isinstance(value, ObjectId):
            value = str(value)
        elif isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        out[WIRE_NAMES.get(key) or to_camel(key)] = value
    return out


def lookup(id_field: str, item_id: str) -> dict:
    """Match on the primary id when ``item_id`` looks like one, else on the business id."""
    if ObjectId.is_valid(item_id):
        return {"_id": ObjectId(item_id)}
    return {id_field: item_id}


class ResourceService:
    def __init__(
        self,
        collection: str,
        prefix: str,
        label: str,
        plural: str,
        creator_field: Optional[str] = None,
        public_filter: Optional[Callable[[], dict]] = None,
        public_sort: Optional[List[Tuple[str, int]]] = None,
        public_key: Optional[Callable[[dict], Any]] = None,
        admin_sort: Optional[List[Tuple[str, int]]] = None,
        clearable: Sequence[str] = (),
        page_size: int = 20,
    ):
        self.collection = collection
        self.prefix = prefix
        self.id_field = BUSINESS_ID_FIELDS[collection]
        self.label = label
        self.plural = plural
        self.creator_field = creator_field
        self.public_filter = public_filter
        self.public_sort = public_sort
        self.public_key = public_key
        self.admin_sort = admin_sort or NEWEST_FIRST
        self.clearable = set(clearable)
        self.page_size = page_size

    def _find(self, db, item_id: str) -> dict:
        doc = db[self.collection].find_one(lookup(self.id_field, item_id))
        if not doc:
            raise NotFound(f"{self.label} not found.")
        return doc

    @staticmethod
    def _query(base: dict, filters: Dict[str, Any]) -> dict:
        query = dict(base)
        query.update({k: v for k, v in filters.items() if v is not None})
        return query

    def _expand_creators(self, db, docs: List[dict]) -> None:
        if not self.creator_field:
            return
        refs = {d.get(self.creator_field) for d in docs}
        oids = [ObjectId(r) for r in refs if isinstance(r, str) and ObjectId.is_valid(r)]
        if not oids:
            return
        creators = {
            str(a["_id"]): {"id": str(a["_id"]), "name": a.get("name"), "email": a.get("email")}
            for a in db[ACCOUNT_COLLECTION].find({"_id": {"$in": oids}}, {"name": 1, "email": 1})
        }
        for d in docs:
            ref = d.get(self.creator_field)
            if ref in creators:
                d[self.creator_field] = creators[ref]

    def create(self, db, payload: BaseModel, current: Optional[AuthContext] = None, **extra) -> dict:
        now = utcnow()
        doc = payload.model_dump()
        doc.update(extra)
        doc[self.id_field] = new_business_id(self.prefix)
        if self.creator_field and current is not None:
            doc[self.creator_field] = current.account_id
        doc["created_at"] = now
        doc["updated_at"] = now
        db[self.collection].insert_one(doc)
        logger.info("Created %s %s", self.collection, doc[self.id_field])
        return serialize_document(doc)

    def list_public(self, db, **filters) -> List[dict]:
        base = self.public_filter() if self.public_filter else {}
        projection = {self.creator_field: 0} if self.creator_field else None
        cursor = db[self.collection].find(self._query(base, filters), projection)
        if self.public_sort:
            cursor = cursor.sort(self.public_sort)
        docs = list(cursor)
        if self.public_key:
            docs.sort(key=self.public_key)
        return [serialize_document(d) for d in docs]

    def list_all(self, db, page: int = 1, limit: Optional[int] = None, **filters) -> dict:
        limit = limit or self.page_size
        query = self._query({}, filters)
        total = db[self.collection].count_documents(query)
        cursor = db[self.collection].find(query).sort(self.admin_sort).skip((page - 1) * limit).limit(limit)
        docs = list(cursor)
        self._expand_creators(db, docs)
        return {
            self.plural: [serialize_document(d) for d in docs],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": math.ceil(total / limit),
            },
        }

    def get(self, db, item_id: str) -> dict:
        return serialize_document(self._find(db, item_id))

    def update(self, db, item_id: str, payload: BaseModel) -> dict:
        changes = {
            k: v for k, v in payload.model_dump(exclude_unset=True).items()
            if v is not None or k in self.clearable
        }
        if not changes:
            return self.get(db, item_id)
        changes["updated_at"] = utcnow()
        doc = db[self.collection].find_one_and_update(
            lookup(self.id_field, item_id),
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound(f"{self.label} not found.")
        return serialize_document(doc)

    def delete(self, db, item_id: str) -> dict:
        """Remove a record and return it as it was stored."""
        doc = db[self.collection].find_one_and_delete(lookup(self.id_field, item_id))
        if not doc:
            raise NotFound(f"{self.label} not found.")
        logger.info("Deleted %s %s", self.collection, doc.get(self.id_field))
        return doc

    def toggle(self, db, item_id: str) -> dict:
        doc = self._find(db, item_id)
        doc = db[self.collection].find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {"is_active": not doc.get("is_active", True), "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound(f"{self.label} not found.")
        return serialize_document(doc)


class EnquiryService(ResourceService):
    def stats(self, db) -> dict:
        collection = db[self.collection]
        overall = dict.fromkeys(("total",) + ENQUIRY_STATUSES, 0)
        for row in collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]):
            overall["total"] += row["count"]
            if row["_id"] in ENQUIRY_STATUSES:
                overall[row["_id"]] = row["count"]

        by_branch = [
            {"branch": row["_id"], "count": row["count"]}
            for row in collection.aggregate([
                {"$group": {"_id": "$branch", "count": {"$sum": 1}}},
                {"$sort": {"_id": 1}},
            ])
        ]
        return {"overall": overall, "byBranch": by_branch}


class AnnouncementService(ResourceService):
    def update(self, db, item_id: str, payload: BaseModel) -> dict:
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("start_date") or changes.get("expiry_date"):
            stored = self._find(db, item_id)
            start = changes.get("start_date") or stored.get("start_date")
            expiry = changes["expiry_date"] if "expiry_date" in changes else stored.get("expiry_date")
            if start and expiry and expiry < start:
                raise ValidationError("expiryDate must not be before startDate.")
        return super().update(db, item_id, payload)


class SlideService(ResourceService):
    """Slides whose ``order`` values always form 1..N."""

    def create(self, db, payload: BaseModel, current: Optional[AuthContext] = None, **extra) -> dict:
        last = db[self.collection].find_one({}, {"order": 1}, sort=[("order", DESCENDING)])
        extra["order"] = last["order"] + 1 if last else 1
        return super().create(db, payload, current, **extra)

    def delete(self, db, item_id: str) -> dict:
        doc = super().delete(db, item_id)
        # Not atomic with the delete above; a failure here leaves a gap.
        db[self.collection].update_many(
            {"order": {"$gt": doc["order"]}},
            {"$inc": {"order": -1}, "$set": {"updated_at": utcnow()}},
        )
        return doc

    def reorder(self, db, assignments: Iterable[Tuple[str, int]]) -> int:
        """
        Apply (slide id, order) pairs verbatim.

        Every id is resolved before anything is written, so an unknown id
        changes nothing. Keeping the sequence dense is up to the caller, which
        is expected to submit pairwise swaps.
        """
        assignments = list(assignments)
        if len({item_id for item_id, _ in assignments}) != len(assignments):
            raise ValidationError("Each slide may appear only once in a reorder request.")
        resolved = [(self._find(db, item_id)["_id"], order) for item_id, order in assignments]
        now = utcnow()
        for oid, order in resolved:
            db[self.collection].update_one({"_id": oid}, {"$set": {"order": order, "updated_at": now}})
        logger.info("Reordered %d slides", len(resolved))
        return len(resolved)

    def move(self, db, item_id: str, direction: str) -> dict:
        """Swap a slide with its neighbour; a no-op at either end of the sequence."""
        slide = self._find(db, item_id)
        current = slide["order"]
        target = current - 1 if direction == "up" else current + 1
        neighbour = db[self.collection].find_one({"order": target})
        if neighbour is None:
            return serialize_document(slide)
        self.reorder(db, [(str(slide["_id"]), target), (str(neighbour["_id"]), current)])
        return self.get(db, str(slide["_id"]))


# ----------------------- Collections -----------------------

def _active_window() -> dict:
    now = utcnow()
    return {
        "is_active": True,
        "start_date": {"$lte": now},
        "$or": [{"expiry_date": None}, {"expiry_date": {"$gte": now}}],
    }


def _only_active() -> dict:
    return {"is_active": True}


def _class_then_subject(doc: dict):
    class_name = doc.get("class_name")
    rank = CLASS_NAMES.index(class_name) if class_name in CLASS_NAMES else len(CLASS_NAMES)
    return rank, doc.get("subject", "")


enquiries = EnquiryService(
    "enquiry", "ENQ", "Enquiry", "enquiries",
    clearable=("message",),
)

announcements = AnnouncementService(
    "announcement", "ANN", "Announcement", "announcements",
    creator_field="created_by",
    public_filter=_active_window,
    public_sort=[("is_pinned", DESCENDING), ("is_important", DESCENDING), ("start_date", DESCENDING)],
    clearable=("expiry_date",),
)

gallery = ResourceService(
    "gallery", "IMG", "Image", "images",
    creator_field="uploaded_by",
    public_sort=NEWEST_FIRST,
    clearable=("description", "branch"),
)

slides = SlideService(
    "slide", "SLD", "Slide", "slides",
    creator_field="uploaded_by",
    public_filter=_only_active,
    public_sort=[("order", ASCENDING)],
    admin_sort=[("order", ASCENDING)],
    clearable=("description", "button_text", "button_link"),
)

syllabus = ResourceService(
    "syllabus", "SYL", "Syllabus", "syllabus",
    creator_field="uploaded_by",
    public_filter=_only_active,
    public_key=_class_then_subject,
    clearable=("description", "file_size"),
    page_size=50,
)
