"""Persistence layer: the only code that touches MongoDB collections.

Each repository wraps one collection (or one family of lookup collections) and
speaks in pydantic models. Ids cross this boundary as hex strings and are turned
into ``ObjectId`` here; a malformed id is treated the same as a missing one.
"""

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from typing import Any, Dict, List, Optional

from .models import LookupCategory, LookupEntity, MenuItem, Ticket, User, utcnow

TICKET_REFS = (
    "priority_id",
    "type_id",
    "environment_id",
    "origin_id",
    "status_id",
    "requester_id",
    "assignee_id",
)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class TicketRepository:
    def __init__(self, database: Database):
        self.collection = database.tickets
        self.counters = database.counters

    def next_number(self) -> str:
        counter = self.counters.find_one_and_update(
            {"_id": "ticket_number"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return f"TCK-{counter['seq']:03d}"

    def _to_document(self, ticket: Ticket) -> Dict[str, Any]:
        doc = ticket.model_dump(exclude={"id"})
        for field in TICKET_REFS:
            if doc.get(field) is not None:
                doc[field] = to_object_id(doc[field])
        return doc

    def create(self, ticket: Ticket) -> Ticket:
        doc = self._to_document(ticket)
        res = self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        return Ticket(**doc)

    def find(self, ticket_id: str) -> Optional[Ticket]:
        oid = to_object_id(ticket_id)
        if oid is None:
            return None
        data = self.collection.find_one({"_id": oid})
        return Ticket(**data) if data else None

    def replace(self, ticket: Ticket) -> Optional[Ticket]:
        """Overwrite every stored field of an existing ticket."""
        oid = to_object_id(ticket.id)
        if oid is None:
            return None
        res = self.collection.replace_one({"_id": oid}, self._to_document(ticket))
        if res.matched_count == 0:
            return None
        return self.find(ticket.id)

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Ticket]:
        query = {}
        for field, value in (filters or {}).items():
            query[field] = to_object_id(value) if field in TICKET_REFS else value
        cursor = self.collection.find(query).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        return [Ticket(**d) for d in cursor]

    def count_referencing(self, user_id: str) -> int:
        oid = to_object_id(user_id)
        if oid is None:
            return 0
        return self.collection.count_documents({"$or": [{"requester_id": oid}, {"assignee_id": oid}]})

    def count_by(self, field: str) -> Dict[str, int]:
        pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
        return {str(row["_id"]): row["count"] for row in self.collection.aggregate(pipeline)}


class UserRepository:
    def __init__(self, database: Database):
        self.collection = database.users

    def create(self, user: User) -> User:
        doc = user.model_dump(exclude={"id"})
        doc["password_hash"] = user.password_hash
        res = self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        return User(**doc)

    def find(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        data = self.collection.find_one({"_id": oid})
        return User(**data) if data else None

    def find_by_email(self, email: str) -> Optional[User]:
        data = self.collection.find_one({"email": email})
        return User(**data) if data else None

    def email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        query: Dict[str, Any] = {"email": email}
        if exclude_id is not None:
            query["_id"] = {"$ne": to_object_id(exclude_id)}
        return self.collection.find_one(query) is not None

    def list(self) -> List[User]:
        return [User(**d) for d in self.collection.find().sort("name", ASCENDING)]

    def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        data = self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return User(**data) if data else None

    def delete(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        return self.collection.delete_one({"_id": oid}).deleted_count == 1

    def upsert_by_email(self, email: str, name: str) -> User:
        now = utcnow()
        data = self.collection.find_one_and_update(
            {"email": email},
            {
                "$set": {"name": name, "updated_at": now},
                "$setOnInsert": {
                    "active": True,
                    "photo_url": None,
                    "password_hash": None,
                    "created_at": now,
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return User(**data)


class LookupRepository:
    def __init__(self, database: Database):
        self.database = database

    def _collection(self, category: LookupCategory):
        return self.database[category.collection]

    def list(self, category: LookupCategory) -> List[LookupEntity]:
        cursor = self._collection(category).find().sort("description", ASCENDING)
        return [LookupEntity(**d) for d in cursor]

    def find_by_description(self, category: LookupCategory, description: str) -> Optional[LookupEntity]:
        data = self._collection(category).find_one({"description": description})
        return LookupEntity(**data) if data else None

    def find(self, category: LookupCategory, entity_id: str) -> Optional[LookupEntity]:
        oid = to_object_id(entity_id)
        if oid is None:
            return None
        data = self._collection(category).find_one({"_id": oid})
        return LookupEntity(**data) if data else None

    def ensure(self, category: LookupCategory, description: str) -> LookupEntity:
        existing = self.find_by_description(category, description)
        if existing:
            return existing
        res = self._collection(category).insert_one({"description": description})
        return LookupEntity(_id=res.inserted_id, description=description)


class MenuRepository:
    def __init__(self, database: Database):
        self.collection = database.menus

    def list_active(self) -> List[MenuItem]:
        cursor = self.collection.find({"active": True}).sort("created_at", ASCENDING)
        return [MenuItem(**d) for d in cursor]

    def ensure(self, title: str, icon_name: Optional[str] = None, parent_id: Optional[str] = None) -> MenuItem:
        parent = to_object_id(parent_id) if parent_id else None
        data = self.collection.find_one({"title": title, "parent_id": parent})
        if data:
            return MenuItem(**data)
        now = utcnow()
        doc = {
            "title": title,
            "icon_name": icon_name,
            "parent_id": parent,
            "active": True,
            "created_at": now,
            "updated_at": now,
        }
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        return MenuItem(**doc)
