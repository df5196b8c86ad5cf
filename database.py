"""
MongoDB access for the storefront.

The Database handle is built explicitly by the app factory (or by the
maintenance CLI) and passed down; nothing here holds a process-wide
connection.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Union

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from config import Settings
from errors import InternalError, ValidationError

log = logging.getLogger(__name__)


class Database:
    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.name = name
        self.db = client[name]

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
        return cls(client, settings.database_name)

    def __getitem__(self, collection: str):
        return self.db[collection]

    def connect(self) -> "Database":
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            log.critical("MongoDB connection error: %s", e)
            raise InternalError(f"Database unavailable: {e}") from e
        log.info("MongoDB connected: %s", self.name)
        return self

    def ensure_indexes(self):
        self.db["user"].create_index([("email", ASCENDING)], unique=True)
        self.db["cart"].create_index([("user_id", ASCENDING)], unique=True)
        self.db["product"].create_index([("category", ASCENDING), ("price", ASCENDING)])
        self.db["order"].create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])

    def close(self):
        self.client.close()
        log.info("MongoDB connection closed")

    def collection_names(self) -> List[str]:
        return self.db.list_collection_names()

    def update_if(self, collection: str, predicate: dict, update: dict) -> int:
        """Apply ``update`` to one document matching ``predicate``.

        Returns the number of documents modified (0 or 1). The match and the
        write happen as one atomic document operation.
        """
        res = self.db[collection].update_one(predicate, update)
        return res.modified_count


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # pymongo hands back naive datetimes that are already UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_object_id(value: Union[str, ObjectId], label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}: {value}", fields=[label])


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    res = db[collection_name].insert_one(doc)
    return str(res.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        else:
            out[k] = _serialize_value(v)
    return out


def serialize_docs(docs: Iterable[dict]) -> List[dict]:
    return [serialize_doc(d) for d in docs]
