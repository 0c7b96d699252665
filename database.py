"""
MongoDB access

One MongoClient is shared by the whole process. `db` stays None when
DATABASE_URL is not configured; routes reach the database through the
`get_db` dependency so tests can swap in another database.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from config import settings

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.database_url:
    client = MongoClient(settings.database_url)
    db = client[settings.database_name]


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def close_client() -> None:
    global client, db
    if client is not None:
        client.close()
        logger.info("MongoDB client closed")
    client = None
    db = None


def parse_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid ID")


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of `doc` with ObjectId values rendered as strings."""
    if doc is None:
        return None
    return {key: str(value) if isinstance(value, ObjectId) else value for key, value in doc.items()}


def serialize_many(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize(doc) for doc in docs]


def strip_id(data: Dict[str, Any]) -> Dict[str, Any]:
    # _id is immutable in MongoDB; clients often echo it back on update
    return {key: value for key, value in data.items() if key != "_id"}


# Driver results rendered the way the MongoDB drivers print them

def insert_result(result: InsertOneResult) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def update_result(result: UpdateResult) -> Dict[str, Any]:
    upserted_id = result.upserted_id
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "upsertedId": str(upserted_id) if upserted_id is not None else None,
    }


def delete_result(result: DeleteResult) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> InsertOneResult:
    """Insert `data` into `collection_name`, stamping createdAt/updatedAt."""
    now = datetime.now(timezone.utc)
    doc = dict(data)
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    return database[collection_name].insert_one(doc)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return serialize_many(cursor)
