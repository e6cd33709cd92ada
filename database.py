"""
Database helpers

Thin layer over the MongoDB client. Collection names are the lowercased
schema class names (ParkingLot -> "parkinglot"). Every store failure is
logged here and re-raised as OperationFailed so callers only ever see one
error type.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


class OperationFailed(Exception):
    """A read or write against the document store did not complete."""

    def __init__(self, message: str = "Operation failed"):
        super().__init__(message)
        self.message = message


class DatabaseNotConfigured(OperationFailed):
    def __init__(self):
        super().__init__("Database not configured")


def now() -> datetime:
    return datetime.now(timezone.utc)


def get_collection(collection_name: str):
    if db is None:
        raise DatabaseNotConfigured()
    return db[collection_name]


def to_object_id(id_str: str) -> Optional[ObjectId]:
    """Parse a document id, returning None for anything that is not one."""
    if isinstance(id_str, ObjectId):
        return id_str
    if not id_str:
        return None
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at, and return its id."""
    doc = _as_dict(data)
    doc.setdefault("created_at", now())
    collection = get_collection(collection_name)
    try:
        inserted_id = collection.insert_one(doc).inserted_id
    except PyMongoError:
        logger.exception("Error creating document in %s", collection_name)
        raise OperationFailed(f"Error creating {collection_name}")
    logger.info("Created %s %s", collection_name, inserted_id)
    return str(inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
) -> List[Dict[str, Any]]:
    collection = get_collection(collection_name)
    try:
        cursor = collection.find(filter_dict or {}, sort=sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)
    except PyMongoError:
        logger.exception("Error reading %s", collection_name)
        raise OperationFailed(f"Error reading {collection_name}")


def get_document(collection_name: str, id_str: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(id_str)
    if oid is None:
        return None
    collection = get_collection(collection_name)
    try:
        return collection.find_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error reading %s %s", collection_name, id_str)
        raise OperationFailed(f"Error reading {collection_name}")


def update_document(collection_name: str, id_str: str, fields: Dict[str, Any]) -> bool:
    """Apply a partial $set update. Returns False when no document matched."""
    oid = to_object_id(id_str)
    if oid is None:
        return False
    collection = get_collection(collection_name)
    try:
        result = collection.update_one({"_id": oid}, {"$set": fields})
    except PyMongoError:
        logger.exception("Error updating %s %s", collection_name, id_str)
        raise OperationFailed(f"Error updating {collection_name}")
    if result.matched_count == 0:
        return False
    logger.info("Updated %s %s", collection_name, id_str)
    return True


def delete_document(collection_name: str, id_str: str) -> bool:
    oid = to_object_id(id_str)
    if oid is None:
        return False
    collection = get_collection(collection_name)
    try:
        result = collection.delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting %s %s", collection_name, id_str)
        raise OperationFailed(f"Error deleting {collection_name}")
    if result.deleted_count == 0:
        return False
    logger.info("Deleted %s %s", collection_name, id_str)
    return True


def delete_documents(collection_name: str, filter_dict: Dict[str, Any]) -> int:
    collection = get_collection(collection_name)
    try:
        result = collection.delete_many(filter_dict)
    except PyMongoError:
        logger.exception("Error deleting from %s", collection_name)
        raise OperationFailed(f"Error deleting {collection_name}")
    return result.deleted_count
