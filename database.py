"""
Database access for the storefront.

Thin wrapper around a pymongo database. Routes receive the database through
the `get_db` dependency so tests can swap in an in-memory one.
"""
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")

_lock = threading.Lock()
_client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect() -> Database:
    global _client, db
    if db is not None:
        return db
    with _lock:
        if db is None:
            # MongoClient connects lazily, so this never blocks on the server
            _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
            db = _client[DATABASE_NAME]
    return db


def get_db() -> Database:
    return connect()


def close():
    global _client, db
    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        db = None


def serialize_doc(doc):
    if not doc:
        return doc
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
        elif isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


def create_document(collection: str, data: Union[BaseModel, Dict[str, Any]], database: Optional[Database] = None) -> str:
    """Insert a document and return its id as a string.

    Pydantic models are dumped first. A `created_at` timestamp is added unless
    the document already carries one.
    """
    database = database if database is not None else connect()
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    doc.setdefault("created_at", datetime.now(timezone.utc))
    result = database[collection].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None,
                  sort: Optional[Sequence[Tuple[str, int]]] = None,
                  database: Optional[Database] = None) -> List[Dict[str, Any]]:
    database = database if database is not None else connect()
    cursor = database[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
