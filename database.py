"""
MongoDB access for the storefront.

Collections: "user", "category", "product", "review", "order",
"payment_request", "payment_settings" and "contact". The client connects
lazily, so importing this module never touches the network.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

import config

client = MongoClient(config.DATABASE_URL, connect=False, serverSelectionTimeoutMS=5000)
db = client[config.DATABASE_NAME]


def get_db() -> Database:
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id as a string."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc["updated_at"] = stamp
    res = database[collection].insert_one(doc)
    return str(res.inserted_id)


def get_documents(database: Database, collection: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: int = 0) -> List[dict]:
    cursor = database[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize_doc(d) for d in cursor]


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = dict(doc)
    _id = d.pop("_id", None)
    if _id is not None:
        d["id"] = str(_id)
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d


def ensure_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid ID format: {id_str}")
