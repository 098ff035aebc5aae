"""
MongoDB access helpers.

`db` is a module-level handle; swap it (e.g. for a mongomock database) to
point every helper at another store. Storage errors from pymongo are not
caught here.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "splitwise")

# MongoClient connects lazily, so importing this module does not need a running server
client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[DATABASE_NAME]


def create_document(collection_name: str, data) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    now = datetime.now(timezone.utc)
    doc = dict(data)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    logger.debug("Inserted %s %s", collection_name, result.inserted_id)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, sort=None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)


def get_document(collection_name: str, document_id: str) -> Optional[dict]:
    if not ObjectId.is_valid(document_id):
        return None
    return db[collection_name].find_one({"_id": ObjectId(document_id)})


def find_one(collection_name: str, filter_dict: dict) -> Optional[dict]:
    return db[collection_name].find_one(filter_dict)
