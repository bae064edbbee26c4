"""MongoDB helpers shared by the document-backed adapters."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)


def get_database(url: str, name: str) -> Database:
    client = MongoClient(url)
    logger.info("Connected to MongoDB database %s", name)
    return client[name]


def create_document(db: Database, collection_name: str,
                    data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert one document, stamping created_at/updated_at. Returns its id."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str,
                  filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
