"""
MongoDB document helpers for MDB_GATEWAY.

Converts BSON-specific values into JSON-safe equivalents for responses.
"""

from datetime import datetime
from typing import Any

from bson import ObjectId


def clean_value(value: Any) -> Any:
    """
    Convert a single BSON value to a JSON-serializable value.

    - ObjectId -> str
    - datetime -> ISO format string
    - dicts and lists are processed recursively
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: clean_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [clean_value(item) for item in value]
    return value


def clean_mongo_doc(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Convert a MongoDB document to JSON-serializable format.

    Example:
        ```python
        doc = {
            "_id": ObjectId("507f1f77bcf86cd799439011"),
            "created_at": datetime(2024, 1, 1, 12, 0, 0),
        }
        clean_mongo_doc(doc)
        # {"_id": "507f1f77bcf86cd799439011", "created_at": "2024-01-01T12:00:00"}
        ```
    """
    if doc is None:
        return None
    return clean_value(doc)
