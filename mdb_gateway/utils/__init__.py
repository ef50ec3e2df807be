"""
Utility functions for MDB_GATEWAY.
"""

from .mongo import clean_mongo_doc, clean_value

__all__ = [
    "clean_mongo_doc",
    "clean_value",
]
