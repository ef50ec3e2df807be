"""
Core gateway components: connection lifecycle, CRUD orchestration,
collection introspection and bulk transfer.
"""

from .connection import ConnectionManager, ConnectionState
from .gateway import Gateway
from .introspection import CollectionIntrospector
from .transfer import TransferOrchestrator

__all__ = [
    "CollectionIntrospector",
    "ConnectionManager",
    "ConnectionState",
    "Gateway",
    "TransferOrchestrator",
]
