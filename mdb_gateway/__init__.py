"""
MDB_GATEWAY - Multi-tenant MongoDB data-access gateway

Tenant-isolated CRUD, declarative queries, collection introspection and
bulk export/import over one shared MongoDB database.
"""

# Archive codec
from .archive import ArchiveFile, ZipArchiveCodec
# Configuration
from .config import GatewayConfig
# Core gateway
from .core import ConnectionManager, ConnectionState, Gateway
# Database layer
from .database import DocumentStore, QueryOperator, translate_query
# Types
from .types import OperationParams, Record

__version__ = "0.1.0"

__all__ = [
    # Core
    "Gateway",
    "GatewayConfig",
    "ConnectionManager",
    "ConnectionState",
    # Database
    "DocumentStore",
    "QueryOperator",
    "translate_query",
    # Types
    "OperationParams",
    "Record",
    # Archive
    "ArchiveFile",
    "ZipArchiveCodec",
]
