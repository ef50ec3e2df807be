"""
Constants for MDB_GATEWAY.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# TENANT NAMING CONSTANTS
# ============================================================================

COLLECTION_PREFIX: Final[str] = "fh_"
"""Prefix of every shared-mode physical collection name."""

COLLECTION_SEPARATOR: Final[str] = "_"
"""Separator between the tenant identifier and the entity type."""

TENANT_ID_PATTERN: Final[str] = r".+-[a-zA-Z0-9]{24}-"
"""Shape a tenant identifier must contain in shared mode (domain-guid-env)."""

MAX_ENTITY_TYPE_LENGTH: Final[int] = 70
"""Maximum length of an entity type."""

MAX_COLLECTION_NAME_LENGTH: Final[int] = 255
"""Maximum length for MongoDB collection names."""

SYSTEM_COLLECTION_MARKER: Final[str] = "system."
"""Collections whose name contains this marker are never listed."""

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

# Connection pool defaults
DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

DEFAULT_APP_NAME: Final[str] = "MDB_GATEWAY"
"""Application name reported to the MongoDB server."""

DEFAULT_FANOUT_LIMIT: Final[int] = 10
"""Default number of concurrent per-collection operations in a fan-out."""

DEFAULT_HEALTH_TIMEOUT_SECONDS: Final[float] = 5.0
"""Default timeout for the MongoDB ping health check (seconds)."""

# ============================================================================
# QUERY CONSTANTS
# ============================================================================

EARTH_RADIUS_KM: Final[int] = 6378
"""Earth radius used to convert geo search radii to radians."""

INDEX_DIRECTIONS: Final[dict[str, int | str]] = {
    "ASC": 1,
    "DESC": -1,
    "2D": "2d",
}
"""Index direction tokens accepted by the index operation."""

DANGEROUS_OPERATORS: Final[tuple[str, ...]] = (
    "$where",
    "$eval",
    "$function",
    "$accumulator",
)
"""MongoDB operators that are never allowed in translated filters."""

MAX_QUERY_DEPTH: Final[int] = 10
"""Maximum nesting depth for query filters."""

MAX_REGEX_LENGTH: Final[int] = 1000
"""Maximum length for regex patterns used by the like operator."""

MAX_REGEX_COMPLEXITY: Final[int] = 50
"""Maximum complexity score for regex patterns."""

MAX_SORT_FIELDS: Final[int] = 10
"""Maximum number of fields in a sort specification."""

# ============================================================================
# RESPONSE CONSTANTS
# ============================================================================

DUPLICATE_KEY_MARKER: Final[str] = "duplicate key error"
"""Text the driver includes in duplicate key failures."""

DUPLICATE_IMPORT_MESSAGE: Final[str] = (
    "You're importing duplicate data - please clear collections before importing"
)
"""User-facing message for duplicate key failures during import."""

DEFAULT_EXPORT_FORMAT: Final[str] = "json"
"""Archive format used when an export does not name one."""

SUPPORTED_EXPORT_FORMATS: Final[tuple[str, ...]] = ("json", "bson", "csv")
"""Archive entry formats understood by the default codec."""
