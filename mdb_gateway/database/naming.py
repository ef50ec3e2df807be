"""
Tenant-aware collection naming.

Shared mode stores every tenant in one database and isolates them by
collection name: ``fh_<tenant_id>_<entity_type>``. Dedicated mode gives a
tenant its own database, so the entity type is used verbatim.
"""

import logging
import re
from typing import Any

from ..constants import (
    COLLECTION_PREFIX,
    COLLECTION_SEPARATOR,
    MAX_COLLECTION_NAME_LENGTH,
    MAX_ENTITY_TYPE_LENGTH,
    TENANT_ID_PATTERN,
)
from ..exceptions import TenantIsolationError, ValidationError

logger = logging.getLogger(__name__)

_TENANT_ID_RE = re.compile(TENANT_ID_PATTERN)


def resolve_collection_name(tenant_id: str, entity_type: str, dedicated: bool = False) -> str:
    """
    Compute the physical collection name for a tenant's entity type.

    Raises:
        ValidationError: If the resolved name exceeds MongoDB's limit
    """
    if dedicated:
        name = entity_type
    else:
        name = f"{COLLECTION_PREFIX}{tenant_id}{COLLECTION_SEPARATOR}{entity_type}"

    if len(name) > MAX_COLLECTION_NAME_LENGTH:
        raise ValidationError(
            f"Collection name exceeds maximum length: "
            f"{len(name)} > {MAX_COLLECTION_NAME_LENGTH}",
            param="type",
            context={"tenant_id": tenant_id},
        )
    return name


def recover_entity_type(physical_name: str, tenant_id: str, dedicated: bool = False) -> str:
    """Strip the tenant prefix from a physical name; inverse of resolve_collection_name."""
    if dedicated:
        return physical_name
    prefix = f"{COLLECTION_PREFIX}{tenant_id}{COLLECTION_SEPARATOR}"
    return physical_name.replace(prefix, "", 1)


def is_valid_tenant_id(tenant_id: Any) -> bool:
    """Check that a tenant id has the shared-mode shape (domain, 24-char id, separator)."""
    return isinstance(tenant_id, str) and _TENANT_ID_RE.search(tenant_id) is not None


def is_valid_entity_type_length(entity_type: str) -> bool:
    return len(entity_type) <= MAX_ENTITY_TYPE_LENGTH


def validate_entity_type(entity_type: Any) -> str:
    """
    Validate an entity type.

    Raises:
        ValidationError: If the entity type is missing, not a string, or too long
    """
    if entity_type is None or entity_type == "":
        raise ValidationError("Invalid Params", param="type")
    if not isinstance(entity_type, str):
        raise ValidationError(
            f"Invalid Params - 'type' must be a string, got {type(entity_type).__name__}",
            param="type",
        )
    if not is_valid_entity_type_length(entity_type):
        raise ValidationError(
            f"Invalid Params - 'type' exceeds maximum length: "
            f"{len(entity_type)} > {MAX_ENTITY_TYPE_LENGTH}",
            param="type",
        )
    return entity_type


def check_params(params: Any) -> None:
    """
    Validate the parameters shared by every CRUD operation.

    Raises:
        ValidationError: If the tenant id or entity type is missing or invalid
    """
    if not params.tenant_id:
        raise ValidationError("Invalid Params", param="tenant_id")
    validate_entity_type(params.entity_type)


def check_tenant_scope(tenant_id: Any, dedicated: bool, database_name: str) -> None:
    """
    Verify a caller may address the tenant's collections.

    Raises:
        TenantIsolationError: If the shared-mode shape check fails, or in
            dedicated mode when the tenant id is not the database name
    """
    if not tenant_id:
        raise TenantIsolationError("Missing tenant identifier")

    if dedicated:
        if tenant_id != database_name:
            logger.warning(
                f"Security: tenant '{tenant_id}' does not match dedicated database "
                f"'{database_name}'"
            )
            raise TenantIsolationError(
                "Tenant identifier does not match the dedicated database",
                tenant_id=tenant_id,
            )
        return

    if not is_valid_tenant_id(tenant_id):
        logger.warning(f"Security: rejected malformed tenant identifier '{tenant_id}'")
        raise TenantIsolationError("Invalid tenant identifier", tenant_id=tenant_id)
