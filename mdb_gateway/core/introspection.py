"""
Collection introspection.

Lists a tenant's collections with their size and document count. Nothing
is cached: every call re-reads the collection names and statistics.
"""

import logging
from typing import Any

from ..constants import DEFAULT_FANOUT_LIMIT, SYSTEM_COLLECTION_MARKER
from ..database.naming import check_tenant_scope, recover_entity_type
from ..database.store import DocumentStore
from ..exceptions import TenantIsolationError
from ..types import CollectionDescriptor
from .concurrency import gather_bounded

logger = logging.getLogger(__name__)

LISTING_ERROR_MESSAGE = "Incorrect parameters for listing collections"


class CollectionIntrospector:
    """Enumerates and describes the collections visible to a tenant."""

    def __init__(self, store: DocumentStore, fanout_limit: int = DEFAULT_FANOUT_LIMIT) -> None:
        self._store = store
        self._fanout_limit = fanout_limit

    def _tenant_collection_names(
        self, names: list[str], tenant_id: str, dedicated: bool
    ) -> list[str]:
        database_prefix = f"{self._store.database_name}."
        visible = []
        for name in names:
            if not name or SYSTEM_COLLECTION_MARKER in name:
                continue
            if not dedicated and tenant_id not in name:
                continue
            if name.startswith(database_prefix):
                name = name[len(database_prefix) :]
            visible.append(name)
        return visible

    async def _describe(self, name: str, tenant_id: str, dedicated: bool) -> CollectionDescriptor:
        stats = await self._store.collection_info(name)
        return CollectionDescriptor(
            name=recover_entity_type(name, tenant_id, dedicated),
            size=stats["size"],
            count=stats["count"],
        )

    async def list_collections(
        self, tenant_id: Any, dedicated: bool = False
    ) -> list[dict[str, Any]]:
        """
        Describe every collection belonging to a tenant.

        Returns:
            List of {"name", "size", "count"} dictionaries in enumeration order

        Raises:
            TenantIsolationError: If the tenant id is missing, malformed, or does
                not match the dedicated database
            StoreError: If enumeration or any statistics lookup fails
        """
        try:
            check_tenant_scope(tenant_id, dedicated, self._store.database_name)
        except TenantIsolationError as e:
            raise TenantIsolationError(
                LISTING_ERROR_MESSAGE, tenant_id=tenant_id or None, context=dict(e.context)
            ) from e

        names = self._tenant_collection_names(
            await self._store.collection_names(), tenant_id, dedicated
        )
        logger.debug(f"Describing {len(names)} collection(s) for tenant '{tenant_id}'")

        descriptors = await gather_bounded(
            (self._describe(name, tenant_id, dedicated) for name in names),
            self._fanout_limit,
        )
        return [descriptor.to_dict() for descriptor in descriptors]
