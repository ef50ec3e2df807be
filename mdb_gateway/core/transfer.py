"""
Bulk export and import of whole tenant datasets.

Export gathers one or all of a tenant's collections and hands them to an
archive codec. Import decodes uploaded files and writes every entity type
concurrently. The first failure is reported. Writes that are still in
flight finish on their own and their outcomes are discarded.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

from ..archive import ArchiveCodec, ZipArchiveCodec
from ..constants import (
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_FANOUT_LIMIT,
    DUPLICATE_IMPORT_MESSAGE,
    DUPLICATE_KEY_MARKER,
)
from ..database.naming import check_tenant_scope, resolve_collection_name, validate_entity_type
from ..database.store import DocumentStore
from ..exceptions import (
    ArchiveError,
    DuplicateImportError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..observability import get_logger as get_contextual_logger
from .concurrency import gather_bounded
from .introspection import CollectionIntrospector

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class TransferOrchestrator:
    """Runs export and import for one tenant at a time."""

    def __init__(
        self,
        store: DocumentStore,
        introspector: CollectionIntrospector | None = None,
        codec: ArchiveCodec | None = None,
        fanout_limit: int = DEFAULT_FANOUT_LIMIT,
    ) -> None:
        self._store = store
        self._introspector = introspector or CollectionIntrospector(store, fanout_limit)
        self._codec = codec or ZipArchiveCodec()
        self._fanout_limit = fanout_limit

    async def _fetch(self, tenant_id: str, entity_type: str, dedicated: bool):
        name = resolve_collection_name(tenant_id, entity_type, dedicated)
        return await self._store.find_all(name)

    async def export(
        self,
        tenant_id: Any,
        entity_type: Any = None,
        dedicated: bool = False,
        format: str | None = None,
    ) -> bytes:
        """
        Export one entity type, or every collection of the tenant when no type
        (or an empty one) is given, as an archive.

        Returns:
            Archive bytes produced by the codec

        Raises:
            ValidationError: If the tenant id is missing or the entity type is invalid
            TenantIsolationError: If the tenant id fails the scope check
            NotFoundError: If the tenant has no collections
            StoreError: If any collection cannot be read
            ArchiveError: If the codec cannot build the archive
        """
        if not tenant_id:
            raise ValidationError("Invalid Params", param="tenant_id")
        check_tenant_scope(tenant_id, dedicated, self._store.database_name)
        archive_format = format or DEFAULT_EXPORT_FORMAT
        start_time = time.time()

        if entity_type not in (None, ""):
            entity_types = [validate_entity_type(entity_type)]
        else:
            descriptors = await self._introspector.list_collections(tenant_id, dedicated)
            if not descriptors:
                raise NotFoundError("No collections to export", context={"tenant_id": tenant_id})
            entity_types = [descriptor["name"] for descriptor in descriptors]

        batches = await gather_bounded(
            (self._fetch(tenant_id, name, dedicated) for name in entity_types),
            self._fanout_limit,
        )
        collections = dict(zip(entity_types, batches))

        archive = await asyncio.to_thread(self._codec.zip_export, collections, archive_format)
        contextual_logger.info(
            "Exported tenant data",
            extra={
                "collections": len(collections),
                "documents": sum(len(batch) for batch in batches),
                "format": archive_format,
                "bytes": len(archive),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return archive

    async def import_data(
        self, tenant_id: Any, files: Sequence[Any] | None, dedicated: bool = False
    ) -> dict[str, Any]:
        """
        Import uploaded files into the tenant's collections.

        Returns:
            {"ok": True, "importedTypes": [entity types]}

        Raises:
            ValidationError: If the tenant id or files are missing, or an entity
                type in the upload is invalid
            TenantIsolationError: If the tenant id fails the scope check
            ArchiveError: If the upload cannot be decoded
            NotFoundError: If the upload contains no collections
            DuplicateImportError: If imported documents collide with existing ones
            StoreError: If any other write fails
        """
        if not tenant_id or not files:
            raise ValidationError("Invalid Params", param="files" if tenant_id else "tenant_id")
        check_tenant_scope(tenant_id, dedicated, self._store.database_name)
        start_time = time.time()

        try:
            collections = await asyncio.to_thread(self._codec.import_file, files)
        except (OSError, ValueError, TypeError, ArithmeticError) as e:
            raise ArchiveError(f"Failed to decode import files: {e}") from e

        if not collections:
            raise NotFoundError(
                "No collections found to import", context={"tenant_id": tenant_id}
            )

        targets = [
            (resolve_collection_name(tenant_id, validate_entity_type(entity_type), dedicated), docs)
            for entity_type, docs in collections.items()
        ]
        logger.debug(f"Writing {len(targets)} collection(s) for tenant '{tenant_id}'")

        try:
            await gather_bounded(
                (self._store.create(name, documents) for name, documents in targets),
                self._fanout_limit,
            )
        except StoreError as e:
            if DUPLICATE_KEY_MARKER in str(e):
                raise DuplicateImportError(
                    DUPLICATE_IMPORT_MESSAGE,
                    collection_name=e.collection_name,
                    operation=e.operation,
                ) from e
            raise

        imported = list(collections)
        contextual_logger.info(
            "Imported tenant data",
            extra={
                "collections": len(imported),
                "documents": sum(len(docs) for _, docs in targets),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return {"ok": True, "importedTypes": imported}
