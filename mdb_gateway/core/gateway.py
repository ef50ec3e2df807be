"""
Gateway: the multi-tenant CRUD surface.

Every request names a tenant and an entity type. The gateway resolves the
physical collection, validates parameters before touching the store, and
returns plain dictionaries:

- single documents as records: {"type", "guid", "fields"}
- batch results as {"status", "count"}
- listings as lists of records or collection descriptors

Example:
    async with Gateway(GatewayConfig.from_env()) as gateway:
        record = await gateway.create(
            {"tenant_id": "acme-5f0c6d1e2a3b4c5d6e7f8091-dev",
             "entity_type": "orders",
             "fields": {"total": 12}}
        )
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from bson.errors import InvalidId

from ..archive import ArchiveCodec
from ..config import GatewayConfig
from ..constants import DEFAULT_FANOUT_LIMIT, DEFAULT_HEALTH_TIMEOUT_SECONDS, INDEX_DIRECTIONS
from ..database.naming import check_params, resolve_collection_name
from ..database.query_translator import translate_query
from ..database.query_validator import QueryValidator
from ..database.store import DocumentStore
from ..exceptions import DeleteError, QueryValidationError, StoreError, ValidationError
from ..observability import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_connection_state,
    get_logger as get_contextual_logger,
    set_tenant_context,
    timed_operation,
)
from ..types import OperationParams, normalize_document
from .connection import ConnectionManager, ConnectionState, StateListener
from .introspection import CollectionIntrospector
from .transfer import TransferOrchestrator

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

Params = OperationParams | Mapping[str, Any]

_SORT_DIRECTIONS = {"ASC": 1, "DESC": -1}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _index_direction(token: Any) -> int | str:
    """Map an index token to a key direction; unknown tokens index ascending."""
    if _is_int(token) and token in (1, -1):
        return token
    return INDEX_DIRECTIONS.get(str(token).upper(), 1)


def _sort_direction(field: str, direction: Any) -> int:
    if _is_int(direction) and direction in (1, -1):
        return direction
    if isinstance(direction, str) and direction.upper() in _SORT_DIRECTIONS:
        return _SORT_DIRECTIONS[direction.upper()]
    raise QueryValidationError(
        f"Invalid sort direction {direction!r} for '{field}'",
        query_type="sort",
        path=field,
    )


def _sort_spec(sort: Any) -> list[tuple[str, int]] | None:
    """Convert a mapping or list of (field, direction) pairs; anything else is ignored."""
    if isinstance(sort, Mapping):
        pairs = list(sort.items())
    elif isinstance(sort, (list, tuple)):
        pairs = [
            tuple(pair) for pair in sort if isinstance(pair, (list, tuple)) and len(pair) == 2
        ]
    else:
        return None
    return [(str(field), _sort_direction(field, direction)) for field, direction in pairs] or None


def _projection(fields: Any) -> dict[str, int] | None:
    if fields is None:
        return None
    if isinstance(fields, str):
        fields = [fields]
    if not isinstance(fields, (list, tuple)) or not all(isinstance(f, str) for f in fields):
        raise ValidationError(
            "Invalid Params - 'fields' must be a list of field names", param="fields"
        )
    return {field: 1 for field in fields} or None


class Gateway:
    """
    Multi-tenant data-access gateway over one MongoDB database.

    Either pass a GatewayConfig and call start(), or inject a ready
    DocumentStore (used by tests and embedding applications).
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        store: DocumentStore | None = None,
        connection: ConnectionManager | None = None,
        codec: ArchiveCodec | None = None,
        validator: QueryValidator | None = None,
    ) -> None:
        if config is None and store is None and connection is None:
            raise ValueError("Gateway needs a config, a connection manager or a store")

        self.config = config
        self._connection = connection
        if self._connection is None and config is not None and store is None:
            self._connection = ConnectionManager.from_config(config)

        self._codec = codec
        self._validator = validator or QueryValidator()
        self._fanout_limit = config.fanout_limit if config else DEFAULT_FANOUT_LIMIT
        self._health_timeout = (
            config.health_timeout_seconds if config else DEFAULT_HEALTH_TIMEOUT_SECONDS
        )
        self._listeners: list[StateListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        if self._connection is not None:
            self._unsubscribe = self._connection.subscribe(self._on_connection_state)

        self._store: DocumentStore | None = None
        self._introspector: CollectionIntrospector | None = None
        self._transfer: TransferOrchestrator | None = None
        if store is not None:
            self._attach(store)

    def _attach(self, store: DocumentStore) -> None:
        self._store = store
        self._introspector = CollectionIntrospector(store, self._fanout_limit)
        self._transfer = TransferOrchestrator(
            store, self._introspector, self._codec, self._fanout_limit
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Open the MongoDB connection.

        Raises:
            InitializationError: If the connection cannot be established
        """
        if self._connection is None:
            return
        await self._connection.initialize()
        self._attach(DocumentStore(self._connection.mongo_db))

    async def stop(self) -> None:
        if self._connection is not None:
            await self._connection.shutdown()
            self._store = None
            self._introspector = None
            self._transfer = None

    async def __aenter__(self) -> "Gateway":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _require_started(self) -> None:
        if self._store is None:
            raise RuntimeError("Gateway not started. Call start() first.")

    @property
    def store(self) -> DocumentStore:
        self._require_started()
        return self._store

    @property
    def introspector(self) -> CollectionIntrospector:
        self._require_started()
        return self._introspector

    @property
    def transfer(self) -> TransferOrchestrator:
        self._require_started()
        return self._transfer

    @property
    def connection_state(self) -> ConnectionState | None:
        return self._connection.state if self._connection is not None else None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Receive connection state changes (re-emitted from the connection manager).

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_connection_state(self, state: ConnectionState, error: BaseException | None) -> None:
        if state == ConnectionState.READY:
            contextual_logger.info("Database opened")
        elif state == ConnectionState.CLOSED:
            contextual_logger.info("Database closed")
        elif state == ConnectionState.FAILED:
            contextual_logger.error("Database connection error", extra={"error": str(error)})

        for listener in list(self._listeners):
            try:
                listener(state, error)
            except Exception:
                logger.exception(f"Gateway state listener {listener!r} failed")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _prepare(self, params: Params) -> tuple[OperationParams, str]:
        """Coerce and validate params; returns them with the physical collection name."""
        params = OperationParams.coerce(params)
        check_params(params)
        set_tenant_context(params.tenant_id, entity_type=params.entity_type)
        name = resolve_collection_name(params.tenant_id, params.entity_type, params.dedicated)
        return params, name

    def _document_id(self, guid: Any) -> Any:
        """ObjectId for a hex guid, otherwise the raw value."""
        if guid is None or guid == "":
            raise ValidationError("Invalid Params - 'guid' required", param="guid")
        try:
            return self.store.create_id_from_hex(guid)
        except (InvalidId, TypeError):
            return guid

    @staticmethod
    def _reject_guid(params: OperationParams) -> None:
        if params.guid not in (None, ""):
            raise ValidationError("Invalid Params - no guid required", param="guid")

    async def _find_record(
        self, name: str, entity_type: str, document_id: Any, projection: Any = None
    ) -> dict[str, Any]:
        doc = await self.store.find_one(name, {"_id": document_id}, projection)
        return normalize_document(doc, entity_type)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @timed_operation("gateway.create")
    async def create(self, params: Params) -> dict[str, Any]:
        """
        Insert one document or a batch.

        Without ``fields`` nothing is written and a zero count is returned.

        Returns:
            The record for a single inserted document, otherwise
            {"status": "OK", "count": n}

        Raises:
            ValidationError: If params are missing or ``fields`` has the wrong type
            StoreError: If the insert fails
        """
        params, name = self._prepare(params)
        fields = params.fields
        if fields is None:
            return {"status": "OK", "count": 0}

        if not isinstance(fields, Mapping) and not (
            isinstance(fields, list) and all(isinstance(doc, Mapping) for doc in fields)
        ):
            raise ValidationError("Invalid Param Field Type", param="fields")

        inserted = await self.store.create(name, fields)
        if len(inserted) == 1:
            return normalize_document(inserted[0], params.entity_type)
        return {"status": "OK", "count": len(inserted)}

    @timed_operation("gateway.read")
    async def read(self, params: Params) -> dict[str, Any]:
        """
        Fetch one document by guid.

        ``fields`` (a list of names) restricts the returned fields.

        Returns:
            The record, or {} when no document has that guid
        """
        params, name = self._prepare(params)
        document_id = self._document_id(params.guid)
        return await self._find_record(
            name, params.entity_type, document_id, _projection(params.fields)
        )

    @timed_operation("gateway.list")
    async def list(self, params: Params) -> list[dict[str, Any]]:
        """
        Query an entity type, or list the tenant's collections.

        Without an entity type the tenant's collection descriptors are
        returned instead (see CollectionIntrospector.list_collections).

        Query params: operator groups (eq, ne, lt, le, gt, ge, like, in, geo),
        ``fields`` projection, ``skip`` (int >= 0), ``limit`` (int > 0) and
        ``sort`` (mapping or list of (field, direction) pairs). Invalid
        skip and limit values are ignored.

        Returns:
            Records in cursor order
        """
        params = OperationParams.coerce(params)
        if params.entity_type in (None, "") and params.tenant_id:
            set_tenant_context(params.tenant_id)
            return await self.introspector.list_collections(params.tenant_id, params.dedicated)

        params, name = self._prepare(params)
        query = translate_query(params.criteria(), self._validator)
        sort = _sort_spec(params.sort)
        self._validator.validate_sort(sort)

        skip = params.skip if _is_int(params.skip) and params.skip >= 0 else None
        limit = params.limit if _is_int(params.limit) and params.limit > 0 else None

        docs = await self.store.find(
            name,
            query,
            projection=_projection(params.fields),
            skip=skip,
            limit=limit,
            sort=sort,
        )
        return [normalize_document(doc, params.entity_type) for doc in docs]

    @timed_operation("gateway.update")
    async def update(self, params: Params) -> dict[str, Any]:
        """
        Merge ``fields`` into one document, then read it back.

        The payload is applied with $set; a payload made only of update
        operators ($inc, $unset, ...) is applied as given. Mixing operators
        with plain fields is rejected.

        Returns:
            The post-update read result ({} if nothing matched)
        """
        params, name = self._prepare(params)
        if params.fields is None:
            raise ValidationError("Invalid Params - 'fields' object required", param="fields")
        if not isinstance(params.fields, Mapping) or not params.fields:
            raise ValidationError(
                "Invalid Params - 'fields' must be a non-empty object", param="fields"
            )

        document_id = self._document_id(params.guid)
        fields = dict(params.fields)
        operator_keys = [key for key in fields if str(key).startswith("$")]
        if len(operator_keys) == len(fields):
            update = fields
        elif operator_keys:
            raise ValidationError(
                "Invalid Params - 'fields' cannot mix update operators with plain fields",
                param="fields",
            )
        else:
            update = {"$set": fields}

        matched = await self.store.update(name, {"_id": document_id}, update)
        if not matched:
            logger.debug(f"Update matched no document in '{name}' for guid {params.guid!r}")

        return await self._find_record(name, params.entity_type, document_id)

    @timed_operation("gateway.delete")
    async def delete(self, params: Params) -> dict[str, Any]:
        """
        Delete one document and return what it looked like before.

        Returns:
            The pre-delete record ({} if no document had that guid)

        Raises:
            StoreError: If the pre-delete read fails (nothing is deleted)
            DeleteError: If the removal fails; ``snapshot`` holds the pre-delete record
        """
        params, name = self._prepare(params)
        document_id = self._document_id(params.guid)
        snapshot = await self._find_record(name, params.entity_type, document_id)

        try:
            await self.store.remove(name, {"_id": document_id})
        except StoreError as e:
            raise DeleteError(
                f"Failed to delete document: {e.message}",
                snapshot=snapshot,
                collection_name=name,
            ) from e
        return snapshot

    @timed_operation("gateway.delete_all")
    async def delete_all(self, params: Params) -> dict[str, Any]:
        """Remove every document of an entity type; returns {"status": "ok", "count": n}."""
        params, name = self._prepare(params)
        self._reject_guid(params)
        count = await self.store.remove_all(name)
        return {"status": "ok", "count": count}

    @timed_operation("gateway.drop_collection")
    async def drop_collection(self, params: Params) -> dict[str, Any]:
        """Drop an entity type's collection; returns {"status": "ok", "result": ...}."""
        params, name = self._prepare(params)
        self._reject_guid(params)
        result = await self.store.drop_collection(name)
        return {"status": "ok", "result": result}

    @timed_operation("gateway.index")
    async def index(self, params: Params) -> dict[str, Any]:
        """
        Create an index from {field: direction} where direction is ASC, DESC or 2D.

        Returns:
            {"status": "OK", "indexName": name}, or {"status": "ERROR", "error": message}
            when the store rejects the index
        """
        params, name = self._prepare(params)
        if not isinstance(params.index, Mapping) or not params.index:
            raise ValidationError("Invalid Params - 'index' object required", param="index")

        keys = [(str(field), _index_direction(token)) for field, token in params.index.items()]
        try:
            index_name = await self.store.index(name, keys)
        except StoreError as e:
            contextual_logger.error(
                "Index creation failed",
                extra={"collection": name, "keys": keys, "error": e.message},
            )
            return {"status": "ERROR", "error": e.message}
        return {"status": "OK", "indexName": index_name}

    async def check_status(self) -> dict[str, Any]:
        """
        Report gateway health: a MongoDB ping plus the connection state.

        Returns:
            {"status": overall, "timestamp": ..., "checks": [...]}
        """
        checker = HealthChecker()

        async def mongodb() -> HealthCheckResult:
            if self._store is None:
                return HealthCheckResult(
                    name="mongodb",
                    status=HealthStatus.UNHEALTHY,
                    message="Gateway not started",
                )
            return await self._store.check_status(self._health_timeout)

        checker.register_check(mongodb)
        if self._connection is not None:

            async def connection() -> HealthCheckResult:
                return await check_connection_state(self._connection)

            checker.register_check(connection)

        return await checker.check_all()

    # ------------------------------------------------------------------
    # Bulk transfer
    # ------------------------------------------------------------------

    @timed_operation("gateway.export")
    async def export(self, params: Params) -> bytes:
        """Export one entity type (``entity_type``) or the whole tenant as an archive."""
        params = OperationParams.coerce(params)
        set_tenant_context(params.tenant_id, entity_type=params.entity_type)
        return await self.transfer.export(
            params.tenant_id,
            entity_type=params.entity_type,
            dedicated=params.dedicated,
            format=params.format,
        )

    @timed_operation("gateway.import")
    async def import_data(self, params: Params) -> dict[str, Any]:
        """Import uploaded ``files`` into the tenant's collections."""
        params = OperationParams.coerce(params)
        set_tenant_context(params.tenant_id)
        return await self.transfer.import_data(
            params.tenant_id, params.files, dedicated=params.dedicated
        )
