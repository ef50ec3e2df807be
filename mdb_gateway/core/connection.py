"""
Connection management for MDB_GATEWAY.

This module handles MongoDB connection initialization and shutdown, and
publishes the connection lifecycle as ConnectionState transitions that
callers can subscribe to.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import monitoring
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from ..constants import (
    DEFAULT_APP_NAME,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle states of the MongoDB connection."""

    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


StateListener = Callable[[ConnectionState, BaseException | None], None]


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """
    Relays driver heartbeats to the ConnectionManager.

    PyMongo calls these from its monitor threads, so state changes are
    handed to the manager's event loop.
    """

    def __init__(self, manager: "ConnectionManager") -> None:
        self._manager = manager

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        self._manager._call_threadsafe(self._manager._on_heartbeat_succeeded)

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        self._manager._call_threadsafe(self._manager._on_heartbeat_failed, event.reply)


class ConnectionManager:
    """
    Manages MongoDB connection lifecycle and configuration.

    Subscribers registered with subscribe() are called with the new state
    and the error that caused it (if any) on every transition.
    """

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
        max_idle_time_ms: int = DEFAULT_MAX_IDLE_TIME_MS,
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            max_pool_size: Maximum MongoDB connection pool size
            min_pool_size: Minimum MongoDB connection pool size
            server_selection_timeout_ms: Server selection timeout in milliseconds
            max_idle_time_ms: Idle time before pooled connections close
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.max_pool_size = max_pool_size
        self.min_pool_size = min_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.max_idle_time_ms = max_idle_time_ms

        self._mongo_client: AsyncIOMotorClient | None = None
        self._mongo_db: AsyncIOMotorDatabase | None = None
        self._initialized: bool = False
        self._state: ConnectionState = ConnectionState.CLOSED
        self._last_error: BaseException | None = None
        self._listeners: list[StateListener] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_config(cls, config) -> "ConnectionManager":
        """Build a manager from a GatewayConfig."""
        return cls(
            mongo_uri=config.mongo_uri,
            db_name=config.db_name,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
            server_selection_timeout_ms=config.server_selection_timeout_ms,
            max_idle_time_ms=config.max_idle_time_ms,
        )

    # ------------------------------------------------------------------
    # State notifications
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a state listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: ConnectionState, error: BaseException | None = None) -> None:
        if state == self._state and error is None:
            return
        previous = self._state
        self._state = state
        self._last_error = error
        contextual_logger.info(
            f"MongoDB connection state: {previous.value} -> {state.value}",
            extra={"db_name": self.db_name, "state": state.value},
        )
        for listener in list(self._listeners):
            try:
                listener(state, error)
            except Exception:
                logger.exception(f"Connection state listener {listener!r} failed")

    def _call_threadsafe(self, callback: Callable, *args) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def _on_heartbeat_failed(self, error: BaseException | None) -> None:
        if self._initialized and self._state != ConnectionState.FAILED:
            contextual_logger.error(
                "MongoDB heartbeat failed",
                extra={"db_name": self.db_name, "error": str(error)},
            )
            self._set_state(ConnectionState.FAILED, error)

    def _on_heartbeat_succeeded(self) -> None:
        if self._initialized and self._state == ConnectionState.FAILED:
            self._set_state(ConnectionState.READY)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Connect to MongoDB and verify the connection with a ping.

        Raises:
            InitializationError: If initialization fails
        """
        start_time = time.time()

        if self._initialized:
            logger.warning("ConnectionManager already initialized. Skipping re-initialization.")
            return

        contextual_logger.info(
            "Initializing MongoDB connection",
            extra={
                "db_name": self.db_name,
                "max_pool_size": self.max_pool_size,
                "min_pool_size": self.min_pool_size,
            },
        )
        self._loop = asyncio.get_running_loop()
        self._set_state(ConnectionState.CONNECTING)

        try:
            self._mongo_client = AsyncIOMotorClient(
                self.mongo_uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                appname=DEFAULT_APP_NAME,
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
                retryWrites=True,
                retryReads=True,
                event_listeners=[_HeartbeatListener(self)],
            )

            await self._mongo_client.admin.command("ping")
            self._mongo_db = self._mongo_client[self.db_name]

            self._initialized = True
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=True)
            contextual_logger.info(
                "MongoDB connection initialized successfully",
                extra={
                    "db_name": self.db_name,
                    "pool_size": f"{self.min_pool_size}-{self.max_pool_size}",
                    "duration_ms": round(duration_ms, 2),
                },
            )
            self._set_state(ConnectionState.READY)
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            self._fail_initialization(e, start_time)
            raise InitializationError(
                f"Failed to connect to MongoDB: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={
                    "error_type": type(e).__name__,
                    "max_pool_size": self.max_pool_size,
                    "min_pool_size": self.min_pool_size,
                },
            ) from e
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            self._fail_initialization(e, start_time)
            raise InitializationError(
                f"ConnectionManager initialization failed: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={"error_type": type(e).__name__},
            ) from e

    def _fail_initialization(self, error: BaseException, start_time: float) -> None:
        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.initialize", duration_ms, success=False)
        contextual_logger.critical(
            "MongoDB connection failed",
            extra={
                "error_type": type(error).__name__,
                "error": str(error),
                "duration_ms": round(duration_ms, 2),
            },
            exc_info=True,
        )
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._mongo_client = None
        self._mongo_db = None
        self._set_state(ConnectionState.FAILED, error)

    async def shutdown(self) -> None:
        """
        Close the MongoDB connection.

        Safe to call multiple times.
        """
        start_time = time.time()

        if not self._initialized:
            return

        contextual_logger.info("Shutting down MongoDB connection...")

        if self._mongo_client:
            self._mongo_client.close()

        self._initialized = False
        self._mongo_client = None
        self._mongo_db = None
        self._set_state(ConnectionState.CLOSED)

        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.shutdown", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection shutdown complete",
            extra={"duration_ms": round(duration_ms, 2)},
        )

    @property
    def mongo_client(self) -> AsyncIOMotorClient:
        """
        Raises:
            RuntimeError: If connection is not initialized
        """
        if not self._initialized or self._mongo_client is None:
            raise RuntimeError(
                "ConnectionManager not initialized. Call initialize() first.",
            )
        return self._mongo_client

    @property
    def mongo_db(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If connection is not initialized
        """
        if not self._initialized or self._mongo_db is None:
            raise RuntimeError(
                "ConnectionManager not initialized. Call initialize() first.",
            )
        return self._mongo_db

    @property
    def initialized(self) -> bool:
        return self._initialized
