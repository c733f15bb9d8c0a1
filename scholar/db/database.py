"""
MongoDB connection management.

The connection is checked on every request (``get_user_store``) instead of
once at startup, so the service moves from the in-memory fallback to MongoDB
as soon as the server becomes reachable, and back again if it goes away.
"""

from motor.motor_asyncio import AsyncIOMotorClient

from scholar.core.config import settings
from scholar.core.logging_config import get_logger
from scholar.db.user_store import MemoryUserStore, MongoUserStore, UserStore

logger = get_logger(__name__)

# Connection states reported by /api/health (MongoDB driver convention)
STATE_DISCONNECTED = 0
STATE_CONNECTED = 1


class MongoConnection:
    """Lazily-created motor client plus a per-call reachability check."""

    def __init__(self, uri: str, db_name: str, collection_name: str, timeout_ms: int = 2000):
        self.uri = uri
        self.db_name = db_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self.client: AsyncIOMotorClient | None = None
        self.state = STATE_DISCONNECTED
        self._indexes_ready = False

    @property
    def configured(self) -> bool:
        return bool(self.uri)

    @property
    def collection(self):
        return self.client[self.db_name][self.collection_name]

    def _ensure_client(self) -> AsyncIOMotorClient:
        if self.client is None:
            self.client = AsyncIOMotorClient(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
        return self.client

    async def is_connected(self) -> bool:
        """Ping the server. Updates ``state`` and creates indexes on first success."""
        if not self.configured:
            self.state = STATE_DISCONNECTED
            return False

        client = self._ensure_client()
        try:
            await client.admin.command("ping")
        except Exception as e:
            if self.state == STATE_CONNECTED:
                logger.warning(f"MongoDB connection lost, using in-memory storage | error={e}")
            self.state = STATE_DISCONNECTED
            return False

        if self.state != STATE_CONNECTED:
            logger.info(f"MongoDB connected | db={self.db_name}")
        self.state = STATE_CONNECTED

        if not self._indexes_ready:
            try:
                await self.collection.create_index("email", unique=True)
                self._indexes_ready = True
            except Exception as e:
                # Retried on the next request
                logger.error(f"Failed to create unique email index | error={e}")
        return True

    async def connect(self) -> bool:
        """Startup connection check. Failure is not fatal; requests fall back to memory."""
        if not self.configured:
            logger.warning("MONGODB_URI not set, using in-memory storage")
            return False
        connected = await self.is_connected()
        if not connected:
            logger.warning("MongoDB connection failed, using in-memory storage")
        return connected

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
        self.state = STATE_DISCONNECTED
        self._indexes_ready = False


mongo = MongoConnection(
    settings.mongodb_uri,
    settings.mongodb_db_name,
    settings.mongodb_user_collection,
    settings.mongodb_timeout_ms,
)

memory_store = MemoryUserStore()


async def get_user_store() -> UserStore:
    """FastAPI dependency: MongoDB when reachable, otherwise the memory fallback."""
    if await mongo.is_connected():
        return MongoUserStore(mongo.collection)
    return memory_store
