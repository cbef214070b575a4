"""MongoDB connection for triage sessions, appointments and doctors."""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional
from healthcheck.config.settings import settings
import logging

logger = logging.getLogger(__name__)

# (collection setting, index keys, index options)
_INDEXES = (
    ("mongodb_collection_sessions", [("user_id", 1), ("created_at", -1)], {}),
    ("mongodb_collection_sessions", "session_id", {"unique": True}),
    ("mongodb_collection_appointments", [("user_id", 1), ("appointment_date", 1)], {}),
    ("mongodb_collection_appointments", "appointment_id", {"unique": True}),
    ("mongodb_collection_doctors", [("is_available", 1), ("rating", -1)], {}),
    ("mongodb_collection_doctors", "doctor_id", {"unique": True}),
)


class Database:
    """Holds the process-wide motor client. Opened and closed by the app lifespan."""

    client: Optional[AsyncIOMotorClient] = None
    database: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect_db(cls, uri: Optional[str] = None, name: Optional[str] = None):
        uri = uri or settings.mongodb_uri
        name = name or settings.mongodb_database

        client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=5000)
        try:
            await client.admin.command("ping")
        except Exception as e:
            client.close()
            logger.error(f"MongoDB unreachable ({name}): {e}")
            raise

        cls.client = client
        cls.database = client[name]
        logger.info(f"MongoDB ready (database={name})")

    @classmethod
    async def ensure_indexes(cls):
        """Indexes behind the history, appointment and directory queries."""
        db = cls.get_database()
        for collection_setting, keys, options in _INDEXES:
            await db[getattr(settings, collection_setting)].create_index(keys, **options)
        logger.info(f"Ensured {len(_INDEXES)} MongoDB indexes")

    @classmethod
    async def ping(cls) -> str:
        """Connection status string for the health endpoint."""
        try:
            await cls.get_database().command("ping")
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return f"error: {e}"
        return "connected"

    @classmethod
    async def close_db(cls):
        if cls.client is None:
            return
        cls.client.close()
        cls.client = None
        cls.database = None
        logger.info("MongoDB connection closed")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        if cls.database is None:
            raise RuntimeError("MongoDB is not connected; connect_db() runs at startup")
        return cls.database


async def get_sessions_collection():
    return Database.get_database()[settings.mongodb_collection_sessions]


async def get_appointments_collection():
    return Database.get_database()[settings.mongodb_collection_appointments]


async def get_doctors_collection():
    return Database.get_database()[settings.mongodb_collection_doctors]
