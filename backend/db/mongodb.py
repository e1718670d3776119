import logging
import asyncio
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import certifi
from core.config import settings

logger = logging.getLogger(__name__)

USERS = "users"
COMMENTS = "comments"

# (collection, keys, options)
INDEXES = [
    (USERS, "username", {"unique": True, "name": "u_username"}),
    (USERS, "email", {"unique": True, "name": "u_email"}),
    (USERS, [("created_at", -1)], {"name": "i_created"}),
    (COMMENTS, [("product_id", 1), ("created_at", -1)], {"name": "i_product_created"}),
    (COMMENTS, "user_id", {"name": "i_comment_user"}),
]

_mongo_client: Optional[AsyncIOMotorClient] = None
_mongo_db: Optional[AsyncIOMotorDatabase] = None


def _client_options(uri: str) -> dict:
    options = {
        "serverSelectionTimeoutMS": 30000,
        "connectTimeoutMS": 20000,
        "socketTimeoutMS": 20000,
    }
    is_srv = uri.startswith("mongodb+srv://")
    if is_srv or "mongodb.net" in uri:
        # Atlas: hand the certifi bundle to the driver instead of the system store
        options.update(tls=True, tlsCAFile=certifi.where(), retryWrites=True)
    if is_srv:
        options["directConnection"] = False
    return options


def get_mongo_db() -> Optional[AsyncIOMotorDatabase]:
    """Lazily connect and return the configured database, or None when MONGO_URI is empty."""
    global _mongo_client, _mongo_db
    if _mongo_db is not None:
        return _mongo_db
    if not settings.MONGO_URI:
        logger.warning("MONGO_URI is not set; account storage is unavailable")
        return None
    _mongo_client = AsyncIOMotorClient(settings.MONGO_URI, **_client_options(settings.MONGO_URI))
    _mongo_db = _mongo_client[settings.MONGO_DB]
    return _mongo_db


def close_mongo_client() -> None:
    global _mongo_client, _mongo_db
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = None
    _mongo_db = None


async def init_mongo_indexes(attempts: int = 5):
    db = get_mongo_db()
    if db is None:
        return
    # The unique indexes on username/email are what turn a racing duplicate insert into a Conflict
    for attempt in range(1, attempts + 1):
        try:
            await db.command({"ping": 1})
            for collection, keys, options in INDEXES:
                await db[collection].create_index(keys, **options)
            return
        except Exception as e:
            wait_s = min(2 ** attempt, 15)
            logger.warning(f"Mongo not ready (attempt {attempt}/{attempts}): {e}; retrying in {wait_s}s")
            await asyncio.sleep(wait_s)
    logger.error("Mongo index initialization failed after retries")
