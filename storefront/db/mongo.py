# storefront/db/mongo.py
import functools
import logging
from contextlib import contextmanager

from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure

from storefront.core.config import MONGODB_URI, MONGODB_DB, MONGO_TIMEOUT_MS
from storefront.core.errors import ConnectivityError

logger = logging.getLogger(__name__)

_client = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        # pymongo connects in the background; failures show up on first use
        _client = MongoClient(MONGODB_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS)
    return _client


def get_database() -> Database:
    return get_client()[MONGODB_DB]


@contextmanager
def translate_errors():
    """Turns pymongo transport failures into ConnectivityError.

    ConnectionFailure covers server selection timeouts, refused connections,
    network timeouts and AutoReconnect. Query and write errors pass through.
    """
    try:
        yield
    except ConnectionFailure as e:
        raise ConnectivityError(f"MongoDB unreachable: {e}") from e


def guarded(func):
    """Method decorator applying translate_errors to a whole repository call."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with translate_errors():
            return func(*args, **kwargs)
    return wrapper


def ping(db: Database) -> bool:
    try:
        with translate_errors():
            db.client.admin.command("ping")
        return True
    except ConnectivityError as e:
        logger.warning("MongoDB ping failed: %s", e)
        return False


def id_filter(value: str) -> dict:
    """Filter on _id. Ids that are not ObjectIds (e.g. fallback ids) still go
    to the server, so an outage surfaces instead of a silent miss."""
    return {"_id": ObjectId(value) if ObjectId.is_valid(value) else value}
