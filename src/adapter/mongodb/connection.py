import os
import logging
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

logger = logging.getLogger(__name__)

# Driver-level chatter is noise at INFO
logging.getLogger('pymongo').setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'todo')
USERS_COLLECTION_NAME = 'users'

CLIENT_OPTIONS = {
    # Reset-window checks compare against aware UTC datetimes
    'tz_aware': True,
    'serverSelectionTimeoutMS': 5000,
    'connectTimeoutMS': 5000,
    'socketTimeoutMS': 30000,
    'maxPoolSize': 10,
    'minPoolSize': 0,
    'maxIdleTimeMS': 30000,
    'waitQueueTimeoutMS': 10000,
    'retryWrites': True,
    'retryReads': True,
}

_client_cache = None
_connection_attempted = False
_connection_failed = False


def reset_client():
    """Forget the cached client and any earlier failure."""
    global _client_cache, _connection_attempted, _connection_failed
    _client_cache = None
    _connection_attempted = False
    _connection_failed = False


def _ping(client: MongoClient) -> bool:
    try:
        client.admin.command('ping')
        return True
    except PyMongoError:
        return False


def get_mongodb_client() -> MongoClient | None:
    """Return a live MongoDB client, or None when storage is unavailable.

    A cached client is reused while it answers ping. A failed first
    connection is treated as a configuration problem and not retried;
    failures after a successful start are retried on the next call.
    """
    global _client_cache, _connection_attempted, _connection_failed

    if _client_cache is not None:
        if _ping(_client_cache):
            return _client_cache
        logger.debug("[MONGODB] Cached client failed ping, reconnecting")
        _client_cache = None

    if _connection_failed:
        return None

    if not MONGO_URL:
        logger.error("[MONGODB] MONGO_URL not configured")
        _connection_failed = True
        return None

    try:
        client = MongoClient(MONGO_URL, **CLIENT_OPTIONS)
        client.admin.command('ping')
    except (ConnectionFailure, PyMongoError) as e:
        if not _connection_attempted:
            logger.error("[MONGODB] Initial connection failed", extra={"error": str(e)[:200]})
            _connection_failed = True
        return None

    if not _connection_attempted:
        logger.info("[MONGODB] Connected", extra={"database": DATABASE_NAME})
    _connection_attempted = True
    _client_cache = client
    return client
