from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
import logging

from .config import MONGO_URI
from .models.lookup import COLLECTIONS

logger = logging.getLogger(__name__)

_client = MongoClient(MONGO_URI)
db: Database = _client.get_default_database()


def get_database() -> Database:
    return db


def ensure_indexes(database: Database) -> None:
    database.users.create_index([("email", ASCENDING)], unique=True)
    database.tickets.create_index([("number", ASCENDING)], unique=True)
    database.tickets.create_index([("created_at", DESCENDING)])
    database.tickets.create_index([("requester_id", ASCENDING)])
    database.tickets.create_index([("assignee_id", ASCENDING)])
    for name in COLLECTIONS.values():
        database[name].create_index([("description", ASCENDING)], unique=True)
    logger.info("Indexes ensured on %s", database.name)
