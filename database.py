"""
Database Helper Functions

One pooled MongoDB client per application.
- Built from DATABASE_URL + DATABASE_NAME with bounded timeouts
- Opened and closed explicitly by the application lifespan
- Store failures surface as DependencyError, never as driver exceptions
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Union, Iterator, Any

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import Settings
from errors import DependencyError, NotFoundError

logger = structlog.get_logger()

USERS = "signin"
QUESTIONS = "questions"
GUIDELINES = "guidelines"


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into DependencyError for the HTTP layer"""
    try:
        yield
    except DuplicateKeyError:
        # unique index violations are a caller error, not an outage
        raise
    except PyMongoError as exc:
        logger.error("store operation failed", operation=operation, error=str(exc))
        raise DependencyError() from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(id_str: str) -> ObjectId:
    # An id that cannot be parsed cannot name a stored document
    if not isinstance(id_str, str):
        raise NotFoundError()
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise NotFoundError()


def serialize(doc: dict | None):
    if not doc:
        return doc
    return _plain(doc)


def _plain(value: Any):
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    # Convert datetimes to isoformat
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class Database:
    """Owns the MongoClient (and its connection pool) for the process"""

    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.name = name
        self.db = client[name]

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        timeout = settings.mongo_timeout_ms
        client = MongoClient(
            settings.database_url,
            tz_aware=True,
            serverSelectionTimeoutMS=timeout,
            connectTimeoutMS=timeout,
            socketTimeoutMS=timeout,
        )
        return cls(client, settings.database_name)

    def __getitem__(self, collection_name: str):
        return self.db[collection_name]

    def startup(self) -> None:
        # Creating the index is also the first round trip, so an unreachable
        # store fails the application start instead of the first request.
        with store_errors("startup"):
            self.db[USERS].create_index([("email", ASCENDING)], unique=True)
        logger.info("database ready", database=self.name)

    def close(self) -> None:
        self.client.close()
        logger.info("database closed", database=self.name)

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> dict:
        """Insert a single document stamped with createdAt; returns it with its _id"""
        if isinstance(data, BaseModel):
            data_dict = data.model_dump()
        else:
            data_dict = dict(data)

        data_dict["createdAt"] = utcnow()

        with store_errors(f"insert {collection_name}"):
            result = self[collection_name].insert_one(data_dict)
        data_dict["_id"] = result.inserted_id
        return data_dict

    def get_documents(self, collection_name: str, filter_dict: dict | None = None) -> list:
        """Get documents from a collection, newest first"""
        with store_errors(f"find {collection_name}"):
            cursor = self[collection_name].find(filter_dict or {}).sort(
                [("createdAt", -1), ("_id", -1)]
            )
            return list(cursor)
