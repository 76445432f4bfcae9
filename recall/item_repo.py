"""
MongoDB repository for the item catalog.

Items (words) and topics are written by the import pipeline; the engine
only reads them to enroll learners and to pick a topic's update strategy.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from recall.schemas import Item, Topic
from recall.srs.errors import NotFound, StoreUnavailable

# Load environment
load_dotenv()

# Configuration
DB_NAME = os.getenv("MONGO_DB_NAME", "recall_catalog")
ITEMS_COLLECTION = "items"
TOPICS_COLLECTION = "topics"

# Global connection pool (reused across requests)
_client: Optional[MongoClient] = None
_collections: dict[str, Collection] = {}
_io_timeout_seconds: Optional[float] = None


# ---- Connection Management ----

def configure(io_timeout: float) -> None:
    """Set the server-selection timeout used by connections made after this call."""
    global _io_timeout_seconds
    _io_timeout_seconds = io_timeout


def server_selection_timeout_ms() -> int:
    """Timeout in milliseconds, from configure() or else IO_TIMEOUT_SECONDS."""
    seconds = _io_timeout_seconds
    if seconds is None:
        seconds = float(os.getenv("IO_TIMEOUT_SECONDS") or 30)
    return int(seconds * 1000)


def get_collection(name: str) -> Collection:
    """
    Get a catalog collection.

    Uses a persistent connection pool that's reused across calls.

    Args:
        name: Collection name (items or topics)

    Returns:
        MongoDB collection object
    """
    global _client

    if name in _collections:
        return _collections[name]

    mongo_uri = os.getenv("MONGO_URI")
    if not mongo_uri:
        raise ValueError("MONGO_URI not found in environment variables")

    if _client is None:
        _client = MongoClient(
            mongo_uri,
            maxPoolSize=10,  # Connection pool size
            minPoolSize=1,   # Keep at least 1 connection alive
            maxIdleTimeMS=60000,  # Keep connections alive for 60 seconds
            serverSelectionTimeoutMS=server_selection_timeout_ms()
        )
    _collections[name] = _client[DB_NAME][name]
    return _collections[name]


# ---- Query Functions ----

def get_item(item_id: str) -> Optional[Item]:
    """
    Get an item by id.

    Returns:
        Item, or None if not found
    """
    try:
        doc = get_collection(ITEMS_COLLECTION).find_one({"item_id": item_id})
    except PyMongoError as exc:
        raise StoreUnavailable(f"Catalog error while loading item {item_id}: {exc}") from exc
    return Item(**doc) if doc else None


def get_items_for_topic(topic_id: str) -> list[Item]:
    """
    Get all items of a topic, in a stable order.

    Args:
        topic_id: Owning topic

    Returns:
        List of items sorted by item_id
    """
    try:
        docs = get_collection(ITEMS_COLLECTION).find({"topic_id": topic_id}).sort("item_id", 1)
        return [Item(**doc) for doc in docs]
    except PyMongoError as exc:
        raise StoreUnavailable(f"Catalog error while listing topic {topic_id}: {exc}") from exc


def count_items(topic_id: Optional[str] = None) -> int:
    """Count items, optionally within one topic."""
    query = {"topic_id": topic_id} if topic_id else {}
    try:
        return get_collection(ITEMS_COLLECTION).count_documents(query)
    except PyMongoError as exc:
        raise StoreUnavailable(f"Catalog error while counting items: {exc}") from exc


def get_topic(topic_id: str) -> Optional[Topic]:
    try:
        doc = get_collection(TOPICS_COLLECTION).find_one({"topic_id": topic_id})
    except PyMongoError as exc:
        raise StoreUnavailable(f"Catalog error while loading topic {topic_id}: {exc}") from exc
    return Topic(**doc) if doc else None


def require_topic(topic_id: str) -> Topic:
    """Like get_topic, but raises NotFound for unknown topics."""
    topic = get_topic(topic_id)
    if topic is None:
        raise NotFound(f"Unknown topic {topic_id!r}")
    return topic


def list_topics() -> list[Topic]:
    """All topics, sorted by name."""
    try:
        docs = get_collection(TOPICS_COLLECTION).find({}).sort("name", 1)
        return [Topic(**doc) for doc in docs]
    except PyMongoError as exc:
        raise StoreUnavailable(f"Catalog error while listing topics: {exc}") from exc
