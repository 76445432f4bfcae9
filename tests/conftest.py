"""
Shared fixtures.

The review store runs on a SQLite file in tmp_path; the item catalog runs
on an in-memory stand-in for the Mongo collections.
"""

from datetime import datetime, timezone

import pytest

from recall import item_repo
from recall.schemas import LearnerProfile
from recall.srs.database import ReviewStore, create_db_engine
from recall.srs.review_state import ReviewState
from tests.fakes import FakeCollection, FakeNotifier


NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# Store
# ============================================================================

@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store(tmp_path):
    """Empty review store with tables created."""
    review_store = ReviewStore(engine=create_db_engine(f"sqlite:///{tmp_path / 'recall.db'}"))
    review_store.init_db()
    yield review_store
    review_store.engine.dispose()


@pytest.fixture
def make_state(store):
    """Insert a review state with the given fields."""
    def _make(learner_id, subject_id, **fields):
        return store.upsert(ReviewState(learner_id=learner_id, subject_id=subject_id, **fields))
    return _make


@pytest.fixture
def make_learner(store):
    def _make(learner_id, **fields):
        profile = LearnerProfile(learner_id=learner_id, **fields)
        store.upsert_learner(profile)
        return profile
    return _make


# ============================================================================
# Notifier
# ============================================================================

@pytest.fixture
def notifier():
    return FakeNotifier()


# ============================================================================
# Catalog
# ============================================================================

CATALOG_ITEMS = [
    {"item_id": "w-huis", "content": "huis", "translation": "house", "topic_id": "home"},
    {"item_id": "w-deur", "content": "deur", "translation": "door", "topic_id": "home"},
    {"item_id": "w-raam", "content": "raam", "translation": "window", "topic_id": "home"},
    {"item_id": "w-fiets", "content": "fiets", "translation": "bicycle", "topic_id": "travel"},
]

CATALOG_TOPICS = [
    {"topic_id": "home", "name": "Around the house", "strategy": "sm2"},
    {"topic_id": "travel", "name": "Travel", "strategy": "sm2"},
    {"topic_id": "grammar-de-het", "name": "De or het", "strategy": "ladder"},
]


@pytest.fixture
def catalog(monkeypatch):
    """Route item_repo to in-memory collections."""
    collections = {
        item_repo.ITEMS_COLLECTION: FakeCollection(CATALOG_ITEMS),
        item_repo.TOPICS_COLLECTION: FakeCollection(CATALOG_TOPICS),
    }
    monkeypatch.setattr(item_repo, "get_collection", lambda name: collections[name])
    return collections
