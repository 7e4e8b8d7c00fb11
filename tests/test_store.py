"""Session and metadata stores: id handling and compare-and-set."""

from __future__ import annotations

import pytest

from ncomatic.models import MetadataKind, SessionRecord
from ncomatic.store import (
    InMemoryMetadataStore,
    InMemorySessionStore,
    JsonMetadataStore,
    JsonSessionStore,
)
from ncomatic.utils.errors import PersistenceError, SessionNotFoundError


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    return InMemorySessionStore() if request.param == "memory" else JsonSessionStore(tmp_path)


@pytest.fixture(params=["memory", "json"])
def mstore(request, tmp_path):
    return InMemoryMetadataStore() if request.param == "memory" else JsonMetadataStore(tmp_path)


def test_persist_and_lookup(store):
    sid = store.persist(SessionRecord(id="s1", platform="Buoy"))
    assert sid == "s1"
    record = store.lookup_by_id("s1")
    assert record.platform == "Buoy"
    assert record.version == 1


def test_persist_rejects_reused_id(store):
    store.persist(SessionRecord(id="s1"))
    with pytest.raises(PersistenceError):
        store.persist(SessionRecord(id="s1", platform="Ship"))
    assert store.lookup_by_id("s1").platform is None


def test_persist_requires_id(store):
    with pytest.raises(PersistenceError):
        store.persist(SessionRecord())


def test_lookup_unknown_id(store):
    with pytest.raises(SessionNotFoundError):
        store.lookup_by_id("missing")


def test_update_bumps_version(store):
    store.persist(SessionRecord(id="s1"))
    current = store.lookup_by_id("s1")
    stored = store.update(current.model_copy(update={"platform": "Glider"}))
    assert stored.version == 2
    assert store.lookup_by_id("s1") == stored


def test_stale_update_rejected(store):
    store.persist(SessionRecord(id="s1"))
    snapshot = store.lookup_by_id("s1")
    store.update(snapshot.model_copy(update={"platform": "Glider"}))
    with pytest.raises(PersistenceError):
        store.update(snapshot.model_copy(update={"platform": "Ship"}))
    assert store.lookup_by_id("s1").platform == "Glider"


def test_update_unknown_id(store):
    with pytest.raises(SessionNotFoundError):
        store.update(SessionRecord(id="ghost", version=1))


def test_delete(store):
    store.persist(SessionRecord(id="s1"))
    store.delete("s1")
    store.delete("s1")
    with pytest.raises(SessionNotFoundError):
        store.lookup_by_id("s1")


def test_json_store_rejects_corrupt_document(tmp_path):
    store = JsonSessionStore(tmp_path)
    (tmp_path / "sessions").mkdir()
    (tmp_path / "sessions" / "s1.json").write_text("{broken")
    with pytest.raises(PersistenceError):
        store.lookup_by_id("s1")


def test_metadata_round_trip_and_delete(mstore):
    assert mstore.lookup("s1", MetadataKind.GENERAL) is None
    mstore.persist("s1", MetadataKind.GENERAL, {"title": "T"})
    mstore.persist("s1", MetadataKind.VARIABLE, {"temp": {"units": "C"}})
    mstore.persist("s2", MetadataKind.GENERAL, {"title": "other"})
    assert mstore.lookup("s1", "general") == {"title": "T"}
    assert mstore.lookup("s1", MetadataKind.VARIABLE) == {"temp": {"units": "C"}}

    mstore.delete("s1")
    assert mstore.lookup("s1", MetadataKind.GENERAL) is None
    assert mstore.lookup("s1", MetadataKind.VARIABLE) is None
    assert mstore.lookup("s2", MetadataKind.GENERAL) == {"title": "other"}


def test_metadata_lookup_returns_copy(mstore):
    mstore.persist("s1", MetadataKind.GENERAL, {"title": "T"})
    doc = mstore.lookup("s1", MetadataKind.GENERAL)
    doc["title"] = "changed"
    assert mstore.lookup("s1", MetadataKind.GENERAL) == {"title": "T"}
