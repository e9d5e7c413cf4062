"""Tests for JSON persistence."""

import json
from unittest.mock import patch

import pytest

from memory.models import ContextEvent, IdentityFact, IdentityRecord, PageVisit
from memory.sources import LocalFactSource
from memory.storage import ContextStorage, IdentityStorage, PersistenceError
from shared_types import ContextEventType


@pytest.fixture
def identity_storage(tmp_path):
    return IdentityStorage(tmp_path / "identity.json")


@pytest.fixture
def context_storage(tmp_path):
    return ContextStorage(tmp_path / "context.json")


class TestIdentityStorage:
    def test_round_trip(self, identity_storage):
        record = IdentityRecord(facts=[IdentityFact(content="Go developer", confidence=0.9)])
        identity_storage.save(record)
        loaded = identity_storage.load()
        assert loaded.facts[0].content == "Go developer"
        assert loaded.device_id == record.device_id

    def test_missing_file(self, identity_storage):
        assert not identity_storage.exists()
        assert identity_storage.load() is None

    def test_wrong_version_ignored(self, identity_storage):
        identity_storage.path.write_text(json.dumps({"version": "1.0.0", "facts": []}))
        assert identity_storage.load() is None

    def test_corrupt_json(self, identity_storage):
        identity_storage.path.write_text("{{{")
        assert identity_storage.load() is None

    def test_write_failure_raises_persistence_error(self, identity_storage):
        with patch("memory.storage.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                identity_storage.save(IdentityRecord())

    def test_no_partial_file_left(self, identity_storage):
        with patch("memory.storage.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                identity_storage.save(IdentityRecord())
        assert list(identity_storage.path.parent.iterdir()) == []


class TestContextStorage:
    def test_empty_when_missing(self, context_storage):
        store = context_storage.load()
        assert store.events == [] and store.pages == []

    def test_add_event_and_page(self, context_storage):
        context_storage.add_event(ContextEvent(data={"insight": "Prefers Postgres"}))
        context_storage.add_page(PageVisit(url="https://docs.rs", hostname="docs.rs"))
        store = context_storage.load()
        assert store.events[0].text == "Prefers Postgres"
        assert store.pages[0].hostname == "docs.rs"


class TestLocalFactSource:
    @pytest.mark.asyncio
    async def test_reads_both_files(self, identity_storage, context_storage):
        identity_storage.save(IdentityRecord(facts=[IdentityFact(content="Go developer")]))
        context_storage.add_event(ContextEvent(data={"insight": "Learning Zig"}))
        context_storage.add_event(
            ContextEvent(type=ContextEventType.PAGE_VISIT, data={"title": "Zig docs"})
        )
        source = LocalFactSource(identity_storage, context_storage)

        facts = await source.load_identity_facts()
        events = await source.load_context_events()

        assert [f.content for f in facts] == ["Go developer"]
        assert [e.text for e in events] == ["Learning Zig"]

    @pytest.mark.asyncio
    async def test_no_identity(self, identity_storage, context_storage):
        source = LocalFactSource(identity_storage, context_storage)
        assert await source.load_identity_facts() == []
