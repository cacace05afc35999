"""Tests for the strategy versioning protocol."""

import uuid

import pytest

from stratbook.content.versioning import create_version, next_version_number
from stratbook.errors import NotFoundError, VersionConflictError


@pytest.fixture
def strategy_id(backend):
    map_id = backend.insert_map("Desert Storm").id
    return backend.insert_strategy(map_id, title="Draft", description="").id


class TestCreateVersion:

    def test_first_version(self, backend, strategy_id):
        new = create_version(backend, strategy_id, "Rush A", "Fast push", "Initial version")

        assert new.version.version_number == 1
        assert new.previous_version_id is None
        row = backend.get_strategy_row(strategy_id)
        assert row.current_version_id == new.version.id
        assert row.title == "Rush A"
        assert row.description == "Fast push"

    def test_numbers_are_consecutive(self, backend, strategy_id):
        versions = [create_version(backend, strategy_id, f"Edit {n}", "") for n in range(1, 5)]

        assert [v.version.version_number for v in versions] == [1, 2, 3, 4]
        assert versions[3].previous_version_id == versions[2].version.id
        assert [v.version_number for v in backend.list_versions(strategy_id)] == [4, 3, 2, 1]

    def test_old_versions_are_unchanged(self, backend, strategy_id):
        first = create_version(backend, strategy_id, "Rush A", "Fast push").version
        create_version(backend, strategy_id, "Rush A v2", "Slower push")

        stored = backend.get_version(first.id)
        assert stored.title == "Rush A"
        assert stored.description == "Fast push"

    def test_missing_strategy(self, backend):
        with pytest.raises(NotFoundError):
            create_version(backend, uuid.uuid4(), "Title", "")

    def test_conflict_leaves_pointer_alone(self, backend, strategy_id):
        first = create_version(backend, strategy_id, "Rush A", "").version
        # another writer already stored version 2
        backend.insert_version(strategy_id, 2, "Theirs", "")

        with pytest.raises(VersionConflictError):
            create_version(backend, strategy_id, "Mine", "")

        assert backend.get_strategy_row(strategy_id).current_version_id == first.id


class TestNextVersionNumber:

    def test_without_current_version(self, backend, strategy_id):
        assert next_version_number(backend, backend.get_strategy_row(strategy_id)) == 1

    def test_dangling_pointer_starts_at_one(self, backend, strategy_id):
        backend.update_strategy_row(strategy_id, current_version_id=uuid.uuid4())
        assert next_version_number(backend, backend.get_strategy_row(strategy_id)) == 1
