"""
Tests for storage backends, create-only inserts and atomic blocks
"""

import pytest
import threading
from datetime import datetime, timezone

from emi_engine.storage import (
    InMemoryStorage, SQLiteStorage, DuplicateKeyError, create_storage
)


test_data = {
    "id": "test_001",
    "loan_id": "LN-1",
    "amount": "100.50",
    "created_at": datetime.now(timezone.utc).isoformat(),
}


@pytest.fixture(params=["memory", "sqlite", "sqlite_file"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    elif request.param == "sqlite":
        backend = SQLiteStorage()
    else:
        backend = SQLiteStorage(tmp_path / "emi.db")
    yield backend
    backend.close()


class TestBasicOperations:
    """CRUD behaviour shared by every backend"""

    def test_save_and_load(self, storage):
        storage.save("records", "r1", test_data)

        assert storage.load("records", "r1") == test_data
        assert storage.exists("records", "r1")
        assert not storage.exists("records", "r2")
        assert storage.load("records", "r2") is None

    def test_save_replaces(self, storage):
        storage.save("records", "r1", {"id": "r1", "amount": "1.00"})
        storage.save("records", "r1", {"id": "r1", "amount": "2.00"})

        assert storage.load("records", "r1")["amount"] == "2.00"
        assert storage.count("records") == 1

    def test_find_load_all_and_count(self, storage):
        storage.save("records", "r1", {"id": "r1", "loan_id": "LN-1"})
        storage.save("records", "r2", {"id": "r2", "loan_id": "LN-2"})
        storage.save("records", "r3", {"id": "r3", "loan_id": "LN-1"})

        assert len(storage.load_all("records")) == 3
        assert {r["id"] for r in storage.find("records", {"loan_id": "LN-1"})} == {"r1", "r3"}
        assert storage.find("records", {"loan_id": "LN-9"}) == []
        assert storage.count("records") == 3

    def test_delete_and_clear(self, storage):
        storage.save("records", "r1", {"id": "r1"})
        storage.save("records", "r2", {"id": "r2"})

        assert storage.delete("records", "r1")
        assert not storage.delete("records", "r1")

        storage.clear_table("records")
        assert storage.count("records") == 0

    def test_loaded_records_are_copies(self, storage):
        storage.save("records", "r1", {"id": "r1", "tags": ["a"]})
        loaded = storage.load("records", "r1")
        loaded["tags"].append("b")

        assert storage.load("records", "r1")["tags"] == ["a"]


class TestInsert:
    """Create-only inserts are the uniqueness guard"""

    def test_insert_new(self, storage):
        storage.insert("markers", "LN-1", {"loan_id": "LN-1"})
        assert storage.exists("markers", "LN-1")

    def test_insert_duplicate(self, storage):
        storage.insert("markers", "LN-1", {"loan_id": "LN-1", "n": 1})

        with pytest.raises(DuplicateKeyError) as exc_info:
            storage.insert("markers", "LN-1", {"loan_id": "LN-1", "n": 2})

        assert exc_info.value.table == "markers"
        assert exc_info.value.record_id == "LN-1"
        assert storage.load("markers", "LN-1")["n"] == 1

    def test_concurrent_inserts_have_one_winner(self, storage):
        results = []
        barrier = threading.Barrier(10)

        def attempt(n):
            barrier.wait()
            try:
                storage.insert("markers", "REF-1", {"n": n})
                results.append(n)
            except DuplicateKeyError:
                pass

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert storage.count("markers") == 1


class TestAtomic:
    """Transactions commit together or not at all"""

    def test_commit(self, storage):
        with storage.atomic():
            storage.save("records", "r1", {"id": "r1"})
            storage.insert("records", "r2", {"id": "r2"})

        assert storage.count("records") == 2

    def test_rollback_on_error(self, storage):
        storage.save("records", "r0", {"id": "r0", "v": 0})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("records", "r0", {"id": "r0", "v": 1})
                storage.save("records", "r1", {"id": "r1"})
                raise RuntimeError("abort")

        assert storage.load("records", "r0")["v"] == 0
        assert not storage.exists("records", "r1")

    def test_rollback_on_duplicate_insert(self, storage):
        storage.insert("markers", "LN-1", {})

        with pytest.raises(DuplicateKeyError):
            with storage.atomic():
                storage.save("records", "r1", {"id": "r1"})
                storage.insert("markers", "LN-1", {})

        assert not storage.exists("records", "r1")

    def test_nested_blocks_join_outer(self, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                with storage.atomic():
                    storage.save("records", "inner", {"id": "inner"})
                storage.save("records", "outer", {"id": "outer"})
                raise RuntimeError("abort")

        assert not storage.exists("records", "inner")
        assert not storage.exists("records", "outer")

    def test_save_many(self, storage):
        storage.save_many("records", {"a": {"id": "a"}, "b": {"id": "b"}})
        assert storage.count("records") == 2

    def test_table_created_in_rolled_back_block_is_usable(self, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("fresh_table", "x", {"id": "x"})
                raise RuntimeError("abort")

        storage.save("fresh_table", "y", {"id": "y"})
        assert storage.count("fresh_table") == 1


class TestSQLitePersistence:

    def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "emi.db"
        storage = SQLiteStorage(path)
        storage.save("records", "r1", {"id": "r1", "amount": "10.00"})
        storage.close()

        reopened = SQLiteStorage(path)
        assert reopened.load("records", "r1") == {"id": "r1", "amount": "10.00"}
        reopened.close()


class TestCreateStorage:

    def test_memory_url(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_memory_url(self):
        storage = create_storage("sqlite://")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == ":memory:"
        storage.close()

    def test_sqlite_file_url(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path}/emi.db")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path.endswith("emi.db")
        storage.close()

    def test_unsupported_url(self):
        with pytest.raises(ValueError):
            create_storage("postgresql://localhost/emi")
