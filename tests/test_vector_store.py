"""Tests for the vector store and cosine similarity."""

import json
import math
import threading

import pytest

from ideasystem.services.vector_store import VectorStore
from ideasystem.utils.exceptions import (
    DimensionMismatchError,
    PersistenceError,
    ValidationError,
)
from ideasystem.utils.vector import cosine_similarity


@pytest.fixture(name="store")
def store_fixture(tmp_path):
    """Create a 3-dimensional store in a temporary directory."""
    store = VectorStore(tmp_path / "index.json", dimensions=3)
    yield store
    store.close()


def test_cosine_similarity_properties():
    """Test identity, orthogonality, opposition and zero vectors."""
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-2.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity([0.3, -0.7], [0.9, 0.1]) == pytest.approx(
        cosine_similarity([0.9, 0.1], [0.3, -0.7])
    )


def test_cosine_similarity_shape_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def test_put_and_get(store: VectorStore):
    """Test that a stored record reads back with a timestamp."""
    record = store.put("1", [0.1, 0.2, 0.3], {"idea_id": 1})

    loaded = store.get("1")
    assert loaded is not None
    assert loaded.vector == pytest.approx([0.1, 0.2, 0.3])
    assert loaded.metadata["idea_id"] == 1
    assert loaded.metadata["timestamp"] == record.timestamp
    assert store.get("missing") is None


def test_put_is_upsert(store: VectorStore):
    """Test that putting an existing id replaces it in place."""
    store.put("a", [1.0, 0.0, 0.0])
    store.put("b", [0.0, 1.0, 0.0])
    store.put("a", [0.0, 0.0, 1.0])

    assert store.count() == 2
    assert store.ids() == ["a", "b"]
    assert store.get("a").vector == [0.0, 0.0, 1.0]


def test_put_rejects_wrong_dimension(store: VectorStore):
    with pytest.raises(DimensionMismatchError) as exc_info:
        store.put("1", [1.0, 2.0])

    assert exc_info.value.expected == 3
    assert exc_info.value.actual == 2
    assert store.count() == 0


def test_put_rejects_non_finite_values(store: VectorStore):
    with pytest.raises(ValidationError):
        store.put("1", [1.0, math.nan, 0.0])
    assert store.count() == 0


def test_delete(store: VectorStore):
    store.put("1", [1.0, 0.0, 0.0])

    assert store.delete("1") is True
    assert store.delete("1") is False
    assert store.get("1") is None


def test_search_orders_by_similarity(store: VectorStore):
    """Test descending order, limit and threshold."""
    store.put("far", [0.0, 1.0, 0.0])
    store.put("near", [1.0, 0.1, 0.0])
    store.put("exact", [1.0, 0.0, 0.0])
    store.put("opposite", [-1.0, 0.0, 0.0])

    hits = store.search_similar([1.0, 0.0, 0.0], limit=10, threshold=-1.0)
    assert [hit.id for hit in hits] == ["exact", "near", "far", "opposite"]
    assert hits[0].similarity == pytest.approx(1.0)

    hits = store.search_similar([1.0, 0.0, 0.0], limit=2)
    assert [hit.id for hit in hits] == ["exact", "near"]

    hits = store.search_similar([1.0, 0.0, 0.0], limit=10, threshold=0.5)
    assert all(hit.similarity >= 0.5 for hit in hits)
    assert [hit.id for hit in hits] == ["exact", "near"]


def test_search_ties_keep_storage_order(store: VectorStore):
    store.put("first", [0.0, 1.0, 0.0])
    store.put("second", [0.0, 2.0, 0.0])
    store.put("third", [0.0, 0.5, 0.0])
    # Replacing keeps the original position
    store.put("first", [0.0, 3.0, 0.0])

    hits = store.search_similar([0.0, 1.0, 0.0], limit=3)
    assert [hit.id for hit in hits] == ["first", "second", "third"]


def test_search_excludes_ids(store: VectorStore):
    store.put("1", [1.0, 0.0, 0.0])
    store.put("2", [1.0, 0.1, 0.0])

    hits = store.search_similar([1.0, 0.0, 0.0], limit=1, exclude_ids=["1"])
    assert [hit.id for hit in hits] == ["2"]


def test_search_edge_cases(store: VectorStore):
    """Test empty store, zero limit, zero query and wrong dimension."""
    assert store.search_similar([1.0, 0.0, 0.0]) == []

    store.put("1", [1.0, 0.0, 0.0])
    assert store.search_similar([1.0, 0.0, 0.0], limit=0) == []

    hits = store.search_similar([0.0, 0.0, 0.0])
    assert [hit.similarity for hit in hits] == [0.0]

    with pytest.raises(DimensionMismatchError):
        store.search_similar([1.0, 0.0])


def test_records_persist_across_instances(tmp_path):
    path = tmp_path / "nested" / "index.json"
    store = VectorStore(path, dimensions=3)
    store.put("1", [1.0, 0.0, 0.0], {"preview": "hello"})
    store.put("2", [0.0, 1.0, 0.0])
    store.delete("2")
    store.close()

    reopened = VectorStore(path, dimensions=3)
    assert reopened.ids() == ["1"]
    assert reopened.get("1").metadata["preview"] == "hello"

    data = json.loads(path.read_text())
    assert data["dimensions"] == 3
    assert [item["id"] for item in data["vectors"]] == ["1"]


def test_load_skips_wrong_dimension_records(tmp_path):
    path = tmp_path / "index.json"
    path.write_text(
        json.dumps(
            {
                "dimensions": 3,
                "vectors": [
                    {"id": "ok", "vector": [1, 0, 0], "metadata": {}, "timestamp": 1.0},
                    {"id": "bad", "vector": [1, 0], "metadata": {}, "timestamp": 2.0},
                ],
            }
        )
    )

    store = VectorStore(path, dimensions=3)
    assert store.ids() == ["ok"]


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "index.json"
    path.write_text("{not json")

    with pytest.raises(PersistenceError):
        VectorStore(path, dimensions=3)


def test_failed_write_keeps_previous_state(store: VectorStore, monkeypatch):
    """Test that a failed write changes neither memory nor disk."""
    store.put("1", [1.0, 0.0, 0.0])

    def fail_replace(*_args):
        raise OSError("disk full")

    monkeypatch.setattr("ideasystem.services.vector_store.os.replace", fail_replace)

    with pytest.raises(PersistenceError):
        store.put("2", [0.0, 1.0, 0.0])
    with pytest.raises(PersistenceError):
        store.delete("1")

    monkeypatch.undo()
    assert store.ids() == ["1"]
    assert VectorStore(store.path, dimensions=3).ids() == ["1"]
    assert not store.path.with_name(store.path.name + ".tmp").exists()


def test_closed_store_rejects_writes(store: VectorStore):
    store.put("1", [1.0, 0.0, 0.0])
    store.close()

    with pytest.raises(PersistenceError):
        store.put("2", [0.0, 1.0, 0.0])
    assert store.get("1") is not None


def test_clear(store: VectorStore):
    store.put("1", [1.0, 0.0, 0.0])
    store.put("2", [0.0, 1.0, 0.0])

    store.clear()
    assert store.count() == 0


def test_invalid_dimensions(tmp_path):
    with pytest.raises(ValueError):
        VectorStore(tmp_path / "index.json", dimensions=0)


def test_load_skips_non_finite_records(tmp_path):
    path = tmp_path / "index.json"
    path.write_text(
        '{"dimensions": 2, "vectors": ['
        '{"id": "a", "vector": [NaN, 1.0], "metadata": {}, "timestamp": 1.0},'
        '{"id": "b", "vector": [1.0, 0.0], "metadata": {}, "timestamp": 2.0}]}'
    )

    store = VectorStore(path, dimensions=2)
    hits = store.search_similar([1.0, 0.0], limit=5, threshold=0.5)

    assert store.ids() == ["b"]
    assert [hit.id for hit in hits] == ["b"]
    assert hits[0].similarity == pytest.approx(1.0)


def test_concurrent_writes_are_serialized(tmp_path):
    """Test that puts from many threads all land in memory and on disk."""
    path = tmp_path / "index.json"
    store = VectorStore(path, dimensions=3)

    def writer(worker: int) -> None:
        for i in range(20):
            store.put(f"{worker}-{i}", [float(worker), float(i), 1.0])

    threads = [threading.Thread(target=writer, args=(worker,)) for worker in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.count() == 160
    assert VectorStore(path, dimensions=3).count() == 160

    store.clear()
    assert VectorStore(path, dimensions=3).count() == 0
