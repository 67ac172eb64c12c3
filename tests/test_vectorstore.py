import numpy as np
import pytest

from advisor_bot.errors import StorageError
from advisor_bot.rag.vectorstore import VectorDocument, VectorStore


def doc(doc_id, embedding, **metadata):
    return VectorDocument(id=doc_id, content=f"content {doc_id}", embedding=embedding, metadata=metadata)


def failing_save(*args, **kwargs):
    raise OSError("disk full")


def test_search_orders_by_similarity(vectorstore):
    vectorstore.add(doc("far", [0.0, 1.0]))
    vectorstore.add(doc("near", [1.0, 0.1]))
    vectorstore.add(doc("middle", [1.0, 1.0]))

    results = vectorstore.search([1.0, 0.0], top_k=3)

    assert [r.id for r in results] == ["near", "middle", "far"]
    assert results[0].score > results[1].score > results[2].score


def test_threshold_is_inclusive(vectorstore):
    vectorstore.add(doc("a", [1.0, 0.0]))
    vectorstore.add(doc("b", [1.0, 1.0]))

    boundary = vectorstore.search([1.0, 0.0], top_k=2)[1].score
    results = vectorstore.search([1.0, 0.0], top_k=2, threshold=boundary)

    assert [r.id for r in results] == ["a", "b"]


def test_threshold_and_top_k_limit_results(vectorstore):
    for i in range(5):
        vectorstore.add(doc(f"d{i}", [1.0, float(i)]))

    assert len(vectorstore.search([1.0, 0.0], top_k=2)) == 2
    assert all(r.score >= 0.9 for r in vectorstore.search([1.0, 0.0], top_k=5, threshold=0.9))


def test_equal_scores_keep_insertion_order(vectorstore):
    vectorstore.add(doc("first", [2.0, 0.0]))
    vectorstore.add(doc("second", [1.0, 0.0]))
    vectorstore.add(doc("third", [3.0, 0.0]))

    results = vectorstore.search([1.0, 0.0], top_k=3)

    assert [r.id for r in results] == ["first", "second", "third"]


def test_duplicate_id_is_rejected(vectorstore):
    vectorstore.add(doc("a", [1.0, 0.0]))

    with pytest.raises(StorageError):
        vectorstore.add(doc("a", [0.0, 1.0]))

    assert vectorstore.get("a").embedding == [1.0, 0.0]


def test_dimension_mismatch_is_rejected_without_side_effects(vectorstore):
    vectorstore.add(doc("a", [1.0, 0.0]))

    with pytest.raises(StorageError):
        vectorstore.add(doc("b", [1.0, 0.0, 0.0]))

    assert len(vectorstore) == 1
    assert vectorstore.get("b") is None


def test_query_dimension_mismatch_raises(vectorstore):
    vectorstore.add(doc("a", [1.0, 0.0]))

    with pytest.raises(StorageError):
        vectorstore.search([1.0, 0.0, 0.0])


def test_zero_query_and_empty_store_return_nothing(vectorstore):
    assert vectorstore.search([1.0, 0.0]) == []

    vectorstore.add(doc("a", [1.0, 0.0]))
    assert vectorstore.search([0.0, 0.0]) == []


def test_documents_survive_reload(tmp_path):
    path = tmp_path / "vectors"
    store = VectorStore(path)
    store.add(doc("a", [1.0, 0.0], source="handbook"))
    store.add(doc("b", [0.0, 1.0]))

    reloaded = VectorStore(path)

    assert len(reloaded) == 2
    assert reloaded.get("a").metadata == {"source": "handbook"}
    assert reloaded.search([0.0, 1.0], top_k=1)[0].id == "b"


def test_matrix_is_rebuilt_when_embeddings_file_is_missing(tmp_path):
    path = tmp_path / "vectors"
    VectorStore(path).add(doc("a", [1.0, 0.0]))
    (path / "embeddings.npy").unlink()

    reloaded = VectorStore(path)

    assert reloaded.search([1.0, 0.0], top_k=1)[0].id == "a"


def test_corrupt_documents_file_raises(tmp_path):
    path = tmp_path / "vectors"
    path.mkdir()
    (path / "documents.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        VectorStore(path)


def test_delete(vectorstore):
    vectorstore.add(doc("a", [1.0, 0.0]))
    vectorstore.add(doc("b", [0.0, 1.0]))

    assert vectorstore.delete("a") is True
    assert vectorstore.delete("a") is False
    assert [r.id for r in vectorstore.search([1.0, 1.0], top_k=5)] == ["b"]


def test_failed_matrix_write_leaves_disk_unchanged(tmp_path, monkeypatch):
    path = tmp_path / "vectors"
    store = VectorStore(path)
    store.add(doc("a", [1.0, 0.0]))

    monkeypatch.setattr(np, "save", failing_save)

    with pytest.raises(StorageError):
        store.add(doc("b", [0.0, 1.0]))

    assert len(store) == 1
    assert store.get("b") is None

    reloaded = VectorStore(path)
    assert len(reloaded) == 1
    assert reloaded.get("b") is None
    assert sorted(p.name for p in path.iterdir()) == ["documents.json", "embeddings.npy"]


def test_store_recovers_after_failed_write(tmp_path, monkeypatch):
    path = tmp_path / "vectors"
    store = VectorStore(path)
    store.add(doc("a", [1.0, 0.0]))

    with monkeypatch.context() as patch:
        patch.setattr(np, "save", failing_save)
        with pytest.raises(StorageError):
            store.add(doc("b", [0.0, 1.0]))

    store.add(doc("c", [1.0, 1.0]))

    reloaded = VectorStore(path)
    assert [r.id for r in reloaded.search([1.0, 1.0], top_k=5)] == ["c", "a"]
