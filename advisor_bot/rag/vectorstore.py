"""
Vector Store
============

A file-based vector index for knowledge chunks, searched by cosine similarity.

Data is stored in two files under the storage directory:
- documents.json: chunk id, content, embedding and metadata (source of truth)
- embeddings.npy: the embedding matrix, for fast loading

Search semantics:
- Cosine similarity between the query and every stored chunk
- Only chunks with similarity >= threshold are returned (inclusive)
- Results are ordered by descending similarity; equal scores keep
  insertion order (stable sort)
- At most top_k results

Cosine Similarity:
    cos(A, B) = (A · B) / (||A|| * ||B||)

Chunks are immutable once stored: adding an existing id is an error, and all
vectors must share one dimension (that of the embedding model in use).
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from advisor_bot.errors import StorageError
from advisor_bot.utils.logger import Logger

logger = Logger("VectorStore")


@dataclass
class VectorDocument:
    """
    A chunk stored in the vector store.

    Attributes:
        id: Unique identifier for the chunk
        content: The chunk text
        embedding: The vector embedding
        metadata: Provenance (source file, chunk index, timestamps, scope)
        score: Similarity score (set only on search results)
    """
    id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "content": self.content,
            "embedding": self.embedding,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VectorDocument":
        return cls(
            id=data["id"],
            content=data["content"],
            embedding=list(data["embedding"]),
            metadata=data.get("metadata", {}),
        )


class VectorStore:
    """
    File-backed vector store with cosine similarity search.

    An in-memory index (document list + numpy matrix) serves searches;
    every write is persisted to disk before it returns.

    Example:
        store = VectorStore(Path("data/vectorstore"))

        store.add(VectorDocument(
            id="chunk-1",
            content="Our office is in Denver",
            embedding=[0.1, -0.2, ...],
            metadata={"source": "slack"}
        ))

        results = store.search(query_embedding, top_k=3, threshold=0.7)
    """

    def __init__(self, storage_path: Path):
        """
        Initialize the vector store, loading any existing data.

        Args:
            storage_path: Directory to store data files

        Raises:
            StorageError: If existing data cannot be read
        """
        self.storage_path = storage_path
        self.documents_file = storage_path / "documents.json"
        self.embeddings_file = storage_path / "embeddings.npy"

        # Insertion-ordered; row i of _embeddings belongs to _documents[i]
        self._documents: list[VectorDocument] = []
        self._embeddings: np.ndarray | None = None
        self._id_to_index: dict[str, int] = {}

        try:
            storage_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create vector store directory {storage_path}: {e}") from e

        self._load()

        logger.info(f"Vector store initialized with {len(self._documents)} documents")

    # ==========================================================================
    # Persistence
    # ==========================================================================

    def _load(self) -> None:
        """Load existing data from disk."""
        if not self.documents_file.exists():
            return

        try:
            with open(self.documents_file, encoding="utf-8") as f:
                docs_data = json.load(f)
            documents = [VectorDocument.from_dict(d) for d in docs_data]
        except (OSError, ValueError, KeyError) as e:
            raise StorageError(f"Cannot read {self.documents_file}: {e}") from e

        embeddings = None
        if self.embeddings_file.exists():
            try:
                embeddings = np.load(self.embeddings_file)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable {self.embeddings_file.name}: {e}")

        # documents.json is authoritative; rebuild the matrix if the two disagree
        if embeddings is None or embeddings.shape[0] != len(documents):
            embeddings = np.array([d.embedding for d in documents], dtype=float) if documents else None

        self._documents = documents
        self._embeddings = embeddings
        self._id_to_index = {doc.id: i for i, doc in enumerate(documents)}

        logger.debug(f"Loaded {len(self._documents)} documents from disk")

    def _save(self) -> None:
        """
        Persist all documents to disk.

        Both files are written to temporaries first. The matrix is swapped
        in before documents.json, so a failure at any point leaves
        documents.json describing either the old or the new contents
        (_load rebuilds a matrix that disagrees with it).

        Raises:
            StorageError: If either file cannot be written
        """
        tmp_documents = self.documents_file.with_suffix(".json.tmp")
        tmp_embeddings = self.embeddings_file.with_suffix(".npy.tmp")
        try:
            with open(tmp_documents, "w", encoding="utf-8") as f:
                json.dump([doc.to_dict() for doc in self._documents], f)

            if self._embeddings is not None:
                # A file object keeps np.save from appending ".npy" to the name
                with open(tmp_embeddings, "wb") as f:
                    np.save(f, self._embeddings)
                tmp_embeddings.replace(self.embeddings_file)
            elif self.embeddings_file.exists():
                self.embeddings_file.unlink()

            tmp_documents.replace(self.documents_file)
        except OSError as e:
            tmp_documents.unlink(missing_ok=True)
            tmp_embeddings.unlink(missing_ok=True)
            raise StorageError(f"Cannot write vector store: {e}") from e

        logger.debug(f"Saved {len(self._documents)} documents to disk")

    # ==========================================================================
    # Writes
    # ==========================================================================

    def _append(self, document: VectorDocument) -> None:
        """Add a document to the in-memory index (no persistence)."""
        if document.id in self._id_to_index:
            raise StorageError(f"Document {document.id} already exists")

        embedding = np.asarray(document.embedding, dtype=float)
        if embedding.ndim != 1 or embedding.size == 0:
            raise StorageError("Embedding must be a non-empty vector")

        if self._embeddings is None:
            embeddings = embedding.reshape(1, -1)
        else:
            if embedding.shape[0] != self._embeddings.shape[1]:
                raise StorageError(
                    f"Embedding dimension {embedding.shape[0]} does not match "
                    f"store dimension {self._embeddings.shape[1]}"
                )
            embeddings = np.vstack([self._embeddings, embedding])

        # The matrix never has more rows than _documents has entries, so a
        # search running while a write is in a worker thread stays in range
        self._id_to_index[document.id] = len(self._documents)
        self._documents.append(document)
        self._embeddings = embeddings

    def _truncate(self, size: int) -> None:
        """Drop in-memory documents past `size` (rollback after a failed save)."""
        self._embeddings = self._embeddings[:size] if size and self._embeddings is not None else None
        for doc in self._documents[size:]:
            del self._id_to_index[doc.id]
        self._documents = self._documents[:size]

    def add(self, document: VectorDocument) -> None:
        """
        Add a document and persist it.

        Args:
            document: The document to add

        Raises:
            StorageError: If the id exists, the dimension is wrong, or the write fails
        """
        self.add_batch([document])

    def add_batch(self, documents: list[VectorDocument]) -> None:
        """
        Add several documents with a single write.

        Either all documents are stored or none are.

        Raises:
            StorageError: If any document is rejected or the write fails
        """
        size_before = len(self._documents)
        try:
            for doc in documents:
                self._append(doc)
            self._save()
        except StorageError:
            self._truncate(size_before)
            raise

        logger.debug(f"Added {len(documents)} documents")

    def delete(self, doc_id: str) -> bool:
        """
        Delete a document by ID (administrative use only).

        Returns:
            True if the document was found and deleted
        """
        index = self._id_to_index.get(doc_id)
        if index is None:
            return False

        del self._documents[index]
        self._embeddings = np.delete(self._embeddings, index, axis=0) if self._documents else None
        self._id_to_index = {doc.id: i for i, doc in enumerate(self._documents)}

        self._save()
        return True

    # ==========================================================================
    # Reads
    # ==========================================================================

    def search(
        self,
        query_vector: list[float],
        top_k: int = 3,
        threshold: float | None = None
    ) -> list[VectorDocument]:
        """
        Search for documents similar to the query vector.

        Args:
            query_vector: The query embedding
            top_k: Maximum number of results
            threshold: Minimum similarity (inclusive); None disables the cut

        Returns:
            Copies of matching documents with `score` set, best first

        Raises:
            StorageError: If the query dimension does not match the store
        """
        embeddings = self._embeddings
        documents = self._documents
        if embeddings is None or not documents or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        if query.shape != (embeddings.shape[1],):
            raise StorageError(
                f"Query dimension {query.size} does not match store dimension "
                f"{embeddings.shape[1]}"
            )

        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        doc_norms = np.linalg.norm(embeddings, axis=1)
        doc_norms = np.where(doc_norms == 0, 1, doc_norms)
        similarities = embeddings @ query / (doc_norms * query_norm)

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-similarities, kind="stable")[:top_k]

        output = []
        for index in order:
            score = float(similarities[index])
            if threshold is not None and score < threshold:
                break

            doc = documents[index]
            output.append(VectorDocument(
                id=doc.id,
                content=doc.content,
                embedding=doc.embedding,
                metadata=doc.metadata,
                score=score
            ))

        return output

    def get(self, doc_id: str) -> VectorDocument | None:
        """Get a document by ID."""
        index = self._id_to_index.get(doc_id)
        return self._documents[index] if index is not None else None

    def __len__(self) -> int:
        return len(self._documents)
