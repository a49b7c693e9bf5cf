"""Embedded vector store with cosine nearest-neighbor search."""

import json
import logging
import math
import os
import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import numpy as np

from ideasystem.schemas.vector import SimilarityHit, VectorRecord
from ideasystem.utils.exceptions import (
    DimensionMismatchError,
    PersistenceError,
    ValidationError,
)
from ideasystem.utils.vector import cosine_similarities

logger = logging.getLogger(__name__)


class _Snapshot:
    """Immutable view of the record set with its precomputed matrix."""

    __slots__ = ("records", "matrix", "positions")

    def __init__(self, records: tuple[VectorRecord, ...], dimensions: int):
        self.records = records
        self.positions = {record.id: index for index, record in enumerate(records)}
        if records:
            self.matrix = np.array([r.vector for r in records], dtype=np.float64)
        else:
            self.matrix = np.empty((0, dimensions), dtype=np.float64)


class VectorStore:
    """
    Flat-file vector store keyed by string id.

    Every mutation is written through to disk before it returns: the new
    record set is serialized to a temporary file which atomically replaces
    the store file, and only then becomes the in-memory snapshot. A failed
    write leaves both the file and memory at the previous state.

    Mutations are serialized by a lock. Reads work on the current snapshot
    and never block on writers.
    """

    def __init__(self, path: str | Path, dimensions: int):
        """
        Initialize the store and load any persisted records.

        Args:
            path: JSON file holding the record set
            dimensions: Length every stored vector must have

        Raises:
            PersistenceError: If the existing file cannot be read
        """
        if dimensions <= 0:
            raise ValueError("dimensions must be a positive integer")

        self.path = Path(path)
        self.dimensions = dimensions
        self._lock = threading.Lock()
        self._closed = False
        self._snapshot = _Snapshot(self._load(), dimensions)
        logger.info(
            f"Vector store loaded from {self.path}: {self.count()} records (dim={dimensions})"
        )

    def _load(self) -> tuple[VectorRecord, ...]:
        """Read the record set from disk, skipping records of the wrong length or with non-finite values."""
        if not self.path.exists():
            return ()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            raw_records = data["vectors"]
            records = [VectorRecord.model_validate(item) for item in raw_records]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load vector store {self.path}: {e}")
            raise PersistenceError(f"Cannot read vector store {self.path}: {e}") from e

        stored_dimensions = data.get("dimensions")
        if stored_dimensions is not None and stored_dimensions != self.dimensions:
            logger.warning(
                f"Vector store {self.path} was written with dim={stored_dimensions}, "
                f"expected {self.dimensions}; mismatched records will be skipped"
            )

        valid: dict[str, VectorRecord] = {}
        for record in records:
            if len(record.vector) != self.dimensions:
                logger.warning(
                    f"Skipping vector {record.id}: dimension {len(record.vector)} != {self.dimensions}"
                )
                continue
            if not all(math.isfinite(v) for v in record.vector):
                logger.warning(f"Skipping vector {record.id}: non-finite values")
                continue
            valid[record.id] = record
        return tuple(valid.values())

    def _persist(self, records: tuple[VectorRecord, ...]) -> None:
        """Atomically replace the store file with the given record set."""
        payload = {
            "dimensions": self.dimensions,
            "vectors": [record.model_dump() for record in records],
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write vector store {self.path}: {e}")
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"Could not remove temporary file {tmp_path}")
            raise PersistenceError(f"Cannot write vector store {self.path}: {e}") from e

    def _commit(self, records: tuple[VectorRecord, ...]) -> None:
        """Persist then publish a new record set. Caller holds the lock."""
        if self._closed:
            raise PersistenceError("Vector store is closed")
        self._persist(records)
        self._snapshot = _Snapshot(records, self.dimensions)

    def _check_dimensions(self, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))

    def put(
        self,
        id: str,
        vector: Iterable[float],
        metadata: dict[str, Any] | None = None,
    ) -> VectorRecord:
        """
        Insert or replace the record stored under ``id``.

        A replaced record keeps its storage position.

        Args:
            id: Record key
            vector: Embedding of length ``dimensions``
            metadata: Free-form metadata; a ``timestamp`` key is added

        Returns:
            The stored record

        Raises:
            DimensionMismatchError: If the vector length is wrong
            ValidationError: If the vector has non-finite values
            PersistenceError: If the store file cannot be written
        """
        values = [float(v) for v in vector]
        self._check_dimensions(values)
        if not all(math.isfinite(v) for v in values):
            raise ValidationError("Vector contains non-finite values")

        timestamp = time.time()
        record = VectorRecord(
            id=str(id),
            vector=values,
            metadata={**(metadata or {}), "timestamp": timestamp},
            timestamp=timestamp,
        )

        with self._lock:
            current = self._snapshot
            records = list(current.records)
            position = current.positions.get(record.id)
            if position is None:
                records.append(record)
            else:
                records[position] = record
            self._commit(tuple(records))

        logger.debug(f"Stored vector {record.id}")
        return record.model_copy(deep=True)

    def get(self, id: str) -> VectorRecord | None:
        """Return the record stored under ``id``, or None."""
        snapshot = self._snapshot
        position = snapshot.positions.get(str(id))
        if position is None:
            return None
        return snapshot.records[position].model_copy(deep=True)

    def delete(self, id: str) -> bool:
        """
        Remove the record stored under ``id``.

        Returns:
            True if a record existed and was removed
        """
        key = str(id)
        with self._lock:
            current = self._snapshot
            if key not in current.positions:
                return False
            records = tuple(r for r in current.records if r.id != key)
            self._commit(records)

        logger.debug(f"Deleted vector {key}")
        return True

    def search_similar(
        self,
        query_vector: Iterable[float],
        limit: int = 10,
        threshold: float = 0.0,
        exclude_ids: Iterable[str] = (),
    ) -> list[SimilarityHit]:
        """
        Find the records most similar to a query vector.

        Linear scan by cosine similarity. Results are ordered by descending
        similarity; equal scores keep storage order.

        Args:
            query_vector: Vector of length ``dimensions``
            limit: Maximum number of results
            threshold: Minimum similarity of any returned record
            exclude_ids: Record ids to leave out

        Returns:
            At most ``limit`` hits

        Raises:
            DimensionMismatchError: If the query length is wrong
        """
        query = [float(v) for v in query_vector]
        self._check_dimensions(query)

        snapshot = self._snapshot
        if limit <= 0 or not snapshot.records:
            return []

        scores = cosine_similarities(query, snapshot.matrix)
        excluded = {str(i) for i in exclude_ids}
        order = np.argsort(-scores, kind="stable")

        hits: list[SimilarityHit] = []
        for index in order:
            score = float(scores[index])
            if score < threshold:
                break
            record = snapshot.records[index]
            if record.id in excluded:
                continue
            hits.append(
                SimilarityHit(
                    id=record.id, similarity=score, metadata=dict(record.metadata)
                )
            )
            if len(hits) >= limit:
                break
        return hits

    def count(self) -> int:
        """Number of stored records."""
        return len(self._snapshot.records)

    def ids(self) -> list[str]:
        """Stored record ids in storage order."""
        return [record.id for record in self._snapshot.records]

    def clear(self) -> None:
        """Remove every record."""
        with self._lock:
            self._commit(())
        logger.info(f"Cleared vector store {self.path}")

    def close(self) -> None:
        """Stop accepting writes."""
        with self._lock:
            self._closed = True
