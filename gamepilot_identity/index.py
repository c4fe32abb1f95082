"""
Vector Search Index
===================

In-memory nearest-neighbour store used to narrow large catalogs before
full scoring. Search is brute-force cosine similarity over a dense matrix.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from .vectors import VectorLike

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorSearchIndex:
    """
    Thread-safe in-memory vector store.

    All vectors share the dimension of the first vector added unless one
    is given explicitly. Vectors of another dimension are kept but always
    score 0 against queries.
    """

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._vectors: Dict[str, np.ndarray] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def add_vector(self, item_id: str, vector: VectorLike, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Add a vector, replacing any existing vector with the same id."""
        arr = np.asarray(vector, dtype=float).ravel()
        with self._lock:
            if self.dimension is None:
                self.dimension = arr.size
            elif arr.size != self.dimension:
                logger.debug(
                    "Vector %s has dimension %d, index expects %d", item_id, arr.size, self.dimension
                )
            self._vectors[item_id] = arr
            self._metadata[item_id] = dict(metadata or {})

    def remove_vector(self, item_id: str) -> bool:
        with self._lock:
            self._metadata.pop(item_id, None)
            return self._vectors.pop(item_id, None) is not None

    def search(
        self,
        query: VectorLike,
        top_k: int = 10,
        allowed_ids: Optional[Collection[str]] = None,
    ) -> List[SearchResult]:
        """
        Find the most similar vectors.

        Args:
            query: Query vector
            top_k: Maximum number of results
            allowed_ids: Restrict the search to these ids

        Returns:
            Results sorted by descending similarity, ties by id
        """
        if top_k <= 0:
            return []
        q = np.asarray(query, dtype=float).ravel()

        with self._lock:
            ids = sorted(self._vectors) if allowed_ids is None else sorted(
                i for i in set(allowed_ids) if i in self._vectors
            )
            if not ids:
                return []
            vectors = [self._vectors[i] for i in ids]
            metadata = [self._metadata[i] for i in ids]

        scores = np.zeros(len(ids))
        usable = [
            n for n, v in enumerate(vectors)
            if v.size == q.size and np.all(np.isfinite(v))
        ]
        if usable and q.size and np.any(q) and np.all(np.isfinite(q)):
            matrix = np.vstack([vectors[n] for n in usable])
            sims = cosine_similarity(q.reshape(1, -1), matrix).ravel()
            scores[usable] = sims
        elif q.size and not usable:
            logger.debug("No vectors in the index match query dimension %d", q.size)

        order = sorted(range(len(ids)), key=lambda n: (-scores[n], ids[n]))
        return [
            SearchResult(id=ids[n], score=float(scores[n]), metadata=dict(metadata[n]))
            for n in order[:top_k]
        ]

    def size(self) -> int:
        return len(self._vectors)

    def clear(self) -> None:
        with self._lock:
            self._vectors.clear()
            self._metadata.clear()
            self.dimension = None

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._vectors
