"""
Relevance Retriever

Selects the few past forms of an owner that are most similar to a new
prompt, so generation context stays bounded as history grows.

Pipeline:
1. Vectorize the query
2. Fetch the owner's most recent candidates that carry a vector
3. Score each candidate by cosine similarity
4. Rank (score desc, created_at desc), keep scores above threshold
5. Truncate to k

If vectorization or the candidate fetch fails, the retriever returns the k
most recent forms instead, tagged as a recency fallback. Retrieval itself
never raises.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..common.embedding_service import EmbeddingService
from ..common.record_store import RecordStore
from ..common.schemas import FormRecord
from ..common.similarity import batch_cosine_similarity

logger = logging.getLogger("formsmith.retriever.retriever")

DEFAULT_TOPK = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.1
DEFAULT_CANDIDATE_LIMIT = 1000


@dataclass
class RetrievalResult:
    """Records selected for one retrieval call, most relevant first"""
    records: List[FormRecord] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return False

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


@dataclass
class Ranked(RetrievalResult):
    """Semantic match: records ranked by similarity to the query"""
    scores: List[float] = field(default_factory=list)


@dataclass
class FallbackRecent(RetrievalResult):
    """Recency fallback: newest records, similarity was not computed"""
    reason: str = ""

    @property
    def is_fallback(self) -> bool:
        return True


class RelevanceRetriever:
    """
    Top-K similarity retrieval over one owner's form history.

    Stateless between calls; safe to share across concurrent requests.
    """

    def __init__(
        self,
        store: RecordStore,
        embedding_service: EmbeddingService,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
    ):
        """
        Initialize retriever.

        Args:
            store: Record store supplying candidates
            embedding_service: Vectorizes the query
            similarity_threshold: Scores must be strictly above this
            candidate_limit: Max recent candidates scored per call
        """
        self._store = store
        self._embedding = embedding_service
        self._threshold = similarity_threshold
        self._candidate_limit = candidate_limit

    @property
    def similarity_threshold(self) -> float:
        return self._threshold

    def retrieve(self, owner_id: str, query_text: str, k: int = DEFAULT_TOPK) -> RetrievalResult:
        """
        Retrieve up to k of owner_id's records most relevant to query_text.

        Args:
            owner_id: Owner whose history is searched
            query_text: Natural-language prompt
            k: Maximum number of records

        Returns:
            Ranked on success (possibly empty), FallbackRecent on failure
        """
        if k <= 0 or not owner_id:
            return Ranked()

        try:
            query_vector = self._embedding.embed_single(query_text or "")
            candidates = self._store.fetch_candidates(owner_id, limit=self._candidate_limit)
        except Exception as e:
            logger.warning(
                "Retrieval failed for owner %s, using recency fallback: %s", owner_id, e
            )
            return self._fallback(owner_id, k, reason=str(e))

        # Owner scoping and vector presence are re-checked here
        candidates = [
            c for c in candidates
            if c.owner_id == owner_id and c.has_vector
        ][: self._candidate_limit]

        if not candidates:
            return Ranked()

        scores = batch_cosine_similarity(query_vector, [c.vector for c in candidates])
        scored = list(zip(candidates, scores))

        # Two stable passes: newest first, then by score
        scored.sort(key=lambda item: item[0].created_at, reverse=True)
        scored.sort(key=lambda item: item[1], reverse=True)

        selected = [(c, s) for c, s in scored if s > self._threshold][:k]

        logger.debug(
            "Owner %s: %d candidates, %d selected (k=%d, threshold=%.3f)",
            owner_id, len(candidates), len(selected), k, self._threshold,
        )
        return Ranked(
            records=[c for c, _ in selected],
            scores=[s for _, s in selected],
        )

    def _fallback(self, owner_id: str, k: int, reason: str) -> FallbackRecent:
        try:
            recent = self._store.fetch_recent(owner_id, limit=k)
        except Exception as e:
            logger.error("Recency fallback fetch failed for owner %s: %s", owner_id, e)
            return FallbackRecent(records=[], reason=f"{reason}; fallback fetch failed: {e}")

        recent = [r for r in recent if r.owner_id == owner_id]
        recent.sort(key=lambda r: r.created_at, reverse=True)
        return FallbackRecent(records=recent[:k], reason=reason)
