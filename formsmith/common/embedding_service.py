"""
Embedding Service

Maps text to fixed-length vectors for similarity retrieval.

The default vectorizer is a deterministic hashing scheme with no external
dependencies; it groups forms that share vocabulary. A fastembed-backed
vectorizer can be swapped in behind the same interface.
"""

import logging
import struct
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from .errors import VectorizationError

logger = logging.getLogger("formsmith.common.embedding_service")

DEFAULT_DIMENSION = 128


def _utf16_code_units(token: str) -> tuple:
    data = token.encode("utf-16-le")
    return struct.unpack(f"<{len(data) // 2}H", data)


def string_hash(token: str) -> int:
    """32-bit signed rolling hash (h * 31 + c) over UTF-16 code units."""
    h = 0
    for unit in _utf16_code_units(token):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit length; a zero vector is returned unchanged."""
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


class Vectorizer(ABC):
    """Interface for text → vector backends."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of the produced vectors."""

    @abstractmethod
    def vectorize(self, text: str) -> List[float]:
        """Map text to an L2-normalized vector (or the zero vector)."""

    def vectorize_many(self, texts: List[str]) -> List[List[float]]:
        return [self.vectorize(t) for t in texts]


class HashingVectorizer(Vectorizer):
    """
    Position-decayed term-bucket vectorizer.

    Each whitespace token at position i adds 1 / (i + 1) to the bucket
    string_hash(token) mod D. Colliding tokens share a bucket. The result
    is L2-normalized; text without tokens yields the zero vector.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION):
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def vectorize(self, text: str) -> List[float]:
        buckets = np.zeros(self._dimension, dtype=np.float64)
        for i, token in enumerate((text or "").lower().split()):
            idx = abs(string_hash(token)) % self._dimension
            buckets[idx] += 1.0 / (i + 1)
        return l2_normalize(buckets).tolist()


class FastEmbedVectorizer(Vectorizer):
    """
    On-device embedding model via fastembed.

    The model is loaded on first use. Any backend failure is raised as
    VectorizationError so callers can apply their own fallback.
    """

    def __init__(self, model: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self._model_name = model
        self._model = None
        self._dimension: Optional[int] = None

    def _ensure_model(self):
        if self._model is None:
            try:
                from fastembed import TextEmbedding

                self._model = TextEmbedding(model_name=self._model_name)
                logger.info("Loaded fastembed model %s", self._model_name)
            except Exception as e:
                raise VectorizationError(f"Could not load fastembed model {self._model_name}: {e}") from e
        return self._model

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self._embed_raw(["dimension probe"])[0])
        return self._dimension

    def _embed_raw(self, texts: List[str]) -> List[np.ndarray]:
        model = self._ensure_model()
        try:
            return [np.asarray(v, dtype=np.float64) for v in model.embed(texts)]
        except Exception as e:
            raise VectorizationError(f"fastembed embedding failed: {e}") from e

    def vectorize(self, text: str) -> List[float]:
        return self.vectorize_many([text])[0]

    def vectorize_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        results: List[Optional[List[float]]] = [None] * len(texts)
        pending = [(i, t) for i, t in enumerate(texts) if t and t.strip()]
        if pending:
            vectors = self._embed_raw([t for _, t in pending])
            for (i, _), vec in zip(pending, vectors):
                results[i] = l2_normalize(vec).tolist()
        # Blank text maps to the zero vector
        for i, vec in enumerate(results):
            if vec is None:
                results[i] = [0.0] * self.dimension
        return results


class EmbeddingService:
    """
    Embedding front-end used by the retriever and the record builder.

    Wraps a Vectorizer chosen by mode:
    - "hash": HashingVectorizer (default, deterministic, no dependencies)
    - "femb": FastEmbedVectorizer
    """

    def __init__(
        self,
        mode: str = "hash",
        model: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimension: int = DEFAULT_DIMENSION,
        vectorizer: Optional[Vectorizer] = None,
    ):
        self._mode = mode
        self._model = model
        if vectorizer is not None:
            self._vectorizer = vectorizer
        elif mode == "hash":
            self._vectorizer = HashingVectorizer(dimension)
        elif mode == "femb":
            self._vectorizer = FastEmbedVectorizer(model)
        else:
            raise ValueError(f"Unsupported embedding mode: {mode}")
        logger.debug("EmbeddingService initialized with mode=%s", mode)

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def dimension(self) -> int:
        return self._vectorizer.dimension

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate vectors for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of vectors (L2 normalized, or zero for blank text)
        """
        if not texts:
            return []
        return self._vectorizer.vectorize_many(texts)

    def embed_single(self, text: str) -> List[float]:
        """Generate the vector for a single text."""
        return self._vectorizer.vectorize(text)


_service_instance: Optional[EmbeddingService] = None


def get_embedding_service(
    mode: str = "hash",
    model: str = "sentence-transformers/all-MiniLM-L6-v2",
    dimension: int = DEFAULT_DIMENSION,
) -> EmbeddingService:
    """
    Get the shared EmbeddingService instance.

    The first call fixes the configuration; later calls return the same
    instance.
    """
    global _service_instance

    if _service_instance is None:
        _service_instance = EmbeddingService(mode=mode, model=model, dimension=dimension)

    return _service_instance
