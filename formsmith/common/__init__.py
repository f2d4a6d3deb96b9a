"""
Formsmith Common Module

Shared infrastructure for retrieval and generation.
"""

from .config import FormsmithConfig, load_config
from .embedding_service import EmbeddingService, HashingVectorizer, Vectorizer, get_embedding_service
from .errors import FormsmithError, FormGenerationError, RecordStoreError, VectorizationError
from .record_store import InMemoryRecordStore, JsonFileRecordStore, RecordStore, create_record_store
from .similarity import cosine_similarity, batch_cosine_similarity

__all__ = [
    "FormsmithConfig",
    "load_config",
    "EmbeddingService",
    "HashingVectorizer",
    "Vectorizer",
    "get_embedding_service",
    "FormsmithError",
    "FormGenerationError",
    "RecordStoreError",
    "VectorizationError",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "RecordStore",
    "create_record_store",
    "cosine_similarity",
    "batch_cosine_similarity",
]
