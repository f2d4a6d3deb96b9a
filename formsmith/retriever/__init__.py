"""
Retriever - Context Retrieval for Form Generation

Selects relevant past forms and condenses them into generation context.

Key Components:
- RelevanceRetriever: Top-K similarity search over an owner's forms
- ContextAssembler: Compact context entries from retrieved records

Pipeline:
1. Vectorize the new prompt
2. Score the owner's recent forms, keep the top K above threshold
3. Fall back to the most recent forms if vectorization or fetch fails
4. Reduce the selected forms to purpose + fields (+ schema)
"""

from .retriever import (
    RelevanceRetriever,
    RetrievalResult,
    Ranked,
    FallbackRecent,
)
from .assembler import ContextAssembler, ContextEntry

__all__ = [
    "RelevanceRetriever",
    "RetrievalResult",
    "Ranked",
    "FallbackRecent",
    "ContextAssembler",
    "ContextEntry",
]
