"""
Formsmith

Context-aware form generation: turns natural-language prompts into structured
form definitions, using a user's most relevant past forms as context.

Philosophy:
- Context stays bounded: at most K past forms, however long the history
- Retrieval never fails the request: it degrades to the most recent forms
- Vectors are computed once, when a form is created
- Owners only ever see their own history

Usage:
    from formsmith.common import load_config, EmbeddingService, InMemoryRecordStore
    from formsmith.retriever import RelevanceRetriever, ContextAssembler
    from formsmith.generator import FormService, RecordBuilder
"""

__version__ = "0.1.0"
