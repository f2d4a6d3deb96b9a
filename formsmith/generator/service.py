"""
Form Service

Orchestrates one generation request end to end:
1. Retrieve relevant past forms for the owner (top-K, with recency fallback)
2. Assemble them into bounded context
3. Generate the new form definition
4. Build the record (vector, descriptive text, category) and store it

Also exposes owner-scoped read/delete operations over the store.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..common.config import FormsmithConfig
from ..common.embedding_service import EmbeddingService
from ..common.llm_client import create_llm_client
from ..common.record_store import RecordStore, create_record_store
from ..common.schemas import FormRecord
from ..retriever.assembler import ContextAssembler
from ..retriever.retriever import RelevanceRetriever, RetrievalResult
from .form_generator import FormGenerator
from .record_builder import RecordBuilder

logger = logging.getLogger("formsmith.generator.service")


@dataclass
class GenerationOutcome:
    """Result of a generate() call"""
    record: FormRecord
    context_used: int
    used_fallback: bool


class FormService:
    """Generation pipeline plus owner-scoped form access."""

    def __init__(
        self,
        store: RecordStore,
        retriever: RelevanceRetriever,
        assembler: ContextAssembler,
        generator: FormGenerator,
        builder: RecordBuilder,
        topk: int = 5,
    ):
        self._store = store
        self._retriever = retriever
        self._assembler = assembler
        self._generator = generator
        self._builder = builder
        self._topk = topk

    @classmethod
    def from_config(
        cls,
        config: FormsmithConfig,
        store: Optional[RecordStore] = None,
    ) -> "FormService":
        """Wire all components from configuration"""
        embedding = EmbeddingService(
            mode=config.embedding.mode,
            model=config.embedding.model,
            dimension=config.embedding.dimension,
        )
        store = store or create_record_store(config.store.backend, config.store.path)
        llm = create_llm_client(config.llm)

        models = [llm.model]
        if llm.provider == "google":
            models += [m for m in config.llm.google_fallback_models if m != llm.model]

        return cls(
            store=store,
            retriever=RelevanceRetriever(
                store,
                embedding,
                similarity_threshold=config.retriever.similarity_threshold,
                candidate_limit=config.retriever.candidate_limit,
            ),
            assembler=ContextAssembler(include_schema=config.retriever.include_schema),
            generator=FormGenerator(
                llm,
                models=models,
                max_tokens=config.llm.max_tokens,
                timeout=config.llm.timeout,
            ),
            builder=RecordBuilder(embedding),
            topk=config.retriever.topk,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    def retrieve_context(self, owner_id: str, prompt: str, k: Optional[int] = None) -> RetrievalResult:
        return self._retriever.retrieve(owner_id, prompt, self._topk if k is None else k)

    def generate(
        self,
        owner_id: str,
        prompt: str,
        image_urls: Optional[Sequence[str]] = None,
    ) -> GenerationOutcome:
        """
        Generate, annotate and store a new form.

        Raises:
            ValueError: empty owner_id or prompt
            FormGenerationError: the model produced no usable definition
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required")

        retrieved = self.retrieve_context(owner_id, prompt)
        if retrieved.is_fallback:
            logger.info("Owner %s: generating with recency fallback context", owner_id)
        context = self._assembler.assemble(retrieved.records)

        definition = self._generator.generate(prompt, context=context, image_urls=image_urls)

        record = self._builder.build(owner_id, prompt, definition)
        self._store.add(record)

        logger.info(
            "Generated form %s for owner %s (context=%d, fallback=%s)",
            record.id, owner_id, len(context), retrieved.is_fallback,
        )
        return GenerationOutcome(
            record=record,
            context_used=len(context),
            used_fallback=retrieved.is_fallback,
        )

    def list_forms(self, owner_id: str) -> List[FormRecord]:
        return self._store.list_for_owner(owner_id)

    def get_form(self, owner_id: str, record_id: str) -> Optional[FormRecord]:
        return self._store.get(owner_id, record_id)

    def get_shared_form(self, shareable_id: str) -> Optional[FormRecord]:
        return self._store.get_by_shareable_id(shareable_id)

    def delete_form(self, owner_id: str, record_id: str) -> bool:
        deleted = self._store.delete(owner_id, record_id)
        if deleted:
            logger.info("Deleted form %s for owner %s", record_id, owner_id)
        return deleted
