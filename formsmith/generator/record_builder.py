"""
Record Builder

Builds FormRecords from a prompt and the generated definition. This is the
creation-time hook that makes a new form a future retrieval candidate.

Key Rules:
- descriptive_text is rendered from the definition only
- the vector is computed from "{prompt} {descriptive_text}"
- category_tag comes from the prompt (see purpose.extract_purpose)
- none of the three are recomputed after creation
"""

import logging
from typing import List, Optional, Tuple

from ..common.embedding_service import EmbeddingService
from ..common.schemas import FormDefinition, FormRecord, render_summary
from .purpose import extract_purpose

logger = logging.getLogger("formsmith.generator.record_builder")


class RecordBuilder:
    """
    Computes retrieval metadata and assembles FormRecords.

    Used both for freshly generated forms and for backfilling records that
    were stored without a vector.
    """

    def __init__(self, embedding_service: EmbeddingService):
        self._embedding = embedding_service

    @staticmethod
    def summarize(definition: FormDefinition) -> str:
        return render_summary(definition)

    def vectorize_and_summarize(
        self,
        prompt: str,
        definition: FormDefinition,
    ) -> Tuple[List[float], str]:
        """
        Compute (vector, descriptive_text) for a new record.

        Args:
            prompt: The generation prompt
            definition: The generated form definition

        Returns:
            Tuple of the record vector and its descriptive text
        """
        summary = self.summarize(definition)
        vector = self._embedding.embed_single(f"{prompt or ''} {summary}".strip())
        return vector, summary

    def build(
        self,
        owner_id: str,
        prompt: str,
        definition: FormDefinition,
        category_tag: Optional[str] = None,
    ) -> FormRecord:
        """
        Build a FormRecord ready for storage.

        Args:
            owner_id: Creating user
            prompt: The generation prompt
            definition: The generated form definition
            category_tag: Override for the derived category

        Returns:
            FormRecord with vector, descriptive_text and category_tag set
        """
        if not owner_id:
            raise ValueError("owner_id is required")

        vector, summary = self.vectorize_and_summarize(prompt, definition)
        record = FormRecord(
            owner_id=owner_id,
            title=definition.title or "Untitled Form",
            description=definition.description or "",
            fields=[f.model_copy(deep=True) for f in definition.fields],
            vector=vector,
            descriptive_text=summary,
            category_tag=category_tag or extract_purpose(prompt, definition),
        )
        logger.debug(
            "Built record %s (%s, %d fields)", record.id, record.category_tag, len(record.fields)
        )
        return record
