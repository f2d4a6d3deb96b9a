"""
Context Assembler

Turns retrieved records into compact context entries for the generator.
Order is preserved: the generator may weigh earlier entries more.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..common.schemas import FormRecord, parse_summary_fields

logger = logging.getLogger("formsmith.retriever.assembler")


@dataclass
class ContextEntry:
    """One past form, reduced to what the generator needs"""
    purpose: str
    fields: List[str] = field(default_factory=list)
    schema: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"purpose": self.purpose, "fields": list(self.fields)}
        if self.schema is not None:
            data["schema"] = self.schema
        return data


class ContextAssembler:
    """
    Builds ContextEntry objects from records.

    include_schema controls whether the full field definitions travel with
    each entry; without them the context is just purpose + field names.
    """

    def __init__(self, include_schema: bool = True):
        self._include_schema = include_schema

    def assemble(self, records: Sequence[FormRecord]) -> List[ContextEntry]:
        entries = []
        for record in records:
            fields = parse_summary_fields(record.descriptive_text)
            if not fields:
                fields = [f.label or f.name for f in record.fields]
            entries.append(
                ContextEntry(
                    purpose=record.category_tag or record.title,
                    fields=fields,
                    schema=[f.to_json() for f in record.fields] if self._include_schema else None,
                )
            )
        logger.debug("Assembled %d context entries", len(entries))
        return entries

    @staticmethod
    def to_prompt_payload(entries: Sequence[ContextEntry]) -> List[Dict[str, Any]]:
        """JSON-serializable form of the entries, in order"""
        return [e.to_dict() for e in entries]
