"""
Form Record Schema

A FormRecord is a generated form plus the retrieval metadata computed when it
was created: vector, descriptive text and category tag. Those three are
written once and never recomputed.
"""

import logging
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("formsmith.common.schemas")


# ============================================================================
# Enums
# ============================================================================

class FieldType(str, Enum):
    """Supported form field types"""
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"
    DATE = "date"


# ============================================================================
# Sub-models
# ============================================================================

class FieldValidation(BaseModel):
    """Validation constraints for a single field"""
    model_config = ConfigDict(populate_by_name=True)

    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    accepted_types: Optional[List[str]] = Field(default=None, alias="acceptedTypes")


class FormField(BaseModel):
    """A single field definition"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: FieldType
    label: str
    name: str
    placeholder: Optional[str] = None
    required: bool = False
    validation: Optional[FieldValidation] = None
    options: Optional[List[str]] = None
    default_value: Optional[Union[bool, int, float, str, List[str]]] = Field(default=None, alias="defaultValue")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        if isinstance(value, FieldType):
            return value
        normalized = str(value).strip().lower()
        try:
            return FieldType(normalized)
        except ValueError:
            logger.warning("Unknown field type %r, using 'text'", value)
            return FieldType.TEXT

    def to_json(self) -> dict:
        """camelCase dict with unset optionals omitted"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FormDefinition(BaseModel):
    """A generated form before it is stored"""
    title: str = "Untitled Form"
    description: str = ""
    fields: List[FormField] = Field(default_factory=list)


# ============================================================================
# Main Schema
# ============================================================================

def generate_record_id() -> str:
    return f"form_{secrets.token_hex(12)}"


def generate_shareable_id() -> str:
    """32 hex chars, used for public links"""
    return secrets.token_hex(16)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormRecord(BaseModel):
    """
    Stored form and its retrieval metadata.

    vector is optional: records created before vectors existed have none and
    are never retrieval candidates until backfilled.
    """
    id: str = Field(default_factory=generate_record_id)
    owner_id: str
    title: str
    description: str = ""
    fields: List[FormField] = Field(default_factory=list)
    shareable_id: str = Field(default_factory=generate_shareable_id)

    vector: Optional[List[float]] = None
    descriptive_text: str = ""
    category_tag: str = "general"

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Naive timestamps are treated as UTC so ordering never mixes kinds
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def has_vector(self) -> bool:
        return self.vector is not None

    @property
    def definition(self) -> FormDefinition:
        return FormDefinition(title=self.title, description=self.description, fields=self.fields)

    def to_public_dict(self, include_owner: bool = True) -> dict:
        """JSON-safe view without the vector"""
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "schema": [f.to_json() for f in self.fields],
            "shareableId": self.shareable_id,
            "category": self.category_tag,
            "createdAt": self.created_at.isoformat(),
        }
        if include_owner:
            data["ownerId"] = self.owner_id
        return data
