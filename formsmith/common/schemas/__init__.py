"""
Formsmith Record Schemas

Form definitions as produced by the generator, and the stored FormRecord
that carries retrieval metadata.
"""

from .form_record import (
    FormRecord,
    FormDefinition,
    FormField,
    FieldValidation,
    FieldType,
    generate_record_id,
    generate_shareable_id,
)
from .templates import render_summary, parse_summary_fields, SUMMARY_TEMPLATE

__all__ = [
    "FormRecord",
    "FormDefinition",
    "FormField",
    "FieldValidation",
    "FieldType",
    "generate_record_id",
    "generate_shareable_id",
    "render_summary",
    "parse_summary_fields",
    "SUMMARY_TEMPLATE",
]
