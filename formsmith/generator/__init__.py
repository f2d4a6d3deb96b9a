"""
Generator - Context-Aware Form Generation

Key Components:
- FormGenerator: LLM call, response parsing and field validation
- RecordBuilder: Vector, descriptive text and category for new records
- FormService: Retrieve → assemble → generate → build → store
"""

from .form_generator import FormGenerator, parse_form_definition, build_system_prompt
from .purpose import extract_purpose
from .record_builder import RecordBuilder
from .service import FormService, GenerationOutcome

__all__ = [
    "FormGenerator",
    "parse_form_definition",
    "build_system_prompt",
    "extract_purpose",
    "RecordBuilder",
    "FormService",
    "GenerationOutcome",
]
