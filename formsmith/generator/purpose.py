"""Coarse category tag for a new form, derived once from its prompt."""

from typing import Optional

from ..common.schemas import FieldType, FormDefinition

# Checked in order; the first keyword contained in the prompt wins
PURPOSE_KEYWORDS = [
    "signup", "registration", "application", "survey", "contact",
    "job", "hiring", "internship", "resume", "career",
    "medical", "patient", "health", "appointment",
    "admission", "college", "university", "education",
    "feedback", "review", "testimonial",
]

DEFAULT_PURPOSE = "general"


def extract_purpose(prompt: str, definition: Optional[FormDefinition] = None) -> str:
    lowered = (prompt or "").lower()
    for purpose in PURPOSE_KEYWORDS:
        if purpose in lowered:
            return purpose

    if definition is not None and definition.fields:
        first = definition.fields[0]
        label = (first.label or "").lower()
        if first.type == FieldType.FILE and ("resume" in label or "cv" in label):
            return "job"

    return DEFAULT_PURPOSE
