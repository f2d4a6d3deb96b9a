"""
Descriptive Text Templates

Renders a form definition into the short synopsis used both as vectorizer
input and as the source of field descriptors in retrieval context.
"""

import re
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .form_record import FormDefinition


SUMMARY_TEMPLATE = "{title}: {description} Fields: {field_names} Types: {field_types}"

_FIELDS_RE = re.compile(r"Fields:\s*(.*?)\s*Types:", re.DOTALL)


def render_summary(definition: "FormDefinition") -> str:
    """Render the descriptive text for a form definition"""
    field_names = ", ".join(f.label or f.name for f in definition.fields)
    field_types = ", ".join(f.type.value for f in definition.fields)
    return SUMMARY_TEMPLATE.format(
        title=definition.title or "Form",
        description=definition.description or "",
        field_names=field_names,
        field_types=field_types,
    )


def parse_summary_fields(descriptive_text: str) -> List[str]:
    """
    Extract the field descriptors from a rendered summary.

    Returns an empty list when the text does not follow SUMMARY_TEMPLATE.
    """
    if not descriptive_text:
        return []
    match = _FIELDS_RE.search(descriptive_text)
    if not match:
        return []
    return [name.strip() for name in match.group(1).split(",") if name.strip()]
