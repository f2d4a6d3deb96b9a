"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
import re
from typing import Any, Optional


def strip_code_fences(raw: str) -> str:
    """Remove leading/trailing markdown code fences (``` or ```json)."""
    text = raw.strip()
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text.strip()


def convert_js_to_json(js_code: str) -> str:
    """Best-effort conversion of JavaScript object notation into JSON.

    Handles variable assignments, `return` prefixes, concatenated string
    literals, single quotes, unquoted keys, trailing commas, and quoted
    booleans/null/numbers.
    """
    text = js_code.strip()

    text = re.sub(r"^(const|let|var)\s+\w+\s*=\s*", "", text, flags=re.IGNORECASE)
    text = re.sub(r"^return\s+", "", text, flags=re.IGNORECASE)
    text = re.sub(r";?\s*$", "", text)

    # '[\n' + '  {\n' + ... → join the literal parts
    if "' +" in text or '" +' in text:
        parts = re.findall(r"'((?:\\.|[^'\\])*)'|\"((?:\\.|[^\"\\])*)\"", text)
        if parts:
            text = "".join(a or b for a, b in parts)

    text = re.sub(r"(?<!\\)'", '"', text)
    text = re.sub(r"([{,]\s*)([a-zA-Z_$][a-zA-Z0-9_$]*)\s*:", r'\1"\2":', text)
    text = re.sub(r",(\s*[}\]])", r"\1", text)

    text = re.sub(r':\s*"true"', ": true", text)
    text = re.sub(r':\s*"false"', ": false", text)
    text = re.sub(r':\s*"null"', ": null", text)
    text = re.sub(r':\s*"(\d+\.\d+)"', r": \1", text)
    text = re.sub(r':\s*"(\d+)"', r": \1", text)

    return text.strip()


def parse_llm_structure(raw: str) -> Optional[Any]:
    """Parse a JSON object *or array* from an LLM response.

    Tries in order:
    1. json.loads after stripping code fences
    2. JavaScript-to-JSON conversion, then json.loads
    3. The first {...} or [...] span in the text
    4. None
    """
    if not raw:
        return None

    text = strip_code_fences(raw)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(convert_js_to_json(text))
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{[\s\S]*\}|\[[\s\S]*\]", text)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            pass

    return None
