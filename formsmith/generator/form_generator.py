"""
Form Generator

Turns a natural-language prompt (plus retrieved context and optional example
images) into a validated FormDefinition via the LLM client.

Model handling:
- Models are tried in order; "not found" errors move on to the next model
- If a request with images fails on the image part, the prompt is retried
  once without images
- Any other error is raised as FormGenerationError
"""

import base64
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from ..common.errors import FormGenerationError
from ..common.llm_client import ImagePart, LLMClient
from ..common.llm_utils import parse_llm_structure
from ..common.schemas import FieldValidation, FormDefinition, FormField
from ..retriever.assembler import ContextAssembler, ContextEntry

logger = logging.getLogger("formsmith.generator.form_generator")


SYSTEM_PROMPT = """You are a JSON form schema generator. Convert natural language requests into valid JSON only.

CRITICAL: Return ONLY valid JSON. Use double quotes for all strings. No JavaScript code, no markdown, no explanations, no code blocks.

Form field types: text, email, number, textarea, select, checkbox, radio, file, date

Each field must have:
- id: string (camelCase)
- type: string (one of the types above)
- label: string
- name: string (camelCase)
- placeholder: string (optional)
- required: boolean
- validation: object (optional, with min, max, pattern, minLength, maxLength, acceptedTypes)
- options: array of strings (for select/radio/checkbox)
- defaultValue: string|number|boolean (optional)

Return this exact JSON structure:
{
  "title": "Form Title",
  "description": "Form description",
  "fields": [
    {
      "id": "fieldId",
      "type": "text",
      "label": "Field Label",
      "name": "fieldName",
      "placeholder": "Placeholder text",
      "required": true
    }
  ]
}

IMPORTANT: Use double quotes for all strings. Return valid JSON only, no code."""

CONTEXT_TEMPLATE = """

Here is relevant user form history for reference:
{context}

Use patterns from similar forms to maintain consistency."""

USER_SUFFIX = "\n\nReturn ONLY valid JSON with double quotes. No code, no markdown."

IMAGE_INSTRUCTION = (
    "\n\nIMPORTANT: Analyze the provided example images carefully. Generate a form schema "
    "that matches the design, layout, and fields shown in the images. Pay attention to "
    "field names, types, and the overall structure."
)

IMAGE_UNAVAILABLE_NOTE = (
    "\n\nNote: Example images were provided but could not be processed. "
    "Generate form based on the text description only."
)

MIME_BY_EXTENSION = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def build_system_prompt(context: Optional[Sequence[ContextEntry]] = None) -> str:
    """System prompt with retrieved context appended when present"""
    if not context:
        return SYSTEM_PROMPT
    payload = ContextAssembler.to_prompt_payload(context)
    return SYSTEM_PROMPT + CONTEXT_TEMPLATE.format(context=json.dumps(payload, indent=2))


def guess_mime_type(url: str, content_type: Optional[str] = None) -> str:
    if content_type and content_type.startswith("image/"):
        return content_type.split(";")[0].strip()
    match = re.search(r"\.(\w+)$", url.split("?")[0])
    if match:
        return MIME_BY_EXTENSION.get(match.group(1).lower(), "image/jpeg")
    return "image/jpeg"


def fetch_image(url: str, client: httpx.Client) -> ImagePart:
    """Download an example image and encode it as base64"""
    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FormGenerationError(f"Failed to fetch image from URL: {url}") from e
    return ImagePart(
        data=base64.b64encode(response.content).decode("ascii"),
        mime_type=guess_mime_type(url, response.headers.get("content-type")),
    )


def normalize_field(raw: Any, index: int) -> FormField:
    """
    Validate one generated field.

    id, type, label and name are required; values are coerced to their
    declared types and empty optional parts are dropped.
    """
    if not isinstance(raw, dict) or not all(raw.get(k) for k in ("id", "type", "label", "name")):
        raise FormGenerationError(
            f"Field at index {index} is missing required properties (id, type, label, name)"
        )

    data: Dict[str, Any] = {
        "id": str(raw["id"]),
        "type": str(raw["type"]),
        "label": str(raw["label"]),
        "name": str(raw["name"]),
        "required": bool(raw.get("required") or False),
    }

    if raw.get("placeholder"):
        data["placeholder"] = str(raw["placeholder"])

    validation = raw.get("validation")
    if isinstance(validation, dict):
        cleaned: Dict[str, Any] = {}
        try:
            for key in ("min", "max"):
                if validation.get(key) is not None:
                    cleaned[key] = float(validation[key])
            for key in ("minLength", "maxLength"):
                if validation.get(key) is not None:
                    cleaned[key] = int(validation[key])
        except (TypeError, ValueError) as e:
            raise FormGenerationError(f"Field at index {index} has invalid validation: {e}") from e
        if validation.get("pattern"):
            cleaned["pattern"] = str(validation["pattern"])
        if isinstance(validation.get("acceptedTypes"), list):
            cleaned["acceptedTypes"] = [str(t) for t in validation["acceptedTypes"]]
        if cleaned:
            data["validation"] = FieldValidation.model_validate(cleaned)

    options = raw.get("options")
    if isinstance(options, list) and options:
        data["options"] = [str(opt) for opt in options]

    default = raw.get("defaultValue")
    if isinstance(default, list):
        data["defaultValue"] = [str(v) for v in default]
    elif isinstance(default, (bool, int, float, str)):
        data["defaultValue"] = default
    elif default is not None:
        logger.warning("Field at index %d: dropping unsupported defaultValue %r", index, default)

    try:
        return FormField.model_validate(data)
    except ValidationError as e:
        raise FormGenerationError(f"Field at index {index} is invalid: {e}") from e


def parse_form_definition(raw_text: str) -> FormDefinition:
    """Parse and validate an LLM response into a FormDefinition"""
    data = parse_llm_structure(raw_text)
    if data is None:
        raise FormGenerationError("Failed to parse JSON: no JSON structure found in response")

    if isinstance(data, list):
        data = {"title": "Generated Form", "description": "", "fields": data}

    if not isinstance(data, dict) or not data.get("title") or not isinstance(data.get("fields"), list):
        raise FormGenerationError("Invalid schema structure: missing title or fields array")

    return FormDefinition(
        title=str(data["title"]),
        description=str(data.get("description") or ""),
        fields=[normalize_field(f, i) for i, f in enumerate(data["fields"])],
    )


def _is_model_missing(error: Exception) -> bool:
    message = str(error).lower()
    return "404" in message or "not found" in message


def _is_image_error(error: Exception) -> bool:
    message = str(error).lower()
    return "vision" in message or "image" in message


class FormGenerator:
    """
    Generates form definitions with an LLM.

    Falls through a list of models and degrades to text-only generation
    when example images cannot be used.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        models: Optional[List[str]] = None,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize generator.

        Args:
            llm_client: Provider-agnostic LLM client
            models: Model names to try in order (default: the client's model)
            max_tokens: Response token limit
            timeout: Per-request timeout in seconds
            http_client: httpx client for fetching example images
        """
        self._llm = llm_client
        self._models = [m for m in (models or [llm_client.model]) if m] or [llm_client.model]
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._http = http_client

    @property
    def has_llm(self) -> bool:
        return self._llm.is_available

    def generate(
        self,
        prompt: str,
        context: Optional[Sequence[ContextEntry]] = None,
        image_urls: Optional[Sequence[str]] = None,
    ) -> FormDefinition:
        """
        Generate a form definition.

        Args:
            prompt: The user's request
            context: Retrieved context entries, most relevant first
            image_urls: Optional example images

        Returns:
            Validated FormDefinition

        Raises:
            FormGenerationError: no usable definition could be produced
        """
        if not self.has_llm:
            raise FormGenerationError("LLM client is not available; configure an API key")

        system = build_system_prompt(context)
        user_prompt = prompt + USER_SUFFIX

        if not image_urls:
            return self._run_models(user_prompt, system, self._models)

        try:
            images = self._fetch_images(image_urls)
        except FormGenerationError as e:
            logger.warning("%s; generating from text only", e)
            return self._run_models(user_prompt + IMAGE_UNAVAILABLE_NOTE, system, self._models)

        return self._run_models(user_prompt + IMAGE_INSTRUCTION, system, self._models, images=images,
                                text_only_prompt=user_prompt + IMAGE_UNAVAILABLE_NOTE)

    def _run_models(
        self,
        user_prompt: str,
        system: str,
        models: List[str],
        images: Optional[List[ImagePart]] = None,
        text_only_prompt: Optional[str] = None,
    ) -> FormDefinition:
        """
        Try models in order until one answers.

        A vision failure restarts the chain at the same model without images,
        using text_only_prompt.
        """
        last_error: Optional[Exception] = None
        for pos, model in enumerate(models):
            kwargs = {"images": images} if images else {}
            try:
                raw = self._llm.generate(
                    user_prompt,
                    system=system,
                    model=model,
                    max_tokens=self._max_tokens,
                    timeout=self._timeout,
                    **kwargs,
                )
            except Exception as e:
                if _is_model_missing(e):
                    logger.warning("Model %s not available, trying next model", model)
                    last_error = e
                    continue
                if images and _is_image_error(e):
                    logger.warning("Vision request failed, falling back to text-only generation: %s", e)
                    return self._run_models(text_only_prompt or user_prompt, system, models[pos:])
                logger.error("LLM generation error: %s", e)
                raise FormGenerationError(f"Failed to generate form schema: {e}") from e

            logger.debug("Raw model response: %s", raw[:500])
            return parse_form_definition(raw)

        raise FormGenerationError(
            f"Failed to generate form schema: no available models. Last error: {last_error}"
        )

    def _fetch_images(self, urls: Sequence[str]) -> List[ImagePart]:
        if self._http is not None:
            return [fetch_image(url, self._http) for url in urls]
        with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
            return [fetch_image(url, client) for url in urls]
