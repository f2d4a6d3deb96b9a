"""
Tests for FormGenerator

The LLM client is mocked; image downloads go through httpx.MockTransport.
"""

import base64
import json

import httpx
import pytest

from formsmith.common.errors import FormGenerationError
from formsmith.common.schemas import FieldType
from formsmith.generator.form_generator import (
    IMAGE_UNAVAILABLE_NOTE,
    SYSTEM_PROMPT,
    FormGenerator,
    build_system_prompt,
    guess_mime_type,
    parse_form_definition,
)
from formsmith.retriever.assembler import ContextEntry

from conftest import form_json


def image_client(status=200, content=b"img", content_type="image/png"):
    def handler(request):
        return httpx.Response(status, content=content, headers={"content-type": content_type})
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParseFormDefinition:
    def test_valid_response(self):
        definition = parse_form_definition(form_json("Contact Form"))

        assert definition.title == "Contact Form"
        assert [f.type for f in definition.fields] == [FieldType.TEXT, FieldType.EMAIL]
        assert definition.fields[0].required is True

    def test_bare_array_is_wrapped(self):
        raw = json.dumps([{"id": "email", "type": "email", "label": "Email", "name": "email"}])
        definition = parse_form_definition(raw)

        assert definition.title == "Generated Form"
        assert definition.description == ""
        assert len(definition.fields) == 1

    def test_no_json(self):
        with pytest.raises(FormGenerationError, match="Failed to parse JSON"):
            parse_form_definition("Sorry, I cannot help with that.")

    def test_missing_fields_array(self):
        with pytest.raises(FormGenerationError, match="missing title or fields"):
            parse_form_definition('{"title": "No fields"}')

    def test_field_missing_required_property(self):
        raw = json.dumps({"title": "T", "fields": [
            {"id": "a", "type": "text", "label": "A", "name": "a"},
            {"id": "b", "type": "text", "label": "B"},
        ]})
        with pytest.raises(FormGenerationError, match="index 1"):
            parse_form_definition(raw)

    def test_values_are_coerced(self):
        raw = json.dumps({"title": "T", "fields": [{
            "id": 7, "type": "number", "label": "Age", "name": "age",
            "required": "yes",
            "validation": {"min": "18", "maxLength": "3", "acceptedTypes": None},
            "options": [],
        }]})
        field = parse_form_definition(raw).fields[0]

        assert field.id == "7"
        assert field.required is True
        assert field.validation.min == 18.0
        assert field.validation.max_length == 3
        assert field.options is None

    def test_unknown_type_becomes_text(self):
        raw = json.dumps({"title": "T", "fields": [
            {"id": "c", "type": "colorpicker", "label": "Color", "name": "color"},
        ]})
        assert parse_form_definition(raw).fields[0].type == FieldType.TEXT

    def test_list_default_value_for_checkbox_group(self):
        raw = json.dumps({"title": "T", "fields": [
            {"id": "a", "type": "checkbox", "label": "A", "name": "a",
             "options": ["x", "y"], "defaultValue": ["x"]},
        ]})
        field = parse_form_definition(raw).fields[0]

        assert field.default_value == ["x"]
        assert field.to_json()["defaultValue"] == ["x"]

    def test_unsupported_default_value_is_dropped(self):
        raw = json.dumps({"title": "T", "fields": [
            {"id": "a", "type": "text", "label": "A", "name": "a", "defaultValue": {"nested": 1}},
        ]})
        assert parse_form_definition(raw).fields[0].default_value is None

    def test_field_validation_failure_is_generation_error(self):
        from unittest.mock import patch
        from pydantic import ValidationError
        from formsmith.common.schemas import FormField

        error = ValidationError.from_exception_data("FormField", [])
        raw = json.dumps({"title": "T", "fields": [
            {"id": "a", "type": "text", "label": "A", "name": "a"},
        ]})
        with patch.object(FormField, "model_validate", side_effect=error):
            with pytest.raises(FormGenerationError, match="index 0"):
                parse_form_definition(raw)

    def test_empty_validation_dropped(self):
        raw = json.dumps({"title": "T", "fields": [
            {"id": "a", "type": "text", "label": "A", "name": "a", "validation": {}},
        ]})
        assert parse_form_definition(raw).fields[0].validation is None


class TestSystemPrompt:
    def test_without_context(self):
        assert build_system_prompt([]) == SYSTEM_PROMPT

    def test_context_is_appended_in_order(self):
        context = [
            ContextEntry(purpose="job", fields=["Full Name", "Resume"]),
            ContextEntry(purpose="survey", fields=["Rating"]),
        ]
        prompt = build_system_prompt(context)

        assert prompt.startswith(SYSTEM_PROMPT)
        assert "relevant user form history" in prompt
        assert prompt.index('"job"') < prompt.index('"survey"')


class TestGuessMimeType:
    @pytest.mark.parametrize("url,content_type,expected", [
        ("https://x/a.png", None, "image/png"),
        ("https://x/a.JPG?size=2", None, "image/jpeg"),
        ("https://x/a.webp", "application/octet-stream", "image/webp"),
        ("https://x/a", "image/gif; charset=binary", "image/gif"),
        ("https://x/a.bmp", None, "image/jpeg"),
    ])
    def test_guess(self, url, content_type, expected):
        assert guess_mime_type(url, content_type) == expected


class TestFormGenerator:
    def test_unavailable_llm(self, llm):
        llm.is_available = False
        with pytest.raises(FormGenerationError, match="not available"):
            FormGenerator(llm).generate("contact form")

    def test_passes_context_in_system_prompt(self, llm):
        generator = FormGenerator(llm)
        context = [ContextEntry(purpose="contact", fields=["Email"])]

        definition = generator.generate("contact form", context=context)

        assert definition.title == "Contact Form"
        kwargs = llm.generate.call_args.kwargs
        assert '"contact"' in kwargs["system"]
        assert kwargs["model"] == "gemini-2.5-flash"
        assert llm.generate.call_args.args[0].startswith("contact form")

    def test_model_not_found_tries_next(self, llm):
        llm.generate.side_effect = [
            Exception("404 models/gemini-2.5-flash is not found"),
            form_json("Signup"),
        ]
        generator = FormGenerator(llm, models=["gemini-2.5-flash", "gemini-1.5-flash", "gemini-pro"])

        definition = generator.generate("signup form")

        assert definition.title == "Signup"
        assert [c.kwargs["model"] for c in llm.generate.call_args_list] == [
            "gemini-2.5-flash", "gemini-1.5-flash",
        ]

    def test_all_models_missing(self, llm):
        llm.generate.side_effect = Exception("model not found")
        generator = FormGenerator(llm, models=["a", "b"])

        with pytest.raises(FormGenerationError, match="no available models"):
            generator.generate("signup form")
        assert llm.generate.call_count == 2

    def test_other_errors_are_raised(self, llm):
        llm.generate.side_effect = Exception("quota exceeded")
        generator = FormGenerator(llm, models=["a", "b"])

        with pytest.raises(FormGenerationError, match="quota exceeded"):
            generator.generate("signup form")
        assert llm.generate.call_count == 1

    def test_images_are_attached(self, llm):
        generator = FormGenerator(llm, http_client=image_client())

        generator.generate("copy this form", image_urls=["https://cdn.example.com/form.png"])

        images = llm.generate.call_args.kwargs["images"]
        assert len(images) == 1
        assert images[0].mime_type == "image/png"
        assert base64.b64decode(images[0].data) == b"img"
        assert "example images" in llm.generate.call_args.args[0]

    def test_image_download_failure_generates_from_text(self, llm):
        generator = FormGenerator(llm, http_client=image_client(status=404))

        definition = generator.generate("copy this form", image_urls=["https://cdn.example.com/missing.png"])

        assert definition.title == "Contact Form"
        call = llm.generate.call_args
        assert not call.kwargs.get("images")
        assert call.args[0].endswith(IMAGE_UNAVAILABLE_NOTE)

    def test_vision_error_retries_without_images(self, llm):
        llm.generate.side_effect = [Exception("image input is not supported"), form_json("Retry")]
        generator = FormGenerator(llm, http_client=image_client())

        definition = generator.generate("copy this form", image_urls=["https://cdn.example.com/form.jpg"])

        assert definition.title == "Retry"
        second = llm.generate.call_args_list[1]
        assert not second.kwargs.get("images")
        assert IMAGE_UNAVAILABLE_NOTE in second.args[0]

    def test_text_only_generation_uses_model_chain(self, llm):
        llm.generate.side_effect = [
            Exception("404 models/gemini-2.5-flash is not found"),
            form_json("Fallback Model"),
        ]
        generator = FormGenerator(
            llm, models=["gemini-2.5-flash", "gemini-1.5-flash"], http_client=image_client(status=404),
        )

        definition = generator.generate("copy this form", image_urls=["https://cdn.example.com/missing.png"])

        assert definition.title == "Fallback Model"
        calls = llm.generate.call_args_list
        assert [c.kwargs["model"] for c in calls] == ["gemini-2.5-flash", "gemini-1.5-flash"]
        assert all(IMAGE_UNAVAILABLE_NOTE in c.args[0] for c in calls)

    def test_vision_retry_continues_down_model_chain(self, llm):
        llm.generate.side_effect = [
            Exception("vision input not supported"),
            Exception("model not found"),
            form_json("Third"),
        ]
        generator = FormGenerator(llm, models=["a", "b"], http_client=image_client())

        definition = generator.generate("copy this form", image_urls=["https://cdn.example.com/form.png"])

        assert definition.title == "Third"
        assert [c.kwargs["model"] for c in llm.generate.call_args_list] == ["a", "a", "b"]

    def test_unparseable_response(self, llm):
        llm.generate.return_value = "I made you a great form!"
        with pytest.raises(FormGenerationError, match="Failed to parse JSON"):
            FormGenerator(llm).generate("contact form")
