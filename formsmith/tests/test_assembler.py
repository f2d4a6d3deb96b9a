"""Tests for ContextAssembler."""

from formsmith.common.schemas import FormField
from formsmith.retriever.assembler import ContextAssembler, ContextEntry

from conftest import make_record


def _fields():
    return [
        FormField(id="fullName", type="text", label="Full Name", name="fullName", required=True),
        FormField(id="resume", type="file", label="Resume", name="resume",
                  validation={"acceptedTypes": [".pdf"]}),
    ]


class TestContextAssembler:
    def test_preserves_order_and_count(self):
        records = [
            make_record("u1", "B", category_tag="survey"),
            make_record("u1", "A", category_tag="job"),
        ]
        entries = ContextAssembler().assemble(records)

        assert [e.purpose for e in entries] == ["survey", "job"]

    def test_fields_from_descriptive_text(self):
        record = make_record(
            "u1", "Job Application",
            fields=_fields(),
            descriptive_text="Job Application:  Fields: Full Name, Resume Types: text, file",
        )
        entry = ContextAssembler().assemble([record])[0]

        assert entry.fields == ["Full Name", "Resume"]

    def test_fields_fall_back_to_labels(self):
        record = make_record("u1", "Legacy", fields=_fields(), descriptive_text="")
        entry = ContextAssembler().assemble([record])[0]

        assert entry.fields == ["Full Name", "Resume"]

    def test_purpose_falls_back_to_title(self):
        record = make_record("u1", "Volunteer Signup", category_tag="")
        assert ContextAssembler().assemble([record])[0].purpose == "Volunteer Signup"

    def test_schema_uses_camel_case(self):
        record = make_record("u1", "Job Application", fields=_fields())
        entry = ContextAssembler(include_schema=True).assemble([record])[0]

        assert entry.schema[1]["validation"] == {"acceptedTypes": [".pdf"]}
        assert "placeholder" not in entry.schema[0]

    def test_schema_can_be_omitted(self):
        record = make_record("u1", "Job Application", fields=_fields())
        entry = ContextAssembler(include_schema=False).assemble([record])[0]

        assert entry.schema is None
        assert "schema" not in entry.to_dict()

    def test_vectors_never_in_payload(self):
        record = make_record("u1", "Job Application", vector=[0.1, 0.2])
        payload = ContextAssembler.to_prompt_payload(ContextAssembler().assemble([record]))

        assert "vector" not in str(payload)

    def test_empty_input(self):
        assert ContextAssembler().assemble([]) == []

    def test_entry_to_dict(self):
        entry = ContextEntry(purpose="contact", fields=["Email"])
        assert entry.to_dict() == {"purpose": "contact", "fields": ["Email"]}
