"""Shared fixtures for Formsmith tests."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import Mock

from formsmith.common.embedding_service import EmbeddingService
from formsmith.common.record_store import InMemoryRecordStore
from formsmith.common.schemas import FormField, FormRecord

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_record(owner_id, title, vector=None, minutes=0, category_tag="general", fields=None, **kwargs):
    """FormRecord created `minutes` after BASE_TIME"""
    fields = fields if fields is not None else [
        FormField(id="fullName", type="text", label="Full Name", name="fullName", required=True),
    ]
    return FormRecord(
        owner_id=owner_id,
        title=title,
        fields=fields,
        vector=vector,
        category_tag=category_tag,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        updated_at=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


def form_json(title="Contact Form", fields=None):
    """A well-formed model response"""
    return json.dumps({
        "title": title,
        "description": f"{title} description",
        "fields": fields or [
            {"id": "fullName", "type": "text", "label": "Full Name", "name": "fullName", "required": True},
            {"id": "email", "type": "email", "label": "Email", "name": "email", "required": True},
        ],
    })


@pytest.fixture
def embedding():
    return EmbeddingService(mode="hash")


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def llm():
    client = Mock()
    client.is_available = True
    client.model = "gemini-2.5-flash"
    client.provider = "google"
    client.generate.return_value = form_json()
    return client


class FailingCandidateStore(InMemoryRecordStore):
    """Store whose similarity candidate fetch is unavailable"""

    def fetch_candidates(self, owner_id, limit):
        from formsmith.common.errors import RecordStoreError
        raise RecordStoreError("vector column unavailable")
