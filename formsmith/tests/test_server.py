# tests/test_server.py
import pytest

from fastmcp import Client
from fastmcp.exceptions import ToolError

from formsmith.common.embedding_service import EmbeddingService
from formsmith.common.record_store import InMemoryRecordStore
from formsmith.generator.form_generator import FormGenerator
from formsmith.generator.record_builder import RecordBuilder
from formsmith.generator.service import FormService
from formsmith.retriever.assembler import ContextAssembler
from formsmith.retriever.retriever import RelevanceRetriever
from formsmith.server.server import FormServerApp

from conftest import form_json


def _data(result):
    return getattr(result, "data", None) or getattr(result, "structured", None) \
           or getattr(result, "structured_content", None)


@pytest.fixture
def app(llm):
    """
    Create a FormServerApp over an in-memory store.
    The LLM client is a Mock returning a fixed contact form.
    """
    store = InMemoryRecordStore()
    embedding = EmbeddingService(mode="hash")
    service = FormService(
        store=store,
        retriever=RelevanceRetriever(store, embedding),
        assembler=ContextAssembler(),
        generator=FormGenerator(llm),
        builder=RecordBuilder(embedding),
    )
    return FormServerApp(service=service, mcp_server_name="test-formsmith")


@pytest.fixture
def mcp_server(app):
    return app.mcp  # FastMCP Instance


# ----------- Tool Registration ----------- #
@pytest.mark.asyncio
async def test_tools_registered(mcp_server):
    async with Client(mcp_server) as client:
        tools = await client.list_tools()
        names = {t.name for t in tools}
        assert names == {
            "generate_form", "retrieve_context", "list_forms",
            "get_form", "get_shared_form", "delete_form",
        }


# ----------- Generate ----------- #
@pytest.mark.asyncio
async def test_generate_form(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "generate_form",
            {"owner_id": "u1", "prompt": "contact form for my bakery"},
        )
        data = _data(result)

    assert data["ok"] is True
    form = data["results"]["form"]
    assert form["title"] == "Contact Form"
    assert form["ownerId"] == "u1"
    assert "vector" not in form
    assert data["results"]["context_used"] == 0
    assert data["results"]["used_fallback"] is False


@pytest.mark.asyncio
async def test_generate_form_empty_prompt(mcp_server, llm):
    async with Client(mcp_server) as client:
        with pytest.raises(ToolError, match="Prompt is required"):
            await client.call_tool("generate_form", {"owner_id": "u1", "prompt": "  "})

    llm.generate.assert_not_called()


@pytest.mark.asyncio
async def test_generate_form_model_failure(mcp_server, llm):
    llm.generate.return_value = "not a form"
    async with Client(mcp_server) as client:
        result = await client.call_tool("generate_form", {"owner_id": "u1", "prompt": "contact form"})
        data = _data(result)

    assert data["ok"] is False
    assert "Failed to parse JSON" in data["error"]


# ----------- Retrieve Context ----------- #
@pytest.mark.asyncio
async def test_retrieve_context(mcp_server, llm):
    async with Client(mcp_server) as client:
        llm.generate.return_value = form_json("Bakery Contact")
        await client.call_tool("generate_form", {"owner_id": "u1", "prompt": "contact form for my bakery"})

        result = await client.call_tool("retrieve_context", {"owner_id": "u1", "prompt": "contact form for my cafe"})
        data = _data(result)

    assert data["ok"] is True
    assert data["results"]["fallback"] is False
    forms = data["results"]["forms"]
    assert [f["title"] for f in forms] == ["Bakery Contact"]
    assert 0.1 < forms[0]["score"] <= 1.0


# ----------- List / Get / Share / Delete ----------- #
@pytest.mark.asyncio
async def test_form_access_tools(mcp_server):
    async with Client(mcp_server) as client:
        created = _data(await client.call_tool("generate_form", {"owner_id": "u1", "prompt": "contact form"}))
        form_id = created["results"]["form"]["id"]
        shareable_id = created["results"]["form"]["shareableId"]

        listed = _data(await client.call_tool("list_forms", {"owner_id": "u1"}))
        assert [f["id"] for f in listed["results"]] == [form_id]
        assert _data(await client.call_tool("list_forms", {"owner_id": "u2"}))["results"] == []

        fetched = _data(await client.call_tool("get_form", {"owner_id": "u1", "form_id": form_id}))
        assert fetched["ok"] is True
        assert fetched["results"]["id"] == form_id

        foreign = _data(await client.call_tool("get_form", {"owner_id": "u2", "form_id": form_id}))
        assert foreign["ok"] is False

        shared = _data(await client.call_tool("get_shared_form", {"shareable_id": shareable_id}))
        assert shared["ok"] is True
        assert "ownerId" not in shared["results"]
        assert "vector" not in shared["results"]

        deleted = _data(await client.call_tool("delete_form", {"owner_id": "u1", "form_id": form_id}))
        assert deleted["ok"] is True

        gone = _data(await client.call_tool("delete_form", {"owner_id": "u1", "form_id": form_id}))
        assert gone["ok"] is False
        assert gone["error"] == "Form not found"
