"""
Formsmith MCP Server.

Transport: stdio only.

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}

Vectors are never part of tool output.
"""

import argparse
import logging
import signal
import sys
from typing import Any, Dict, List, Optional, Annotated

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from ..common.config import load_config, ensure_directories
from ..common.errors import FormsmithError
from ..generator.service import FormService

logger = logging.getLogger("formsmith.server")


class FormServerApp:
    """
    Main application class for the MCP server.

    Every tool is owner-scoped except get_shared_form, which resolves a public
    shareable id and never reveals the owner.
    """
    def __init__(
            self,
            service: FormService,
            mcp_server_name: str = "formsmith",
        ) -> None:
        """
        Args:
            service (FormService): Generation pipeline and form access.
            mcp_server_name (str): The name of the MCP server.
        """
        self.service = service
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Generate Form ---------- #
        @self.mcp.tool(
            name="generate_form",
            description=(
                "Generate a form definition from a natural-language prompt. "
                "The owner's most relevant past forms are used as context, and the new form is saved."
            ),
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_generate_form(
            owner_id: Annotated[str, Field(description="id of the user creating the form")],
            prompt: Annotated[str, Field(description="what the form should collect, in plain language")],
            image_urls: Annotated[Optional[List[str]], Field(description="optional example form images")] = None,
        ) -> Dict[str, Any]:
            try:
                outcome = self.service.generate(owner_id, prompt, image_urls=image_urls)
            except ValueError as e:
                raise ToolError(str(e)) from e
            except FormsmithError as e:
                return {"ok": False, "error": str(e)}
            except Exception as e:
                logger.error("generate_form failed: %s", e)
                return {"ok": False, "error": f"Failed to generate form: {e}"}
            return {
                "ok": True,
                "results": {
                    "form": outcome.record.to_public_dict(),
                    "context_used": outcome.context_used,
                    "used_fallback": outcome.used_fallback,
                },
            }

        # ---------- MCP Tools: Retrieve Context ---------- #
        @self.mcp.tool(
            name="retrieve_context",
            description="Preview which past forms would be used as context for a prompt.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_retrieve_context(
            owner_id: Annotated[str, Field(description="id of the user whose history is searched")],
            prompt: Annotated[str, Field(description="prompt to match against past forms")],
            k: Annotated[Optional[int], Field(description="maximum number of forms (default: configured top-K)")] = None,
        ) -> Dict[str, Any]:
            result = self.service.retrieve_context(owner_id, prompt, k)
            scores = getattr(result, "scores", None) or [None] * len(result)
            return {
                "ok": True,
                "results": {
                    "fallback": result.is_fallback,
                    "forms": [
                        {
                            "id": r.id,
                            "title": r.title,
                            "category": r.category_tag,
                            "score": s,
                        }
                        for r, s in zip(result.records, scores)
                    ],
                },
            }

        # ---------- MCP Tools: List Forms ---------- #
        @self.mcp.tool(
            name="list_forms",
            description="List an owner's forms, newest first.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_list_forms(
            owner_id: Annotated[str, Field(description="id of the form owner")],
        ) -> Dict[str, Any]:
            try:
                forms = self.service.list_forms(owner_id)
            except FormsmithError as e:
                return {"ok": False, "error": str(e)}
            return {"ok": True, "results": [f.to_public_dict() for f in forms]}

        # ---------- MCP Tools: Get Form ---------- #
        @self.mcp.tool(
            name="get_form",
            description="Get one of an owner's forms by id.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_get_form(
            owner_id: Annotated[str, Field(description="id of the form owner")],
            form_id: Annotated[str, Field(description="form id")],
        ) -> Dict[str, Any]:
            record = self.service.get_form(owner_id, form_id)
            if record is None:
                return {"ok": False, "error": "Form not found"}
            return {"ok": True, "results": record.to_public_dict()}

        # ---------- MCP Tools: Get Shared Form ---------- #
        @self.mcp.tool(
            name="get_shared_form",
            description="Resolve a public share link to its form definition.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_get_shared_form(
            shareable_id: Annotated[str, Field(description="public shareable id of the form")],
        ) -> Dict[str, Any]:
            record = self.service.get_shared_form(shareable_id)
            if record is None:
                return {"ok": False, "error": "Form not found"}
            return {"ok": True, "results": record.to_public_dict(include_owner=False)}

        # ---------- MCP Tools: Delete Form ---------- #
        @self.mcp.tool(
            name="delete_form",
            description="Delete one of an owner's forms.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True)
        )
        async def tool_delete_form(
            owner_id: Annotated[str, Field(description="id of the form owner")],
            form_id: Annotated[str, Field(description="form id")],
        ) -> Dict[str, Any]:
            try:
                deleted = self.service.delete_form(owner_id, form_id)
            except FormsmithError as e:
                return {"ok": False, "error": str(e)}
            if not deleted:
                return {"ok": False, "error": "Form not found"}
            return {"ok": True, "results": {"deleted": form_id}}

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Run the Formsmith MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default="formsmith",
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Log level (logs go to stderr).",
    )
    args = parser.parse_args(argv)

    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    ensure_directories()
    service = FormService.from_config(config)
    logger.info(
        "Starting %s (embedding=%s, store=%s, llm=%s)",
        args.server_name, config.embedding.mode, config.store.backend, config.llm.provider,
    )

    app = FormServerApp(service=service, mcp_server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
