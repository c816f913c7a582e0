"""FastMCP server exposing Klipper documentation search and lookup.

Tools return markdown text; document bodies are also readable as resources
under ``klipper://docs/<id>``.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ResourceError, ToolError
from opentelemetry.trace import Span, SpanKind
from pydantic import Field
from starlette.responses import JSONResponse, Response

from klipper_docs_mcp import formatting
from klipper_docs_mcp.config import Settings
from klipper_docs_mcp.domain.search import SearchOptions
from klipper_docs_mcp.errors import DocumentNotFoundError, IndexNotReadyError, KlipperDocsError
from klipper_docs_mcp.observability import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    create_span,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from klipper_docs_mcp.search.config_section import extract_config_section
from klipper_docs_mcp.search.engine import SearchEngine
from klipper_docs_mcp.services.refresh_scheduler import RefreshSchedulerService


if TYPE_CHECKING:
    from starlette.requests import Request


logger = logging.getLogger(__name__)

CONFIG_REFERENCE_ID = "Config_Reference"
CONFIG_LOOKUP_SEARCH_LIMIT = 10
RESOURCE_URI_PREFIX = "klipper://docs/"


@contextmanager
def _tool_call(tool_name: str, **attributes: Any) -> Generator[Span, None, None]:
    """Latency, span and outcome counter around one tool invocation.

    Domain errors are re-raised as `ToolError` so their message reaches the
    client even when internal error details are masked.
    """
    with (
        track_latency(REQUEST_LATENCY, tool=tool_name),
        create_span(
            f"mcp.tool.{tool_name}",
            kind=SpanKind.INTERNAL,
            attributes={"mcp.tool.name": tool_name, **attributes},
        ) as span,
    ):
        try:
            yield span
        except IndexNotReadyError as exc:
            REQUEST_COUNT.labels(tool=tool_name, status="not_ready").inc()
            logger.warning("%s called before the index was built", tool_name)
            raise ToolError("Documentation index is still being built. Please retry in a moment.") from exc
        except KlipperDocsError as exc:
            REQUEST_COUNT.labels(tool=tool_name, status="error").inc()
            logger.warning("%s failed: %s", tool_name, exc.message)
            raise ToolError(exc.message) from exc
        except Exception:
            REQUEST_COUNT.labels(tool=tool_name, status="error").inc()
            raise
        REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()


def lookup_config_option(engine: SearchEngine, option: str, include_examples: bool = True) -> str:
    """Find the documentation for one config section.

    The configuration reference is consulted first, then the best search
    hit. When no block can be cut out of that hit the whole document is
    returned, optionally followed by its first code examples.
    """

    reference = engine.get_document(CONFIG_REFERENCE_ID)
    if reference is not None:
        section_text = extract_config_section(reference.content, option)
        if section_text:
            return formatting.format_config_section(option, section_text)

    results = engine.search(option, SearchOptions(limit=CONFIG_LOOKUP_SEARCH_LIMIT))
    if not results:
        return formatting.format_config_not_found(option)

    best = results[0].document
    section_text = extract_config_section(best.content, option)
    if section_text:
        return formatting.format_config_section(option, section_text, source_title=best.title)

    return formatting.format_config_document(best, include_examples)


def register_tools(mcp: FastMCP, engine: SearchEngine) -> None:
    @mcp.tool(name="search_klipper_docs", annotations={"title": "Search Klipper Docs", "readOnlyHint": True})
    async def search_klipper_docs(
        query: Annotated[str, "Keywords, configuration option names or a natural language question"],
        limit: Annotated[int, Field(ge=1, le=100, description="Maximum number of results to return")] = 10,
        section: Annotated[
            str | None, "Only return documents from this section (e.g., 'config-reference', 'g-codes')"
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Search Klipper documentation for topics, configuration options or troubleshooting help.

        Results are ranked with BM25; title matches weigh most, then section,
        tags and body text. Each hit shows its section, path and a snippet
        around the matched words.

        Examples:
            search_klipper_docs("pressure advance")
            search_klipper_docs("bed_mesh", section="config-reference")
        """
        tool_name = "search_klipper_docs"
        with _tool_call(tool_name, **{"search.query": query[:100]}) as span:
            results = engine.search(query, SearchOptions(limit=limit, section=section or None))
            span.set_attribute("search.result_count", len(results))
            logger.info("search_klipper_docs called - query='%s', results=%d", query[:50], len(results))
            return formatting.format_search_results(query, results)

    @mcp.tool(name="get_config_option", annotations={"title": "Get Config Option", "readOnlyHint": True})
    async def get_config_option(
        option: Annotated[str, "Configuration section name (e.g., 'extruder', 'bed_mesh', 'stepper_x')"],
        include_examples: Annotated[bool, "Append example configurations when the whole document is returned"] = True,
        ctx: Context | None = None,
    ) -> str:
        """Get the documentation block for one Klipper configuration section."""
        tool_name = "get_config_option"
        with _tool_call(tool_name, **{"config.option": option[:100]}):
            logger.info("get_config_option called - option='%s'", option[:50])
            return lookup_config_option(engine, option, include_examples)

    @mcp.tool(name="browse_docs", annotations={"title": "Browse Klipper Docs", "readOnlyHint": True})
    async def browse_docs(
        section: Annotated[str | None, "Section to list (leave empty to list all sections)"] = None,
        path: Annotated[str | None, "Document id to read in full (e.g., 'Config_Reference')"] = None,
        ctx: Context | None = None,
    ) -> str:
        """Browse documentation sections, list a section's documents, or read one document.

        With ``path`` the full document is returned; with ``section`` the
        documents in it are listed; with neither, all sections are shown.
        """
        tool_name = "browse_docs"
        with _tool_call(tool_name) as span:
            if path:
                span.set_attribute("docs.path", path)
                document = engine.get_document(path)
                if document is None:
                    raise DocumentNotFoundError(f"Document not found: {path}", context="browse_docs")
                return formatting.format_document(document)
            if section:
                span.set_attribute("docs.section", section)
                return formatting.format_section_listing(section, engine.get_documents_by_section(section))
            return formatting.format_browse_overview(engine.get_stats())

    @mcp.tool(name="get_index_stats", annotations={"title": "Index Statistics", "readOnlyHint": True})
    async def get_index_stats(ctx: Context | None = None) -> str:
        """Get statistics about the documentation index."""
        with _tool_call("get_index_stats"):
            return formatting.format_index_stats(engine.get_stats())


def register_resources(mcp: FastMCP, engine: SearchEngine) -> None:
    @mcp.resource(
        RESOURCE_URI_PREFIX + "{doc_id*}",
        name="klipper_document",
        description="Raw markdown of one Klipper documentation page",
        mime_type="text/markdown",
    )
    def read_document(doc_id: str) -> str:
        document = engine.get_document(doc_id)
        if document is None:
            raise ResourceError(f"Document not found: {doc_id}")
        return document.content


def register_prompts(mcp: FastMCP) -> None:
    @mcp.prompt(name="klipper_setup", description="Guide for initial Klipper setup and configuration")
    def klipper_setup(
        printer_type: Annotated[str | None, "Type of 3D printer (e.g., cartesian, corexy, delta)"] = None,
    ) -> str:
        return formatting.setup_prompt(printer_type)

    @mcp.prompt(name="troubleshoot_issue", description="Help troubleshoot common Klipper issues")
    def troubleshoot_issue(issue: Annotated[str, "Description of the issue or error message"]) -> str:
        return formatting.troubleshoot_prompt(issue)

    @mcp.prompt(name="config_review", description="Review and suggest improvements for Klipper configuration")
    def config_review(config_section: Annotated[str, "Configuration section to review"]) -> str:
        return formatting.config_review_prompt(config_section)


def build_health_payload(
    engine: SearchEngine,
    settings: Settings,
    scheduler: RefreshSchedulerService | None = None,
) -> dict[str, Any]:
    stats = engine.get_stats()
    return {
        "status": "healthy" if engine.is_ready() else "starting",
        "name": settings.server_name,
        "version": settings.server_version,
        "operation_mode": settings.operation_mode,
        "documents": stats.total_documents,
        "last_indexed": stats.last_indexed.isoformat() if stats.last_indexed else None,
        "refresh": scheduler.stats if scheduler is not None else None,
    }


def register_routes(
    mcp: FastMCP,
    engine: SearchEngine,
    settings: Settings,
    scheduler: RefreshSchedulerService | None = None,
) -> None:
    """HTTP-only endpoints; ignored by the stdio transport."""

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        payload = build_health_payload(engine, settings, scheduler)
        return JSONResponse(payload, status_code=200 if engine.is_ready() else 503)

    @mcp.custom_route("/metrics", methods=["GET"])
    async def metrics(request: Request) -> Response:
        return Response(get_metrics(), media_type=get_metrics_content_type())


def create_server(
    engine: SearchEngine,
    settings: Settings,
    scheduler: RefreshSchedulerService | None = None,
) -> FastMCP:
    """Build the FastMCP server around an engine (which may still be empty).

    ``scheduler`` is only reported on /health; its lifecycle belongs to the caller.
    """

    mcp = FastMCP(
        name=settings.server_name,
        instructions=(
            "Klipper 3D printer firmware documentation. Use search_klipper_docs to find pages, "
            "get_config_option for a config section such as [extruder], and browse_docs to read a page."
        ),
        mask_error_details=settings.mask_error_details,
    )
    register_tools(mcp, engine)
    register_resources(mcp, engine)
    register_prompts(mcp)
    register_routes(mcp, engine, settings, scheduler)
    return mcp
