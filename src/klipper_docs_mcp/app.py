"""Process entry point: sync, parse, index, then serve MCP.

Usage:
    # stdio transport (default), for MCP clients that spawn the server
    klipper-docs-mcp

    # streamable HTTP on MCP_HOST:MCP_PORT with /health and /metrics
    MCP_TRANSPORT=http klipper-docs-mcp

    # index an existing checkout without touching the network
    OPERATION_MODE=offline GIT_LOCAL_PATH=/srv/klipper klipper-docs-mcp
"""

from __future__ import annotations

import asyncio
import logging
import sys

from fastmcp import FastMCP
from pydantic import ValidationError
import uvicorn

from klipper_docs_mcp.adapters.markdown_parser import MarkdownDocumentParser
from klipper_docs_mcp.config import Settings
from klipper_docs_mcp.errors import KlipperDocsError
from klipper_docs_mcp.observability import configure_logging, init_tracing
from klipper_docs_mcp.search.engine import SearchEngine
from klipper_docs_mcp.server import create_server
from klipper_docs_mcp.services.refresh_scheduler import RefreshSchedulerService
from klipper_docs_mcp.utils.git_sync import GitRepoSyncer, GitSourceConfig, GitSyncResult


logger = logging.getLogger(__name__)


class DocsRuntime:
    """Owns every long-lived component for one server process."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.syncer = GitRepoSyncer(
            GitSourceConfig(
                repo_url=settings.git_repository,
                branch=settings.git_branch,
                docs_subpath=settings.git_docs_subpath,
            ),
            settings.git_local_path,
        )
        self.parser = MarkdownDocumentParser()
        self.engine = SearchEngine(settings)
        self.scheduler: RefreshSchedulerService | None = None
        if not settings.is_offline_mode() and settings.git_refresh_schedule:
            self.scheduler = RefreshSchedulerService(
                self.syncer,
                self.reindex,
                settings.git_refresh_schedule,
            )

    async def reindex(self, sync_result: GitSyncResult | None = None) -> int:
        """Parse the docs tree and swap in a fresh index; returns the document count."""

        docs_path = sync_result.docs_path if sync_result is not None else self.syncer.docs_path
        documents = await asyncio.to_thread(self.parser.parse_directory, docs_path)
        await asyncio.to_thread(self.engine.build_index, documents)
        return len(documents)

    async def initialize(self) -> None:
        """Sync (online mode only), parse and build the first index."""

        logger.info("Initializing %s %s", self.settings.server_name, self.settings.server_version)
        sync_result: GitSyncResult | None = None
        if self.settings.is_offline_mode():
            logger.info("Offline mode: indexing existing checkout at %s", self.syncer.repo_path)
        else:
            logger.info("Syncing Klipper repository...")
            sync_result = await self.syncer.sync()

        count = await self.reindex(sync_result)
        logger.info(
            "Server initialization complete: %d documents, %d sections",
            count,
            len(self.engine.get_sections()),
        )

    def start_background_refresh(self) -> None:
        if self.scheduler is not None:
            self.scheduler.start()

    async def shutdown(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()


async def _serve_http(mcp: FastMCP, settings: Settings) -> None:
    app = mcp.http_app(path="/mcp")
    config = uvicorn.Config(
        app,
        host=settings.mcp_host,
        port=settings.mcp_port,
        log_level=settings.log_level,
        log_config=None,
    )
    logger.info("Starting server on %s:%d", settings.mcp_host, settings.mcp_port)
    logger.info("Health check: http://%s:%d/health", settings.mcp_host, settings.mcp_port)
    await uvicorn.Server(config).serve()


async def serve(settings: Settings) -> None:
    runtime = DocsRuntime(settings)
    await runtime.initialize()
    mcp = create_server(runtime.engine, settings, runtime.scheduler)
    runtime.start_background_refresh()
    try:
        if settings.mcp_transport == "http":
            await _serve_http(mcp, settings)
        else:
            logger.info("MCP Klipper server listening on stdio")
            await mcp.run_stdio_async(show_banner=False)
    finally:
        await runtime.shutdown()


def main() -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging()
        logger.error("Configuration is invalid: %s", exc)
        return 2

    configure_logging(settings.log_level, json_output=settings.log_format == "json")
    init_tracing(settings.server_name, settings.server_version)

    try:
        asyncio.run(serve(settings))
    except KlipperDocsError as exc:
        logger.error("Failed to start server: %s", exc.message, extra={"error": exc.to_dict()})
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
