"""Shared test fixtures and configuration."""

from collections.abc import Callable
from datetime import datetime, timezone
import os

import pytest

from klipper_docs_mcp.domain.model import Document, DocumentMetadata


# Pin every setting the code reads so a developer's .env or shell cannot leak in
TEST_ENV = {
    "SERVER_NAME": "mcp-klipper",
    "SERVER_VERSION": "1.0.0",
    "GIT_REPOSITORY": "https://github.com/Klipper3d/klipper.git",
    "GIT_BRANCH": "master",
    "GIT_DOCS_SUBPATH": "docs",
    "GIT_REFRESH_SCHEDULE": "",
    "OPERATION_MODE": "offline",
    "SEARCH_MAX_RESULTS": "10",
    "SEARCH_SNIPPET_LENGTH": "200",
    "SEARCH_MIN_SCORE": "0.1",
    "LOG_LEVEL": "info",
    "LOG_FORMAT": "text",
    "MCP_TRANSPORT": "stdio",
    "MCP_HOST": "127.0.0.1",
    "MCP_PORT": "15005",
    "MASK_ERROR_DETAILS": "true",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset settings-related environment variables before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("GIT_LOCAL_PATH", raising=False)


@pytest.fixture
def make_document() -> Callable[..., Document]:
    """Factory for documents with sensible defaults."""

    def _make(
        doc_id: str,
        *,
        title: str | None = None,
        content: str = "",
        section: str = "general",
        tags: list[str] | None = None,
        word_count: int | None = None,
    ) -> Document:
        return Document(
            id=doc_id,
            title=title if title is not None else doc_id,
            content=content,
            section=section,
            file_path=f"{doc_id}.md",
            last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
            metadata=DocumentMetadata(
                word_count=word_count if word_count is not None else len(content.split()),
                tags=tags or [],
            ),
        )

    return _make
