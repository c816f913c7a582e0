"""Exception hierarchy shared by the parser, search core, git sync and MCP layer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Coarse error categories surfaced in logs and tool responses."""

    PARSING = "PARSING_ERROR"
    SEARCH = "SEARCH_ERROR"
    GIT = "GIT_ERROR"
    NOT_FOUND = "NOT_FOUND_ERROR"
    SYSTEM = "SYSTEM_ERROR"


class KlipperDocsError(Exception):
    """Base error carrying the originating component and optional details."""

    kind: ErrorKind = ErrorKind.SYSTEM

    def __init__(self, message: str, *, context: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.details = dict(details or {})
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": type(self).__name__,
            "message": self.message,
            "type": self.kind.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.details:
            payload["details"] = self.details
        if self.__cause__ is not None:
            payload["cause"] = repr(self.__cause__)
        return payload


class ParsingError(KlipperDocsError):
    """The documentation tree could not be read."""

    kind = ErrorKind.PARSING


class SearchError(KlipperDocsError):
    """Base class for search engine failures."""

    kind = ErrorKind.SEARCH


class IndexNotReadyError(SearchError):
    """A query arrived before the first successful index build.

    Recoverable: callers can retry once `build_index` has completed.
    """


class IndexBuildError(SearchError):
    """Index construction failed; the previous index (if any) stays active."""


class GitSyncError(KlipperDocsError):
    """Raised when git operations fail during synchronization."""

    kind = ErrorKind.GIT


class DocumentNotFoundError(KlipperDocsError):
    """Lookup by document id failed at the protocol boundary."""

    kind = ErrorKind.NOT_FOUND
