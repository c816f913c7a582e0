"""Centralized configuration for klipper-docs-mcp using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from cron_converter import Cron
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Field names map one-to-one onto upper-case environment variables
    (``search_max_results`` -> ``SEARCH_MAX_RESULTS``). A ``.env`` file in the
    working directory is honoured as well.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Server identity
    server_name: str = Field(default="mcp-klipper", description="Name advertised to MCP clients")
    server_version: str = Field(default="1.0.0", description="Version advertised to MCP clients")

    # Git source
    git_repository: str = Field(
        default="https://github.com/Klipper3d/klipper.git", description="Repository holding the documentation"
    )
    git_branch: str = Field(default="master", description="Branch to track")
    git_local_path: Path = Field(
        default=Path("data") / "klipper-repo", description="Working copy location for the cloned repository"
    )
    git_docs_subpath: str = Field(default="docs", description="Directory inside the repository holding markdown docs")
    git_refresh_schedule: str = Field(
        default="0 * * * *",
        description="Cron schedule for re-sync and re-index (empty string disables periodic refresh)",
    )

    # Operation mode
    operation_mode: Literal["online", "offline"] = Field(
        default="online", description="online syncs the repository; offline indexes the existing working copy"
    )

    # Search
    search_max_results: int = Field(default=10, ge=1, description="Default result limit for searches")
    search_snippet_length: int = Field(default=200, ge=20, description="Snippet window length in characters")
    search_min_score: float = Field(default=0.1, ge=0.0, description="Results scoring below this are dropped")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="text", description="Log line format")

    # Transport
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport")
    mcp_host: str = Field(default="127.0.0.1", description="MCP server host (http transport)")
    mcp_port: int = Field(default=15005, ge=1, le=65535, description="MCP server port (http transport)")

    # Security
    mask_error_details: bool = Field(
        default=True, description="Mask internal error details in responses (ToolError messages still pass)"
    )

    @field_validator("git_refresh_schedule")
    @classmethod
    def _check_cron(cls, value: str) -> str:
        value = value.strip()
        if value:
            try:
                Cron(value)
            except Exception as exc:
                raise ValueError(f"Invalid GIT_REFRESH_SCHEDULE cron expression '{value}': {exc}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().lower() or "info"

    def is_offline_mode(self) -> bool:
        """Check if running in offline mode (no git sync)."""
        return self.operation_mode == "offline"

    @property
    def docs_path(self) -> Path:
        """Directory the parser reads markdown from."""
        return self.git_local_path / self.git_docs_subpath
