"""Unit tests for MCP tool, resource, prompt and route registration."""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

from fastmcp import Client
from fastmcp.exceptions import ToolError
import pytest
from starlette.testclient import TestClient

from klipper_docs_mcp.config import Settings
from klipper_docs_mcp.search.engine import SearchEngine
from klipper_docs_mcp.services.refresh_scheduler import RefreshSchedulerService
from klipper_docs_mcp.server import build_health_payload, create_server, lookup_config_option, register_tools


CONFIG_REFERENCE = """# Configuration reference

## Extruder

### [extruder]

The extruder section describes the hotend heater and stepper.

```
[extruder]
step_pin: PA1
```

### [heater_bed]

The heater_bed section describes the bed heater.
"""

SKEW_CORRECTION = """# Skew correction

Some intro.

## [skew_correction]

Enable skew_correction to fix skew.

## Usage

Run SET_SKEW.
"""

PRESSURE_ADVANCE = """# Pressure advance

Set pressure_advance in the extruder section to reduce ooze.

```
SET_PRESSURE_ADVANCE ADVANCE=0.05
```
"""


class ToolCaptureMCP:
    """Minimal FastMCP stub that records registered tools."""

    def __init__(self) -> None:
        self.tools: dict[str, dict[str, Any]] = {}

    def tool(
        self, name: str, annotations: dict[str, Any] | None = None
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.tools[name] = {"func": func, "annotations": annotations or {}}
            return func

        return decorator


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, search_min_score=0.0)


@pytest.fixture
def engine(make_document, settings: Settings) -> SearchEngine:
    engine = SearchEngine(settings)
    engine.build_index(
        {
            "Config_Reference": make_document(
                "Config_Reference",
                title="Configuration reference",
                content=CONFIG_REFERENCE,
                section="config-reference",
            ),
            "Skew_Correction": make_document(
                "Skew_Correction", title="Skew correction", content=SKEW_CORRECTION, section="calibration"
            ),
            "Pressure_Advance": make_document(
                "Pressure_Advance", title="Pressure advance", content=PRESSURE_ADVANCE, section="calibration"
            ),
        }
    )
    return engine


@pytest.fixture
def tools(engine: SearchEngine) -> dict[str, Callable[..., Any]]:
    mcp = ToolCaptureMCP()
    register_tools(mcp, engine)  # type: ignore[arg-type]
    return {name: entry["func"] for name, entry in mcp.tools.items()}


def test_all_tools_are_read_only(engine: SearchEngine) -> None:
    mcp = ToolCaptureMCP()
    register_tools(mcp, engine)  # type: ignore[arg-type]

    assert set(mcp.tools) == {"search_klipper_docs", "get_config_option", "browse_docs", "get_index_stats"}
    assert all(entry["annotations"]["readOnlyHint"] for entry in mcp.tools.values())


class TestLookupConfigOption:
    def test_found_in_config_reference(self, engine: SearchEngine) -> None:
        text = lookup_config_option(engine, "extruder")

        assert text.startswith("# Configuration: [extruder]\n\n**Source**: Klipper Configuration Reference")
        assert "step_pin: PA1" in text
        assert "heater_bed" not in text

    def test_brackets_are_ignored(self, engine: SearchEngine) -> None:
        assert lookup_config_option(engine, "[heater_bed]").endswith("describes the bed heater.")

    def test_found_via_search(self, engine: SearchEngine) -> None:
        text = lookup_config_option(engine, "skew_correction")

        assert text == (
            "# Configuration: skew_correction\n\n**Source Document**: Skew correction\n\n"
            "## [skew_correction]\n\nEnable skew_correction to fix skew."
        )

    def test_falls_back_to_whole_document(self, engine: SearchEngine) -> None:
        text = lookup_config_option(engine, "pressure_advance")

        assert text.startswith("# Pressure advance\n\n**Section**: calibration")
        assert "## Configuration Examples\n\n```\nSET_PRESSURE_ADVANCE ADVANCE=0.05\n```" in text

    def test_whole_document_without_examples(self, engine: SearchEngine) -> None:
        text = lookup_config_option(engine, "pressure_advance", include_examples=False)

        assert "## Configuration Examples" not in text

    def test_not_found(self, engine: SearchEngine) -> None:
        text = lookup_config_option(engine, "nonexistent_option_xyz")

        assert text.startswith('Configuration option "nonexistent_option_xyz" not found')


class TestTools:
    @pytest.mark.asyncio
    async def test_search(self, tools) -> None:
        text = await tools["search_klipper_docs"](query="extruder")

        assert text.startswith('# Search Results for "extruder"')
        assert "Configuration reference" in text

    @pytest.mark.asyncio
    async def test_search_with_section_filter(self, tools) -> None:
        text = await tools["search_klipper_docs"](query="extruder", section="calibration")

        assert "## 1. Pressure advance" in text
        assert "Configuration reference" not in text

    @pytest.mark.asyncio
    async def test_search_without_matches(self, tools) -> None:
        text = await tools["search_klipper_docs"](query="zzzzqqq")

        assert text.startswith('No results found for "zzzzqqq"')

    @pytest.mark.asyncio
    async def test_get_config_option(self, tools) -> None:
        text = await tools["get_config_option"](option="extruder")

        assert text.startswith("# Configuration: [extruder]")

    @pytest.mark.asyncio
    async def test_browse_overview_section_and_document(self, tools) -> None:
        overview = await tools["browse_docs"]()
        listing = await tools["browse_docs"](section="calibration")
        document = await tools["browse_docs"](path="Skew_Correction")

        assert "- **calibration**\n- **config-reference**" in overview
        assert "- Total Documents: 3" in overview
        assert "- **Pressure advance** (Pressure_Advance.md)" in listing
        assert "- **Skew correction** (Skew_Correction.md)" in listing
        assert document.startswith("# Skew correction\n\n# Skew correction")

    @pytest.mark.asyncio
    async def test_browse_missing_document(self, tools) -> None:
        with pytest.raises(ToolError, match="Document not found: Nope"):
            await tools["browse_docs"](path="Nope")

    @pytest.mark.asyncio
    async def test_index_stats(self, tools) -> None:
        text = await tools["get_index_stats"]()

        assert "**Total Documents**: 3" in text
        assert "**Sections**: 2" in text

    @pytest.mark.asyncio
    async def test_tools_before_first_index(self, settings: Settings) -> None:
        mcp = ToolCaptureMCP()
        register_tools(mcp, SearchEngine(settings))  # type: ignore[arg-type]

        with pytest.raises(ToolError, match="still being built"):
            await mcp.tools["search_klipper_docs"]["func"](query="extruder")
        with pytest.raises(ToolError, match="still being built"):
            await mcp.tools["get_config_option"]["func"](option="extruder")


class TestServer:
    @pytest.mark.asyncio
    async def test_tools_resources_and_prompts_are_exposed(self, engine: SearchEngine, settings: Settings) -> None:
        mcp = create_server(engine, settings)

        async with Client(mcp) as client:
            tool_names = {tool.name for tool in await client.list_tools()}
            contents = await client.read_resource("klipper://docs/Skew_Correction")
            prompt = await client.get_prompt("klipper_setup", {"printer_type": "delta"})

        assert tool_names == {"search_klipper_docs", "get_config_option", "browse_docs", "get_index_stats"}
        assert contents[0].text == SKEW_CORRECTION
        assert "for a delta printer" in prompt.messages[0].content.text

    def test_health_payload(self, engine: SearchEngine, settings: Settings) -> None:
        payload = build_health_payload(engine, settings)

        assert payload["status"] == "healthy"
        assert payload["documents"] == 3
        assert payload["operation_mode"] == "offline"
        assert payload["last_indexed"] is not None
        assert payload["refresh"] is None

    def test_health_route_reports_starting_before_first_index(self, settings: Settings) -> None:
        client = TestClient(create_server(SearchEngine(settings), settings).http_app(path="/mcp"))

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "starting"
        assert response.json()["documents"] == 0

    def test_health_and_metrics_routes(self, engine: SearchEngine, settings: Settings) -> None:
        client = TestClient(create_server(engine, settings).http_app(path="/mcp"))

        health = client.get("/health")
        metrics = client.get("/metrics")

        assert health.status_code == 200
        assert health.json()["name"] == "mcp-klipper"
        assert metrics.status_code == 200
        assert "index_document_count" in metrics.text

    def test_health_route_reports_refresh_scheduler_stats(self, engine: SearchEngine, settings: Settings) -> None:
        scheduler = RefreshSchedulerService(SimpleNamespace(sync=AsyncMock()), AsyncMock(), "0 * * * *")
        client = TestClient(create_server(engine, settings, scheduler).http_app(path="/mcp"))

        refresh = client.get("/health").json()["refresh"]

        assert refresh["refresh_schedule"] == "0 * * * *"
        assert refresh["running"] is False
        assert refresh["total_syncs"] == 0
        assert refresh["consecutive_failures"] == 0
        assert refresh["last_result"] is None
