"""Unit tests for the query engine: readiness, filtering, ranking and stats."""

from __future__ import annotations

import pytest

from klipper_docs_mcp.config import Settings
from klipper_docs_mcp.domain.search import SearchOptions
from klipper_docs_mcp.errors import IndexBuildError, IndexNotReadyError, SearchError
from klipper_docs_mcp.search.engine import SearchEngine, compute_highlights
from klipper_docs_mcp.search.schema import Schema, TextField


@pytest.fixture
def engine() -> SearchEngine:
    return SearchEngine(Settings())


@pytest.fixture
def lenient_engine() -> SearchEngine:
    """Engine that keeps every match; small corpora give common terms a tiny IDF."""
    return SearchEngine(Settings(search_min_score=0.0))


def test_search_before_first_build_raises_not_ready(engine: SearchEngine) -> None:
    assert not engine.is_ready()

    with pytest.raises(IndexNotReadyError) as excinfo:
        engine.search("extruder")

    assert isinstance(excinfo.value, SearchError)


def test_empty_store_is_queryable_and_returns_nothing(engine: SearchEngine) -> None:
    engine.build_index({})

    assert engine.is_ready()
    assert engine.search("extruder") == []
    assert engine.search("") == []


def test_single_document_scenario(engine: SearchEngine, make_document) -> None:
    engine.build_index(
        {
            "Config_Reference": make_document(
                "Config_Reference",
                title="Extruder Configuration",
                content="The extruder section configures the hotend.",
                section="config-reference",
            )
        }
    )

    results = engine.search("extruder")

    assert len(results) == 1
    result = results[0]
    assert result.document.id == "Config_Reference"
    assert result.score >= 0.1
    assert "extruder" in result.highlights
    assert result.metadata.total_results == 1
    assert result.metadata.query == "extruder"
    assert result.metadata.search_time_ms >= 0


def test_nonsense_query_returns_empty_list(engine: SearchEngine, make_document) -> None:
    engine.build_index({"a": make_document("a", content="probe calibration")})

    assert engine.search("zzqqxx") == []
    assert engine.search("!!! ???") == []


def test_section_filter_is_exact_match(lenient_engine: SearchEngine, make_document) -> None:
    engine = lenient_engine
    engine.build_index(
        {
            "a": make_document("a", content="fan control", section="hardware"),
            "b": make_document("b", content="fan speed", section="config-reference"),
            "c": make_document("c", content="fan noise", section="hardware-extra"),
        }
    )

    results = engine.search("fan", SearchOptions(section="hardware"))

    assert [result.document.id for result in results] == ["a"]
    assert results[0].metadata.filters is not None
    assert results[0].metadata.filters.section == "hardware"


def test_limit_returns_prefix_of_full_ranking(lenient_engine: SearchEngine, make_document) -> None:
    engine = lenient_engine
    documents = {
        f"doc{i:02d}": make_document(f"doc{i:02d}", content=" ".join(["fan"] * (i + 1) + ["filler"] * 20))
        for i in range(15)
    }
    engine.build_index(documents)

    full = engine.search("fan", SearchOptions(limit=50))
    top = engine.search("fan", SearchOptions(limit=5))

    assert len(full) == 15
    assert [r.document.id for r in top] == [r.document.id for r in full[:5]]
    assert all(r.metadata.total_results == 15 for r in top)


def test_default_limit_comes_from_settings(make_document) -> None:
    engine = SearchEngine(Settings(search_max_results=3, search_min_score=0.0))
    engine.build_index({f"d{i}": make_document(f"d{i}", content="heater") for i in range(6)})

    assert len(engine.search("heater")) == 3


def test_min_score_drops_weak_matches(make_document) -> None:
    engine = SearchEngine(Settings(search_min_score=1000.0))
    engine.build_index({"a": make_document("a", title="Heater", content="heater")})

    assert engine.search("heater") == []


def test_results_sorted_by_score_descending(engine: SearchEngine, make_document) -> None:
    engine.build_index(
        {
            "body": make_document("body", title="Notes", content="stepper wiring notes"),
            "title": make_document("title", title="Stepper", content="unrelated words"),
            "tag": make_document("tag", title="Misc", content="misc", tags=["stepper"]),
        }
    )

    results = engine.search("stepper")
    scores = [result.score for result in results]

    assert scores == sorted(scores, reverse=True)
    assert results[0].document.id == "title"


def test_identical_documents_keep_store_order(engine: SearchEngine, make_document) -> None:
    engine.build_index({name: make_document(name, title="Fan", content="fan") for name in ("b", "c", "a")})

    assert [r.document.id for r in engine.search("fan")] == ["b", "c", "a"]


def test_exclude_content_keeps_snippet(engine: SearchEngine, make_document) -> None:
    engine.build_index({"a": make_document("a", content="probe offsets are measured with PROBE_CALIBRATE")})

    results = engine.search("probe", SearchOptions(include_content=False))

    assert results[0].document.content == ""
    assert "probe" in results[0].snippet.lower()
    assert engine.get_document("a").content != ""


def test_stats_before_and_after_build(engine: SearchEngine, make_document) -> None:
    before = engine.get_stats()
    assert before.total_documents == 0
    assert before.sections == []
    assert before.last_indexed is None

    engine.build_index(
        {
            "one": make_document("one", section="a", word_count=10),
            "two": make_document("two", section="b", word_count=20),
            "three": make_document("three", section="a", word_count=30),
        }
    )
    stats = engine.get_stats()

    assert stats.total_documents == 3
    assert stats.total_words == 60
    assert stats.sections == ["a", "b"]
    assert stats.last_indexed is not None


def test_document_lookups(engine: SearchEngine, make_document) -> None:
    assert engine.get_document("missing") is None
    assert engine.get_all_documents() == []

    engine.build_index(
        {
            "x": make_document("x", section="hardware"),
            "y": make_document("y", section="api"),
            "z": make_document("z", section="hardware"),
        }
    )

    assert engine.get_document("y").section == "api"
    assert engine.get_document("missing") is None
    assert [doc.id for doc in engine.get_documents_by_section("hardware")] == ["x", "z"]
    assert engine.get_sections() == ["api", "hardware"]


def test_rebuild_replaces_index(engine: SearchEngine, make_document) -> None:
    engine.build_index({"old": make_document("old", content="extruder")})
    engine.build_index({"new": make_document("new", content="heater")})

    assert engine.search("extruder") == []
    assert [r.document.id for r in engine.search("heater")] == ["new"]
    assert engine.get_document("old") is None


def test_failed_build_keeps_previous_index(make_document) -> None:
    def extract_title(document):
        if document.id == "broken":
            raise RuntimeError("bad field")
        return document.title

    schema = Schema(fields=[TextField("title", 1.0, extract_title), TextField("content", 1.0, lambda d: d.content)])
    engine = SearchEngine(Settings(), schema=schema)
    engine.build_index({"good": make_document("good", content="extruder")})

    with pytest.raises(IndexBuildError) as excinfo:
        engine.build_index({"broken": make_document("broken", content="heater")})

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert [r.document.id for r in engine.search("extruder")] == ["good"]
    assert engine.get_stats().total_documents == 1


def test_failed_first_build_leaves_engine_not_ready(make_document) -> None:
    def explode(document):
        raise ValueError("boom")

    engine = SearchEngine(Settings(), schema=Schema(fields=[TextField("title", 1.0, explode)]))

    with pytest.raises(IndexBuildError):
        engine.build_index({"a": make_document("a")})

    assert not engine.is_ready()
    with pytest.raises(IndexNotReadyError):
        engine.search("anything")


def test_highlights_use_substring_overlap() -> None:
    matched = frozenset({"probe", "calibrate", "bed"})

    assert compute_highlights(matched, ["probes"]) == ["probe"]
    assert compute_highlights(matched, ["calib", "bed"]) == ["bed", "calibrate"]
    assert compute_highlights(matched, ["nozzle"]) == []
