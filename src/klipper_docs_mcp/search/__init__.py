"""In-memory BM25F search over parsed Klipper documentation."""

from klipper_docs_mcp.search.config_section import extract_config_section
from klipper_docs_mcp.search.engine import SearchEngine
from klipper_docs_mcp.search.indexer import InvertedIndex, build_index
from klipper_docs_mcp.search.schema import Schema, create_default_schema


__all__ = [
    "InvertedIndex",
    "Schema",
    "SearchEngine",
    "build_index",
    "create_default_schema",
    "extract_config_section",
]
