"""Markdown rendering for tool and prompt responses.

Everything here is a pure function of domain values so the server module
only decides *what* to show.
"""

from __future__ import annotations

from collections.abc import Sequence
import re

from klipper_docs_mcp.domain.model import Document
from klipper_docs_mcp.domain.search import IndexStats, SearchResult


MAX_EXAMPLE_BLOCKS = 3
_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)


def _format_timestamp(stats: IndexStats) -> str:
    return stats.last_indexed.isoformat() if stats.last_indexed else "never"


def format_search_results(query: str, results: Sequence[SearchResult]) -> str:
    if not results:
        return f'No results found for "{query}". Try different keywords or browse available sections.'

    total = results[0].metadata.total_results
    blocks = []
    for position, result in enumerate(results, start=1):
        lines = [
            f"## {position}. {result.document.title}",
            f"**Section**: {result.document.section}",
            f"**Relevance**: {result.score:.2f}",
            f"**Path**: {result.document.file_path}",
        ]
        if result.highlights:
            lines.append(f"**Matched**: {', '.join(result.highlights)}")
        blocks.append("\n".join(lines) + f"\n\n{result.snippet}\n\n---")

    header = f'# Search Results for "{query}"\n\nFound {total} result(s)'
    if total > len(results):
        header += f", showing the top {len(results)}"
    return header + ":\n\n" + "\n\n".join(blocks)


def extract_code_blocks(content: str, limit: int = MAX_EXAMPLE_BLOCKS) -> list[str]:
    """First ``limit`` fenced code blocks of a markdown body."""
    return _CODE_BLOCK_RE.findall(content)[:limit]


def format_config_section(option: str, section_text: str, *, source_title: str | None = None) -> str:
    """Render an extracted block; without ``source_title`` it came from the config reference."""

    if source_title is None:
        return f"# Configuration: [{option}]\n\n**Source**: Klipper Configuration Reference\n\n{section_text}"
    return f"# Configuration: {option}\n\n**Source Document**: {source_title}\n\n{section_text}"


def format_config_document(document: Document, include_examples: bool) -> str:
    response = (
        f"# {document.title}\n\n"
        f"**Section**: {document.section}\n"
        f"**Difficulty**: {document.metadata.difficulty}\n"
        f"**Reading Time**: ~{document.metadata.reading_time} min\n\n"
        f"## Content\n\n{document.content}"
    )
    if include_examples:
        examples = extract_code_blocks(document.content)
        if examples:
            response += "\n\n## Configuration Examples\n\n" + "\n\n".join(examples)
    return response


def format_config_not_found(option: str) -> str:
    return (
        f'Configuration option "{option}" not found in Klipper documentation.\n\n'
        "Try one of these approaches:\n"
        '- Check the exact spelling (e.g., "extruder", "stepper_x", "bed_mesh")\n'
        "- Use the search tool for broader results\n"
        "- Browse the Config_Reference document directly"
    )


def format_document(document: Document) -> str:
    return f"# {document.title}\n\n{document.content}"


def format_section_listing(section: str, documents: Sequence[Document]) -> str:
    if not documents:
        return f'No documents found in section "{section}".'
    listing = "\n".join(f"- **{doc.title}** ({doc.file_path})" for doc in documents)
    return f'# Documents in "{section}"\n\n{listing}'


def format_browse_overview(stats: IndexStats) -> str:
    sections = "\n".join(f"- **{section}**" for section in stats.sections)
    return (
        "# Klipper Documentation Browser\n\n"
        f"## Available Sections\n\n{sections}\n\n"
        "## Statistics\n\n"
        f"- Total Documents: {stats.total_documents}\n"
        f"- Total Words: {stats.total_words:,}\n"
        f"- Last Indexed: {_format_timestamp(stats)}"
    )


def format_index_stats(stats: IndexStats) -> str:
    sections = "\n".join(f"- {section}" for section in stats.sections)
    return (
        "# Documentation Index Statistics\n\n"
        f"- **Total Documents**: {stats.total_documents}\n"
        f"- **Total Words**: {stats.total_words:,}\n"
        f"- **Sections**: {len(stats.sections)}\n"
        f"- **Last Indexed**: {_format_timestamp(stats)}\n\n"
        f"## Sections\n\n{sections}"
    )


def setup_prompt(printer_type: str | None = None) -> str:
    target = f"for a {printer_type} printer" if printer_type else "for your 3D printer"
    return (
        f"I need help setting up Klipper {target}. Please guide me through the initial "
        "configuration process, including:\n\n"
        "1. Basic printer configuration\n"
        "2. Stepper motor setup\n"
        "3. Endstop configuration\n"
        "4. Extruder settings\n"
        "5. Bed configuration\n\n"
        "Use the Klipper documentation to provide accurate configuration examples."
    )


def troubleshoot_prompt(issue: str) -> str:
    return (
        f"I'm experiencing the following issue with Klipper: {issue}\n\n"
        "Please help me troubleshoot this problem by:\n"
        "1. Identifying potential causes\n"
        "2. Suggesting diagnostic steps\n"
        "3. Providing solutions based on the Klipper documentation\n\n"
        "Search the documentation for relevant information and provide specific configuration "
        "examples if needed."
    )


def config_review_prompt(config_section: str) -> str:
    return (
        f'Please review my Klipper configuration for the "{config_section}" section.\n\n'
        "Look up the documentation for this configuration section and:\n"
        "1. Explain what each option does\n"
        "2. Suggest any improvements or optimizations\n"
        "3. Point out any potential issues or missing required options\n"
        "4. Provide example configurations from the documentation"
    )
