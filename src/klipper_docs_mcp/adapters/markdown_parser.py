"""Parse a directory of Klipper markdown files into a document store."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
from pathlib import Path, PurePosixPath
import re

from klipper_docs_mcp.domain.model import Difficulty, Document, DocumentHeading, DocumentMetadata
from klipper_docs_mcp.errors import ParsingError
from klipper_docs_mcp.utils.front_matter import front_matter_tags, parse_front_matter


logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"
SKIPPED_DIRECTORIES = frozenset({"scripts", "klippy", "lib"})
WORDS_PER_MINUTE = 200

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+)$")
_FENCE_RE = re.compile(r"^[ \t]*(```|~~~)")
_ANCHOR_STRIP_RE = re.compile(r"[^\w\s-]")
_WHITESPACE_RE = re.compile(r"\s+")

# Filename fragment -> section, first match wins.
SECTION_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("config",), "config-reference"),
    (("g-code",), "g-codes"),
    (("mcu", "protocol"), "protocol"),
    (("probe", "bed", "level"), "calibration"),
    (("canbus", "tmc", "driver"), "hardware"),
    (("install", "bootloader"), "installation"),
    (("debug", "troubleshoot", "faq"), "troubleshooting"),
    (("api", "command"), "api"),
    (("slice", "octoprint"), "software"),
)
COMMUNITY_PAGES = frozenset({"contact", "contributing", "sponsors"})

ADVANCED_KEYWORDS = ("gcode_macro", "pin:", "mcu", "kinematics", "stepper", "endstop", "probe")
BEGINNER_KEYWORDS = ("getting started", "installation", "overview", "introduction", "basic")
KLIPPER_TAGS = (
    "configuration",
    "calibration",
    "troubleshooting",
    "gcode",
    "macro",
    "extruder",
    "bed",
    "probe",
    "endstop",
    "stepper",
    "heater",
    "fan",
    "display",
    "mcu",
    "installation",
    "upgrade",
)


def make_anchor(text: str) -> str:
    """GitHub-style heading anchor.

    >>> make_anchor("Bed Mesh (advanced)")
    'bed-mesh-advanced'
    """
    return _WHITESPACE_RE.sub("-", _ANCHOR_STRIP_RE.sub("", text.lower()))


def extract_headings(content: str) -> list[DocumentHeading]:
    """ATX headings outside fenced code blocks, in document order."""

    headings: list[DocumentHeading] = []
    fence: str | None = None
    for line in content.splitlines():
        marker = _FENCE_RE.match(line)
        if marker:
            if fence is None:
                fence = marker.group(1)
            elif marker.group(1) == fence:
                fence = None
            continue
        if fence is not None:
            continue
        match = _HEADING_RE.match(line)
        if match:
            text = match.group(2).strip()
            headings.append(DocumentHeading(level=len(match.group(1)), text=text, anchor=make_anchor(text)))
    return headings


def title_from_filename(path: PurePosixPath) -> str:
    """``Bed_Mesh.md`` -> ``Bed Mesh``."""
    words = re.sub(r"[_-]", " ", path.stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), words)


def classify_section(relative_path: PurePosixPath) -> str:
    """First directory component for nested files, otherwise a filename heuristic."""

    if len(relative_path.parts) > 1:
        return relative_path.parts[0]

    filename = relative_path.stem.lower()
    for fragments, section in SECTION_RULES:
        if any(fragment in filename for fragment in fragments):
            return section
    if filename in COMMUNITY_PAGES:
        return "community"
    return "general"


def classify_difficulty(content: str, headings: list[DocumentHeading]) -> Difficulty:
    lowered = content.lower()
    advanced = sum(1 for keyword in ADVANCED_KEYWORDS if keyword in lowered)
    beginner = sum(1 for keyword in BEGINNER_KEYWORDS if keyword in lowered)
    if advanced >= 3 or len(headings) > 20:
        return "advanced"
    if beginner >= 2 or len(headings) < 5:
        return "beginner"
    return "intermediate"


def collect_tags(content: str, front_matter: dict) -> list[str]:
    """Front matter tags followed by known Klipper vocabulary found in the text."""

    tags = front_matter_tags(front_matter)
    lowered = content.lower()
    tags.extend(tag for tag in KLIPPER_TAGS if tag in lowered)
    return list(dict.fromkeys(tags))


class MarkdownDocumentParser:
    """Walks a docs directory and builds `Document` values.

    Hidden directories and the source-code folders that ship next to the
    docs in the Klipper tree are skipped. Files are visited in sorted path
    order so the resulting store, and therefore search tie-breaks, are stable
    across runs.
    """

    def parse_directory(self, docs_path: Path | str) -> dict[str, Document]:
        """Parse every ``*.md`` file below ``docs_path``.

        Unreadable files are logged and skipped.

        Raises:
            ParsingError: ``docs_path`` does not exist or is not a directory.
        """

        root = Path(docs_path)
        logger.info("Parsing documentation from: %s", root)
        if not root.is_dir():
            raise ParsingError(
                f"Documentation directory not found: {root}",
                context="MarkdownDocumentParser.parse_directory",
            )

        documents: dict[str, Document] = {}
        for file_path in self._iter_markdown_files(root):
            try:
                document = self.parse_file(file_path, root)
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                logger.warning("Failed to parse file %s: %s", file_path, exc)
                continue
            documents[document.id] = document
            logger.debug("Parsed document: %s", document.id)

        logger.info("Parsed %d documents", len(documents))
        return documents

    def parse_file(self, file_path: Path, root: Path) -> Document:
        raw = file_path.read_text(encoding="utf-8")
        stat = file_path.stat()
        relative = PurePosixPath(file_path.relative_to(root).as_posix())

        front_matter, content = parse_front_matter(raw)
        headings = extract_headings(content)
        title = next((heading.text for heading in headings if heading.level == 1), None)
        if not title:
            title = title_from_filename(relative)

        word_count = len(content.split())
        metadata = DocumentMetadata(
            word_count=word_count,
            reading_time=math.ceil(word_count / WORDS_PER_MINUTE),
            difficulty=classify_difficulty(content, headings),
            tags=collect_tags(content, front_matter),
            headings=headings,
        )

        return Document(
            id=str(relative.with_suffix("")),
            title=title,
            content=content,
            section=classify_section(relative),
            subsection=relative.parts[1] if len(relative.parts) > 2 else None,
            file_path=str(relative),
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            metadata=metadata,
        )

    def _iter_markdown_files(self, root: Path) -> list[Path]:
        found: list[Path] = []
        for path in root.rglob(f"*{MARKDOWN_SUFFIX}"):
            relative_dirs = path.relative_to(root).parts[:-1]
            if any(part.startswith(".") or part in SKIPPED_DIRECTORIES for part in relative_dirs):
                continue
            if path.is_file():
                found.append(path)
        return sorted(found, key=lambda p: p.relative_to(root).as_posix())
