"""Locate the block documenting one ``[section]`` inside a markdown page.

Klipper documents each config section either as a heading such as
``### [bed_mesh]`` or as a bare ``[bed_mesh]`` label inside an example code
block. The extractor is a line-based heuristic: it knows about headings and
code fences but does not build a markdown tree, so unusual layouts may yield
a block that is too short or too long. A missing match returns ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
import re


HEADING_RE = re.compile(r"^(#{1,6})(?:[ \t]+|(?=\[))(.*)$")
FENCE_RE = re.compile(r"^[ \t]*(```|~~~)")
LABEL_START_RE = re.compile(r"^\[[a-z]", re.IGNORECASE)


@dataclass(frozen=True)
class _Line:
    text: str
    in_fence: bool

    @property
    def body(self) -> str:
        return self.text.rstrip("\r\n")

    def heading_level(self) -> int | None:
        if self.in_fence:
            return None
        match = HEADING_RE.match(self.body)
        return len(match.group(1)) if match else None


def option_variants(option_name: str) -> list[str]:
    """Spellings tried for an option, in order, without duplicates.

    >>> option_variants("bed_mesh")
    ['bed_mesh', 'bed mesh']
    """

    option = option_name.strip().strip("[]").strip()
    variants: list[str] = []
    for candidate in (option, option.replace("_", " "), option.replace("-", "_")):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def _split_lines(content: str) -> list[_Line]:
    lines: list[_Line] = []
    fence: str | None = None
    for raw in content.splitlines(keepends=True):
        marker = FENCE_RE.match(raw)
        if marker:
            token = marker.group(1)
            if fence is None:
                fence = token
                lines.append(_Line(raw, True))
                continue
            if token == fence:
                fence = None
                lines.append(_Line(raw, True))
                continue
        lines.append(_Line(raw, fence is not None))
    return lines


def _join(lines: list[_Line]) -> str:
    return "".join(line.text for line in lines).rstrip("\r\n")


def _match_heading(lines: list[_Line], variant: str) -> str | None:
    label = re.compile(r"^\[" + re.escape(variant) + r"[^\]\n]*\]", re.IGNORECASE)
    for index, line in enumerate(lines):
        level = line.heading_level()
        if level is None:
            continue
        heading = HEADING_RE.match(line.body)
        if heading is None or not label.match(heading.group(2)):
            continue
        end = len(lines)
        for offset in range(index + 1, len(lines)):
            next_level = lines[offset].heading_level()
            if next_level is not None and next_level <= level:
                end = offset
                break
        return _join(lines[index:end])
    return None


def _match_label(lines: list[_Line], variant: str) -> str | None:
    label = re.compile(r"^[ \t]*\[" + re.escape(variant) + r"[^\]\n]*\][ \t]*$", re.IGNORECASE)
    for index, line in enumerate(lines):
        if not label.match(line.body):
            continue
        end = len(lines)
        for offset in range(index + 1, len(lines)):
            candidate = lines[offset]
            if LABEL_START_RE.match(candidate.body) or candidate.heading_level() is not None:
                end = offset
                break

        context = ""
        for previous in reversed(lines[:index]):
            if previous.heading_level() is not None:
                context = previous.body + "\n\n"
                break
        return context + _join(lines[index:end])
    return None


def extract_config_section(content: str, option_name: str) -> str | None:
    """Return the block documenting ``option_name`` or ``None``.

    For each spelling of the option a ``#``-heading whose bracketed label
    starts with it is tried first, then a bare ``[label]`` line.
    """

    if not content or not option_name:
        return None

    lines = _split_lines(content)
    for variant in option_variants(option_name):
        block = _match_heading(lines, variant)
        if block:
            return block
        block = _match_label(lines, variant)
        if block:
            return block
    return None
