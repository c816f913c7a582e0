"""YAML front matter parsing for markdown documents.

Front matter is an optional YAML mapping between two ``---`` lines at the very
top of a file::

    ---
    title: Bed Mesh
    tags: [calibration, probe]
    ---
    # Bed Mesh

Klipper's own docs rarely carry front matter, but forks and local notes
sometimes do.
"""

import re
from typing import Any

import yaml


DELIMITER = "---"

_FRONT_MATTER_RE = re.compile(
    rf"^{re.escape(DELIMITER)}[ \t]*\r?\n(.*?)\r?\n{re.escape(DELIMITER)}[ \t]*(?:\r?\n|$)",
    re.DOTALL,
)


def parse_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from markdown content.

    Returns:
        Tuple of (front_matter_dict, markdown_content). When there is no
        front matter, or it is not a valid YAML mapping, the dict is empty and
        the content is returned unchanged.

    Example:
        >>> metadata, body = parse_front_matter("---\\ntitle: Probe\\n---\\n# Probe")
        >>> metadata["title"]
        'Probe'
        >>> body
        '# Probe'
    """
    match = _FRONT_MATTER_RE.match(content)
    if not match:
        return {}, content

    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, content

    if not isinstance(metadata, dict):
        return {}, content

    return metadata, content[match.end() :]


def front_matter_tags(metadata: dict[str, Any]) -> list[str]:
    """Normalize the ``tags`` entry to a list of lowercase strings.

    Accepts a YAML list or a comma separated string.
    """
    raw = metadata.get("tags")
    if raw is None:
        return []
    if isinstance(raw, str):
        candidates = raw.split(",")
    elif isinstance(raw, (list, tuple, set)):
        candidates = [str(item) for item in raw]
    else:
        candidates = [str(raw)]
    return [tag.strip().lower() for tag in candidates if tag and tag.strip()]
