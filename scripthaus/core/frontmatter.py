"""YAML frontmatter at the top of a playbook.

A playbook may start with a block such as:

    ---
    title: Deploy scripts
    description: Everything needed to ship the web app
    ---

The block is metadata only; command extraction skips it. A leading
thematic break is only taken as frontmatter when the text up to the
closing delimiter is a YAML mapping, otherwise it stays part of the body.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"
FRONTMATTER_END_DELIMITERS = ("---", "...")


def split_frontmatter(lines: List[str]) -> Tuple[Optional[Dict[str, Any]], int]:
    """Find a frontmatter block at the start of a document.

    Args:
        lines: Document lines without line terminators

    Returns:
        Tuple of (frontmatter dict or None, index of the first body line)
    """
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return None, 0

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() in FRONTMATTER_END_DELIMITERS:
            break
    else:
        # Unterminated, so it is not frontmatter
        return None, 0

    try:
        frontmatter = yaml.safe_load("\n".join(lines[1:idx]))
    except yaml.YAMLError as e:
        logger.debug("leading block is not YAML frontmatter: %s", e)
        return None, 0

    if not isinstance(frontmatter, dict):
        return None, 0
    return frontmatter, idx + 1


def parse_frontmatter(text: str) -> Dict[str, Any]:
    """Parse the frontmatter of a playbook.

    Args:
        text: Full playbook source

    Returns:
        Frontmatter dict (empty if not found or invalid)
    """
    frontmatter, _ = split_frontmatter(text.split("\n"))
    return frontmatter or {}
