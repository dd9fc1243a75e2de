from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no GUI or disk I/O; they can be
used across all layers of the toolkit.
"""

import re
import uuid
from typing import Container, Iterable

__all__ = [
    "slugify",
    "generate_node_id",
    "next_field_name",
    "format_title",
]


def slugify(text: str) -> str:
    """Return an identifier-safe slug version of *text*.

    Removes non-alphanumeric chars, converts whitespace/dashes to underscores,
    and lower-cases the result.
    """
    text = re.sub(r"[^\w\s-]", "", text or "").strip().lower()
    return re.sub(r"[-\s]+", "_", text)


def generate_node_id(kind: str, taken: Container[str] = ()) -> str:
    """Generate a globally unique node id prefixed with its kind.

    *taken* is checked so that an id already present in a tree is never
    handed out again, however unlikely a uuid4 collision is.
    """
    while True:
        candidate = f"{kind}_{uuid.uuid4().hex}"
        if candidate not in taken:
            return candidate


def next_field_name(element_type: str, existing_names: Iterable[str]) -> str:
    """Return the first ``<type>_<k>`` name (k >= 1) not in *existing_names*.

    Examples:
        >>> next_field_name("email", ["email_1", "text_1"])
        'email_2'
    """
    base = slugify(element_type) or "field"
    used = set(existing_names)
    k = 1
    while f"{base}_{k}" in used:
        k += 1
    return f"{base}_{k}"


def format_title(pattern: str, number: int) -> str:
    """Render a configured title pattern such as ``"Page {number}"``.

    A pattern without the placeholder gets the number appended.
    """
    if "{number}" not in pattern:
        return f"{pattern} {number}".strip()
    try:
        return pattern.format(number=number)
    except (KeyError, IndexError, ValueError):
        return f"{pattern} {number}".strip()
