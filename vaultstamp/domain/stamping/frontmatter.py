"""Frontmatter block helpers.

A frontmatter block is a ``---`` line at the very start of a note, followed by
YAML key/value lines and a closing ``---`` line. Only a block anchored at
offset 0 counts; ``---`` rules further down the note are body text.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

__all__ = [
    "FRONTMATTER_DELIMITER",
    "FrontmatterParseError",
    "extract_body",
    "parse_frontmatter",
    "render_document",
    "rewrite_frontmatter",
    "split_frontmatter",
]

FRONTMATTER_DELIMITER = "---"

_FRONTMATTER_BLOCK = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)(?:\r?\n)?^---[ \t]*\r?(?:\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class FrontmatterParseError(ValueError):
    """Raised when a frontmatter block is not a valid YAML mapping."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


def split_frontmatter(raw_content: str) -> Tuple[Optional[str], str]:
    """Return ``(yaml_text, body)``; ``yaml_text`` is ``None`` without a block."""

    match = _FRONTMATTER_BLOCK.match(raw_content)
    if match is None:
        return None, raw_content
    return match.group("yaml"), raw_content[match.end():]


def extract_body(raw_content: str) -> str:
    """Strip a leading frontmatter block and return the remainder unchanged."""

    _, body = split_frontmatter(raw_content)
    return body


def parse_frontmatter(yaml_text: Optional[str]) -> Dict[str, Any]:
    """Parse the YAML inside a frontmatter block into a plain dict."""

    if yaml_text is None or not yaml_text.strip():
        return {}
    try:
        loaded = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        raise FrontmatterParseError(str(exc), cause=exc) from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise FrontmatterParseError(
            f"frontmatter must be a mapping, got {type(loaded).__name__}"
        )
    return loaded


def render_document(fields: Mapping[str, Any], body: str) -> str:
    """Serialize ``fields`` as a frontmatter block and prepend it to ``body``."""

    if not fields:
        yaml_text = ""
    else:
        yaml_text = yaml.safe_dump(
            dict(fields),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
    return f"{FRONTMATTER_DELIMITER}\n{yaml_text}{FRONTMATTER_DELIMITER}\n{body}"


def rewrite_frontmatter(
    raw_content: str, current: Mapping[str, Any], updated: Mapping[str, Any]
) -> str:
    """Return ``raw_content`` with its header edited from ``current`` to ``updated``.

    Only the top-level entries whose value changed are rewritten; every other
    header line, the delimiters and the body keep their exact text. New keys
    are appended at the end of the block. When the block cannot be edited line
    by line (flow style, quoted keys) the whole header is re-rendered.
    """

    match = _FRONTMATTER_BLOCK.match(raw_content)
    body = raw_content if match is None else raw_content[match.end():]
    if match is None:
        return render_document(updated, body)

    newline = "\r\n" if "\r\n" in match.group(0) else "\n"
    yaml_text = match.group("yaml")
    lines = re.split(r"\r?\n", yaml_text) if yaml_text else []

    for key in current:
        if key in updated and updated[key] == current[key]:
            continue
        span = _entry_span(lines, key)
        if span is None:
            return render_document(updated, body)
        start, end = span
        replacement = _render_entry(key, updated[key]) if key in updated else []
        lines[start:end] = replacement
    for key, value in updated.items():
        if key not in current:
            lines.extend(_render_entry(key, value))

    edited_yaml = newline.join(lines)
    try:
        reparsed = parse_frontmatter(edited_yaml)
    except FrontmatterParseError:
        reparsed = None
    if reparsed != dict(updated):
        return render_document(updated, body)

    opening = raw_content[: match.start("yaml")]
    closing = raw_content[match.end("yaml"): match.end()].lstrip("\r\n")
    separator = newline if edited_yaml else ""
    return f"{opening}{edited_yaml}{separator}{closing}{body}"


def _entry_span(lines: list[str], key: str) -> Optional[Tuple[int, int]]:
    key_line = re.compile(rf"{re.escape(str(key))}[ \t]*:(?:[ \t]|$)")
    for index, line in enumerate(lines):
        if not key_line.match(line):
            continue
        end = index + 1
        while end < len(lines) and _is_continuation(lines[end]):
            end += 1
        return index, end
    return None


def _is_continuation(line: str) -> bool:
    # Indented lines and block sequence items belong to the previous key.
    return line[:1] in (" ", "\t") or line == "-" or line.startswith("- ")


def _render_entry(key: str, value: Any) -> list[str]:
    dumped = yaml.safe_dump(
        {key: value},
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return dumped.rstrip("\n").split("\n")
