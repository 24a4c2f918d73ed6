"""Change detection for frontmatter stamps.

``decide_stamp`` looks at a note's raw content and its current frontmatter and
works out which of ``created``/``modified``/``hash`` need writing. It is pure:
the caller owns reading the note and the read-modify-write of the header.

Two guards keep the watcher from looping on its own writes. A note whose raw
text already contains the fresh fingerprint was stamped for this exact body.
A note whose ``modified`` already equals the fresh timestamp, or whose
``hash`` already equals the fresh fingerprint, gets no stamp refresh.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .fingerprint import compute_body_fingerprint
from .frontmatter import extract_body

__all__ = [
    "CREATED_FIELD",
    "HASH_FIELD",
    "MODIFIED_FIELD",
    "STAMP_FIELDS",
    "TIMESTAMP_FORMAT",
    "StampDecision",
    "apply_stamp",
    "decide_stamp",
    "format_timestamp",
]

CREATED_FIELD = "created"
MODIFIED_FIELD = "modified"
HASH_FIELD = "hash"
STAMP_FIELDS = (CREATED_FIELD, MODIFIED_FIELD, HASH_FIELD)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M"


@dataclass(frozen=True)
class StampDecision:
    """Represents the outcome of a stamp evaluation."""

    write: Optional[Dict[str, str]]
    reason: str
    fingerprint: Optional[str] = None

    @property
    def should_write(self) -> bool:
        return bool(self.write)


def format_timestamp(epoch_ms: float) -> str:
    """Render epoch milliseconds as local ``YYYY-MM-DDTHH:MM``."""

    return datetime.fromtimestamp(epoch_ms / 1000).strftime(TIMESTAMP_FORMAT)


def _field_text(fields: Mapping[str, Any], key: str) -> Optional[str]:
    value = fields.get(key)
    if value is None or value == "":
        return None
    return str(value)


def decide_stamp(
    raw_content: str,
    creation_time_ms: float,
    modification_time_ms: float,
    existing_fields: Mapping[str, Any],
) -> StampDecision:
    """Decide which stamp fields to write for a note."""

    body = extract_body(raw_content).strip()
    if not body:
        return StampDecision(None, "empty_body")

    fingerprint = compute_body_fingerprint(body)
    if fingerprint in raw_content:
        return StampDecision(None, "hash_already_recorded", fingerprint)

    fresh = {
        CREATED_FIELD: format_timestamp(creation_time_ms),
        MODIFIED_FIELD: format_timestamp(modification_time_ms),
        HASH_FIELD: fingerprint,
    }

    write: Dict[str, str] = {}
    candidate: Dict[str, str] = {}
    for key in STAMP_FIELDS:
        current = _field_text(existing_fields, key)
        if current is None:
            write[key] = fresh[key]
            candidate[key] = fresh[key]
        else:
            candidate[key] = current

    if (
        candidate[MODIFIED_FIELD] == fresh[MODIFIED_FIELD]
        or candidate[HASH_FIELD] == fresh[HASH_FIELD]
    ):
        if write:
            return StampDecision(write, "defaults_applied", fingerprint)
        return StampDecision(None, "already_current", fingerprint)

    write[MODIFIED_FIELD] = fresh[MODIFIED_FIELD]
    write[HASH_FIELD] = fresh[HASH_FIELD]
    return StampDecision(write, "content_changed", fingerprint)


def apply_stamp(
    fields: Mapping[str, Any], write: Optional[Mapping[str, str]]
) -> Dict[str, Any]:
    """Return a copy of ``fields`` with ``write`` merged in, order preserved."""

    merged = dict(fields)
    if write:
        merged.update(write)
    return merged
