"""Body fingerprint utilities for the stamping flow.

The stored ``hash`` frontmatter field is the fingerprint of the trimmed note
body. It has to be identical across runs and processes, otherwise the
idempotency checks in ``decision`` would rewrite every note on restart.
"""

from __future__ import annotations

import hashlib

__all__ = ["BODY_FINGERPRINT_ALGO", "compute_body_fingerprint"]

BODY_FINGERPRINT_ALGO = "sha1(body.strip())"


def compute_body_fingerprint(body: str) -> str:
    """Return the lowercase hex SHA-1 digest of ``body`` encoded as UTF-8."""

    return hashlib.sha1(body.encode("utf-8")).hexdigest()
