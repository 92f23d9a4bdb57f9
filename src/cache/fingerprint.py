# src/cache/fingerprint.py — v4
"""Version fingerprint of a user's completed-resource set.

SHA-256 over the JSON array of the sorted, de-duplicated ids. Identical
sets hash identically regardless of insertion order; any change to the
set changes the digest. JSON encoding keeps the canonical form
unambiguous for every id, including empty ones and ids holding
separators.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable


def compute_fingerprint(resource_ids: Iterable[str]) -> str:
    """Return the hex SHA-256 digest of the canonical resource-set form."""
    canonical = json.dumps(sorted(set(resource_ids)), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
