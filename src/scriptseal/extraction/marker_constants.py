"""Marker format constants for script payload placeholders.

A marker stands in for one inline script payload while the rest of the
document is processed. The nonce makes markers unique to a single run, so
text that merely looks like a marker (from another run, or written by hand)
is never resolved.

Used by extraction/placeholders.py (PlaceholderCodec).
"""

from __future__ import annotations

import re

# Format: __OBF_PLACEHOLDER_{nonce}_{index}__
# Plain identifier characters only: valid as script text and as markup text.
MARKER_PREFIX = "__OBF_PLACEHOLDER_"
MARKER_TEMPLATE = MARKER_PREFIX + "{nonce}_{index}__"

# 6 random bytes -> 12 hex characters
NONCE_BYTES = 6


def marker_pattern(nonce: str) -> re.Pattern[str]:
    """Compile the pattern matching markers of one run only."""
    return re.compile(re.escape(f"{MARKER_PREFIX}{nonce}_") + r"(\d+)__")
