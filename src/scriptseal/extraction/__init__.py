"""Script extraction: locating, placeholding, and guarding inline scripts."""

from scriptseal.extraction.locator import (
    JAVASCRIPT_TYPES,
    LocatedScripts,
    Region,
    locate_scripts,
    scan_scripts,
)
from scriptseal.extraction.placeholders import PlaceholderCodec, new_nonce
from scriptseal.extraction.safety import contains_closing_tag, escape_closing_tags

__all__ = [
    "JAVASCRIPT_TYPES",
    "LocatedScripts",
    "PlaceholderCodec",
    "Region",
    "contains_closing_tag",
    "escape_closing_tags",
    "locate_scripts",
    "new_nonce",
    "scan_scripts",
]
