"""Two-phase placeholder codec for script payloads.

encode: swap each transformable payload for a run-unique marker.
decode: swap each marker for its (guarded) transformed payload.

Markers carry the run nonce, so decoding only ever touches markers this
codec issued. Decoding is a single regex pass: text that a substitution
inserts is never rescanned.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping

from selectolax.lexbor import LexborHTMLParser

from scriptseal.errors import MissingResolvedResultError, PlaceholderIntegrityError
from scriptseal.extraction.locator import (
    LocatedScripts,
    Region,
    classify,
    splice_payloads,
)
from scriptseal.extraction.marker_constants import (
    MARKER_PREFIX,
    MARKER_TEMPLATE,
    NONCE_BYTES,
    marker_pattern,
)

logger = logging.getLogger(__name__)


def new_nonce(document: str = "") -> str:
    """Generate a run nonce whose markers cannot collide with *document*."""
    while True:
        nonce = secrets.token_hex(NONCE_BYTES)
        if f"{MARKER_PREFIX}{nonce}_" not in document:
            return nonce


class PlaceholderCodec:
    """Encode payloads to markers and resolve markers back to payloads."""

    def __init__(self, nonce: str) -> None:
        self.nonce = nonce
        self._pattern = marker_pattern(nonce)

    def marker(self, index: int) -> str:
        return MARKER_TEMPLATE.format(nonce=self.nonce, index=index)

    def encode(self, located: LocatedScripts) -> str:
        """Replace every transformable payload with its marker.

        Attributes and tag delimiters are left exactly as found.
        """

        def _marker_for(region: Region) -> str:
            if region.index is None:
                msg = f"Script at position {region.position} has no index"
                raise ValueError(msg)
            return self.marker(region.index)

        return splice_payloads(located.document, located.transformable, _marker_for)

    def verify_encoded(
        self, document: str, count: int, *, unterminated: bool = False
    ) -> None:
        """Check the encoded document against a real HTML parse.

        Every marker must be the sole text of its own script element, and
        no inline JavaScript the parser finds may be left without a marker.
        The second check catches scripts the tokenizer stepped over, which
        would otherwise ship unobfuscated.

        Args:
            document: Output of ``encode``.
            count: Number of transformable regions that were encoded.
            unterminated: The scan stopped at an unclosed ``<script>``; the
                parser's last script element is that one and never runs.

        Raises:
            PlaceholderIntegrityError: If any marker is missing, duplicated,
                or not the whole text of its own ``<script>`` element, or if
                an inline script was not located.
        """
        nodes = LexborHTMLParser(document).css("script")
        if unterminated and nodes:
            nodes = nodes[:-1]

        found: list[int] = []
        unlocated = 0
        for node in nodes:
            text = node.text(deep=True)
            match = self._pattern.fullmatch(text)
            if match is not None:
                found.append(int(match.group(1)))
            elif classify(dict(node.attributes), text) is None:
                unlocated += 1

        if sorted(found) != list(range(count)):
            msg = (
                f"Expected {count} placeholder script(s), "
                f"parsed {len(found)}: {sorted(found)}"
            )
            raise PlaceholderIntegrityError(msg)
        if unlocated:
            msg = (
                f"{unlocated} inline script(s) were not located for "
                "obfuscation and would be published as-is"
            )
            raise PlaceholderIntegrityError(msg)

    def indices_in(self, document: str) -> list[int]:
        """Marker indices present in *document*, in order of appearance."""
        return [int(m.group(1)) for m in self._pattern.finditer(document)]

    def decode(self, document: str, resolved: Mapping[int, str]) -> str:
        """Substitute each marker with its resolved payload.

        Args:
            document: Document containing this codec's markers.
            resolved: Transformed payloads keyed by region index.

        Returns:
            The reassembled document.

        Raises:
            MissingResolvedResultError: If a marker has no resolved payload.
        """
        missing = [i for i in self.indices_in(document) if i not in resolved]
        if missing:
            raise MissingResolvedResultError(missing[0])

        result = self._pattern.sub(lambda m: resolved[int(m.group(1))], document)
        logger.debug("Resolved %d placeholder(s)", len(resolved))
        return result
