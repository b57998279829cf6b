"""Locate inline script containers and decide which ones get obfuscated.

The scan is a small tokenizer over the raw document rather than a DOM
round-trip: the output must reproduce every byte outside the transformed
payloads, which a parse-and-serialise cycle would not. Attribute strings
are parsed with lexbor so quoting and entity rules match a browser's.
"""

# Pattern: Functional Core (pure functions, no I/O)

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from selectolax.lexbor import LexborHTMLParser

from scriptseal.errors import NoTransformableContentError

logger = logging.getLogger(__name__)

# Explicit type values that still mean "classic JavaScript".
# Anything else with a non-empty type (application/json, module,
# text/template, ...) is passed through untouched.
JAVASCRIPT_TYPES = frozenset(("text/javascript", "application/javascript"))

SKIP_EXTERNAL = "external"
SKIP_NON_JAVASCRIPT = "non-javascript type"
SKIP_EMPTY = "empty"
SKIP_UNTERMINATED = "unterminated"

# Either a comment opener or the start of a start tag (group 1: tag name)
_TOKEN = re.compile(r"<!--|<([a-zA-Z][^\s/>]*)")

# Any start tag, script included; attributes run to the first '>'
# outside a quoted value
_START_TAG = re.compile(r"""<[a-zA-Z][^\s/>]*((?:[^>"']|"[^"]*"|'[^']*')*)>""")

# Elements whose content is text up to their own end tag, never markup
RAW_TEXT_ELEMENTS = frozenset(
    ("style", "textarea", "title", "xmp", "iframe", "noembed", "noframes")
)


def _end_tag(name: str) -> re.Pattern[str]:
    """End tag of *name*: the name, a tag-name terminator, then up to '>'."""
    return re.compile(rf"</{name}(?=[\s/>])[^>]*>", re.IGNORECASE)


@dataclass(frozen=True)
class Region:
    """One ``<script>`` container found in a document.

    ``index`` is the ordinal among transformable regions (0, 1, 2, ...) and
    is the identity used to match a payload to its transformed result.
    Pass-through regions have ``index=None`` and a ``skip_reason``.
    """

    position: int
    attrs: str
    payload: str
    payload_start: int
    payload_end: int
    index: int | None = None
    skip_reason: str | None = None

    @property
    def transformable(self) -> bool:
        return self.index is not None

    @property
    def code(self) -> str:
        """Payload with surrounding whitespace trimmed (what gets obfuscated)."""
        return self.payload.strip()


@dataclass(frozen=True)
class LocatedScripts:
    """Result of scanning a document: every script container, in order."""

    document: str
    regions: tuple[Region, ...]

    @property
    def transformable(self) -> tuple[Region, ...]:
        return tuple(r for r in self.regions if r.transformable)

    @property
    def skipped(self) -> tuple[Region, ...]:
        return tuple(r for r in self.regions if not r.transformable)

    @property
    def unterminated(self) -> bool:
        """True if the scan stopped at a <script> with no closing tag."""
        return any(r.skip_reason == SKIP_UNTERMINATED for r in self.regions)

    def shell(self) -> str:
        """Document with every transformable payload removed.

        Opening and closing tags (and their attributes) are kept verbatim.
        """
        return splice_payloads(self.document, self.transformable, lambda _r: "")


def parse_attributes(raw_attrs: str) -> dict[str, str | None]:
    """Parse the raw attribute string of a script opening tag.

    Args:
        raw_attrs: Everything between ``<script`` and the closing ``>``.

    Returns:
        Attribute names (lower-cased) to decoded values. Boolean attributes
        such as ``async`` map to None or an empty string.
    """
    if not raw_attrs.strip():
        return {}
    tree = LexborHTMLParser(f"<script{raw_attrs}></script>")
    node = tree.css_first("script")
    if node is None:
        return {}
    return {name.lower(): value for name, value in node.attributes.items()}


def classify(attributes: dict[str, str | None], payload: str) -> str | None:
    """Decide whether a script container is transformable.

    Returns:
        None if the container should be obfuscated, otherwise the reason
        it is passed through.
    """
    if "src" in attributes:
        return SKIP_EXTERNAL

    script_type = (attributes.get("type") or "").strip().lower()
    if script_type and script_type not in JAVASCRIPT_TYPES:
        return SKIP_NON_JAVASCRIPT

    if not payload.strip():
        return SKIP_EMPTY

    return None


def scan_scripts(document: str) -> LocatedScripts:
    """Find every script container in *document* and classify it.

    Only markup the HTML tokenizer would see as markup is considered:
    comments, quoted attribute values and the text of raw-text elements
    such as ``<style>`` and ``<textarea>`` are stepped over, so a
    ``<script>`` or ``<!--`` inside them is just text. An opening tag with
    no closing tag ends the scan and is recorded as pass-through.
    """
    regions: list[Region] = []
    next_index = 0
    pos = 0

    while True:
        token = _TOKEN.search(document, pos)
        if token is None:
            break

        if token.group(0) == "<!--":
            comment_end = document.find("-->", token.end())
            if comment_end == -1:
                break
            pos = comment_end + len("-->")
            continue

        open_tag = _START_TAG.match(document, token.start())
        if open_tag is None:
            # Unbalanced quote in the tag: not something we can bound safely
            logger.debug("Ignoring malformed tag at offset %d", token.start())
            pos = token.end()
            continue

        tag_name = token.group(1).lower()
        if tag_name != "script":
            pos = open_tag.end()
            if tag_name in RAW_TEXT_ELEMENTS:
                end_tag = _end_tag(tag_name).search(document, pos)
                if end_tag is None:
                    break
                pos = end_tag.end()
            continue

        raw_attrs = open_tag.group(1)
        payload_start = open_tag.end()
        close_tag = _end_tag("script").search(document, payload_start)

        if close_tag is None:
            logger.warning(
                "Unterminated <script> at offset %d left untouched", token.start()
            )
            regions.append(
                Region(
                    position=len(regions),
                    attrs=raw_attrs,
                    payload=document[payload_start:],
                    payload_start=payload_start,
                    payload_end=len(document),
                    skip_reason=SKIP_UNTERMINATED,
                )
            )
            break

        payload = document[payload_start : close_tag.start()]
        reason = classify(parse_attributes(raw_attrs), payload)
        regions.append(
            Region(
                position=len(regions),
                attrs=raw_attrs,
                payload=payload,
                payload_start=payload_start,
                payload_end=close_tag.start(),
                index=next_index if reason is None else None,
                skip_reason=reason,
            )
        )
        if reason is None:
            next_index += 1
        else:
            logger.debug("Script #%d passed through (%s)", len(regions) - 1, reason)

        pos = close_tag.end()

    return LocatedScripts(document=document, regions=tuple(regions))


def locate_scripts(document: str) -> LocatedScripts:
    """Scan *document* and require at least one transformable script.

    Raises:
        NoTransformableContentError: If no inline script qualifies.
    """
    located = scan_scripts(document)
    if not located.transformable:
        raise NoTransformableContentError
    logger.info(
        "Found %d inline script(s) to obfuscate, %d passed through",
        len(located.transformable),
        len(located.skipped),
    )
    return located


def splice_payloads(
    document: str,
    regions: Iterable[Region],
    replacement: Callable[[Region], str],
) -> str:
    """Replace the payload of each region with ``replacement(region)``.

    Regions are applied by their recorded offsets in document order, so two
    containers with identical text are never confused.
    """
    parts: list[str] = []
    cursor = 0
    for region in sorted(regions, key=lambda r: r.payload_start):
        parts.append(document[cursor : region.payload_start])
        parts.append(replacement(region))
        cursor = region.payload_end
    parts.append(document[cursor:])
    return "".join(parts)
