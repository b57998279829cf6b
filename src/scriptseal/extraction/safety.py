"""Keep transformed script text from closing its own container.

The HTML tokenizer ends script data at the first ``</script`` it sees,
whatever follows in the JavaScript. ``<\\/script`` is the same string to
a JavaScript engine and is invisible to the HTML tokenizer.

``<!--`` is the reverse hazard: followed later by ``<script`` it puts the
tokenizer in its double-escaped state, where the real ``</script>`` no
longer ends the element. ``<\\!--`` reads the same inside JavaScript
string, template and regex literals, which is where obfuscator output
carries such text.
"""

from __future__ import annotations

import re

_CLOSING_TAG = re.compile(r"</(script)", re.IGNORECASE)
_COMMENT_OPEN = "<!--"


def escape_closing_tags(text: str) -> str:
    r"""Escape every ``</script`` (any case) as ``<\/script``.

    Comment openers are escaped as ``<\!--`` too. Idempotent: escaped text
    contains neither sequence left to match.
    """
    text = _CLOSING_TAG.sub(r"<\\/\1", text)
    return text.replace(_COMMENT_OPEN, "<\\!--")


def contains_closing_tag(text: str) -> bool:
    """True if *text* would terminate an enclosing ``<script>`` element."""
    return _CLOSING_TAG.search(text) is not None
