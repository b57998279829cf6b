"""Tests for the closing-tag escape applied to obfuscated output."""

from __future__ import annotations

import pytest

from scriptseal.extraction.safety import contains_closing_tag, escape_closing_tags


class TestEscapeClosingTags:
    """Tests for escape_closing_tags()."""

    def test_escapes_closing_tag(self) -> None:
        assert escape_closing_tags("var s='</script>';") == r"var s='<\/script>';"

    @pytest.mark.parametrize("tag", ["</SCRIPT>", "</Script>", "</sCrIpT >"])
    def test_case_insensitive_and_case_preserving(self, tag: str) -> None:
        escaped = escape_closing_tags(tag)
        assert escaped == "<\\/" + tag[2:]
        assert not contains_closing_tag(escaped)

    def test_escapes_every_occurrence(self) -> None:
        text = "a('</script>');b('</script>')"
        assert escape_closing_tags(text).count(r"<\/script>") == 2

    def test_escapes_without_trailing_gt(self) -> None:
        """'</script' followed by whitespace or '/' also closes the element."""
        assert escape_closing_tags("'</script\n>'") == "'<\\/script\n>'"
        assert escape_closing_tags("'</script/'") == "'<\\/script/'"

    def test_idempotent(self) -> None:
        text = "x='</script>';y='</SCRIPT>'"
        once = escape_closing_tags(text)
        assert escape_closing_tags(once) == once

    def test_other_content_unchanged(self) -> None:
        text = "if(a</b){c('<div></div>')}"
        assert escape_closing_tags(text) == text

    def test_opening_tags_unchanged(self) -> None:
        assert escape_closing_tags("'<script>'") == "'<script>'"


class TestContainsClosingTag:
    """Tests for contains_closing_tag()."""

    def test_detects(self) -> None:
        assert contains_closing_tag("a</ScRiPt>")

    def test_escaped_is_safe(self) -> None:
        assert not contains_closing_tag(r"a<\/script>")


class TestEscapeCommentOpeners:
    """Tests for the comment-opener half of escape_closing_tags()."""

    def test_escapes_comment_opener(self) -> None:
        assert escape_closing_tags("s='<!--'") == r"s='<\!--'"

    def test_double_escape_sequence_is_broken(self) -> None:
        """'<!--' then '<script' would keep the real end tag from closing."""
        escaped = escape_closing_tags("a='<!--<script>';")
        assert "<!--" not in escaped
        assert escaped == r"a='<\!--<script>';"

    def test_idempotent(self) -> None:
        once = escape_closing_tags("x='<!--</script>'")
        assert escape_closing_tags(once) == once
        assert once == r"x='<\!--<\/script>'"
