"""Tests for front matter parsing."""

from __future__ import annotations

from kbplan.ingestion.frontmatter import as_string_tuple, parse_front_matter


class TestParseFrontMatter:
    """Test the front matter splitter."""

    def test_no_front_matter(self) -> None:
        """Files without a block keep their whole text as body."""
        text = "# Title\n\nBody\n"
        front = parse_front_matter(text)

        assert front.present is False
        assert front.incomplete is True
        assert front.metadata == {}
        assert front.body == text

    def test_valid_block(self) -> None:
        """A well-formed block is parsed into metadata and body."""
        text = "---\ntitle: Hello\nTags: [a, b]\ndifficulty: advanced\n---\n\n# Hello\n"
        front = parse_front_matter(text)

        assert front.present is True
        assert front.incomplete is False
        assert front.get_text("title") == "Hello"
        assert front.get_list("tags") == ("a", "b")
        assert front.get_text("difficulty") == "advanced"
        assert front.body == "# Hello\n"

    def test_dots_close_block(self) -> None:
        """A block may be closed with three dots."""
        front = parse_front_matter("---\ntitle: Hi\n...\nbody\n")
        assert front.get_text("title") == "Hi"
        assert front.body == "body\n"

    def test_empty_block(self) -> None:
        """An empty block is present but carries no metadata."""
        front = parse_front_matter("---\n---\nbody\n")
        assert front.present is True
        assert front.incomplete is False
        assert front.metadata == {}

    def test_unterminated_block(self) -> None:
        """An unterminated block is reported and the text kept as body."""
        text = "---\ntitle: Hi\n\n# Body\n"
        front = parse_front_matter(text)

        assert front.incomplete is True
        assert "unterminated" in (front.error or "")
        assert front.body == text

    def test_invalid_yaml(self) -> None:
        """Broken YAML is reported as an error."""
        front = parse_front_matter("---\ntitle: [unclosed\n---\nbody\n")

        assert front.incomplete is True
        assert front.error is not None
        assert front.metadata == {}
        assert front.body == "body\n"

    def test_non_mapping(self) -> None:
        """A block that is not a mapping is reported as an error."""
        front = parse_front_matter("---\n- one\n- two\n---\nbody\n")
        assert front.incomplete is True
        assert "mapping" in (front.error or "")

    def test_extra_keys(self) -> None:
        """Unrecognised keys are kept as extras."""
        front = parse_front_matter("---\ntitle: T\nowner: team\n---\n")
        assert front.extra == {"owner": "team"}


class TestAsStringTuple:
    """Test list normalization."""

    def test_comma_separated(self) -> None:
        """Comma separated strings are split."""
        assert as_string_tuple("a, b , a,") == ("a", "b")

    def test_list(self) -> None:
        """Lists are converted item by item."""
        assert as_string_tuple(["Table", None, "Page", "Table"]) == ("Table", "Page")

    def test_none(self) -> None:
        """None gives an empty tuple."""
        assert as_string_tuple(None) == ()

    def test_scalar(self) -> None:
        """A scalar becomes a one-item tuple."""
        assert as_string_tuple(3) == ("3",)
