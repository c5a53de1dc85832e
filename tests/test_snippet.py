"""Unit tests for snippet extraction and keyword highlighting."""

from chatmemo.search.snippet import generate_snippet, highlight_keywords


def _plain(snippet: str) -> str:
    """Strip ellipses and highlight markers from a snippet."""
    return (
        snippet.removeprefix("...")
        .removesuffix("...")
        .replace("<mark>", "")
        .replace("</mark>", "")
    )


class TestGenerateSnippet:
    """Tests for generate_snippet()."""

    def test_empty_content_returns_empty_string(self):
        """Nothing to excerpt yields an empty string."""
        assert generate_snippet("", ["brown"]) == ""

    def test_short_content_is_highlighted_whole(self):
        """Content shorter than the window is returned in full."""
        snippet = generate_snippet("the quick brown fox jumps", ["brown"])
        assert snippet == "the quick <mark>brown</mark> fox jumps"

    def test_window_does_not_split_words(self):
        """A narrow window snaps to spaces instead of cutting 'quick' or 'fox'."""
        snippet = generate_snippet("the quick brown fox jumps", ["brown"], max_length=10)
        assert snippet == "...quick <mark>brown</mark> fox ..."

    def test_no_match_returns_prefix_with_ellipsis(self):
        """Without a match the leading max_length characters are returned."""
        content = "word " * 50
        snippet = generate_snippet(content, ["zebra"], max_length=150)
        assert snippet == content[:150] + "..."

    def test_no_match_short_content_has_no_ellipsis(self):
        """Short content without a match is returned unchanged."""
        assert generate_snippet("hello there", ["zebra"]) == "hello there"

    def test_match_is_case_insensitive(self):
        """Keywords match regardless of case and keep the original casing."""
        assert generate_snippet("Hello World", ["world"]) == "Hello <mark>World</mark>"

    def test_every_occurrence_is_highlighted(self):
        """All occurrences of all keywords are wrapped."""
        snippet = generate_snippet("fox and dog and fox", ["fox", "dog"])
        assert snippet.count("<mark>fox</mark>") == 2
        assert snippet.count("<mark>dog</mark>") == 1

    def test_window_centers_on_earliest_keyword(self):
        """The earliest match among all keywords anchors the window."""
        content = ("filler " * 30) + "alpha " + ("filler " * 30) + "omega"
        snippet = generate_snippet(content, ["omega", "alpha"], max_length=40)
        assert "<mark>alpha</mark>" in snippet
        assert "omega" not in snippet
        assert snippet.startswith("...")
        assert snippet.endswith("...")

    def test_window_edges_land_on_word_boundaries(self):
        """Both window edges fall next to spaces in long content."""
        content = ("lorem ipsum dolor sit amet " * 10) + "needle " + ("consectetur adipiscing elit " * 10)
        snippet = generate_snippet(content, ["needle"], max_length=40)

        plain = _plain(snippet)
        start = content.find(plain)
        end = start + len(plain)
        assert start > 0
        assert content[start - 1] == " "
        assert content[end] == " "

    def test_regex_characters_in_keywords_are_literal(self):
        """Keywords are matched literally, not as patterns."""
        snippet = generate_snippet("I write c++ every day", ["c++"])
        assert snippet == "I write <mark>c++</mark> every day"

    def test_custom_highlight_markers(self):
        """Callers can choose the highlight markup."""
        snippet = generate_snippet("find the needle", ["needle"], highlight=("**", "**"))
        assert snippet == "find the **needle**"


class TestHighlightKeywords:
    """Tests for highlight_keywords()."""

    def test_keyword_inside_another_is_marked_too(self):
        """A shorter keyword inside a longer one gets its own nested marker."""
        result = highlight_keywords("brown", ["row", "brown"])
        assert result == "<mark>b<mark>row</mark>n</mark>"

    def test_partially_overlapping_keywords_are_both_marked(self):
        """Keywords sharing characters are each wrapped; neither is dropped."""
        snippet = generate_snippet("abcd", ["abc", "bcd"])
        assert snippet == "<mark>a<mark>bc</mark>d</mark>"
        assert _plain(snippet) == "abcd"
        assert snippet.count("<mark>") == 2
        assert snippet.count("</mark>") == 2

    def test_adjacent_matches_close_before_opening(self):
        """A match ending where the next begins keeps markers well-formed."""
        assert highlight_keywords("abab", ["ab"]) == "<mark>ab</mark><mark>ab</mark>"

    def test_repeated_keywords_are_marked_once(self):
        """The same keyword given twice (in any case) wraps each occurrence once."""
        assert highlight_keywords("Fox", ["fox", "FOX"]) == "<mark>Fox</mark>"

    def test_marker_text_is_never_matched(self):
        """A keyword equal to marker text does not corrupt the markup."""
        result = highlight_keywords("mark the spot", ["mark", "spot"])
        assert result == "<mark>mark</mark> the <mark>spot</mark>"

    def test_no_keywords_returns_text_unchanged(self):
        """Empty keyword lists are a no-op."""
        assert highlight_keywords("unchanged", []) == "unchanged"
        assert highlight_keywords("unchanged", [""]) == "unchanged"
