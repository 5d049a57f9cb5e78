"""Tests for result filtering, snippets and highlighting."""

import typer

from lore.query import (
    apply_limit,
    create_snippet,
    filter_records,
    highlight_query,
    matching_rejected,
)


class TestFilterRecords:
    def test_file_filter_is_substring(self, record_factory):
        records = [record_factory("src/auth.py", id="1"), record_factory("docs/readme.md", id="2")]
        assert [r.id for r in filter_records(records, file_filter="src/")] == ["1"]

    def test_agent_filter(self, record_factory):
        records = [record_factory(id="1", agent_id="claude"), record_factory(id="2", agent_id="gpt")]
        assert [r.id for r in filter_records(records, agent_filter="cla")] == ["1"]

    def test_no_filters(self, record_factory):
        records = [record_factory(id="1"), record_factory(id="2")]
        assert filter_records(records) == records


class TestApplyLimit:
    def test_truncates(self, record_factory):
        records = [record_factory(id=str(i)) for i in range(5)]
        assert len(apply_limit(records, 2)) == 2

    def test_none_keeps_all(self, record_factory):
        records = [record_factory(id=str(i)) for i in range(3)]
        assert apply_limit(records, None) == records

    def test_zero(self, record_factory):
        assert apply_limit([record_factory()], 0) == []


class TestMatchingRejected:
    def test_case_insensitive_name_match(self, record_factory):
        record = record_factory(rejected=["Redis", "Memcached"])
        assert [a.name for a in matching_rejected(record, "redis")] == ["Redis"]


class TestCreateSnippet:
    def test_short_text_returned_whole(self):
        assert create_snippet("Use JWT tokens", "jwt") == "Use JWT tokens"

    def test_context_window_with_ellipses(self):
        text = "a" * 100 + "NEEDLE" + "b" * 200
        snippet = create_snippet(text, "needle")
        assert snippet.startswith("...")
        assert snippet.endswith("...")
        assert "..." + "a" * 50 + "NEEDLE" in snippet
        assert len(snippet) <= 153

    def test_match_at_start_has_no_leading_ellipsis(self):
        text = "NEEDLE" + "b" * 200
        snippet = create_snippet(text, "needle")
        assert not snippet.startswith("...")
        assert snippet.endswith("...")

    def test_newlines_collapsed(self):
        assert create_snippet("first line\nsecond line", "second") == "first line second line"

    def test_bounded_length(self):
        text = "x" * 60 + "needle" + "y" * 300
        assert len(create_snippet(text, "needle", max_len=40)) <= 43

    def test_no_match_returns_prefix(self):
        text = "z" * 300
        snippet = create_snippet(text, "absent")
        assert snippet == "z" * 150 + "..."

    def test_no_match_short_text(self):
        assert create_snippet("short", "absent") == "short"

    def test_no_match_trims_whitespace(self):
        assert create_snippet("\n  padded reasoning  \n", "absent") == "padded reasoning"

    def test_query_with_regex_characters(self):
        assert "a.b(c)" in create_snippet("value a.b(c) here", "a.b(c)")


class TestHighlightQuery:
    def test_styles_each_occurrence(self):
        highlighted = highlight_query("JWT and jwt", "jwt")
        assert highlighted.count(typer.style("JWT", fg=typer.colors.YELLOW, bold=True)) == 1
        assert highlighted.count(typer.style("jwt", fg=typer.colors.YELLOW, bold=True)) == 1

    def test_preserves_original_case(self):
        assert "JWT" in highlight_query("JWT", "jwt")

    def test_empty_query_unchanged(self):
        assert highlight_query("text", "") == "text"

    def test_no_match_unchanged(self):
        assert highlight_query("text", "zzz") == "text"
