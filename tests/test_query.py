"""Tests for query parsing."""

from __future__ import annotations

from mdfinder.index.query import QueryPlan, parse_query


class TestParseQuery:
    """Test parse_query."""

    def test_plain_terms(self) -> None:
        plan = parse_query("install guide")
        assert plan == QueryPlan(includes=("install", "guide"))

    def test_exact_and_excluded(self) -> None:
        plan = parse_query("'Setup guide !Draft")

        assert plan.exact == ("Setup",)
        assert plan.includes == ("guide",)
        assert plan.excludes == ("draft",)

    def test_quoted_exact_phrase(self) -> None:
        plan = parse_query("'\"Test Document\" notes")

        assert plan.exact == ("Test Document",)
        assert plan.includes == ("notes",)

    def test_bare_markers_are_ignored(self) -> None:
        plan = parse_query("' ! term")
        assert plan == QueryPlan(includes=("term",))

    def test_empty_and_exclusion_only(self) -> None:
        assert parse_query("").is_empty
        assert parse_query("   ").is_empty
        assert parse_query("!draft").is_empty

    def test_scoring_terms(self) -> None:
        assert parse_query("a 'B !c").scoring_terms == ("a", "B")
