"""Tests for smart filters, suggestions and presets."""

from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from omnisearch.models.filters import FilterPreset, SearchFilter
from omnisearch.models.result import CanonicalResult
from omnisearch.search.filters import SmartFilters, extract_file_type

from conftest import FIXED_NOW


def make_result(
    result_id: str,
    title: str = "Untitled",
    url: str | None = None,
    source: str = "Google Drive",
    integration_type: str = "google_drive",
    created_at: datetime | None = None,
    author: str | None = None,
    tags: tuple[str, ...] = (),
    size: int | None = None,
    visibility: str | None = None,
    content_type: str | None = None,
):
    return CanonicalResult(
        id=result_id,
        title=title,
        content="",
        source=source,
        integration_type=integration_type,
        url=url,
        created_at=created_at,
        author=author,
        tags=tags,
        size=size,
        visibility=visibility,
        content_type=content_type,
    )


@pytest.fixture
def smart_filters(fixed_clock):
    return SmartFilters(clock=fixed_clock)


@pytest.fixture
def documents():
    return [
        make_result("d1", "Budget.pdf", created_at=FIXED_NOW - timedelta(days=2), author="Alice Smith", size=5000),
        make_result("d2", "Plan.PDF", created_at=FIXED_NOW - timedelta(days=20), author="Bob", size=200),
        make_result("d3", "Notes", url="https://files.example.com/notes.pdf?dl=1", author="alice smith"),
        make_result("d4", "Sheet.xlsx", created_at=FIXED_NOW - timedelta(days=400), tags=("Finance", "Q3")),
        make_result(
            "m1",
            "Budget email",
            source="Gmail",
            integration_type="google_gmail",
            visibility="shared",
            content_type="email",
        ),
    ]


def f(type, operator, value, active=True):
    return SearchFilter(type=type, label=type, operator=operator, value=value, active=active)


class TestApplyFilters:
    def test_no_filters_returns_input(self, smart_filters, documents):
        assert smart_filters.apply_filters(documents, []) == documents

    def test_file_type_equals(self, smart_filters, documents):
        kept = smart_filters.apply_filters(documents, [f("file_type", "equals", "pdf")])
        assert [r.id for r in kept] == ["d1", "d2", "d3"]

    def test_file_type_in_and_not_in(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("file_type", "in", ["xlsx", ".doc"])])] == ["d4"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("file_type", "not_in", ["pdf"])])] == ["d4", "m1"]

    def test_relative_date(self, smart_filters, documents):
        kept = smart_filters.apply_filters(documents, [f("date_range", "greater_than", "last_week")])
        assert [r.id for r in kept] == ["d1"]

    def test_date_between_is_inclusive(self, smart_filters, documents):
        start = (FIXED_NOW - timedelta(days=20)).date().isoformat()
        end = (FIXED_NOW - timedelta(days=2)).date().isoformat()

        kept = smart_filters.apply_filters(documents, [f("date_range", "between", [start, end])])

        assert [r.id for r in kept] == ["d1", "d2"]

    def test_date_less_than(self, smart_filters, documents):
        kept = smart_filters.apply_filters(documents, [f("date_range", "less_than", "2024-01-01")])
        assert [r.id for r in kept] == ["d4"]

    def test_author_case_insensitive(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("author", "equals", "ALICE SMITH")])] == ["d1", "d3"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("author", "contains", "bo")])] == ["d2"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("author", "in", ["smith"])])] == ["d1", "d3"]

    def test_integration_matches_source_type_or_provider(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("integration", "equals", "gmail")])] == ["m1"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("integration", "equals", "google_gmail")])] == ["m1"]
        assert len(smart_filters.apply_filters(documents, [f("integration", "equals", "Google")])) == 5
        assert smart_filters.apply_filters(documents, [f("integration", "in", ["slack"])]) == []

    def test_tags(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("tags", "contains", "fin")])] == ["d4"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("tags", "in", ["q3"])])] == ["d4"]

    def test_size(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("size", "greater_than", 1000)])] == ["d1"]
        assert [r.id for r in smart_filters.apply_filters(documents, [f("size", "between", {"min": 100, "max": 300})])] == ["d2"]

    def test_visibility_and_content_type_defaults(self, smart_filters, documents):
        assert [r.id for r in smart_filters.apply_filters(documents, [f("visibility", "equals", "shared")])] == ["m1"]
        assert len(smart_filters.apply_filters(documents, [f("visibility", "equals", "private")])) == 4
        assert len(smart_filters.apply_filters(documents, [f("content_type", "equals", "document")])) == 4

    def test_filters_are_conjunctive(self, smart_filters, documents):
        kept = smart_filters.apply_filters(
            documents,
            [f("file_type", "equals", "pdf"), f("author", "contains", "alice")],
        )
        assert [r.id for r in kept] == ["d1", "d3"]

    def test_inactive_unknown_and_unsupported_are_noops(self, smart_filters, documents):
        filters = [
            f("file_type", "equals", "xlsx", active=False),
            f("sentiment", "equals", "positive"),
            f("size", "contains", 10),
        ]
        assert smart_filters.apply_filters(documents, filters) == documents

    @pytest.mark.parametrize("epoch", [1e20, -1e20, float("nan")])
    def test_out_of_range_epoch_is_noop(self, smart_filters, documents, epoch):
        for operator in ("greater_than", "less_than"):
            assert smart_filters.apply_filters(documents, [f("date_range", operator, epoch)]) == documents

        assert smart_filters.apply_filters(documents, [f("date_range", "between", [epoch, epoch])]) == documents

    @given(
        flags=st.lists(st.booleans(), max_size=8),
        value=st.sampled_from(["pdf", "xlsx", "docx"]),
    )
    @settings(max_examples=50, deadline=None)
    def test_filtering_is_monotone(self, flags, value):
        """Adding an active filter never adds results."""
        filters_obj = SmartFilters(clock=lambda: FIXED_NOW)
        items = [make_result(f"r{i}", f"file{i}.{'pdf' if flag else 'xlsx'}") for i, flag in enumerate(flags)]

        before = filters_obj.apply_filters(items, [])
        after = filters_obj.apply_filters(items, [f("file_type", "equals", value)])

        assert set(r.id for r in after) <= set(r.id for r in before)

    @given(
        rows=st.lists(
            st.tuples(
                st.sampled_from(["pdf", "xlsx", "docx"]),
                st.sampled_from(["Alice", "Bob", None]),
                st.sampled_from([("Gmail", "google_gmail"), ("Slack", "slack_messages"), ("Google Drive", "google_drive")]),
            ),
            max_size=10,
        ),
        file_type=st.sampled_from(["pdf", "xlsx"]),
        author=st.sampled_from(["alice", "bob"]),
        integration=st.sampled_from(["gmail", "slack", "google"]),
        use_author=st.booleans(),
    )
    @settings(max_examples=50, deadline=None)
    def test_independent_filters_commute(self, rows, file_type, author, integration, use_author):
        filters_obj = SmartFilters(clock=lambda: FIXED_NOW)
        items = [
            make_result(f"r{i}", f"file{i}.{ext}", source=source, integration_type=itype, author=who)
            for i, (ext, who, (source, itype)) in enumerate(rows)
        ]
        first = f("file_type", "equals", file_type)
        second = f("author", "contains", author) if use_author else f("integration", "equals", integration)

        a_then_b = filters_obj.apply_filters(filters_obj.apply_filters(items, [first]), [second])
        b_then_a = filters_obj.apply_filters(filters_obj.apply_filters(items, [second]), [first])
        together = filters_obj.apply_filters(items, [first, second])

        assert a_then_b == b_then_a == together


class TestExtractFileType:
    def test_url_wins_over_title(self):
        assert extract_file_type(make_result("x", "report.docx", url="https://x.example.com/a.pdf")) == "pdf"

    def test_none_without_extension(self):
        assert extract_file_type(make_result("x", "Meeting notes")) is None


class TestSuggestFilters:
    def test_empty_results(self, smart_filters):
        assert smart_filters.suggest_filters("q", []) == []

    def test_skewed_file_types(self, smart_filters):
        results = [make_result(f"r{i}", f"doc{i}.pdf") for i in range(3)] + [make_result("x", "sheet.xlsx")]

        suggestions = smart_filters.suggest_filters("docs", results)

        assert suggestions[0].type == "file_type"
        assert suggestions[0].value == "pdf"
        assert suggestions[0].confidence == 0.7

    def test_wide_date_span_suggests_recent(self, smart_filters):
        results = [
            make_result("new", created_at=FIXED_NOW),
            make_result("old", created_at=FIXED_NOW - timedelta(days=500)),
        ]

        suggestions = smart_filters.suggest_filters("q", results)

        assert suggestions[0].label == "Recent Documents"
        assert suggestions[0].value == "last_month"
        assert suggestions[0].confidence == 0.8

    def test_many_sources_and_authors(self, smart_filters):
        sources = ["Gmail", "Slack", "Asana", "Google Drive"]
        results = [
            make_result(f"r{i}", source=sources[i % 4], author=f"user{i}")
            for i in range(7)
        ]

        suggestions = smart_filters.suggest_filters("q", results)

        assert [s.type for s in suggestions] == ["integration", "author"]
        assert [s.confidence for s in suggestions] == sorted((s.confidence for s in suggestions), reverse=True)

    def test_suggestions_are_memoized(self, smart_filters):
        results = [make_result(f"r{i}", f"doc{i}.pdf") for i in range(3)]

        first = smart_filters.suggest_filters("docs", results)
        second = smart_filters.suggest_filters("docs", results)

        assert first == second
        assert smart_filters.suggestion_cache.stats.hits == 1

    def test_suggestion_converts_to_filter(self, smart_filters):
        results = [make_result(f"r{i}", f"doc{i}.pdf") for i in range(3)]
        suggestion = smart_filters.suggest_filters("docs", results)[0]

        search_filter = suggestion.to_filter()

        assert search_filter.active is True
        assert [r.id for r in smart_filters.apply_filters(results, [search_filter])] == ["r0", "r1", "r2"]


class TestCatalogAndPresets:
    def test_filter_types_catalog(self, smart_filters):
        types = {ft.type for ft in smart_filters.get_filter_types()}
        assert types == {
            "date_range",
            "file_type",
            "author",
            "integration",
            "tags",
            "size",
            "visibility",
            "content_type",
        }

    def test_create_and_toggle_filter(self, smart_filters):
        created = smart_filters.create_filter("file_type", "pdf")
        toggled = smart_filters.toggle_filter(created)

        assert created.active is True
        assert created.operator == "equals"
        assert toggled.active is False
        assert toggled.id == created.id

    def test_default_presets(self, smart_filters):
        ids = [p.id for p in smart_filters.get_presets()]
        assert ids == ["recent_documents", "important_documents", "my_documents"]

    def test_save_and_delete_preset(self, smart_filters):
        preset = FilterPreset(id="finance", name="Finance", filters=[f("tags", "in", ["finance"])])

        smart_filters.save_preset(preset)
        assert "finance" in [p.id for p in smart_filters.get_presets()]

        assert smart_filters.delete_preset("finance") is True
        assert smart_filters.delete_preset("finance") is False

    def test_preset_cap(self, fixed_clock):
        smart_filters = SmartFilters(clock=fixed_clock, max_presets=4)
        smart_filters.save_preset(FilterPreset(id="one", name="One"))

        with pytest.raises(ValueError):
            smart_filters.save_preset(FilterPreset(id="two", name="Two"))

        smart_filters.save_preset(FilterPreset(id="one", name="One renamed"))
