"""Post-ranking filters, facet suggestions and filter presets."""

import logging
import re
import threading
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, time, timedelta
from typing import Any, TypeVar

from omnisearch.models.filters import (
    FilterOption,
    FilterPreset,
    FilterSuggestion,
    FilterTypeInfo,
    SearchFilter,
)
from omnisearch.models.result import CanonicalResult
from omnisearch.search.cache import BoundedTTLCache
from omnisearch.search.transformer import parse_timestamp

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=CanonicalResult)

MAX_PRESETS = 20

RELATIVE_PERIODS: dict[str, timedelta] = {
    "last_week": timedelta(days=7),
    "last_month": timedelta(days=30),
    "last_quarter": timedelta(days=90),
    "last_year": timedelta(days=365),
}

_FILE_TYPE_RE = re.compile(r"\.([a-zA-Z0-9]+)(?:\?|$)")

DEFAULT_VISIBILITY = "private"
DEFAULT_CONTENT_TYPE = "document"


def extract_file_type(result: CanonicalResult) -> str | None:
    """File extension from the url, else from the title; None if neither has one."""
    for candidate in (result.url, result.title):
        if candidate:
            match = _FILE_TYPE_RE.search(candidate)
            if match:
                return match.group(1).lower()
    return None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _lower_list(value: Any) -> list[str]:
    return [str(v).lower() for v in _as_list(value)]


def _bounds(value: Any) -> tuple[Any, Any] | None:
    """Read ``[low, high]`` or ``{"start"/"min", "end"/"max"}``."""
    if isinstance(value, dict):
        low = value.get("start", value.get("min"))
        high = value.get("end", value.get("max"))
        return low, high
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class SmartFilters:
    """Applies filters to results and proposes new ones.

    Filters are pure predicates over canonical fields: results are never
    mutated and the order of independent filters does not matter. Unknown
    filter types, unsupported operators and unreadable values are no-ops.
    """

    FILTER_TYPES: tuple[FilterTypeInfo, ...] = (
        FilterTypeInfo(
            type="date_range",
            label="Date Range",
            description="Filter by creation or modification date",
            operators=["between", "greater_than", "less_than"],
            input_type="date",
            options=[
                FilterOption(value="last_week", label="Last Week"),
                FilterOption(value="last_month", label="Last Month"),
                FilterOption(value="last_quarter", label="Last Quarter"),
                FilterOption(value="last_year", label="Last Year"),
            ],
        ),
        FilterTypeInfo(
            type="file_type",
            label="File Type",
            description="Filter by file extension",
            operators=["equals", "in", "not_in"],
            input_type="multiselect",
            options=[
                FilterOption(value="pdf", label="PDF"),
                FilterOption(value="doc", label="Word Document"),
                FilterOption(value="docx", label="Word Document (DOCX)"),
                FilterOption(value="xls", label="Excel Spreadsheet"),
                FilterOption(value="xlsx", label="Excel Spreadsheet (XLSX)"),
                FilterOption(value="ppt", label="PowerPoint Presentation"),
                FilterOption(value="pptx", label="PowerPoint Presentation (PPTX)"),
                FilterOption(value="txt", label="Text File"),
                FilterOption(value="csv", label="CSV"),
            ],
        ),
        FilterTypeInfo(
            type="author",
            label="Author",
            description="Filter by author, sender or owner",
            operators=["equals", "contains", "in", "not_in"],
            input_type="multiselect",
        ),
        FilterTypeInfo(
            type="integration",
            label="Source",
            description="Filter by data source",
            operators=["equals", "in", "not_in"],
            input_type="multiselect",
            options=[
                FilterOption(value="google", label="Google Workspace"),
                FilterOption(value="microsoft", label="Microsoft 365"),
                FilterOption(value="slack", label="Slack"),
                FilterOption(value="asana", label="Asana"),
                FilterOption(value="quickbooks", label="QuickBooks"),
                FilterOption(value="procore", label="Procore"),
            ],
        ),
        FilterTypeInfo(
            type="tags",
            label="Tags",
            description="Filter by tags or labels",
            operators=["contains", "in", "not_in"],
            input_type="multiselect",
        ),
        FilterTypeInfo(
            type="size",
            label="File Size",
            description="Filter by size in bytes",
            operators=["greater_than", "less_than", "between"],
            input_type="range",
        ),
        FilterTypeInfo(
            type="visibility",
            label="Visibility",
            description="Filter by sharing level",
            operators=["equals", "in", "not_in"],
            input_type="select",
            options=[
                FilterOption(value="public", label="Public"),
                FilterOption(value="private", label="Private"),
                FilterOption(value="shared", label="Shared"),
                FilterOption(value="internal", label="Internal"),
            ],
        ),
        FilterTypeInfo(
            type="content_type",
            label="Content Type",
            description="Filter by kind of content",
            operators=["equals", "in", "not_in"],
            input_type="multiselect",
            options=[
                FilterOption(value="document", label="Document"),
                FilterOption(value="spreadsheet", label="Spreadsheet"),
                FilterOption(value="email", label="Email"),
                FilterOption(value="message", label="Message"),
                FilterOption(value="event", label="Event"),
                FilterOption(value="contact", label="Contact"),
                FilterOption(value="task", label="Task"),
                FilterOption(value="invoice", label="Invoice"),
            ],
        ),
    )

    def __init__(
        self,
        suggestion_cache: BoundedTTLCache | None = None,
        clock: Callable[[], datetime] | None = None,
        max_presets: int = MAX_PRESETS,
    ):
        """Initialize smart filters.

        Args:
            suggestion_cache: Bounded cache memoizing suggestions
            clock: Returns "now" for relative date filters
            max_presets: Maximum stored presets
        """
        self.suggestion_cache = suggestion_cache or BoundedTTLCache(max_size=500, ttl=300)
        self.clock = clock or (lambda: datetime.now(UTC))
        self.max_presets = max_presets
        self._presets: dict[str, FilterPreset] = {p.id: p for p in self.default_presets()}
        self._presets_lock = threading.Lock()

        self._predicates: dict[str, Callable[[CanonicalResult, str, Any], bool | None]] = {
            "date_range": self._match_date,
            "file_type": self._match_file_type,
            "author": self._match_author,
            "integration": self._match_integration,
            "tags": self._match_tags,
            "size": self._match_size,
            "visibility": self._match_visibility,
            "content_type": self._match_content_type,
        }

    # Contract A: apply

    def apply_filters(self, results: Iterable[R], filters: Iterable[SearchFilter]) -> list[R]:
        """Keep results that pass every active filter.

        Args:
            results: Ranked or canonical results (order is preserved)
            filters: Filters to apply; inactive ones are ignored

        Returns:
            Surviving results
        """
        results = list(results)
        active = [f for f in filters if f.active]
        if not active:
            return results

        for f in active:
            if f.type not in self._predicates:
                logger.debug(f"Ignoring unknown filter type '{f.type}'")

        filtered = [r for r in results if all(self.matches(r, f) for f in active)]
        logger.info(f"Filters applied: {len(active)} active, {len(results)} -> {len(filtered)} results")
        return filtered

    def matches(self, result: CanonicalResult, search_filter: SearchFilter) -> bool:
        """Whether one result passes one filter (True for no-op filters)."""
        if not search_filter.active:
            return True
        predicate = self._predicates.get(search_filter.type)
        if predicate is None:
            return True
        verdict = predicate(result, search_filter.operator, search_filter.value)
        # None means the operator or value is unsupported for this type.
        return True if verdict is None else verdict

    def _resolve_date(self, value: Any, end_of_day: bool = False) -> datetime | None:
        if isinstance(value, str) and value in RELATIVE_PERIODS:
            return self.clock() - RELATIVE_PERIODS[value]
        parsed = parse_timestamp(value)
        if parsed is None:
            return None
        if end_of_day and isinstance(value, str) and len(value.strip()) == 10:
            parsed = datetime.combine(parsed.date(), time.max, tzinfo=parsed.tzinfo)
        return parsed

    def _match_date(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        if isinstance(value, str) and value in RELATIVE_PERIODS:
            cutoff = self._resolve_date(value)
            date = result.effective_date
            return date is not None and date >= cutoff

        if operator == "between":
            bounds = _bounds(value)
            if bounds is None:
                return None
            start = self._resolve_date(bounds[0]) if bounds[0] is not None else None
            end = self._resolve_date(bounds[1], end_of_day=True) if bounds[1] is not None else None
            if start is None and end is None:
                return None
            date = result.effective_date
            if date is None:
                return False
            return (start is None or date >= start) and (end is None or date <= end)

        if operator in ("greater_than", "less_than"):
            threshold = self._resolve_date(value)
            if threshold is None:
                return None
            date = result.effective_date
            if date is None:
                return False
            return date > threshold if operator == "greater_than" else date < threshold

        return None

    def _match_file_type(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        file_type = extract_file_type(result)
        wanted = [v.lstrip(".") for v in _lower_list(value)]
        if operator == "equals":
            return file_type is not None and bool(wanted) and file_type == wanted[0]
        if operator == "in":
            return file_type is not None and file_type in wanted
        if operator == "not_in":
            return file_type not in wanted
        return None

    def _match_author(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        author = (result.author or "").lower()
        wanted = _lower_list(value)
        if operator == "equals":
            return bool(author) and bool(wanted) and author == wanted[0]
        if operator == "contains":
            return bool(author) and bool(wanted) and wanted[0] in author
        if operator == "in":
            return bool(author) and any(w in author for w in wanted)
        if operator == "not_in":
            return not any(w in author for w in wanted) if author else True
        return None

    def _match_integration(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        names = {result.source.lower(), result.integration_type.lower(), result.provider.lower()}
        wanted = _lower_list(value)
        if operator == "equals":
            return bool(wanted) and wanted[0] in names
        if operator == "in":
            return any(w in names for w in wanted)
        if operator == "not_in":
            return not any(w in names for w in wanted)
        return None

    def _match_tags(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        tags = [t.lower() for t in result.tags]
        wanted = _lower_list(value)
        if operator == "contains":
            return any(w in tag for tag in tags for w in wanted)
        if operator == "in":
            return any(tag in wanted for tag in tags)
        if operator == "not_in":
            return not any(tag in wanted for tag in tags)
        return None

    def _match_size(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        if operator == "between":
            bounds = _bounds(value)
            if bounds is None:
                return None
            low, high = _number(bounds[0]), _number(bounds[1])
            if low is None and high is None:
                return None
            if result.size is None:
                return False
            return (low is None or result.size >= low) and (high is None or result.size <= high)

        if operator in ("greater_than", "less_than"):
            threshold = _number(value)
            if threshold is None:
                return None
            if result.size is None:
                return False
            return result.size > threshold if operator == "greater_than" else result.size < threshold

        return None

    def _match_membership(self, actual: str, operator: str, value: Any) -> bool | None:
        wanted = _as_list(value)
        if operator == "equals":
            return bool(wanted) and actual == wanted[0]
        if operator == "in":
            return actual in wanted
        if operator == "not_in":
            return actual not in wanted
        return None

    def _match_visibility(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        return self._match_membership(result.visibility or DEFAULT_VISIBILITY, operator, value)

    def _match_content_type(self, result: CanonicalResult, operator: str, value: Any) -> bool | None:
        return self._match_membership(result.content_type or DEFAULT_CONTENT_TYPE, operator, value)

    # Contract B: suggest

    def suggest_filters(self, query: str, results: list[CanonicalResult]) -> list[FilterSuggestion]:
        """Propose filters from the result distribution, highest confidence first.

        Suggestions are advisory only and memoized per (query, result ids).
        """
        if not results:
            return []

        key = BoundedTTLCache.make_key("suggest", query, ",".join(r.id for r in results))
        cached = self.suggestion_cache.get(key)
        if cached is not None:
            return list(cached)

        suggestions = self._analyze(results)
        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        self.suggestion_cache.set(key, tuple(suggestions))
        return suggestions

    def _analyze(self, results: list[CanonicalResult]) -> list[FilterSuggestion]:
        suggestions: list[FilterSuggestion] = []

        dates = [r.effective_date for r in results if r.effective_date is not None]
        if len(dates) > 1 and (max(dates) - min(dates)).days > 365:
            suggestions.append(
                FilterSuggestion(
                    type="date_range",
                    label="Recent Documents",
                    operator="greater_than",
                    value="last_month",
                    confidence=0.8,
                    reason="Results span over a year, consider filtering to recent documents",
                )
            )

        file_types = Counter(t for t in (extract_file_type(r) for r in results) if t)
        if file_types:
            top_type, top_count = file_types.most_common(1)[0]
            skewed = len(results) >= 3 and top_count / len(results) >= 0.6
            if len(file_types) > 5 or skewed:
                suggestions.append(
                    FilterSuggestion(
                        type="file_type",
                        label=f"Focus on {top_type}",
                        operator="equals",
                        value=top_type,
                        confidence=0.7,
                        reason=f"Most results are {top_type} files",
                    )
                )

        sources = Counter(r.source for r in results)
        if len(sources) > 3:
            top_source = sources.most_common(1)[0][0]
            suggestions.append(
                FilterSuggestion(
                    type="integration",
                    label=f"From {top_source}",
                    operator="equals",
                    value=top_source,
                    confidence=0.6,
                    reason=f"Most results come from {top_source}",
                )
            )

        authors = Counter(r.author for r in results if r.author)
        if len(authors) > 5:
            top_author = authors.most_common(1)[0][0]
            suggestions.append(
                FilterSuggestion(
                    type="author",
                    label=f"By {top_author}",
                    operator="equals",
                    value=top_author,
                    confidence=0.5,
                    reason=f"Many results by {top_author}",
                )
            )

        return suggestions

    # Catalog and construction helpers

    def get_filter_types(self) -> list[FilterTypeInfo]:
        return list(self.FILTER_TYPES)

    def create_filter(self, type: str, value: Any, operator: str = "equals") -> SearchFilter:
        """Create an active filter labelled from the catalog."""
        info = next((ft for ft in self.FILTER_TYPES if ft.type == type), None)
        return SearchFilter(type=type, label=info.label if info else type, operator=operator, value=value)

    @staticmethod
    def toggle_filter(search_filter: SearchFilter) -> SearchFilter:
        return search_filter.model_copy(update={"active": not search_filter.active})

    # Presets

    @staticmethod
    def default_presets() -> list[FilterPreset]:
        return [
            FilterPreset(
                id="recent_documents",
                name="Recent Documents",
                description="Documents from the last 30 days",
                category="Time",
                filters=[
                    SearchFilter(
                        id="recent_date",
                        type="date_range",
                        label="Last 30 Days",
                        operator="greater_than",
                        value="last_month",
                    )
                ],
            ),
            FilterPreset(
                id="important_documents",
                name="Important Documents",
                description="PDFs and Word documents",
                category="Type",
                filters=[
                    SearchFilter(
                        id="important_files",
                        type="file_type",
                        label="Important File Types",
                        operator="in",
                        value=["pdf", "doc", "docx"],
                    )
                ],
            ),
            FilterPreset(
                id="my_documents",
                name="My Documents",
                description="Documents only visible to me",
                category="Ownership",
                filters=[
                    SearchFilter(
                        id="my_files",
                        type="visibility",
                        label="My Files",
                        operator="equals",
                        value="private",
                    )
                ],
            ),
        ]

    def get_presets(self) -> list[FilterPreset]:
        with self._presets_lock:
            return list(self._presets.values())

    def save_preset(self, preset: FilterPreset) -> FilterPreset:
        """Insert or replace a preset.

        Raises:
            ValueError: If adding a new preset would exceed the cap
        """
        with self._presets_lock:
            if preset.id not in self._presets and len(self._presets) >= self.max_presets:
                raise ValueError(f"Cannot store more than {self.max_presets} filter presets")
            self._presets[preset.id] = preset
        return preset

    def delete_preset(self, preset_id: str) -> bool:
        with self._presets_lock:
            return self._presets.pop(preset_id, None) is not None
