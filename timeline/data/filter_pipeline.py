"""
Filter Pipeline - Derives the visible event set from raw records and criteria.

filter_events is a pure function: the selector option lists it needs are
derived from the records it is given, so "every option selected" and the ALL
sentinel always produce the same result and repeated calls are reproducible.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, List, Sequence, Union

from timeline.data.records import MULTI_CATEGORY, TimelineEvent

logger = logging.getLogger(__name__)

# Select-all sentinel for topic and source selections
ALL = "all"

Selection = Union[FrozenSet[str], str]


@dataclass(frozen=True)
class FilterCriteria:
    """
    Active filter state.

    Attributes:
        active_categories: Enabled legend categories ('multi' covers
            multi-category events)
        key_events_enabled: Legend toggle for key events
        selected_topics: Selected topic tokens, or ALL
        selected_sources: Selected source names, or ALL
        key_events_only: Show only key events
        search_text: Case-insensitive substring matched against title and notes
    """

    active_categories: FrozenSet[str] = frozenset()
    key_events_enabled: bool = True
    selected_topics: Selection = ALL
    selected_sources: Selection = ALL
    key_events_only: bool = False
    search_text: str = ""

    def __post_init__(self):
        object.__setattr__(self, "active_categories", frozenset(self.active_categories))
        object.__setattr__(self, "selected_topics", _as_selection(self.selected_topics))
        object.__setattr__(self, "selected_sources", _as_selection(self.selected_sources))

    @classmethod
    def show_everything(cls, records: Iterable[TimelineEvent]) -> "FilterCriteria":
        """Criteria with every legend category on and every option selected."""
        return cls(active_categories=frozenset(legend_keys(records)))

    def with_category_toggled(self, key: str) -> "FilterCriteria":
        if key in self.active_categories:
            return replace(self, active_categories=self.active_categories - {key})
        return replace(self, active_categories=self.active_categories | {key})

    def with_key_events(self, enabled: bool) -> "FilterCriteria":
        return replace(self, key_events_enabled=enabled)

    def with_topics(self, topics: Selection) -> "FilterCriteria":
        return replace(self, selected_topics=_as_selection(topics))

    def with_sources(self, sources: Selection) -> "FilterCriteria":
        return replace(self, selected_sources=_as_selection(sources))

    def with_search(self, text: str) -> "FilterCriteria":
        return replace(self, search_text=text)


def _as_selection(values: Selection) -> Selection:
    if values == ALL:
        return ALL
    return frozenset(values)


def topic_options(records: Iterable[TimelineEvent]) -> List[str]:
    """Sorted distinct valid topics across the records."""
    return sorted({topic for event in records for topic in event.valid_topics})


def source_options(records: Iterable[TimelineEvent]) -> List[str]:
    """Sorted distinct non-empty sources across the records."""
    return sorted({event.source for event in records if event.source})


def legend_keys(records: Iterable[TimelineEvent]) -> List[str]:
    """Distinct single categories plus the multi-category key."""
    keys = {category for event in records for category in event.categories}
    return sorted(keys) + [MULTI_CATEGORY]


def title_case(token: str) -> str:
    """Display label for a lower-cased topic token ("gas attack" -> "Gas Attack")."""
    return re.sub(r"[^\W_]+(?:['’-][^\W_]+)*", lambda m: m.group(0)[0].upper() + m.group(0)[1:], token)


def _selection_passes(values: Sequence[str], selection: Selection, options: Sequence[str]) -> bool:
    """
    Shared topic/source predicate.

    Bypassed when the selector has no options; passes everything (including
    events with no values) when every option is selected; otherwise requires
    at least one selected value.
    """
    if not options:
        return True
    if selection == ALL or set(options) <= selection:
        return True
    if not selection:
        return False
    return any(value in selection for value in values)


def _category_passes(event: TimelineEvent, criteria: FilterCriteria) -> bool:
    active = criteria.active_categories
    if not active:
        # Only reachable with key events enabled: show key events on their own
        return event.is_key_event
    if event.is_multi_category:
        return MULTI_CATEGORY in active
    return any(category in active for category in event.categories)


def _search_passes(event: TimelineEvent, needle: str) -> bool:
    if not needle:
        return True
    return needle in event.title.lower() or needle in event.notes.lower()


def filter_events(records: Sequence[TimelineEvent], criteria: FilterCriteria) -> List[TimelineEvent]:
    """
    Return the records that pass every active predicate, in input order.

    Args:
        records: The complete raw record set
        criteria: Active filter state

    Returns:
        list: Visible events
    """
    if not criteria.active_categories and not criteria.key_events_enabled:
        return []

    topics = topic_options(records)
    sources = source_options(records)
    needle = criteria.search_text.strip().lower()

    visible = []
    for event in records:
        if not _category_passes(event, criteria):
            continue
        if event.is_key_event and not criteria.key_events_enabled:
            continue
        if not _selection_passes(event.valid_topics, criteria.selected_topics, topics):
            continue
        source_values = (event.source,) if event.source else ()
        if not _selection_passes(source_values, criteria.selected_sources, sources):
            continue
        if criteria.key_events_only and not event.is_key_event:
            continue
        if not _search_passes(event, needle):
            continue
        visible.append(event)

    logger.debug(f"Filter kept {len(visible)} of {len(records)} events")
    return visible
