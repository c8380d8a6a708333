"""
Timeline records - The event type consumed by filtering and layout.

Rows arrive from an external source as plain mappings. build_event normalizes
one row into a TimelineEvent: categories and topics are split, trimmed and
lower-cased for matching while the original-case values are kept for display.
Rows whose date cannot be parsed are dropped.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple

from timeline.rendering.time_domain import TimeDomain
from timeline.utils.error_handler import DataLoadError
from timeline.utils.timestamp_parser import TimestampParser

logger = logging.getLogger(__name__)

# Placeholder topic tokens that never count as a real topic
BAD_TOPICS = frozenset({"na", "n/a", "none", "", "unspecified", "-", "null"})

# Legend key for events carrying more than one category
MULTI_CATEGORY = "multi"

UNTITLED_EVENT = "(No event name)"

# Source column names
COL_DATE = "Date"
COL_DISPLAY_DATE = "Display_Date"
COL_TITLE = "Event"
COL_NOTES = "Source/Notes"
COL_SOURCE = "Source"
COL_SOURCE_URL = "Source_URL"
COL_CATEGORY = "Category"
COL_TOPIC = "Topic"
COL_KEY_EVENT = "Key Event"


@dataclass(eq=False)
class TimelineEvent:
    """
    One dated event.

    Identity is stable for a session (instances compare by identity). The only
    mutable field is viewed, which only ever goes from False to True.
    """

    event_id: int
    time: datetime
    title: str
    notes: str = ""
    source: str = ""
    source_url: str = ""
    categories: Tuple[str, ...] = ()
    topics: Tuple[str, ...] = ()
    is_key_event: bool = False
    display_date: str = ""
    display_categories: Tuple[str, ...] = ()
    display_topics: Tuple[str, ...] = ()
    viewed: bool = field(default=False, compare=False)

    @property
    def date_label(self) -> str:
        """Hand-written display date, falling back to the formatted instant."""
        return self.display_date or TimestampParser.format_timestamp(self.time)

    @property
    def valid_topics(self) -> Tuple[str, ...]:
        return tuple(t for t in self.topics if t not in BAD_TOPICS)

    @property
    def is_multi_category(self) -> bool:
        return len(self.categories) > 1

    @property
    def category_key(self) -> Optional[str]:
        """Legend key used for colouring: 'multi', the single category, or None."""
        if self.is_multi_category:
            return MULTI_CATEGORY
        return self.categories[0] if self.categories else None

    def mark_viewed(self):
        self.viewed = True

    def __repr__(self):
        return f"TimelineEvent(#{self.event_id} {self.time:%Y-%m-%d} {self.title!r})"


def split_list(value) -> List[str]:
    """Split a comma-separated cell into trimmed, non-empty items."""
    return [item.strip() for item in str(value or "").split(",") if item.strip()]


def _cell(row: Mapping, column: str) -> str:
    value = row.get(column)
    return "" if value is None else str(value).strip()


def build_event(event_id: int, row: Mapping) -> Optional[TimelineEvent]:
    """
    Normalize one source row.

    Args:
        event_id: Ingestion-order identifier
        row: Mapping keyed by the source column names

    Returns:
        TimelineEvent, or None if the date does not parse
    """
    time = TimestampParser.parse_timestamp(row.get(COL_DATE))
    if time is None:
        return None

    display_categories = split_list(row.get(COL_CATEGORY))
    display_topics = split_list(row.get(COL_TOPIC))

    return TimelineEvent(
        event_id=event_id,
        time=time,
        title=_cell(row, COL_TITLE) or UNTITLED_EVENT,
        notes=_cell(row, COL_NOTES),
        source=_cell(row, COL_SOURCE),
        source_url=_cell(row, COL_SOURCE_URL),
        categories=tuple(c.lower() for c in display_categories),
        topics=tuple(t.lower() for t in display_topics),
        is_key_event=_cell(row, COL_KEY_EVENT).lower() == "true",
        display_date=_cell(row, COL_DISPLAY_DATE),
        display_categories=tuple(display_categories),
        display_topics=tuple(display_topics),
    )


def load_events(rows: Iterable[Mapping]) -> List[TimelineEvent]:
    """
    Build events from rows, silently dropping rows with unparseable dates.

    Ids follow ingestion order of the kept rows.

    Raises:
        DataLoadError: If a row is not a mapping at all
    """
    events = []
    dropped = 0
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise DataLoadError(
                "Timeline data is not a table of rows",
                details=f"Row {index} is {type(row).__name__}, expected a mapping"
            )
        event = build_event(len(events), row)
        if event is None:
            dropped += 1
            continue
        events.append(event)

    if dropped:
        logger.debug(f"Dropped {dropped} rows with unparseable dates")
    logger.info(f"Loaded {len(events)} timeline events")
    return events


def full_extent(events: Iterable[TimelineEvent]) -> Optional[TimeDomain]:
    """[earliest, latest] instant across the complete unfiltered event set."""
    return TimeDomain.from_instants(event.time for event in events)
