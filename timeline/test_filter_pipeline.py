"""
Tests for the filter pipeline predicates and criteria helpers.
"""

from datetime import datetime

import pytest

from timeline.data.filter_pipeline import (
    ALL,
    FilterCriteria,
    filter_events,
    legend_keys,
    source_options,
    title_case,
    topic_options,
)


@pytest.fixture
def records(make_event):
    return [
        make_event(title="Gas attack at Ypres", categories=("chemical",), topics=("gas", "war"),
                   source="Archive A", notes="First large scale use"),
        make_event(title="Treaty signed", categories=("policy",), topics=("treaty",),
                   source="Archive B", is_key_event=True),
        make_event(title="Joint programme", categories=("chemical", "biological"), topics=("n/a",)),
        make_event(title="Untagged", categories=("biological",), topics=()),
        make_event(title="Convention opens", categories=("policy",), topics=("treaty", "gas"),
                   source="Archive A", is_key_event=True),
    ]


def _titles(events):
    return [event.title for event in events]


def test_everything_selected_shows_all(records):
    criteria = FilterCriteria.show_everything(records)

    assert filter_events(records, criteria) == records


def test_all_sentinel_matches_every_topic_selected_individually(records):
    base = FilterCriteria.show_everything(records)
    explicit = base.with_topics(topic_options(records))

    assert filter_events(records, base) == filter_events(records, explicit)
    # Events without a real topic still pass
    assert "Untagged" in _titles(filter_events(records, explicit))
    assert "Joint programme" in _titles(filter_events(records, explicit))


def test_all_sentinel_matches_every_source_selected_individually(records):
    base = FilterCriteria.show_everything(records)
    explicit = base.with_sources(source_options(records))

    assert filter_events(records, base) == filter_events(records, explicit)


def test_topic_subset_requires_a_selected_topic(records):
    criteria = FilterCriteria.show_everything(records).with_topics({"treaty"})

    assert _titles(filter_events(records, criteria)) == ["Treaty signed", "Convention opens"]


def test_empty_topic_selection_shows_nothing(records):
    criteria = FilterCriteria.show_everything(records).with_topics(set())

    assert filter_events(records, criteria) == []


def test_source_subset(records):
    criteria = FilterCriteria.show_everything(records).with_sources({"Archive B"})

    assert _titles(filter_events(records, criteria)) == ["Treaty signed"]


def test_selector_without_options_is_bypassed(make_event):
    records = [make_event(title="Lonely", categories=("policy",))]
    criteria = FilterCriteria(active_categories={"policy"}, selected_topics=set(), selected_sources=set())

    assert _titles(filter_events(records, criteria)) == ["Lonely"]


def test_no_categories_and_key_events_disabled_shows_nothing(records):
    criteria = FilterCriteria(active_categories=frozenset(), key_events_enabled=False)

    assert filter_events(records, criteria) == []


def test_no_categories_with_key_events_enabled_shows_key_events(records):
    criteria = FilterCriteria(active_categories=frozenset(), key_events_enabled=True)

    assert _titles(filter_events(records, criteria)) == ["Treaty signed", "Convention opens"]


def test_key_events_disabled_hides_key_events(records):
    criteria = FilterCriteria.show_everything(records).with_key_events(False)

    titles = _titles(filter_events(records, criteria))

    assert "Treaty signed" not in titles
    assert "Gas attack at Ypres" in titles


def test_key_events_only(records):
    criteria = FilterCriteria(active_categories=legend_keys(records), key_events_only=True)

    assert _titles(filter_events(records, criteria)) == ["Treaty signed", "Convention opens"]


def test_multi_category_events_follow_multi_key(records):
    criteria = FilterCriteria.show_everything(records).with_category_toggled("multi")
    titles = _titles(filter_events(records, criteria))
    assert "Joint programme" not in titles

    only_multi = FilterCriteria(active_categories={"multi"}, key_events_enabled=False)
    assert _titles(filter_events(records, only_multi)) == ["Joint programme"]


def test_category_toggle_round_trip(records):
    criteria = FilterCriteria.show_everything(records)
    toggled = criteria.with_category_toggled("policy")

    assert "policy" not in toggled.active_categories
    assert toggled.with_category_toggled("policy") == criteria


def test_search_matches_title_and_notes_case_insensitively(records):
    criteria = FilterCriteria.show_everything(records)

    assert _titles(filter_events(records, criteria.with_search("YPRES"))) == ["Gas attack at Ypres"]
    assert _titles(filter_events(records, criteria.with_search("large scale"))) == ["Gas attack at Ypres"]
    assert filter_events(records, criteria.with_search("   ")) == records


def test_filtering_is_pure_and_keeps_input_order(records):
    criteria = FilterCriteria.show_everything(records).with_topics({"gas"})
    snapshot = list(records)

    first = filter_events(records, criteria)
    second = filter_events(records, criteria)

    assert first == second
    assert records == snapshot
    assert _titles(first) == ["Gas attack at Ypres", "Convention opens"]


def test_option_lists_skip_placeholders(records):
    assert topic_options(records) == ["gas", "treaty", "war"]
    assert source_options(records) == ["Archive A", "Archive B"]
    assert legend_keys(records) == ["biological", "chemical", "policy", "multi"]


def test_criteria_normalizes_collections():
    criteria = FilterCriteria(active_categories=["a", "b"], selected_topics=["x"])

    assert criteria.active_categories == frozenset({"a", "b"})
    assert criteria.selected_topics == frozenset({"x"})
    assert criteria.selected_sources == ALL


@pytest.mark.parametrize("token,expected", [
    ("gas attack", "Gas Attack"),
    ("treaty", "Treaty"),
    ("non-state actors", "Non-state Actors"),
])
def test_title_case(token, expected):
    assert title_case(token) == expected


def test_filter_keeps_input_order_rather_than_time_order(make_event):
    early = make_event(time=datetime(1900, 1, 1), categories=("policy",))
    late = make_event(time=datetime(2000, 1, 1), categories=("policy",))
    criteria = FilterCriteria(active_categories={"policy"})

    assert filter_events([late, early], criteria) == [late, early]
