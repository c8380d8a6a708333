"""
Tests for CollisionLayoutEngine packing and offset reprojection.
"""

import itertools
import math
from datetime import datetime, timedelta

import pytest

from timeline.rendering.collision_layout import CollisionLayoutEngine
from timeline.rendering.time_domain import TimeDomain, TimeScale
from timeline.utils.timeline_config import TimelineConfig

DOMAIN = TimeDomain(datetime(2020, 1, 1), datetime(2021, 1, 1))

# Tallest same-instant stack that fits the marker band
_CONFIG = TimelineConfig()
MAX_STACK = _CONFIG.layout["chart_height"] // (2 * _CONFIG.get("markers", "radius")) - 1


@pytest.fixture
def scale():
    return TimeScale(DOMAIN, 40, 960)


@pytest.fixture
def engine():
    return CollisionLayoutEngine(radius=8, center_y=168)


def _min_distance(positions):
    return min(
        math.hypot(a.x - b.x, a.y - b.y)
        for a, b in itertools.combinations(positions, 2)
    )


def test_same_instant_events_stack_vertically(engine, scale, make_event):
    when = datetime(2020, 6, 1)
    events = [make_event(time=when) for _ in range(3)]

    positions = engine.layout(events, scale)

    ys = sorted(p.y for p in positions)
    assert ys[1] - ys[0] >= 16
    assert ys[2] - ys[1] >= 16
    assert sum(p.offset_x for p in positions) == pytest.approx(0, abs=1e-6)
    assert all(p.ideal_x == pytest.approx(scale(when)) for p in positions)


def test_same_instant_stack_is_centred_on_line(engine, scale, make_event):
    events = [make_event(time=datetime(2020, 3, 1)) for _ in range(3)]

    positions = engine.layout(events, scale)

    mean_y = sum(p.y for p in positions) / len(positions)
    assert mean_y == pytest.approx(168, abs=1e-6)


def test_five_coincident_events_do_not_overlap(engine, scale, make_event):
    events = [make_event(time=datetime(2020, 9, 1)) for _ in range(5)]

    positions = engine.layout(events, scale)

    assert _min_distance(positions) >= 16


@pytest.mark.parametrize("count", range(2, MAX_STACK + 1))
def test_tall_same_instant_stacks_do_not_overlap(engine, scale, make_event, count):
    events = [make_event(time=datetime(2020, 9, 1)) for _ in range(count)]

    positions = engine.layout(events, scale)

    assert _min_distance(positions) >= 16 - 1e-6
    assert sum(p.offset_x for p in positions) == pytest.approx(0, abs=1e-6)
    assert sum(p.y for p in positions) / count == pytest.approx(168, abs=1e-6)


def test_near_neighbours_do_not_overlap(engine, scale, make_event):
    # Roughly 2.5px apart at this scale
    base = datetime(2020, 5, 1)
    events = [make_event(time=base + timedelta(days=i)) for i in range(4)]

    positions = engine.layout(events, scale)

    assert _min_distance(positions) >= 16


def test_isolated_events_stay_on_ideal_positions(engine, scale, make_event):
    events = [make_event(time=datetime(2020, m, 1)) for m in (1, 5, 9)]

    positions = engine.layout(events, scale)

    for p in positions:
        assert p.offset_x == pytest.approx(0, abs=1e-6)
        assert p.y == pytest.approx(168, abs=1e-6)


def test_empty_input_gives_empty_layout(engine, scale):
    assert engine.layout([], scale) == []


def test_single_event(engine, scale, make_event):
    event = make_event(time=datetime(2020, 7, 1))

    (position,) = engine.layout([event], scale)

    assert position.event is event
    assert position.x == pytest.approx(scale(event.time))
    assert position.y == pytest.approx(168)


def test_layout_is_deterministic(scale, make_event):
    when = datetime(2020, 4, 4)
    events = [make_event(time=when + timedelta(hours=h)) for h in range(6)]

    first = CollisionLayoutEngine().layout(events, scale)
    second = CollisionLayoutEngine().layout(events, scale)

    assert [(p.x, p.y) for p in first] == [(p.x, p.y) for p in second]


def test_reprojection_after_pan_reuses_offsets(engine, scale, make_event):
    when = datetime(2020, 6, 1)
    events = [make_event(time=when) for _ in range(3)]
    laid_out = engine.layout(events, scale)

    panned = scale.with_domain(DOMAIN.shifted(timedelta(days=10)))
    positions = engine.position(events, panned, repack=False)

    assert engine.layout_count == 1
    assert engine.reprojection_count == 1
    for before, after in zip(laid_out, positions):
        assert after.offset_x == before.offset_x
        assert after.y == before.y
        assert after.ideal_x == pytest.approx(panned(when))


def test_changed_event_set_forces_relayout(engine, scale, make_event):
    events = [make_event(time=datetime(2020, 6, 1)) for _ in range(3)]
    engine.layout(events, scale)

    engine.position(events[:2], scale, repack=False)

    assert engine.layout_count == 2
    assert engine.reprojection_count == 0


def test_repack_forces_relayout(engine, scale, make_event):
    events = [make_event(time=datetime(2020, 6, 1))]
    engine.layout(events, scale)

    engine.position(events, scale, repack=True)

    assert engine.layout_count == 2
