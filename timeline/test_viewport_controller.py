"""
Tests for ViewportController gestures and the repack decision.
"""

import logging
from datetime import datetime, timedelta

import pytest

from timeline.rendering.time_domain import MIN_SPAN, TimeDomain, TimeScale
from timeline.rendering.viewport_controller import ViewportController

FULL = TimeDomain(datetime(2000, 1, 1), datetime(2020, 1, 1))


def _scale(controller, width=1000):
    return TimeScale(controller.domain, 0, width)


def _inside(domain):
    return FULL.start <= domain.start <= domain.end <= FULL.end


def _close(a, b, tolerance=timedelta(seconds=1)):
    return abs(a - b) <= tolerance


@pytest.fixture
def controller():
    return ViewportController(FULL)


def test_starts_at_full_extent(controller):
    assert controller.domain == FULL
    assert controller.at_full_extent
    assert not controller.can_zoom_out()


def test_zoom_out_at_full_extent_is_noop(controller):
    update = controller.zoom_out()

    assert not update.changed
    assert not update.repack
    assert controller.domain == FULL


def test_wheel_out_at_full_extent_is_noop(controller):
    update = controller.wheel(120, FULL.midpoint)

    assert not update.changed
    assert controller.domain == FULL


def test_zoom_in_shrinks_span_and_requests_repack(controller):
    update = controller.zoom_in()

    assert update.changed
    assert update.repack
    assert _close(controller.domain.span, FULL.span / 1.25)
    assert _close(controller.domain.midpoint, FULL.midpoint)


def test_zoom_in_below_minimum_span_is_rejected():
    narrow = TimeDomain(datetime(2010, 1, 1), datetime(2010, 1, 1) + timedelta(days=35))
    controller = ViewportController(FULL, initial_domain=narrow)

    assert not controller.can_zoom_in()
    update = controller.zoom_in()

    assert not update.changed
    assert controller.domain == narrow


def test_repeated_zoom_in_never_goes_below_minimum_span(controller):
    for _ in range(200):
        controller.zoom_in()
        assert controller.domain.span >= MIN_SPAN
        assert _inside(controller.domain)


def test_zoom_with_invalid_factor_is_noop(controller):
    controller.zoom_in()
    before = controller.domain

    assert not controller.zoom_by(0).changed
    assert not controller.zoom_by(-2).changed
    assert not controller.zoom_by(1).changed
    assert controller.domain == before


def test_pan_preserves_span_without_repack(controller):
    controller.zoom_by(4)
    before = controller.domain

    update = controller.pan_by(100, _scale(controller))

    assert update.changed
    assert not update.repack
    assert controller.domain.span == before.span
    # Dragging right reveals earlier instants
    assert controller.domain.start < before.start


def test_pan_against_edge_keeps_span(controller):
    controller.zoom_by(4)
    span = controller.domain.span

    for _ in range(50):
        controller.pan_by(500, _scale(controller))

    assert controller.domain.start == FULL.start
    assert controller.domain.span == span


def test_pan_at_full_extent_does_not_move(controller):
    update = controller.pan_by(250, _scale(controller))

    assert not update.changed


def test_zero_pan_is_noop(controller):
    assert not controller.pan_by(0, _scale(controller)).changed


def test_wheel_keeps_anchor_fixed(controller):
    controller.zoom_by(2)
    scale = _scale(controller)
    anchor = scale.invert(300)

    controller.wheel(-120, anchor)

    after = _scale(controller)
    assert after(anchor) == pytest.approx(300, abs=0.01)
    assert controller.domain.span < FULL.span / 2


def test_wheel_in_below_minimum_span_is_rejected():
    narrow = TimeDomain(datetime(2010, 1, 1), datetime(2010, 1, 1) + timedelta(days=32))
    controller = ViewportController(FULL, initial_domain=narrow)

    update = controller.wheel(-120, narrow.midpoint)

    assert not update.changed
    assert controller.domain == narrow


def test_set_domain_clamps_request(controller):
    update = controller.set_domain(datetime(1990, 1, 1), datetime(2001, 1, 1))

    assert _inside(controller.domain)
    assert controller.domain.start == FULL.start
    assert update.repack


def test_reset_returns_to_full_extent(controller):
    controller.zoom_by(8)
    update = controller.reset()

    assert controller.domain == FULL
    assert update.repack


def test_one_finger_pan_through_pointer_session(controller):
    controller.zoom_by(4)
    before = controller.domain

    controller.pointer_down(1, 500, 100, _scale(controller))
    update = controller.pointer_move(1, 400, 100, _scale(controller))

    assert update.changed
    assert not update.repack
    assert controller.domain.start > before.start


def test_move_of_unknown_pointer_is_ignored(controller):
    assert controller.pointer_move(7, 10, 10, _scale(controller)) is None


def test_pinch_spread_zooms_in_about_start_midpoint(controller):
    scale = _scale(controller)
    anchor = scale.invert(500)

    controller.pointer_down(1, 400, 100, scale)
    controller.pointer_down(2, 600, 100, scale)
    update = controller.pointer_move(2, 800, 100, _scale(controller))

    assert update.changed
    assert update.repack
    # distance 200 -> 400 halves the span
    assert _close(controller.domain.span, FULL.span / 2)
    assert controller.gesture.pinch_anchor == anchor


def test_pinch_is_relative_to_gesture_start(controller):
    scale = _scale(controller)
    controller.pointer_down(1, 400, 100, scale)
    controller.pointer_down(2, 600, 100, scale)

    controller.pointer_move(2, 700, 100, _scale(controller))
    controller.pointer_move(2, 800, 100, _scale(controller))

    assert _close(controller.domain.span, FULL.span / 2)


def test_pinch_never_escapes_bounds_or_minimum_span(controller):
    scale = _scale(controller)
    controller.pointer_down(1, 499, 100, scale)
    controller.pointer_down(2, 501, 100, scale)

    controller.pointer_move(2, 100000, 100, _scale(controller))
    assert controller.domain.span >= MIN_SPAN
    assert _inside(controller.domain)

    controller.pointer_move(2, 501.0001, 100, _scale(controller))
    assert _inside(controller.domain)


def test_releasing_all_pointers_resets_gesture(controller):
    scale = _scale(controller)
    controller.pointer_down(1, 400, 100, scale)
    controller.pointer_down(2, 600, 100, scale)
    controller.pointer_up(2)
    controller.pointer_up(1)

    gesture = controller.gesture
    assert not gesture.pointers
    assert gesture.pan_last_x is None
    assert gesture.pinch_start_distance is None
    assert gesture.pinch_anchor is None
    assert gesture.base_domain is None


def test_lifting_one_finger_continues_as_pan(controller):
    controller.zoom_by(4)
    scale = _scale(controller)
    controller.pointer_down(1, 400, 100, scale)
    controller.pointer_down(2, 600, 100, scale)
    controller.pointer_up(2)

    assert controller.gesture.is_panning
    assert not controller.gesture.is_pinching
    span = controller.domain.span

    update = controller.pointer_move(1, 350, 100, _scale(controller))

    assert update.changed
    assert controller.domain.span == span


def test_lifting_third_finger_rebases_pinch_on_remaining_pair(controller):
    scale = _scale(controller)
    controller.pointer_down(1, 100, 0, scale)
    controller.pointer_down(2, 200, 0, scale)
    controller.pointer_down(3, 900, 0, scale)
    controller.pointer_up(1, scale)
    before = controller.domain

    update = controller.pointer_move(2, 200, 0, _scale(controller))

    assert controller.domain == before
    assert not update.changed
    assert controller.gesture.pinch_start_distance == 700
    assert controller.gesture.pinch_anchor == scale.invert(550)

    # Spreading the remaining pair from 700 to 1400 halves the span
    controller.pointer_move(3, 1600, 0, _scale(controller))
    assert _close(controller.domain.span, FULL.span / 2)


def test_lifting_third_finger_without_scale_ends_pinch(controller):
    scale = _scale(controller)
    controller.pointer_down(1, 100, 0, scale)
    controller.pointer_down(2, 200, 0, scale)
    controller.pointer_down(3, 900, 0, scale)
    controller.pointer_up(1)

    assert not controller.gesture.is_pinching
    assert controller.pointer_move(2, 250, 0, _scale(controller)) is None
    assert controller.domain == FULL


def test_small_span_jitter_does_not_request_repack(controller):
    controller.zoom_by(4)
    base = controller.domain
    controller.set_domain(base.start, base.end + timedelta(milliseconds=2))

    update = controller.set_domain(base.start, base.end)

    assert not update.repack


def test_rejected_zoom_is_logged_with_span(controller, caplog):
    with caplog.at_level(logging.DEBUG, logger="timeline.rendering.viewport_controller"):
        controller.zoom_by(1000)

    assert controller.domain == FULL
    assert f"Zoom-in to {FULL.span / 1000} rejected" in caplog.text
