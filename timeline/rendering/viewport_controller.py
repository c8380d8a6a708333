"""
Viewport Controller - Turns pan, wheel, pinch and button gestures into time windows.

This module provides the ViewportController class which manages:
- The active time domain, clamped to the full dataset extent
- Button and wheel zoom with stable rejection at the minimum span
- Pixel-delta panning through the active time scale
- Pinch zoom and one-finger pan through a per-gesture pointer session
- The repack decision (span changed beyond hysteresis) for every update
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from timeline.rendering.time_domain import (
    MIN_SPAN,
    SPAN_HYSTERESIS,
    TimeDomain,
    clamp_domain,
    span_changed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainUpdate:
    """
    Result of a viewport operation.

    Attributes:
        previous: Domain before the operation
        domain: Domain after the operation (equal to previous when rejected)
        repack: True when the span changed enough to warrant a full relayout
    """

    previous: TimeDomain
    domain: TimeDomain
    repack: bool = False

    @property
    def changed(self) -> bool:
        return self.previous != self.domain


@dataclass
class GestureSession:
    """
    Pointer state scoped to one continuous interaction.

    Must be reset once every pointer is released so no stale pan position or
    pinch baseline leaks into the next gesture.
    """

    pointers: Dict[int, Tuple[float, float]] = field(default_factory=dict)
    pan_last_x: Optional[float] = None
    base_domain: Optional[TimeDomain] = None
    pinch_start_distance: Optional[float] = None
    pinch_anchor: Optional[datetime] = None

    @property
    def is_pinching(self) -> bool:
        return len(self.pointers) == 2 and self.pinch_start_distance is not None

    @property
    def is_panning(self) -> bool:
        return len(self.pointers) == 1 and self.pan_last_x is not None

    def pointer_distance(self) -> float:
        (x0, y0), (x1, y1) = list(self.pointers.values())[:2]
        return math.hypot(x0 - x1, y0 - y1)

    def pointer_midpoint_x(self) -> float:
        (x0, _), (x1, _) = list(self.pointers.values())[:2]
        return (x0 + x1) / 2

    def end_pinch(self):
        self.pinch_start_distance = None
        self.pinch_anchor = None

    def reset(self):
        self.pointers.clear()
        self.pan_last_x = None
        self.base_domain = None
        self.end_pinch()


class ViewportController:
    """
    Owns the active TimeDomain and maps gesture deltas onto new domains.

    The controller is UI-agnostic: it never touches widgets and only needs a
    scale exposing invert() to convert pixels into time. Every operation
    returns a DomainUpdate; the caller decides between reprojecting cached
    marker offsets and a full relayout from its repack flag.
    """

    # Discrete zoom-button factors (span divisor)
    BUTTON_ZOOM_IN = 1.25
    BUTTON_ZOOM_OUT = 0.8

    # Wheel span multipliers: scroll toward the user grows the span
    WHEEL_ZOOM_OUT = 1.1
    WHEEL_ZOOM_IN = 0.9

    def __init__(self, full_extent, min_span=MIN_SPAN, hysteresis=SPAN_HYSTERESIS,
                 initial_domain=None):
        """
        Initialize the controller.

        Args:
            full_extent (TimeDomain): Extent of the complete unfiltered dataset;
                the permanent clamp ceiling for every zoom and pan
            min_span (timedelta): Narrowest window allowed
            hysteresis (timedelta): Span change below which no repack is requested
            initial_domain (TimeDomain): Optional starting window (default: full extent)
        """
        self._full_extent = full_extent.normalized()
        self.min_span = min_span
        self.hysteresis = hysteresis
        self.gesture = GestureSession()

        if initial_domain is None:
            self._domain = self._full_extent
        else:
            self._domain = self.clamp(initial_domain)

    @property
    def domain(self):
        return self._domain

    @property
    def full_extent(self):
        return self._full_extent

    @property
    def at_full_extent(self):
        return self._domain == self._full_extent

    def clamp(self, proposed):
        return clamp_domain(proposed, self._full_extent, self.min_span)

    def can_zoom_in(self, factor=BUTTON_ZOOM_IN):
        """
        Check whether a zoom-in by factor would be accepted.

        Returns:
            bool: False when the resulting span would drop below min_span
        """
        return self._domain.span / factor >= self.min_span

    def can_zoom_out(self):
        return not self.at_full_extent

    def set_domain(self, start, end):
        """
        Clamp and apply an explicit window.

        Args:
            start (datetime): Requested window start
            end (datetime): Requested window end

        Returns:
            DomainUpdate: The applied change
        """
        return self._apply(self.clamp(TimeDomain(start, end)))

    def reset(self):
        """Return to the full dataset extent."""
        return self._apply(self._full_extent)

    def pan_by(self, pixel_delta, scale):
        """
        Shift the window by a horizontal pixel delta.

        The pixel delta is converted to a time delta through the scale, so the
        controller does not assume a linear scale. Dragging right (positive
        delta) moves the window toward earlier instants.

        Args:
            pixel_delta (float): Horizontal pointer movement in pixels
            scale: Object with invert(px) -> datetime for the current domain

        Returns:
            DomainUpdate: The applied change (span preserved, no repack)
        """
        if not pixel_delta:
            return self._unchanged()

        time_delta = scale.invert(0) - scale.invert(pixel_delta)
        return self._apply(self.clamp(self._domain.shifted(time_delta)))

    def zoom_by(self, factor, anchor=None):
        """
        Zoom by dividing the span by factor, centered on anchor.

        Zooming out while already at the full extent is a no-op, and zooming in
        below the minimum span is rejected outright (domain unchanged) so the
        limit feels stable rather than jittery.

        Args:
            factor (float): > 1 zooms in, < 1 zooms out
            anchor (datetime): Center of the new window (default: domain midpoint)

        Returns:
            DomainUpdate: The applied change, or an unchanged update if rejected
        """
        if factor <= 0 or factor == 1:
            return self._unchanged()

        if factor < 1 and self.at_full_extent:
            return self._unchanged()

        new_span = self._domain.span / factor
        if factor > 1 and new_span < self.min_span:
            logger.debug(f"Zoom-in to {new_span} rejected: below minimum span")
            return self._unchanged()

        center = anchor if anchor is not None else self._domain.midpoint
        proposed = TimeDomain(center - new_span / 2, center + new_span / 2)
        return self._apply(self.clamp(proposed))

    def zoom_in(self, anchor=None):
        return self.zoom_by(self.BUTTON_ZOOM_IN, anchor)

    def zoom_out(self, anchor=None):
        return self.zoom_by(self.BUTTON_ZOOM_OUT, anchor)

    def wheel(self, delta_y, anchor):
        """
        Apply one wheel tick, keeping the instant under the pointer fixed.

        Args:
            delta_y (float): Wheel delta; positive grows the span (zoom out),
                negative shrinks it (zoom in); only the sign is used
            anchor (datetime): Instant under the pointer

        Returns:
            DomainUpdate: The applied change, or an unchanged update if rejected
        """
        if not delta_y:
            return self._unchanged()

        zooming_out = delta_y > 0
        if zooming_out and self.at_full_extent:
            return self._unchanged()

        k = self.WHEEL_ZOOM_OUT if zooming_out else self.WHEEL_ZOOM_IN
        proposed = _scale_about(self._domain, anchor, k)
        if not zooming_out and proposed.span < self.min_span:
            logger.debug(f"Wheel zoom rejected: {proposed.span} below minimum span")
            return self._unchanged()

        return self._apply(self.clamp(proposed))

    def pinch_zoom(self, distance_ratio, anchor, base=None):
        """
        Scale a base window about an anchor by a pinch distance ratio.

        Args:
            distance_ratio (float): start distance / current distance; fingers
                spreading give a ratio below 1 (zoom in)
            anchor (datetime): Instant under the pinch midpoint at gesture start
            base (TimeDomain): Window at gesture start (default: current domain)

        Returns:
            DomainUpdate: The applied change; repack only beyond hysteresis
        """
        if distance_ratio <= 0:
            return self._unchanged()

        base = base if base is not None else self._domain
        return self._apply(self.clamp(_scale_about(base, anchor, distance_ratio)))

    # ------------------------------------------------------------------
    # Pointer gesture session
    # ------------------------------------------------------------------

    def pointer_down(self, pointer_id, x, y, scale):
        """
        Register a pointer; one pointer starts a pan, the second starts a pinch.

        Args:
            pointer_id (int): Stable pointer identifier
            x (float): Pointer x in chart pixels
            y (float): Pointer y in chart pixels
            scale: Current time scale (used to find the pinch anchor)
        """
        gesture = self.gesture
        gesture.pointers[pointer_id] = (x, y)

        if len(gesture.pointers) == 1:
            gesture.pan_last_x = x
            gesture.base_domain = self._domain
        elif len(gesture.pointers) == 2:
            self._start_pinch(scale)

    def pointer_move(self, pointer_id, x, y, scale):
        """
        Advance the active gesture.

        Returns:
            DomainUpdate or None: None when the move does not belong to an
            active pan or pinch
        """
        gesture = self.gesture
        if pointer_id not in gesture.pointers:
            return None
        gesture.pointers[pointer_id] = (x, y)

        if gesture.is_pinching:
            distance = gesture.pointer_distance()
            if distance <= 0 or not gesture.pinch_start_distance:
                return None
            ratio = gesture.pinch_start_distance / distance
            return self.pinch_zoom(ratio, gesture.pinch_anchor, gesture.base_domain)

        if gesture.is_panning:
            dx = x - gesture.pan_last_x
            gesture.pan_last_x = x
            return self.pan_by(dx, scale)

        return None

    def pointer_up(self, pointer_id, scale=None):
        """
        Release a pointer; all pointers released resets the gesture session.

        Args:
            pointer_id (int): Pointer being released
            scale: Current time scale; when a third finger lifts it re-bases
                the pinch on the two that remain (without it the pinch ends)
        """
        gesture = self.gesture
        had = len(gesture.pointers)
        gesture.pointers.pop(pointer_id, None)
        remaining = len(gesture.pointers)

        if remaining == 2 and had > 2:
            # The remaining pair was not the pair the pinch started with
            if scale is not None:
                self._start_pinch(scale)
            else:
                gesture.end_pinch()
        elif remaining < 2:
            gesture.end_pinch()

        if remaining == 1:
            # Continue as a pan from where the remaining finger is now
            (remaining_x, _), = gesture.pointers.values()
            gesture.pan_last_x = remaining_x
            gesture.base_domain = self._domain
        elif not remaining:
            gesture.reset()

    def _start_pinch(self, scale):
        gesture = self.gesture
        gesture.pinch_start_distance = gesture.pointer_distance()
        gesture.pinch_anchor = scale.invert(gesture.pointer_midpoint_x())
        gesture.base_domain = self._domain
        logger.debug(
            f"Pinch started: distance={gesture.pinch_start_distance:.1f} "
            f"anchor={gesture.pinch_anchor}"
        )

    # ------------------------------------------------------------------

    def _apply(self, domain):
        previous = self._domain
        self._domain = domain
        update = DomainUpdate(
            previous=previous,
            domain=domain,
            repack=span_changed(previous, domain, self.hysteresis),
        )
        if update.changed:
            logger.debug(f"Domain {previous!r} -> {domain!r} (repack={update.repack})")
        return update

    def _unchanged(self):
        return DomainUpdate(previous=self._domain, domain=self._domain, repack=False)

    def __repr__(self):
        return (
            f"ViewportController(domain={self._domain!r}, "
            f"full_extent={self._full_extent!r})"
        )


def _scale_about(domain, anchor, k):
    """Scale a window by k while keeping anchor at the same relative position."""
    return TimeDomain(
        anchor - (anchor - domain.start) * k,
        anchor + (domain.end - anchor) * k,
    )
