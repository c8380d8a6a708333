"""
Time Domain - Immutable time windows, clamp arithmetic and the time scale.

This module provides the value types shared by the viewport controller and
the layout engines:
- TimeDomain: an immutable [start, end] window of instants
- clamp_domain: fits a proposed window inside the full dataset extent
- TimeScale: linear mapping between instants and horizontal pixels
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional


# Never let the visible window get narrower than ~30 days
MIN_SPAN = timedelta(days=30)

# Span changes at or below this are treated as jitter (no repack)
SPAN_HYSTERESIS = timedelta(milliseconds=5)


@dataclass(frozen=True)
class TimeDomain:
    """
    Immutable time window.

    Windows produced by clamp_domain always satisfy start <= end and lie
    inside the bounds they were clamped to. Proposed windows handed to
    clamp_domain may be inverted.
    """

    start: datetime
    end: datetime

    @classmethod
    def from_instants(cls, instants: Iterable[datetime]) -> Optional["TimeDomain"]:
        """
        Build the [earliest, latest] extent of a collection of instants.

        Args:
            instants: Any iterable of datetimes

        Returns:
            TimeDomain or None if the iterable is empty
        """
        earliest = None
        latest = None
        for instant in instants:
            if earliest is None or instant < earliest:
                earliest = instant
            if latest is None or instant > latest:
                latest = instant

        if earliest is None:
            return None
        return cls(earliest, latest)

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def midpoint(self) -> datetime:
        return self.start + (self.end - self.start) / 2

    @property
    def is_inverted(self) -> bool:
        return self.end < self.start

    def normalized(self) -> "TimeDomain":
        """Return the window with endpoints swapped if it is inverted."""
        if self.is_inverted:
            return TimeDomain(self.end, self.start)
        return self

    def shifted(self, delta: timedelta) -> "TimeDomain":
        """Translate both endpoints by delta, preserving the span."""
        return TimeDomain(self.start + delta, self.end + delta)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def covers(self, other: "TimeDomain") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __repr__(self):
        return f"TimeDomain({self.start.isoformat()} -> {self.end.isoformat()})"


def clamp_domain(proposed: TimeDomain, bounds: TimeDomain,
                 min_span: timedelta = MIN_SPAN) -> TimeDomain:
    """
    Fit a proposed window inside bounds.

    The window is translated (never rescaled) to fit before the minimum span
    is enforced, so panning against an edge keeps the current span instead
    of collapsing to a minimum-width window.

    Args:
        proposed: Requested window (may be inverted or out of bounds)
        bounds: Full dataset extent
        min_span: Narrowest window allowed

    Returns:
        TimeDomain: Window contained in bounds, span >= min_span unless the
        bounds themselves are narrower, in which case the bounds
    """
    low, high = bounds.start, bounds.end
    full_span = high - low

    proposed = proposed.normalized()
    start, end = proposed.start, proposed.end
    span = end - start

    # Trying to show more than exists (or nothing narrower is possible)
    if span >= full_span or full_span <= min_span:
        return TimeDomain(low, high)

    if start < low:
        start = low
        end = low + span
    if end > high:
        end = high
        start = high - span

    if end < start:
        start, end = end, start

    if end - start < min_span:
        mid = start + (end - start) / 2
        start = mid - min_span / 2
        end = mid + min_span / 2
        if start < low:
            start = low
            end = low + min_span
        if end > high:
            end = high
            start = high - min_span

    return TimeDomain(start, end)


def span_changed(previous: TimeDomain, current: TimeDomain,
                 hysteresis: timedelta = SPAN_HYSTERESIS) -> bool:
    """True when the span moved by more than the hysteresis threshold."""
    return abs(current.span - previous.span) > hysteresis


class TimeScale:
    """
    Linear mapping from a time domain onto a horizontal pixel range.

    Callers only rely on __call__ and invert, so the viewport controller stays
    agnostic to how instants are laid out on screen.
    """

    def __init__(self, domain, range_start, range_end):
        """
        Args:
            domain (TimeDomain): Visible time window
            range_start (float): Pixel x of domain.start
            range_end (float): Pixel x of domain.end
        """
        self.domain = domain
        self.range_start = float(range_start)
        self.range_end = float(range_end)
        self._span_seconds = domain.span.total_seconds()

    @property
    def width(self):
        return self.range_end - self.range_start

    def __call__(self, instant):
        if self._span_seconds == 0:
            return (self.range_start + self.range_end) / 2
        ratio = (instant - self.domain.start).total_seconds() / self._span_seconds
        return self.range_start + ratio * self.width

    def invert(self, pixel_x):
        """Return the instant under a pixel x position."""
        if self._span_seconds == 0 or self.width == 0:
            return self.domain.start
        ratio = (pixel_x - self.range_start) / self.width
        return self.domain.start + timedelta(seconds=ratio * self._span_seconds)

    def with_domain(self, domain):
        """Same pixel range, new domain."""
        return TimeScale(domain, self.range_start, self.range_end)

    def __repr__(self):
        return (
            f"TimeScale(domain={self.domain!r}, "
            f"range=[{self.range_start:.1f}, {self.range_end:.1f}])"
        )
