"""
Time Axis - Tick selection and labelling for the active time domain.

Tick units map to intervals the same way the zoom levels of the timeline map
to axis units, from multi-year down to single minutes. The finest unit that
keeps the tick count at or below the target is chosen.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import math


# Ordered finest to coarsest; intervals in minutes
TICK_UNITS = [
    ('minute', 1),
    ('5min', 5),
    ('15min', 15),
    ('hour', 60),
    ('6hour', 6 * 60),
    ('12hour', 12 * 60),
    ('day', 24 * 60),
    ('week', 7 * 24 * 60),
    ('month', 30 * 24 * 60),
    ('quarter', 90 * 24 * 60),
    ('year', 365 * 24 * 60),
]

DEFAULT_TICK_COUNT = 6

# Safety limit on generated ticks
MAX_TICKS = 200


@dataclass(frozen=True)
class AxisTick:
    instant: datetime
    x: float
    label: str


def choose_tick_unit(span, target=DEFAULT_TICK_COUNT):
    """
    Pick the tick unit and step for a span.

    Args:
        span (timedelta): Width of the visible domain
        target (int): Desired maximum number of ticks

    Returns:
        tuple: (unit name, step multiplier)
    """
    span_minutes = span.total_seconds() / 60
    for unit, interval_minutes in TICK_UNITS:
        if span_minutes / interval_minutes <= target:
            return unit, 1

    years = span_minutes / (365 * 24 * 60)
    return 'year', max(1, math.ceil(years / target))


def round_time(dt, time_unit):
    """Round a datetime down to the nearest time unit boundary."""
    if time_unit == 'year':
        return datetime(dt.year, 1, 1)
    elif time_unit == 'quarter':
        quarter_month = ((dt.month - 1) // 3) * 3 + 1
        return datetime(dt.year, quarter_month, 1)
    elif time_unit == 'month':
        return datetime(dt.year, dt.month, 1)
    elif time_unit == 'week':
        # Round to Monday
        return datetime(dt.year, dt.month, dt.day) - timedelta(days=dt.weekday())
    elif time_unit == 'day':
        return datetime(dt.year, dt.month, dt.day)
    elif time_unit in ('12hour', '6hour'):
        block = 12 if time_unit == '12hour' else 6
        return datetime(dt.year, dt.month, dt.day, (dt.hour // block) * block)
    elif time_unit == 'hour':
        return datetime(dt.year, dt.month, dt.day, dt.hour)
    elif time_unit in ('15min', '5min'):
        minutes = 15 if time_unit == '15min' else 5
        return datetime(dt.year, dt.month, dt.day, dt.hour, (dt.minute // minutes) * minutes)
    elif time_unit == 'minute':
        return datetime(dt.year, dt.month, dt.day, dt.hour, dt.minute)
    return dt


def advance(dt, time_unit, step=1):
    """Move a unit-aligned datetime forward by step units (calendar-aware)."""
    if time_unit == 'year':
        return dt.replace(year=dt.year + step)
    if time_unit in ('quarter', 'month'):
        months = step * (3 if time_unit == 'quarter' else 1)
        index = dt.year * 12 + (dt.month - 1) + months
        return dt.replace(year=index // 12, month=index % 12 + 1)
    minutes = dict(TICK_UNITS)[time_unit]
    return dt + timedelta(minutes=minutes * step)


def format_tick(dt, time_unit):
    """Format a tick label for its unit."""
    if time_unit == 'year':
        return dt.strftime('%Y')
    elif time_unit == 'quarter':
        return f"Q{(dt.month - 1) // 3 + 1} {dt.year}"
    elif time_unit == 'month':
        return dt.strftime('%b %Y')
    elif time_unit == 'week':
        return dt.strftime('%b %d')
    elif time_unit == 'day':
        return dt.strftime('%b %d (%a)')
    elif time_unit in ('12hour', '6hour'):
        # Show the date on day boundaries
        if dt.hour == 0:
            return dt.strftime('%b %d %H:%M')
        return dt.strftime('%H:%M')
    return dt.strftime('%H:%M')


def axis_ticks(scale, target=DEFAULT_TICK_COUNT):
    """
    Compute labelled ticks for the scale's domain.

    Args:
        scale (TimeScale): Active time scale
        target (int): Desired maximum number of ticks

    Returns:
        list: AxisTick objects inside the domain, in time order
    """
    domain = scale.domain
    if domain.span.total_seconds() <= 0:
        return [AxisTick(domain.start, scale(domain.start),
                         format_tick(domain.start, 'day'))]

    unit, step = choose_tick_unit(domain.span, target)
    current = round_time(domain.start, unit)
    if unit == 'year' and step > 1:
        current = current.replace(year=max(1, current.year - current.year % step))

    ticks = []
    while current <= domain.end and len(ticks) < MAX_TICKS:
        if current >= domain.start:
            ticks.append(AxisTick(current, scale(current), format_tick(current, unit)))
        current = advance(current, unit, step)
    return ticks
