"""
Interactive Event Timeline Module

This module provides the engine behind a zoomable, filterable timeline of
dated events: viewport control for pan/wheel/pinch/button gestures,
collision-free marker layout, key-event label stacking and the filter
pipeline that derives the visible event set.
"""

__version__ = "1.0.0"
__author__ = "Timeline Development Team"

from .data.filter_pipeline import ALL, FilterCriteria, filter_events
from .data.records import TimelineEvent, build_event, load_events
from .rendering.time_domain import MIN_SPAN, TimeDomain, TimeScale, clamp_domain
from .rendering.viewport_controller import ViewportController
from .timeline_session import TimelineFrame, TimelineSession

__all__ = [
    'ALL',
    'FilterCriteria',
    'MIN_SPAN',
    'TimeDomain',
    'TimeScale',
    'TimelineEvent',
    'TimelineFrame',
    'TimelineSession',
    'ViewportController',
    'build_event',
    'clamp_domain',
    'filter_events',
    'load_events',
]
