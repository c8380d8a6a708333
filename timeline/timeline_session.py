"""
Timeline Session - Explicit context object for one interactive timeline.

The session owns every piece of mutable state the timeline needs (raw events,
filter criteria, the visible set, the viewport, geometry caches and the
selected marker) and threads it through the UI-agnostic engines. Each input
is handled synchronously and produces a TimelineFrame that a presentation
layer can paint directly.

Frames are always computed in the same order: domain -> axis -> markers ->
annotations, because annotation connectors start at the laid-out marker y.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from timeline.data.filter_pipeline import FilterCriteria, filter_events
from timeline.data.records import TimelineEvent, full_extent
from timeline.rendering.collision_layout import CollisionLayoutEngine
from timeline.rendering.label_stacker import LabelStackPlacer
from timeline.rendering.time_axis import AxisTick, axis_ticks
from timeline.rendering.time_domain import TimeDomain, TimeScale
from timeline.rendering.viewport_controller import DomainUpdate, ViewportController
from timeline.utils.timeline_config import TimelineConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerGeometry:
    event: TimelineEvent
    x: float
    y: float
    radius: float
    offset_x: float
    category_key: Optional[str]
    viewed: bool
    selected: bool


@dataclass(frozen=True)
class LabelGeometry:
    event: TimelineEvent
    row: int
    anchor: str
    x: float
    y: float
    connector_from_y: float
    text: str
    overflow: bool


@dataclass(frozen=True)
class TimelineFrame:
    """
    Everything the presentation layer needs to paint one state.

    Attributes:
        domain: Active time window (None when there are no events at all)
        ticks: Axis ticks for the domain
        markers: One MarkerGeometry per visible event
        labels: One LabelGeometry per visible key event (empty in compact layouts)
        repacked: True when this frame ran a full collision relaxation
        compact: True when the narrow layout without annotations is active
    """

    domain: Optional[TimeDomain]
    ticks: List[AxisTick]
    markers: List[MarkerGeometry]
    labels: List[LabelGeometry]
    repacked: bool
    compact: bool

    @property
    def is_empty(self):
        return not self.markers


class TimelineSession:
    """
    Owns timeline state and turns intents (gestures, filter changes, resizes,
    selections) into frames.
    """

    def __init__(self, events, container_width=1000, config=None, criteria=None,
                 compact=None):
        """
        Initialize the session.

        Args:
            events (list): Complete unfiltered TimelineEvents (read-only from here on)
            container_width (float): Width of the hosting container in pixels
            config (TimelineConfig): Tuning constants (default: built-in defaults)
            criteria (FilterCriteria): Initial filters (default: show everything)
            compact (bool): Force the narrow layout on/off (default: from width)
        """
        self.config = config or TimelineConfig()
        self.events = list(events)
        self.full_extent = full_extent(self.events)
        self.criteria = criteria or FilterCriteria.show_everything(self.events)

        self.width = self.config.chart_width(container_width)
        self.compact = self.config.is_compact(container_width) if compact is None else compact

        markers = self.config.config['markers']
        labels = self.config.config['labels']
        self.layout_engine = CollisionLayoutEngine(
            radius=markers['radius'],
            center_y=self.config.dot_center_y,
            iterations=markers['iterations'],
            collide_padding=markers['collide_padding'],
        )
        self.label_placer = LabelStackPlacer(
            char_width=labels['char_width'],
            padding=labels['padding'],
            max_chars=labels['max_chars'],
            max_rows=self.config.layout['anno_rows_max'],
        )

        self.viewport = None
        if self.full_extent is not None:
            self.viewport = ViewportController(
                self.full_extent,
                min_span=self.config.min_span,
                hysteresis=self.config.hysteresis,
            )

        self.selected_event = None
        self.visible_events = []
        self.key_events = []
        self._refilter()
        self.frame = self._redraw(repack=True)

        logger.info(
            f"Timeline session ready: {len(self.events)} events, "
            f"{len(self.visible_events)} visible, width={self.width}"
        )

    # ------------------------------------------------------------------
    # Scale
    # ------------------------------------------------------------------

    @property
    def domain(self):
        return self.viewport.domain if self.viewport else None

    @property
    def scale(self):
        """Time scale for the active domain, or None without events."""
        if self.viewport is None:
            return None
        margin = self.config.layout['margin_x']
        return TimeScale(self.viewport.domain, margin, self.width - margin)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def apply_filters(self, criteria):
        """Replace the filter criteria; the visible set changes so markers repack."""
        self.criteria = criteria
        self._refilter()
        return self._commit(self._redraw(repack=True))

    def toggle_category(self, key):
        return self.apply_filters(self.criteria.with_category_toggled(key))

    def set_key_events_enabled(self, enabled):
        return self.apply_filters(self.criteria.with_key_events(enabled))

    def set_topics(self, topics):
        return self.apply_filters(self.criteria.with_topics(topics))

    def set_sources(self, sources):
        return self.apply_filters(self.criteria.with_sources(sources))

    def set_search(self, text):
        return self.apply_filters(self.criteria.with_search(text))

    def _refilter(self):
        self.visible_events = filter_events(self.events, self.criteria)
        self.key_events = [event for event in self.visible_events if event.is_key_event]

    # ------------------------------------------------------------------
    # Viewport gestures
    # ------------------------------------------------------------------

    def pan_by(self, pixel_delta):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.pan_by(pixel_delta, self.scale))

    def wheel(self, delta_y, pointer_x):
        """
        Zoom one wheel tick around the instant under the pointer.

        Args:
            delta_y (float): Positive grows the span (zoom out), negative shrinks it
            pointer_x (float): Pointer x in chart pixels
        """
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.wheel(delta_y, self.scale.invert(pointer_x)))

    def zoom_by(self, factor, anchor=None):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.zoom_by(factor, anchor))

    def zoom_in(self):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.zoom_in())

    def zoom_out(self):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.zoom_out())

    def set_domain(self, start: datetime, end: datetime):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.set_domain(start, end))

    def reset_zoom(self):
        if self.viewport is None:
            return self.frame
        return self._after(self.viewport.reset())

    def pointer_down(self, pointer_id, x, y):
        if self.viewport is not None:
            self.viewport.pointer_down(pointer_id, x, y, self.scale)
        return self.frame

    def pointer_move(self, pointer_id, x, y):
        if self.viewport is None:
            return self.frame
        update = self.viewport.pointer_move(pointer_id, x, y, self.scale)
        if update is None:
            return self.frame
        return self._after(update)

    def pointer_up(self, pointer_id):
        if self.viewport is not None:
            self.viewport.pointer_up(pointer_id, self.scale)
        return self.frame

    def _after(self, update: DomainUpdate):
        if not update.changed:
            return self.frame
        return self._commit(self._redraw(repack=update.repack))

    # ------------------------------------------------------------------
    # Resize, selection, audit
    # ------------------------------------------------------------------

    def resize(self, container_width, compact=None):
        """Recompute the chart width (and compact mode) and repack."""
        self.width = self.config.chart_width(container_width)
        self.compact = self.config.is_compact(container_width) if compact is None else compact
        logger.info(f"Timeline resized: width={self.width} compact={self.compact}")
        return self._commit(self._redraw(repack=True))

    def select_event(self, event):
        """
        Make event the active selection.

        The previously selected event is marked viewed once it is superseded.
        """
        previous = self.selected_event
        if previous is not None and previous is not event:
            previous.mark_viewed()
        self.selected_event = event
        return self._commit(self._redraw(repack=False))

    def audit_zoom_clipping(self):
        """
        Count visible events inside and outside the current domain.

        Returns:
            dict: total_filtered, visible_in_domain, clipped_by_zoom
        """
        if self.viewport is None:
            inside = 0
        else:
            inside = sum(1 for event in self.visible_events if self.viewport.domain.contains(event.time))
        return {
            'total_filtered': len(self.visible_events),
            'visible_in_domain': inside,
            'clipped_by_zoom': len(self.visible_events) - inside,
        }

    # ------------------------------------------------------------------
    # Frame computation
    # ------------------------------------------------------------------

    def _commit(self, frame):
        self.frame = frame
        return frame

    def _redraw(self, repack):
        # 1) domain
        scale = self.scale
        if scale is None:
            return TimelineFrame(None, [], [], [], False, self.compact)

        # 2) axis
        ticks = axis_ticks(scale)

        # 3) markers
        layouts_before = self.layout_engine.layout_count
        positions = self.layout_engine.position(self.visible_events, scale, repack)
        repacked = self.layout_engine.layout_count != layouts_before
        radius = self.layout_engine.radius

        markers = [
            MarkerGeometry(
                event=p.event,
                x=p.x,
                y=p.y,
                radius=radius,
                offset_x=p.offset_x,
                category_key=p.event.category_key,
                viewed=p.event.viewed,
                selected=p.event is self.selected_event,
            )
            for p in positions
        ]

        # 4) annotations
        labels = []
        if not self.compact:
            marker_y = {p.event.event_id: p.y for p in positions}
            anno_y0 = self.config.anno_y0
            row_height = self.config.layout['anno_row']
            for placement in self.label_placer.place(self.key_events, scale, self.width):
                labels.append(LabelGeometry(
                    event=placement.event,
                    row=placement.row,
                    anchor=placement.anchor,
                    x=placement.x,
                    y=anno_y0 + placement.row * row_height,
                    connector_from_y=marker_y.get(placement.event.event_id, self.config.dot_center_y),
                    text=placement.text,
                    overflow=placement.overflow,
                ))

        return TimelineFrame(scale.domain, ticks, markers, labels, repacked, self.compact)

    def __repr__(self):
        return (
            f"TimelineSession(events={len(self.events)}, visible={len(self.visible_events)}, "
            f"domain={self.domain!r})"
        )
