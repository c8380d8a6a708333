"""
Timeline Canvas Adapter - Bridges Qt input events and the timeline session.

This module provides the TimelineCanvasAdapter class which owns no widgets
and paints nothing. The hosting view forwards its wheel, mouse and touch
events here; the adapter parses them into intents (pan delta, zoom factor,
pointer gestures, selections), applies them to the TimelineSession and emits
the resulting frame for painting.
"""

import logging

from PyQt5.QtCore import QObject, Qt, pyqtSignal

from timeline.utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)


class TimelineCanvasAdapter(QObject):
    """
    Presentation adapter for a TimelineSession.

    Signals:
        frame_ready: Emitted with the new TimelineFrame after every handled intent
        viewport_changed: Emitted when the visible time range changes (start, end)
        event_selected: Emitted with the TimelineEvent a click selected
    """

    frame_ready = pyqtSignal(object)
    viewport_changed = pyqtSignal(object, object)  # (start, end)
    event_selected = pyqtSignal(object)

    # Touch point ids start at 0; keep the mouse out of their way
    MOUSE_POINTER_ID = -1

    def __init__(self, session, error_handler=None, parent=None):
        """
        Initialize the adapter.

        Args:
            session (TimelineSession): Session receiving the intents
            error_handler (ErrorHandler): Optional sink for handler failures;
                without one, exceptions propagate to the caller
            parent: Parent QObject
        """
        super().__init__(parent)
        self.session = session
        self.error_handler = error_handler
        self._mouse_down = False

    @property
    def frame(self):
        return self.session.frame

    # ------------------------------------------------------------------
    # Qt event translation
    # ------------------------------------------------------------------

    def handle_wheel_event(self, event):
        """
        Zoom around the pointer.

        Qt reports a positive angleDelta when the wheel rolls away from the
        user, which zooms in (the span shrinks).

        Args:
            event: QWheelEvent
        """
        angle = event.angleDelta().y()
        if angle:
            pointer_x = event.position().x()
            self._run("handling wheel event", self.session.wheel, -angle, pointer_x)
        event.accept()

    def handle_mouse_press(self, event):
        """
        Select a marker under the pointer, or start a pan.

        Args:
            event: QMouseEvent
        """
        if event.button() != Qt.LeftButton:
            return

        x, y = event.pos().x(), event.pos().y()
        marker = self.marker_at(x, y)
        if marker is not None:
            self.select_event(marker.event)
        else:
            self._mouse_down = True
            self._run("starting pan", self.session.pointer_down, self.MOUSE_POINTER_ID, x, y)
        event.accept()

    def handle_mouse_move(self, event):
        """
        Continue a mouse pan.

        Args:
            event: QMouseEvent
        """
        if not self._mouse_down:
            return
        self._run("panning", self.session.pointer_move,
                  self.MOUSE_POINTER_ID, event.pos().x(), event.pos().y())
        event.accept()

    def handle_mouse_release(self, event):
        """
        End a mouse pan.

        Args:
            event: QMouseEvent
        """
        if event.button() != Qt.LeftButton or not self._mouse_down:
            return
        self._mouse_down = False
        self._run("ending pan", self.session.pointer_up, self.MOUSE_POINTER_ID)
        event.accept()

    def handle_touch_event(self, event):
        """
        Drive one-finger pan and two-finger pinch from touch points.

        Args:
            event: QTouchEvent
        """
        for point in event.touchPoints():
            state = point.state()
            pos = point.pos()
            if state & Qt.TouchPointPressed:
                self._run("starting touch gesture", self.session.pointer_down, point.id(), pos.x(), pos.y())
            elif state & Qt.TouchPointMoved:
                self._run("moving touch gesture", self.session.pointer_move, point.id(), pos.x(), pos.y())
            elif state & Qt.TouchPointReleased:
                self._run("ending touch gesture", self.session.pointer_up, point.id())
        event.accept()

    # ------------------------------------------------------------------
    # Control slots
    # ------------------------------------------------------------------

    def zoom_in_clicked(self):
        self._run("zooming in", self.session.zoom_in)

    def zoom_out_clicked(self):
        self._run("zooming out", self.session.zoom_out)

    def reset_zoom(self):
        self._run("resetting zoom", self.session.reset_zoom)

    def set_filters(self, criteria):
        self._run("applying filters", self.session.apply_filters, criteria)

    def toggle_category(self, key):
        self._run("toggling legend category", self.session.toggle_category, key)

    def set_search(self, text):
        self._run("searching", self.session.set_search, text)

    def resize(self, container_width, compact=None):
        self._run("resizing timeline", self.session.resize, container_width, compact)

    def select_event(self, event):
        if self._run("selecting event", self.session.select_event, event) is not None:
            self.event_selected.emit(event)

    # ------------------------------------------------------------------

    def marker_at(self, x, y):
        """
        Find the topmost marker containing a point.

        Returns:
            MarkerGeometry or None
        """
        for marker in reversed(self.frame.markers):
            if (marker.x - x) ** 2 + (marker.y - y) ** 2 <= marker.radius ** 2:
                return marker
        return None

    def _run(self, context, func, *args):
        previous_domain = self.session.domain
        frame = ErrorHandler.safe_execute(
            func, *args, error_handler=self.error_handler, context=context
        )
        if frame is None:
            return None

        self.frame_ready.emit(frame)
        if frame.domain is not None and frame.domain != previous_domain:
            logger.debug(f"Viewport changed while {context}: {frame.domain!r}")
            self.viewport_changed.emit(frame.domain.start, frame.domain.end)
        return frame
