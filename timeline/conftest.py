"""
Shared fixtures for the timeline tests.
"""

from datetime import datetime

import pytest
from PyQt5.QtCore import QCoreApplication

from timeline.data.records import TimelineEvent


@pytest.fixture(scope="session")
def qt_app():
    """Process-wide Qt application for signal tests (no display needed)."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def make_event():
    """Factory building TimelineEvents with sequential ids."""
    counter = {'next_id': 0}

    def _make(time=datetime(2020, 1, 1), title="Event", categories=("chemical",),
              topics=(), source="", is_key_event=False, notes=""):
        event = TimelineEvent(
            event_id=counter['next_id'],
            time=time,
            title=title,
            notes=notes,
            source=source,
            categories=tuple(categories),
            topics=tuple(topics),
            is_key_event=is_key_event,
            display_categories=tuple(c.title() for c in categories),
            display_topics=tuple(t.title() for t in topics),
        )
        counter['next_id'] += 1
        return event

    return _make
