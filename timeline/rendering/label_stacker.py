"""
Label Stacker - Greedy row assignment for key-event annotations.

Labels are measured with a fixed per-character width because placement is
decided before anything is painted. Each label takes the first row whose
reserved extents are all disjoint from its own padded extent.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class LabelAnchor:
    """Horizontal text-alignment modes for annotation labels."""
    START = "start"
    MIDDLE = "middle"
    END = "end"


@dataclass(frozen=True)
class LabelPlacement:
    """
    Row and anchor assigned to one key-event label.

    Attributes:
        event: The key TimelineEvent
        row: Stack row (0 is closest to the axis)
        anchor: One of LabelAnchor.START / MIDDLE / END
        x: Marker ideal x the label is attached to
        x1: Left edge of the padded extent
        x2: Right edge of the padded extent
        text: Possibly truncated label text
        overflow: True when row exceeds the visible row budget
    """

    event: object
    row: int
    anchor: str
    x: float
    x1: float
    x2: float
    text: str
    overflow: bool = False

    def overlaps(self, other):
        return self.x1 < other.x2 and other.x1 < self.x2


class LabelStackPlacer:
    """
    Assigns each key event a (row, anchor) so labels on a row never collide.

    Row index is unbounded; max_rows only flags overflow, which is a known
    display condition rather than an error.
    """

    CHAR_WIDTH = 7
    LABEL_PADDING = 4
    MAX_LABEL_CHARS = 50
    ELLIPSIS = "…"

    # Anchor thresholds as fractions of chart width
    START_FRACTION = 0.33
    END_FRACTION = 0.66

    def __init__(self, char_width=CHAR_WIDTH, padding=LABEL_PADDING,
                 max_chars=MAX_LABEL_CHARS, max_rows=8):
        self.char_width = char_width
        self.padding = padding
        self.max_chars = max_chars
        self.max_rows = max_rows

    def label_text(self, title):
        if len(title) > self.max_chars:
            return title[:self.max_chars] + self.ELLIPSIS
        return title

    def label_width(self, text):
        return len(text) * self.char_width

    @classmethod
    def anchor_for(cls, x, chart_width):
        """
        Pick the text anchor from screen position alone (independent of row).

        Args:
            x (float): Label x position in pixels
            chart_width (float): Full chart width in pixels

        Returns:
            str: LabelAnchor.START in the left third, END in the right third,
            MIDDLE otherwise
        """
        if x < chart_width * cls.START_FRACTION:
            return LabelAnchor.START
        if x > chart_width * cls.END_FRACTION:
            return LabelAnchor.END
        return LabelAnchor.MIDDLE

    def place(self, key_events, scale, chart_width):
        """
        Stack key-event labels into non-overlapping rows.

        Args:
            key_events (list): Key TimelineEvents; sorted here by time with
                ingestion order as the tie-break
            scale: Callable mapping an instant to pixel x
            chart_width (float): Chart width used for anchor selection

        Returns:
            list: LabelPlacement per event in placement order
        """
        ordered = sorted(key_events, key=lambda event: (event.time, event.event_id))
        rows = []
        placements = []

        for event in ordered:
            x = scale(event.time)
            if x != x:  # NaN from a degenerate scale
                continue

            text = self.label_text(event.title)
            half = self.label_width(text) / 2
            candidate = LabelPlacement(
                event=event,
                row=0,
                anchor=self.anchor_for(x, chart_width),
                x=x,
                x1=x - half - self.padding,
                x2=x + half + self.padding,
                text=text,
            )

            row = 0
            while row < len(rows) and any(candidate.overlaps(placed) for placed in rows[row]):
                row += 1
            if row == len(rows):
                rows.append([])

            placement = LabelPlacement(
                event=event,
                row=row,
                anchor=candidate.anchor,
                x=x,
                x1=candidate.x1,
                x2=candidate.x2,
                text=text,
                overflow=row >= self.max_rows,
            )
            rows[row].append(placement)
            placements.append(placement)

        overflowed = sum(1 for placement in placements if placement.overflow)
        if overflowed:
            logger.debug(f"{overflowed} of {len(placements)} labels exceed {self.max_rows} rows")

        return placements
