"""
Collision Layout Engine - Positions event markers along the time axis without overlap.

This module provides the CollisionLayoutEngine class which implements:
- Fixed-iteration relaxation (pull to ideal x, pull to the centre line,
  pairwise circle repulsion)
- Collision-only settle passes that open tall same-instant stacks fully
- Deterministic seeding of stacked events so identical inputs give identical output
- An offset cache so pans and sub-threshold zooms reproject in O(N)
"""

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerPosition:
    """
    Laid-out position of one event marker.

    Attributes:
        event: The TimelineEvent this marker represents
        ideal_x: scale(event.time)
        offset_x: Signed horizontal displacement absorbed by collision resolution
        y: Packed vertical position
    """

    event: object
    ideal_x: float
    offset_x: float
    y: float

    @property
    def x(self):
        return self.ideal_x + self.offset_x


class CollisionLayoutEngine:
    """
    Deterministic collision-resolving layout for event markers.

    Runs a fixed number of cooling iterations, then collision-only settle
    passes until no two markers overlap (capped at MAX_SETTLE_PASSES).
    """

    ITERATIONS = 150

    # Extra pixels between neighbouring circles
    COLLIDE_PADDING = 1.0

    # Force strengths (multiplied by the cooling factor alpha)
    X_STRENGTH = 1.0
    Y_STRENGTH = 0.1

    # Cooling schedule: alpha reaches ALPHA_MIN after 300 iterations
    ALPHA_MIN = 0.001
    ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)

    # Vertical spacing of initial seeds inside a cluster
    SEED_SPACING = 1.0

    # Post-cooling collision passes
    SETTLE_TOLERANCE = 0.01
    MAX_SETTLE_PASSES = 1000

    def __init__(self, radius=8.0, center_y=168.0, iterations=ITERATIONS,
                 collide_padding=COLLIDE_PADDING):
        """
        Initialize the layout engine.

        Args:
            radius (float): Marker circle radius in pixels
            center_y (float): Vertical centre line markers are pulled toward
            iterations (int): Relaxation iterations per full layout
            collide_padding (float): Extra spacing added to the collision radius
        """
        self.radius = radius
        self.center_y = center_y
        self.iterations = iterations
        self.collide_padding = collide_padding

        # event_id -> (offset_x, y) from the last full relaxation
        self._cache = {}
        self.layout_count = 0
        self.reprojection_count = 0

    def layout(self, events, scale, center_y=None, radius=None):
        """
        Run a full relaxation and refresh the offset cache.

        Args:
            events (list): TimelineEvents to position
            scale: Callable mapping an instant to pixel x
            center_y (float): Override for the vertical centre line
            radius (float): Override for the marker radius

        Returns:
            list: MarkerPosition per event, in input order
        """
        if center_y is not None:
            self.center_y = center_y
        if radius is not None:
            self.radius = radius

        self._cache = {}
        self.layout_count += 1
        if not events:
            return []

        ideal = [scale(event.time) for event in events]
        xs = list(ideal)
        ys = self._seed_positions(ideal)
        self._relax(xs, ys, ideal)

        positions = []
        for event, ideal_x, x, y in zip(events, ideal, xs, ys):
            offset_x = x - ideal_x
            self._cache[event.event_id] = (offset_x, y)
            positions.append(MarkerPosition(event, ideal_x, offset_x, y))

        logger.debug(f"Packed {len(events)} markers in {self.iterations} iterations")
        return positions

    def reproject(self, events, scale):
        """
        Reapply cached offsets to a new scale without re-running the physics.

        Args:
            events (list): TimelineEvents laid out by the last layout() call
            scale: Callable mapping an instant to pixel x

        Returns:
            list: MarkerPosition per event; new ideal x, cached offset and y
        """
        self.reprojection_count += 1
        positions = []
        for event in events:
            offset_x, y = self._cache.get(event.event_id, (0.0, self.center_y))
            positions.append(MarkerPosition(event, scale(event.time), offset_x, y))
        return positions

    def position(self, events, scale, repack):
        """
        Lay out events, choosing between a full relaxation and reprojection.

        A full relaxation runs when repack is requested or when the cache does
        not describe exactly this event set (the visible data changed).
        """
        if repack or not self.is_cached(events):
            return self.layout(events, scale)
        return self.reproject(events, scale)

    def is_cached(self, events):
        if len(events) != len(self._cache):
            return False
        return all(event.event_id in self._cache for event in events)

    def clear_cache(self):
        self._cache.clear()

    @property
    def collide_radius(self):
        return self.radius + self.collide_padding

    def _seed_positions(self, ideal):
        """
        Spread chained clusters symmetrically about the centre line.

        Events whose ideal x values chain within one collision diameter form a
        cluster. Seeds are ordered by (ideal x, input order) so same-instant
        events get symmetric starting offsets and the result is reproducible.
        """
        diameter = 2 * self.collide_radius
        order = sorted(range(len(ideal)), key=lambda i: (ideal[i], i))
        ys = [self.center_y] * len(ideal)

        cluster = []
        for index in order:
            if cluster and ideal[index] - ideal[cluster[-1]] >= diameter:
                self._spread(cluster, ys)
                cluster = []
            cluster.append(index)
        self._spread(cluster, ys)
        return ys

    def _spread(self, cluster, ys):
        middle = (len(cluster) - 1) / 2
        for rank, index in enumerate(cluster):
            ys[index] = self.center_y + (rank - middle) * self.SEED_SPACING

    def _relax(self, xs, ys, ideal):
        min_dist = 2 * self.collide_radius
        alpha = 1.0

        for _ in range(self.iterations):
            alpha *= 1 - self.ALPHA_DECAY
            x_pull = self.X_STRENGTH * alpha
            y_pull = self.Y_STRENGTH * alpha

            for i in range(len(xs)):
                xs[i] += (ideal[i] - xs[i]) * x_pull
                ys[i] += (self.center_y - ys[i]) * y_pull

            self._collide(xs, ys, min_dist)

        # Without the pulls, tall stacks still compressed by the cooling loop
        # open up until no pair overlaps beyond SETTLE_TOLERANCE
        for passes in range(self.MAX_SETTLE_PASSES):
            if self._collide(xs, ys, min_dist) <= self.SETTLE_TOLERANCE:
                if passes:
                    logger.debug(f"Settled {len(xs)} markers in {passes} extra passes")
                break
        else:
            logger.warning(f"Markers still overlap after {self.MAX_SETTLE_PASSES} settle passes")

    def _collide(self, xs, ys, min_dist):
        """
        One collision pass: every overlapping pair is pushed apart by half
        its overlap along the line joining the centres.

        All pairs read the same positions and the pushes are applied
        afterwards, so the pass does not depend on visiting order.

        Returns:
            float: Largest overlap seen before the pushes were applied
        """
        n = len(xs)
        min_dist_sq = min_dist * min_dist
        push_x = [0.0] * n
        push_y = [0.0] * n
        worst = 0.0
        order = sorted(range(n), key=lambda i: (xs[i], i))

        for a, i in enumerate(order):
            for j in order[a + 1:]:
                gap_x = xs[j] - xs[i]
                if gap_x >= min_dist:
                    break
                gap_y = ys[j] - ys[i]
                dist_sq = gap_x * gap_x + gap_y * gap_y
                if dist_sq >= min_dist_sq:
                    continue

                dist = math.sqrt(dist_sq)
                if dist == 0:
                    # Exact coincidence: split vertically, lower index downward
                    ux, uy = 0.0, (1.0 if j > i else -1.0)
                else:
                    ux, uy = gap_x / dist, gap_y / dist

                overlap = min_dist - dist
                worst = max(worst, overlap)
                half_overlap = overlap / 2
                push_x[i] -= ux * half_overlap
                push_y[i] -= uy * half_overlap
                push_x[j] += ux * half_overlap
                push_y[j] += uy * half_overlap

        for i in range(n):
            xs[i] += push_x[i]
            ys[i] += push_y[i]
        return worst

    def __repr__(self):
        return (
            f"CollisionLayoutEngine(radius={self.radius}, center_y={self.center_y}, "
            f"iterations={self.iterations}, cached={len(self._cache)})"
        )
