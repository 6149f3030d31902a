"""
route_geometry.py — Planar projection and polyline clean-up for the loop.

Stages, in pipeline order:
  1. Projection       — lat/lon -> local (x, z) game units
  2. clean_route      — drop doubling-back vertices and near-duplicates
  3. resample_route   — uniform arc-length sampling (or simplify_route)
  4. close_loop       — make the last point meet the first

Every stage takes (points, labels) and returns new lists; labels stay
parallel to points throughout.
"""

import bisect
import logging
import math
from itertools import accumulate

from shapely.geometry import LineString

from config import (
    BACKTRACK_EPSILON, DP_EPSILON, DUPLICATE_POINT_DIST, LOOP_CLOSE_TOLERANCE,
    RESAMPLE_END_TOLERANCE, SAMPLE_INTERVAL, TARGET_SPAN,
)

logger = logging.getLogger(__name__)

METRES_PER_DEGREE = 111320


def dist2d(a, b) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def path_length(points) -> float:
    return sum(dist2d(a, b) for a, b in zip(points, points[1:]))


# ── Projection ───────────────────────────────────────────────────────

class Projection:
    """Equirectangular projection anchored at the route centroid.

    Raw metres are re-centred on the middle of the route's bounding box and
    scaled so its larger axis spans ``target_span`` game units.  Stops,
    junctions and stubs go through the same transform.
    """

    def __init__(self, lat0, lon0, cx=0.0, cz=0.0, scale=1.0):
        self.lat0 = lat0
        self.lon0 = lon0
        self.cos_lat = math.cos(math.radians(lat0))
        self.cx = cx
        self.cz = cz
        self.scale = scale

    @classmethod
    def fit(cls, latlons, target_span=TARGET_SPAN):
        """Fit a projection to a sequence of (lat, lon) route points."""
        if not latlons:
            raise ValueError("Cannot project an empty route")
        lat0 = sum(p[0] for p in latlons) / len(latlons)
        lon0 = sum(p[1] for p in latlons) / len(latlons)
        proj = cls(lat0, lon0)

        raw = [proj.raw(lat, lon) for lat, lon in latlons]
        min_x, max_x = min(p[0] for p in raw), max(p[0] for p in raw)
        min_z, max_z = min(p[1] for p in raw), max(p[1] for p in raw)
        span_x, span_z = max_x - min_x, max_z - min_z
        max_span = max(span_x, span_z)

        proj.cx = (min_x + max_x) / 2
        proj.cz = (min_z + max_z) / 2
        proj.scale = target_span / max_span if max_span > 0 else 1.0

        logger.info(f"Projection: center ({lat0:.5f}, {lon0:.5f})")
        logger.info(f"  Raw extent: {span_x:.0f}m x {span_z:.0f}m")
        logger.info(f"  Scale factor: {proj.scale:.2f} (1 game unit ~ {1 / proj.scale:.2f}m)")
        return proj

    def raw(self, lat, lon):
        """Metres east/south of the centroid (z grows southwards)."""
        x = (lon - self.lon0) * self.cos_lat * METRES_PER_DEGREE
        z = -(lat - self.lat0) * METRES_PER_DEGREE
        return x, z

    def to_game(self, lat, lon):
        x, z = self.raw(lat, lon)
        return (x - self.cx) * self.scale, (z - self.cz) * self.scale

    def scale_length(self, metres):
        return metres * self.scale


# ── Topology cleanup ─────────────────────────────────────────────────

def remove_backtracking(points, labels, epsilon=BACKTRACK_EPSILON):
    """Drop interior vertices where the path doubles back (turn > 90°)
    or touches a near-zero-length segment, until a pass removes nothing.

    Each pass judges every vertex against its neighbours from the start of
    that pass, so two adjacent vertices may go in the same pass.
    """
    points, labels = list(points), list(labels)
    while True:
        remove = set()
        for i in range(1, len(points) - 1):
            (ax, az), (bx, bz), (cx, cz) = points[i - 1], points[i], points[i + 1]
            abx, abz = bx - ax, bz - az
            bcx, bcz = cx - bx, cz - bz
            if math.hypot(abx, abz) < epsilon or math.hypot(bcx, bcz) < epsilon:
                remove.add(i)
            elif abx * bcx + abz * bcz < 0:
                remove.add(i)
        if not remove:
            return points, labels
        logger.info(f"  Removing {len(remove)} backtracking points")
        points = [p for i, p in enumerate(points) if i not in remove]
        labels = [lb for i, lb in enumerate(labels) if i not in remove]


def collapse_duplicates(points, labels, min_dist=DUPLICATE_POINT_DIST):
    """Merge runs of points closer than ``min_dist``; the first one wins."""
    if not points:
        return [], []
    kept, kept_labels = [points[0]], [labels[0]]
    for p, lb in zip(points[1:], labels[1:]):
        if dist2d(p, kept[-1]) > min_dist:
            kept.append(p)
            kept_labels.append(lb)
    return kept, kept_labels


def clean_route(points, labels, epsilon=BACKTRACK_EPSILON, min_dist=DUPLICATE_POINT_DIST):
    """Remove routing artifacts from a projected path.

    Collapsing duplicates can expose a new doubling-back vertex, so both
    passes repeat until the point count stops changing.
    """
    before = len(points)
    while True:
        n = len(points)
        points, labels = remove_backtracking(points, labels, epsilon)
        points, labels = collapse_duplicates(points, labels, min_dist)
        if len(points) == n:
            break
    logger.info(f"After backtrack removal: {before} -> {len(points)} points")
    return points, labels


# ── Simplification ───────────────────────────────────────────────────

def resample_route(points, labels, interval=SAMPLE_INTERVAL, end_tolerance=RESAMPLE_END_TOLERANCE):
    """Emit a point every ``interval`` units of path length.

    Interpolated points take the label of the nearer end of the segment
    they fall on.  The final original point is appended when the last
    sample falls short of it by more than ``end_tolerance``.
    """
    if interval <= 0:
        raise ValueError(f"Sample interval must be positive, got {interval}")
    if len(points) < 2:
        return list(points), list(labels)

    cum_len = list(accumulate((dist2d(a, b) for a, b in zip(points, points[1:])), initial=0.0))
    total = cum_len[-1]
    logger.info(f"Total route path length: {total:.1f} game units")
    if total == 0:
        return [points[0]], [labels[0]]

    line = LineString(points)
    out, out_labels = [tuple(points[0])], [labels[0]]
    k = 1
    while k * interval < total:
        d = k * interval
        p = line.interpolate(d)
        seg = min(bisect.bisect_right(cum_len, d) - 1, len(points) - 2)
        seg_len = cum_len[seg + 1] - cum_len[seg]
        t = (d - cum_len[seg]) / seg_len if seg_len > 0 else 0.0
        out.append((p.x, p.y))
        out_labels.append(labels[seg] if t < 0.5 else labels[seg + 1])
        k += 1

    if dist2d(points[-1], out[-1]) > end_tolerance:
        out.append(tuple(points[-1]))
        out_labels.append(labels[-1])

    logger.info(f"Sampled: {len(points)} -> {len(out)} waypoints (interval={interval})")
    return out, out_labels


def _kept_indices(points, simplified):
    """Indices into ``points`` of the vertices that survived simplification."""
    indices, j = [], 0
    for q in simplified:
        while j < len(points) and tuple(points[j]) != tuple(q):
            j += 1
        indices.append(min(j, len(points) - 1))
        j += 1
    return indices


def simplify_route(points, labels, epsilon=DP_EPSILON, max_gap=SAMPLE_INTERVAL):
    """Douglas-Peucker simplification, then re-densify long gaps.

    Wherever two kept vertices are more than ``max_gap`` apart, original
    vertices between them are put back roughly every 0.8 * max_gap.  Unlike
    resample_route this cannot split a single long original segment.
    """
    if len(points) < 3:
        return list(points), list(labels)

    simplified = list(LineString(points).simplify(epsilon, preserve_topology=False).coords)
    kept = _kept_indices(points, simplified)

    out_idx = [kept[0]]
    for prev_i, cur_i in zip(kept, kept[1:]):
        if dist2d(points[prev_i], points[cur_i]) > max_gap:
            accum = 0.0
            for j in range(prev_i + 1, cur_i):
                accum += dist2d(points[j], points[j - 1])
                if accum >= max_gap * 0.8:
                    out_idx.append(j)
                    accum = 0.0
        out_idx.append(cur_i)

    logger.info(f"Simplified: {len(points)} -> {len(out_idx)} waypoints "
                f"(epsilon={epsilon}, max gap={max_gap})")
    return [tuple(points[i]) for i in out_idx], [labels[i] for i in out_idx]


# ── Loop closure ─────────────────────────────────────────────────────

def close_loop(points, labels, tolerance=LOOP_CLOSE_TOLERANCE):
    """Append a copy of the first point if the loop is left open."""
    points, labels = list(points), list(labels)
    if not points:
        return points, labels
    gap = dist2d(points[0], points[-1])
    logger.info(f"Loop closure gap: {gap:.1f} game units")
    if gap > tolerance:
        points.append(tuple(points[0]))
        labels.append(labels[0])
        logger.info("  Added closing waypoint")
    return points, labels
