"""
side_roads.py — Junction zones and decorative side-road stubs.

Junctions come from the hand-curated MANUAL_ROUNDABOUTS list; stubs are
found by walking the route's graph nodes and keeping edges that lead to a
node that is not itself on the route.
"""

import logging
import math

from shapely.geometry import Point

from config import (
    JUNCTION_ARMS, JUNCTION_STUB_MARGIN, MANUAL_ROUNDABOUTS, MAX_STUBS,
    MIN_STUB_LENGTH, MIN_STUB_SPACING, STUB_BASE_LENGTH, STUB_LENGTH_VARIATION,
)

logger = logging.getLogger(__name__)


def project_junctions(projection, roundabouts=MANUAL_ROUNDABOUTS, arms=JUNCTION_ARMS):
    """Project curated roundabouts into game space with scaled radii."""
    junctions = []
    for rb in roundabouts:
        x, z = projection.to_game(rb["lat"], rb["lon"])
        junctions.append({
            "x": x,
            "z": z,
            "radius": projection.scale_length(rb["radius_m"]),
            "name": rb["name"],
            "arms": rb.get("arms", arms),
        })
    return junctions


def stub_length(x, z, base=STUB_BASE_LENGTH, variation=STUB_LENGTH_VARIATION):
    """Deterministic length in [base, base + variation] from the stub origin."""
    return base + round(abs(x * 7 + z * 13) % variation)


def _in_junction(point, junctions, margin):
    return any(point.distance(Point(j["x"], j["z"])) < j["radius"] + margin
               for j in junctions)


def detect_side_roads(graph, node_path, projection, junctions=(),
                      min_spacing=MIN_STUB_SPACING, min_length=MIN_STUB_LENGTH,
                      max_stubs=MAX_STUBS, junction_margin=JUNCTION_STUB_MARGIN):
    """Return up to ``max_stubs`` ``{"x", "z", "angle", "length"}`` stubs.

    ``angle`` is atan2(dx, dz) of the edge leaving the route.  Stubs inside
    a junction zone, shorter than ``min_length`` or within ``min_spacing``
    of an accepted stub are skipped.
    """
    on_route = set(node_path)
    stubs = []

    for node_id in node_path:
        node = graph.nodes.get(node_id)
        if node is None:
            continue
        fx, fz = projection.to_game(node.lat, node.lon)
        origin = Point(fx, fz)

        for edge in graph.edges_from(node_id):
            if edge.to in on_route:
                continue
            target = graph.nodes.get(edge.to)
            if target is None:
                continue

            tx, tz = projection.to_game(target.lat, target.lon)
            dx, dz = tx - fx, tz - fz
            if math.hypot(dx, dz) < min_length:
                continue
            if any(origin.distance(Point(s["x"], s["z"])) < min_spacing for s in stubs):
                continue
            if _in_junction(origin, junctions, junction_margin):
                continue

            stubs.append({
                "x": fx,
                "z": fz,
                "angle": math.atan2(dx, dz),
                "length": stub_length(fx, fz),
            })

    stubs = stubs[:max_stubs]
    logger.info(f"Detected {len(junctions)} junctions, {len(stubs)} side-road stubs")
    for j in junctions:
        logger.info(f"  Junction: {j['name']} at ({j['x']:.1f}, {j['z']:.1f}) r={j['radius']:.1f}")
    return stubs
