"""
route_data.py — Serialize the finished loop for the game layer.

The artifact holds five collections:

    route      [[x, z], ...]
    stops      [{"i": index, "n": name}, ...]        strictly increasing i
    bounds     {"minX", "maxX", "minZ", "maxZ"}
    junctions  [{"x", "z", "radius", "name", "arms"}, ...]
    sideRoads  [{"x", "z", "angle", "length"}, ...]

It is written as JSON, or as an ES module for a ``.js`` output path.  No
timestamps are embedded so identical inputs give identical bytes.
"""

import json
import logging
import math
import os
import tempfile

from config import ANGLE_PRECISION, BOUNDS_PADDING, COORD_PRECISION, MAX_GAP_WARNING

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("route", "stops", "bounds", "junctions", "sideRoads")
BOUNDS_KEYS = ("minX", "maxX", "minZ", "maxZ")


def _r(value, digits=COORD_PRECISION):
    # + 0.0 folds -0.0 into 0.0
    return round(value, digits) + 0.0


def compute_bounds(route, padding=BOUNDS_PADDING):
    xs = [p[0] for p in route]
    zs = [p[1] for p in route]
    return {
        "minX": math.floor(min(xs) - padding),
        "maxX": math.ceil(max(xs) + padding),
        "minZ": math.floor(min(zs) - padding),
        "maxZ": math.ceil(max(zs) + padding),
    }


def build_route_data(route, stops, junctions=(), side_roads=(), padding=BOUNDS_PADDING):
    """Assemble the artifact dict, rounding coordinates for output."""
    return {
        "route": [[_r(x), _r(z)] for x, z in route],
        "stops": [{"i": s["idx"], "n": s["name"]} for s in stops],
        "bounds": compute_bounds(route, padding),
        "junctions": [
            {"x": _r(j["x"]), "z": _r(j["z"]), "radius": _r(j["radius"]),
             "name": j["name"], "arms": j["arms"]}
            for j in junctions
        ],
        "sideRoads": [
            {"x": _r(s["x"]), "z": _r(s["z"]),
             "angle": _r(s["angle"], ANGLE_PRECISION), "length": s["length"]}
            for s in side_roads
        ],
    }


def validate_route_data(data, min_points=2):
    """Validate an artifact dict.

    Returns a list of error strings (empty if valid).
    """
    errors = []
    for key in REQUIRED_KEYS:
        if key not in data:
            errors.append(f"Missing '{key}'")
    if errors:
        return errors

    route = data["route"]
    if len(route) < min_points:
        errors.append(f"Route has {len(route)} point(s), needs at least {min_points}")
    for i, p in enumerate(route):
        if len(p) != 2:
            errors.append(f"Route point {i}: expected [x, z]")

    prev = -1
    for s in data["stops"]:
        idx = s.get("i")
        if not isinstance(idx, int) or not 0 <= idx < len(route):
            errors.append(f"Stop '{s.get('n')}': index {idx} outside route")
            continue
        if idx <= prev:
            errors.append(f"Stop '{s.get('n')}': index {idx} not after {prev}")
        if not s.get("n"):
            errors.append(f"Stop at index {idx} has no name")
        prev = idx

    bounds = data["bounds"]
    if any(k not in bounds for k in BOUNDS_KEYS):
        errors.append("Bounds must have minX, maxX, minZ, maxZ")
    elif bounds["minX"] > bounds["maxX"] or bounds["minZ"] > bounds["maxZ"]:
        errors.append("Bounds min exceeds max")

    for j in data["junctions"]:
        if j.get("radius", 0) <= 0:
            errors.append(f"Junction '{j.get('name')}': radius must be positive")
    return errors


def route_quality(route, max_gap=MAX_GAP_WARNING):
    """Gap check over consecutive route points.

    Gaps above ``max_gap`` are logged as warnings and listed; they never
    stop the run.
    """
    worst = 0.0
    warnings = []
    for i in range(1, len(route)):
        d = math.hypot(route[i][0] - route[i - 1][0], route[i][1] - route[i - 1][1])
        worst = max(worst, d)
        if d > max_gap:
            msg = f"Gap of {d:.1f} game units between waypoints {i - 1} and {i}"
            logger.warning(f"  WARNING: {msg}")
            warnings.append(msg)
    logger.info(f"  Max gap between consecutive waypoints: {worst:.1f} game units")
    if not warnings:
        logger.info(f"  All gaps under {max_gap} game units — route is well-connected")
    return {"max_gap": round(worst, 3), "gap_warnings": warnings}


# ── Writers ──────────────────────────────────────────────────────────

def _js_string(s):
    return "'" + s.replace("\\", "\\\\").replace("'", "\\'") + "'"


def render_js_module(data):
    """ES module with ROUTE, STOPS, BOUNDS, JUNCTIONS and SIDE_ROADS."""
    route = data["route"]
    route_lines = []
    for i in range(0, len(route), 5):
        chunk = route[i:i + 5]
        route_lines.append("  " + ", ".join(f"[{x}, {z}]" for x, z in chunk) + ",")
    stop_lines = [f"  {{ i: {s['i']}, n: {_js_string(s['n'])} }}," for s in data["stops"]]
    junction_lines = [
        f"  {{ x: {j['x']}, z: {j['z']}, radius: {j['radius']}, "
        f"name: {_js_string(j['name'])}, arms: {j['arms']} }},"
        for j in data["junctions"]
    ]
    stub_lines = [
        f"  {{ x: {s['x']}, z: {s['z']}, angle: {s['angle']}, length: {s['length']} }},"
        for s in data["sideRoads"]
    ]
    b = data["bounds"]
    return "\n".join([
        "// Auto-generated by build_route.py — do not edit manually",
        "// Source: OpenStreetMap Overpass API",
        "",
        "export const ROUTE = [", *route_lines, "];",
        "",
        "export const STOPS = [", *stop_lines, "];",
        "",
        "export const BOUNDS = {",
        f"  minX: {b['minX']},",
        f"  maxX: {b['maxX']},",
        f"  minZ: {b['minZ']},",
        f"  maxZ: {b['maxZ']},",
        "};",
        "",
        "export const JUNCTIONS = [", *junction_lines, "];",
        "",
        "export const SIDE_ROADS = [", *stub_lines, "];",
        "",
    ])


def render_route_data(data, output_file):
    if output_file.endswith(".js"):
        return render_js_module(data)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_route_data(data, output_file):
    """Write the artifact atomically: a failed write leaves no partial file."""
    text = render_route_data(data, output_file)
    directory = os.path.dirname(os.path.abspath(output_file))
    fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, output_file)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    logger.info(f"Wrote {output_file}")
    logger.info(f"  {len(data['route'])} waypoints, {len(data['stops'])} stops")
    b = data["bounds"]
    logger.info(f"  BOUNDS: X [{b['minX']}, {b['maxX']}], Z [{b['minZ']}, {b['maxZ']}]")
