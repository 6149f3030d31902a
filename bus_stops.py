"""
bus_stops.py — Bind bus stops to route indices.

A stop is a dict ``{"idx": int, "name": str | None, "dist": float}`` where
``idx`` points into the final route.  After select_stops the list is ordered
by strictly increasing ``idx`` and consecutive stops are at least
MIN_STOP_SPACING apart on the route.
"""

import logging

from config import (
    MAX_STOPS, MIN_MATCHED_STOPS, MIN_STOP_SPACING, MIN_STOPS,
    STOP_DEDUP_WINDOW, STOP_MATCH_RADIUS, STOP_NAME_SUFFIXES,
    SYNTHETIC_STOP_DIVISIONS,
)
from route_geometry import dist2d
from route_solver import RouteBuildError

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "Stop "


def project_stops(bus_stops, projection):
    """Attach a game-space ``pos`` to each raw ``{"lat", "lon", "name"}`` stop."""
    return [{**s, "pos": projection.to_game(s["lat"], s["lon"])} for s in bus_stops]


def nearest_index(route, pos):
    """(index, distance) of the route point closest to ``pos``."""
    best_idx, best_dist = -1, float("inf")
    for i, p in enumerate(route):
        d = dist2d(pos, p)
        if d < best_dist:
            best_idx, best_dist = i, d
    return best_idx, best_dist


def _better(candidate, current):
    """Named beats unnamed; otherwise the closer match wins."""
    if bool(candidate["name"]) != bool(current["name"]):
        return bool(candidate["name"])
    return candidate["dist"] < current["dist"]


def enforce_spacing(route, stops, min_spacing=MIN_STOP_SPACING):
    """Keep stops (in index order) that sit far enough from the last kept one."""
    selected = []
    for s in sorted(stops, key=lambda s: s["idx"]):
        if selected:
            last = selected[-1]
            if s["idx"] <= last["idx"]:
                continue
            if dist2d(route[s["idx"]], route[last["idx"]]) < min_spacing:
                continue
        selected.append(s)
    return selected


def match_stops(route, stops, match_radius=STOP_MATCH_RADIUS,
                dedup_window=STOP_DEDUP_WINDOW, min_spacing=MIN_STOP_SPACING,
                max_stops=MAX_STOPS):
    """Match projected stops (with ``pos``) onto ``route``.

    Stops further than ``match_radius`` from every route point are dropped.
    Matches within ``dedup_window`` indices of each other collapse to one.
    """
    candidates = []
    for stop in stops:
        idx, d = nearest_index(route, stop["pos"])
        if idx >= 0 and d <= match_radius:
            candidates.append({"idx": idx, "dist": d, "name": stop.get("name")})

    candidates.sort(key=lambda c: c["idx"])

    deduped = []
    for c in candidates:
        if deduped and abs(deduped[-1]["idx"] - c["idx"]) < dedup_window:
            if _better(c, deduped[-1]):
                deduped[-1] = c
        else:
            deduped.append(c)

    return enforce_spacing(route, deduped, min_spacing)[:max_stops]


def assign_street_names(stops, street_labels):
    """Name unnamed or placeholder stops after the street they sit on."""
    for stop in stops:
        name = stop.get("name")
        if name and not name.startswith(PLACEHOLDER_PREFIX):
            continue
        label = street_labels[min(stop["idx"], len(street_labels) - 1)] if street_labels else None
        stop["name"] = label or "Unknown"


def synthesize_stops(route, street_labels, divisions=SYNTHETIC_STOP_DIVISIONS):
    """Evenly spaced placeholder stops named after their streets."""
    interval = max(1, len(route) // divisions)
    synthetic = [{"idx": i, "dist": 0.0, "name": f"{PLACEHOLDER_PREFIX}{i}"}
                 for i in range(0, len(route) - 1, interval)]
    assign_street_names(synthetic, street_labels)
    return synthetic


def deduplicate_stop_names(stops, suffixes=STOP_NAME_SUFFIXES):
    """'Whitehall', 'Whitehall' -> 'Whitehall', 'Whitehall North'.

    A suffixed name never reuses the name of another stop in the list;
    once every suffix is taken a round number is added as well.
    """
    reserved = {s["name"] for s in stops}
    used = set()
    repeats = {}
    for s in stops:
        name = s["name"]
        if name not in used:
            used.add(name)
            continue
        n = repeats.get(name, 0)
        while True:
            suffix = suffixes[n % len(suffixes)]
            rounds = n // len(suffixes)
            candidate = f"{name} {suffix}" if rounds == 0 else f"{name} {suffix} {rounds + 1}"
            n += 1
            if candidate not in used and candidate not in reserved:
                break
        repeats[name] = n
        used.add(candidate)
        s["name"] = candidate


def select_stops(route, street_labels, projected_stops,
                 match_radius=STOP_MATCH_RADIUS, min_spacing=MIN_STOP_SPACING,
                 min_matched=MIN_MATCHED_STOPS, min_stops=MIN_STOPS,
                 max_stops=MAX_STOPS):
    """Full stop selection: match, name, top up with synthetic stops, dedupe.

    Raises RouteBuildError if fewer than ``min_stops`` survive.
    """
    logger.info("Matching bus stops...")
    stops = match_stops(route, projected_stops, match_radius=match_radius,
                        min_spacing=min_spacing, max_stops=max_stops)
    logger.info(f"  Matched {len(stops)} stops within {match_radius} game units")
    assign_street_names(stops, street_labels)

    if len(stops) < min_matched:
        logger.warning("  Too few OSM stops matched, synthesizing from street names...")
        taken = {s["idx"] for s in stops}
        for s in synthesize_stops(route, street_labels):
            if s["idx"] not in taken:
                stops.append(s)
                taken.add(s["idx"])
        stops = enforce_spacing(route, stops, min_spacing)[:max_stops]

    if len(stops) < min_stops:
        raise RouteBuildError(f"Only {len(stops)} stop(s) on the route, need at least {min_stops}")

    deduplicate_stop_names(stops)
    for s in stops:
        logger.info(f"  [{s['idx']}] {s['name']}")
    return stops
