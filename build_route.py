#!/usr/bin/env python3
"""
build_route.py — Westminster loop bus route generator.

Stages:
  1. Fetch     — query Overpass for driveable roads + bus stops (or load cache)
  2. Graph     — build the undirected road graph from driveable ways
  3. Route     — Dijkstra between consecutive waypoints, wrapping to close the loop
  4. Project   — lat/lon -> game units, largest axis scaled to TARGET_SPAN
  5. Clean     — drop doubling-back vertices and near-duplicates
  6. Simplify  — uniform arc-length resampling (or Douglas-Peucker)
  7. Close     — make the loop's last point meet its first
  8. Stops     — match OSM bus stops to route indices, synthesize if too few
  9. Junctions — project curated roundabouts, detect side-road stubs
 10. Emit      — validate and write route/stops/bounds/junctions/side roads

Usage:
    python3 build_route.py                     # fetch (or use cache) and build
    python3 build_route.py --offline           # never touch the network
    python3 build_route.py --refresh           # ignore the cache and re-fetch
    python3 build_route.py --waypoints FILE    # JSON list of {lat, lon, name}
    python3 build_route.py --out routeData.js  # ES module instead of JSON
    python3 build_route.py --stats             # print the quality report
    python3 build_route.py -h                  # show this help
"""

import argparse
import json
import logging
import sys

from bus_stops import project_stops, select_stops
from config import (
    BBOX_STR, BOUNDS_PADDING, CACHE_FILE, LOG_FILE, LOOP_CLOSE_TOLERANCE,
    LOOP_WAYPOINTS, MANUAL_ROUNDABOUTS, MAX_GAP_WARNING, MIN_ROUTE_POINTS,
    MIN_STOP_SPACING, OUTPUT_FILE, SAMPLE_INTERVAL, SIMPLIFY_METHOD,
    STOP_MATCH_RADIUS, TARGET_SPAN,
)
from osm_fetch import CachedDataset, OverpassError
from road_graph import build_graph
from route_data import (
    build_route_data, route_quality, validate_route_data, write_route_data,
)
from route_geometry import (
    Projection, clean_route, close_loop, path_length, resample_route,
    simplify_route,
)
from route_solver import RouteBuildError, Waypoint, build_route
from side_roads import detect_side_roads, project_junctions

logger = logging.getLogger(__name__)

SIMPLIFY_METHODS = ("resample", "douglas-peucker")


def generate_route(osm_data, waypoints=None, roundabouts=None, *,
                   target_span=TARGET_SPAN,
                   sample_interval=SAMPLE_INTERVAL,
                   simplify=SIMPLIFY_METHOD,
                   min_stop_spacing=MIN_STOP_SPACING,
                   stop_match_radius=STOP_MATCH_RADIUS,
                   bounds_padding=BOUNDS_PADDING,
                   loop_close_tolerance=LOOP_CLOSE_TOLERANCE,
                   min_route_points=MIN_ROUTE_POINTS,
                   max_gap_warning=MAX_GAP_WARNING):
    """Run stages 2-9 on a raw Overpass response.

    Returns ``{"data": artifact, "report": quality report}``.  Raises
    RouteBuildError on any fatal condition; nothing is written here.
    """
    if simplify not in SIMPLIFY_METHODS:
        raise ValueError(f"Unknown simplify method: {simplify}")
    if sample_interval <= 0:
        raise ValueError(f"Sample interval must be positive, got {sample_interval}")
    if waypoints is None:
        waypoints = LOOP_WAYPOINTS
    if roundabouts is None:
        roundabouts = MANUAL_ROUNDABOUTS
    waypoints = [wp if isinstance(wp, Waypoint) else Waypoint.from_dict(wp) for wp in waypoints]

    graph = build_graph(osm_data)
    result = build_route(graph, waypoints)

    if len(result.node_path) < min_route_points:
        raise RouteBuildError(
            f"Too few route points ({len(result.node_path)}). Check waypoint coordinates."
        )

    latlons = [(graph.nodes[n].lat, graph.nodes[n].lon) for n in result.node_path]
    projection = Projection.fit(latlons, target_span)
    points = [projection.to_game(lat, lon) for lat, lon in latlons]

    points, labels = clean_route(points, result.street_labels)
    if simplify == "resample":
        points, labels = resample_route(points, labels, sample_interval)
    else:
        points, labels = simplify_route(points, labels, max_gap=sample_interval)
    points, labels = close_loop(points, labels, loop_close_tolerance)

    stops = select_stops(points, labels, project_stops(graph.bus_stops, projection),
                         match_radius=stop_match_radius, min_spacing=min_stop_spacing)

    junctions = project_junctions(projection, roundabouts)
    side_roads = detect_side_roads(graph, result.node_path, projection, junctions)

    data = build_route_data(points, stops, junctions, side_roads, bounds_padding)
    errors = validate_route_data(data)
    if errors:
        raise RouteBuildError("Invalid route data: " + "; ".join(errors))

    logger.info("Route validation:")
    report = {
        "waypoints": len(data["route"]),
        "path_length": round(path_length(points), 1),
        "stops": len(data["stops"]),
        "junctions": len(data["junctions"]),
        "side_roads": len(data["sideRoads"]),
        "routing_errors": result.errors,
        **route_quality(data["route"], max_gap_warning),
    }
    return {"data": data, "report": report}


# ── Main ─────────────────────────────────────────────────────────────

def load_waypoints(path):
    with open(path) as f:
        return [Waypoint.from_dict(d) for d in json.load(f)]


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Westminster Loop Route Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument("--offline", action="store_true",
                   help="Skip Overpass, fail if the cache is missing")
    p.add_argument("--refresh", action="store_true",
                   help="Ignore the cache and fetch again")
    p.add_argument("--bbox", default=BBOX_STR,
                   help="Bounding box: south,west,north,east")
    p.add_argument("--waypoints", metavar="FILE",
                   help="JSON list of {lat, lon, name} loop waypoints")
    p.add_argument("--cache", default=CACHE_FILE, metavar="FILE",
                   help=f"Overpass cache file (default: {CACHE_FILE})")
    p.add_argument("--out", default=OUTPUT_FILE, metavar="FILE",
                   help=f"Output file, .json or .js (default: {OUTPUT_FILE})")
    p.add_argument("--interval", type=float, default=SAMPLE_INTERVAL,
                   help="Game units between route points")
    p.add_argument("--target-span", type=float, default=TARGET_SPAN,
                   help="Game units spanned by the route's larger axis")
    p.add_argument("--simplify", choices=SIMPLIFY_METHODS, default=SIMPLIFY_METHOD,
                   help="Route simplification method")
    p.add_argument("--stats", action="store_true",
                   help="Print the route quality report")
    args = p.parse_args(argv)
    if args.interval <= 0:
        p.error("--interval must be positive")
    if args.target_span <= 0:
        p.error("--target-span must be positive")
    return args


def main(argv=None) -> bool:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler(),
        ],
    )

    print("=" * 60)
    print("  Westminster Loop Route Generator")
    print("=" * 60)

    source = CachedDataset(cache_file=args.cache, bbox_str=args.bbox,
                           offline=args.offline, refresh=args.refresh)
    try:
        waypoints = load_waypoints(args.waypoints) if args.waypoints else None
        osm_data = source.load()
        built = generate_route(
            osm_data, waypoints,
            target_span=args.target_span,
            sample_interval=args.interval,
            simplify=args.simplify,
        )
        write_route_data(built["data"], args.out)
    except (OverpassError, RouteBuildError) as e:
        logger.error(f"Fatal: {e}")
        return False
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Fatal: {e.__class__.__name__}: {e}")
        return False

    if built["report"]["routing_errors"]:
        logger.warning(f"{len(built['report']['routing_errors'])} waypoint pair(s) were unreachable")
    if args.stats:
        logger.info(f"Route quality: {json.dumps(built['report'], indent=2)}")

    logger.info("Done! Run the game to test the new route.")
    return True


def run() -> None:
    sys.exit(0 if main() else 1)


if __name__ == "__main__":
    run()
