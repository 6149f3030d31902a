"""
route_solver.py — Stitch a closed loop through waypoints with Dijkstra.

Each waypoint is snapped to its nearest connected graph node, then the
shortest path is found between every consecutive pair, including the
last -> first pair that closes the loop.  Unreachable pairs are logged and
skipped rather than aborting the whole run.
"""

import heapq
import logging
from itertools import count
from typing import NamedTuple, Optional

from road_graph import RoadGraph, haversine_m

logger = logging.getLogger(__name__)


class RouteBuildError(RuntimeError):
    """The route cannot be turned into a usable artifact."""


class Waypoint(NamedTuple):
    lat: float
    lon: float
    name: str

    @classmethod
    def from_dict(cls, d: dict) -> "Waypoint":
        return cls(float(d["lat"]), float(d["lon"]), d.get("name", ""))


class RouteResult(NamedTuple):
    node_path: list          # graph node ids, in driving order
    street_labels: list      # one label per node in node_path
    errors: list             # human-readable unreachable-pair messages


def base_name(name: str) -> str:
    """'Cockspur Street (east)' -> 'Cockspur Street'."""
    return name.split(" (")[0]


def nearest_connected_node(graph: RoadGraph, lat: float, lon: float) -> tuple[Optional[int], float]:
    """Return (node id, distance in metres) of the closest routable node.

    Nodes only referenced by rejected ways are not candidates.
    """
    best_id, best_dist = None, float("inf")
    for node in graph.connected_nodes():
        d = haversine_m(lat, lon, node.lat, node.lon)
        if d < best_dist:
            best_id, best_dist = node.id, d
    return best_id, best_dist


def dijkstra(graph: RoadGraph, start: int, end: int) -> Optional[list]:
    """Shortest node path from ``start`` to ``end``, or None if unreachable.

    Among equal-length paths, whichever the relaxation order reaches first
    wins.
    """
    dist = {start: 0.0}
    prev = {}
    visited = set()
    tiebreaker = count()
    frontier = [(0.0, next(tiebreaker), start)]

    while frontier:
        du, _, u = heapq.heappop(frontier)
        if u in visited:
            continue
        visited.add(u)
        if u == end:
            break
        for edge in graph.edges_from(u):
            v = edge.to
            if v in visited:
                continue
            nd = du + edge.dist
            if nd < dist.get(v, float("inf")):
                dist[v] = nd
                prev[v] = u
                heapq.heappush(frontier, (nd, next(tiebreaker), v))

    if end not in prev and start != end:
        return None

    path = [end]
    while path[-1] != start:
        path.append(prev[path[-1]])
    path.reverse()
    return path


def build_route(graph: RoadGraph, waypoints: list) -> RouteResult:
    """Route through ``waypoints`` (and back to the first) on ``graph``."""
    logger.info("Finding connected route through waypoints...")
    if not waypoints:
        raise RouteBuildError("No waypoints given")

    snapped = []
    for wp in waypoints:
        node_id, d = nearest_connected_node(graph, wp.lat, wp.lon)
        if node_id is None:
            raise RouteBuildError("Road graph has no driveable nodes to snap waypoints to")
        logger.info(f"  {wp.name}: nearest node {node_id} ({d:.0f}m away)")
        snapped.append((wp, node_id))

    node_path: list = []
    labels: list = []
    errors: list = []

    for i, (wp_from, from_id) in enumerate(snapped):
        wp_to, to_id = snapped[(i + 1) % len(snapped)]

        path = dijkstra(graph, from_id, to_id)
        if path is None:
            msg = f'No path from "{wp_from.name}" to "{wp_to.name}"'
            logger.error(f"  ERROR: {msg}")
            errors.append(msg)
            continue

        fallback = base_name(wp_from.name)
        start = 1 if node_path and path[0] == node_path[-1] else 0
        for j in range(start, len(path)):
            node_path.append(path[j])
            if j == 0:
                labels.append(fallback)
                continue
            edge = graph.edge_between(path[j - 1], path[j])
            labels.append((edge.name if edge else None) or fallback)

        logger.info(f"  {wp_from.name} → {wp_to.name}: {len(path)} nodes, {len(path) - 1} edges")

    logger.info(f"Full route: {len(node_path)} points, {len(errors)} routing error(s)")
    return RouteResult(node_path, labels, errors)
