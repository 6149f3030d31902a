"""
road_graph.py — Build an undirected road graph from a raw Overpass response.

Only ways whose highway tag is in DRIVEABLE_TYPES contribute edges.  Every
accepted way adds both directions of each consecutive node pair, weighted by
great-circle distance and labelled with the way's name.  One-way tags are
ignored on purpose: the loop is a game artifact, not a navigation route.
"""

import logging
import math
from collections import defaultdict
from typing import NamedTuple, Optional

from config import DRIVEABLE_TYPES

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000


class GeoNode(NamedTuple):
    id: int
    lat: float
    lon: float


class Edge(NamedTuple):
    to: int
    dist: float
    name: Optional[str]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in metres between two points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class RoadGraph:
    """Node table + adjacency lists.

    ``nodes`` holds every node in the response, including ones only reached
    by rejected ways; ``adj`` holds only nodes with at least one driveable
    edge.  Parallel edges between the same pair are kept as separate records.
    """

    def __init__(self):
        self.nodes: dict[int, GeoNode] = {}
        self.adj: dict[int, list[Edge]] = defaultdict(list)
        self.bus_stops: list[dict] = []
        self.way_count = 0

    def add_edge(self, a: int, b: int, dist: float, name: Optional[str]) -> None:
        self.adj[a].append(Edge(b, dist, name))
        self.adj[b].append(Edge(a, dist, name))

    def connected_nodes(self) -> list[GeoNode]:
        """Nodes that can be routed through, in insertion order."""
        return [self.nodes[nid] for nid in self.adj]

    def edges_from(self, node_id: int) -> list[Edge]:
        return self.adj.get(node_id, [])

    def edge_between(self, a: int, b: int) -> Optional[Edge]:
        """First edge record from ``a`` to ``b``, or None."""
        for edge in self.edges_from(a):
            if edge.to == b:
                return edge
        return None

    def has_edge(self, a: int, b: int) -> bool:
        return self.edge_between(a, b) is not None

    def stats(self) -> dict:
        return {
            "nodes": len(self.nodes),
            "connected_nodes": len(self.adj),
            "edges": sum(len(edges) for edges in self.adj.values()),
            "ways": self.way_count,
            "bus_stops": len(self.bus_stops),
        }


def _is_bus_stop(tags: dict) -> bool:
    return tags.get("highway") == "bus_stop" or tags.get("public_transport") == "platform"


def extract_bus_stops(data: dict) -> list[dict]:
    """Return ``{"lat", "lon", "name"}`` for every tagged stop/platform node."""
    stops = []
    for elem in data.get("elements", []):
        if elem.get("type") != "node" or "lat" not in elem or "lon" not in elem:
            continue
        tags = elem.get("tags") or {}
        if _is_bus_stop(tags):
            stops.append({
                "lat": elem["lat"],
                "lon": elem["lon"],
                "name": tags.get("name") or tags.get("description") or None,
            })
    return stops


def build_graph(data: dict, driveable_types=DRIVEABLE_TYPES) -> RoadGraph:
    """Build a RoadGraph from an Overpass ``{"elements": [...]}`` response."""
    graph = RoadGraph()

    # Index nodes
    for elem in data.get("elements", []):
        if elem.get("type") == "node" and "lat" in elem and "lon" in elem:
            graph.nodes[elem["id"]] = GeoNode(elem["id"], elem["lat"], elem["lon"])

    graph.bus_stops = extract_bus_stops(data)

    # Driveable ways -> bidirectional edges
    skipped_pairs = 0
    for elem in data.get("elements", []):
        if elem.get("type") != "way":
            continue
        tags = elem.get("tags") or {}
        if tags.get("highway") not in driveable_types:
            continue
        graph.way_count += 1
        name = tags.get("name") or None
        nds = elem.get("nodes", [])
        for a, b in zip(nds, nds[1:]):
            na, nb = graph.nodes.get(a), graph.nodes.get(b)
            if na is None or nb is None:
                skipped_pairs += 1
                continue
            graph.add_edge(a, b, haversine_m(na.lat, na.lon, nb.lat, nb.lon), name)

    stats = graph.stats()
    logger.info(f"Graph: {stats['nodes']} nodes, {stats['ways']} driveable ways, "
                f"{stats['bus_stops']} bus stops")
    logger.info(f"  Adjacency list: {stats['connected_nodes']} connected nodes, "
                f"{stats['edges']} directed edges")
    if skipped_pairs:
        logger.warning(f"  {skipped_pairs} way segment(s) reference missing nodes and were skipped")
    return graph
