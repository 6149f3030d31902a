"""Shared fixtures: a small synthetic street block in Westminster.

    (4,0) ── North Street ── (4,4)
      │          │             │
    West  ── Cross Street ──  East
    Road         │            Road
      │     Middle Lane        │
    (0,0) ── South Street ── (0,4)

Grid node ids are 1000 + 10 * row + col, rows run south -> north.  Cells
are roughly 100 m square.  A footway joins (1,1)-(1,3) and a two-node
"Island Close" sits east of the block with no connection to it.
"""

import pytest

LAT0 = 51.5000
LON0 = -0.1300
DLAT = 0.0009
DLON = 0.0014


def grid_id(row, col):
    return 1000 + 10 * row + col


def grid_latlon(row, col):
    return LAT0 + row * DLAT, LON0 + col * DLON


def _way(way_id, nodes, highway, name=None):
    tags = {"highway": highway}
    if name:
        tags["name"] = name
    return {"type": "way", "id": way_id, "nodes": nodes, "tags": tags}


def _stop(node_id, lat, lon, **tags):
    return {"type": "node", "id": node_id, "lat": lat, "lon": lon,
            "tags": {"highway": "bus_stop", **tags}}


def make_block_osm():
    elements = []
    for row in range(5):
        for col in range(5):
            lat, lon = grid_latlon(row, col)
            elements.append({"type": "node", "id": grid_id(row, col), "lat": lat, "lon": lon})

    elements += [
        _way(1, [grid_id(0, c) for c in range(5)], "primary", "South Street"),
        _way(2, [grid_id(r, 4) for r in range(5)], "secondary", "East Road"),
        _way(3, [grid_id(4, c) for c in reversed(range(5))], "primary", "North Street"),
        _way(4, [grid_id(r, 0) for r in reversed(range(5))], "secondary", "West Road"),
        _way(5, [grid_id(2, c) for c in range(5)], "residential", "Cross Street"),
        _way(6, [grid_id(r, 2) for r in range(5)], "residential", "Middle Lane"),
        _way(7, [grid_id(1, 1), grid_id(1, 3)], "footway", "Garden Path"),
    ]

    # Island Close: reachable from nowhere in the block
    elements += [
        {"type": "node", "id": 9001, "lat": LAT0 + 2 * DLAT, "lon": LON0 + 7 * DLON},
        {"type": "node", "id": 9002, "lat": LAT0 + 3 * DLAT, "lon": LON0 + 7 * DLON},
        _way(8, [9001, 9002], "residential", "Island Close"),
    ]

    elements += [
        # ~6 m south of South Street, between cols 1 and 2
        _stop(5001, LAT0 - 0.00005, LON0 + 1.5 * DLON, name="Parliament Street"),
        # ~3 m east of East Road, unnamed
        _stop(5002, LAT0 + 2.5 * DLAT, LON0 + 4 * DLON + 0.00005),
        # middle of the north-east cell, far from every perimeter street
        _stop(5003, LAT0 + 3.0 * DLAT, LON0 + 3.0 * DLON, name="Far Away Stop"),
    ]
    return {"elements": elements}


def make_block_waypoints():
    """Corners of the block, nudged ~10 m off the exact nodes."""
    return [
        {"lat": LAT0 - 0.0001, "lon": LON0 - 0.0001, "name": "South West (start)"},
        {"lat": LAT0 - 0.0001, "lon": LON0 + 4 * DLON + 0.0001, "name": "South East"},
        {"lat": LAT0 + 4 * DLAT + 0.0001, "lon": LON0 + 4 * DLON + 0.0001, "name": "North East"},
        {"lat": LAT0 + 4 * DLAT + 0.0001, "lon": LON0 - 0.0001, "name": "North West (corner)"},
    ]


@pytest.fixture
def block_osm():
    return make_block_osm()


@pytest.fixture
def block_waypoints():
    return make_block_waypoints()


@pytest.fixture
def island_waypoint():
    return {"lat": LAT0 + 2.5 * DLAT, "lon": LON0 + 7 * DLON, "name": "Island Close (dead end)"}


@pytest.fixture
def east_road_roundabout():
    """A 20 m roundabout centred on the East Road / Cross Street corner."""
    lat, lon = grid_latlon(2, 4)
    return [{"name": "East Circus", "lat": lat, "lon": lon, "radius_m": 20}]
