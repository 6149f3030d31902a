# config.py — Westminster loop route generator configuration
# Edit this file to change bbox, waypoints, spacing constants, junctions, etc.

# ── Bounding box ─────────────────────────────────────────────────────
# Westminster / Whitehall, Central London
# Format: (south, west, north, east)
BBOX = (51.496, -0.145, 51.510, -0.115)

# Convenience string form for Overpass queries
BBOX_STR = f"{BBOX[0]},{BBOX[1]},{BBOX[2]},{BBOX[3]}"

# ── Overpass ─────────────────────────────────────────────────────────
OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT = 60

# Mirrors are rotated across retry attempts, primary first.
OVERPASS_MIRRORS = [
    OVERPASS_URL,
    "https://overpass.kumi.systems/api/interpreter",
    "https://maps.mail.ru/osm/tools/overpass/api/interpreter",
]

# Attempts before the fetch is declared fatal.  The delay grows linearly:
# attempt N waits RETRY_DELAY * N seconds.
MAX_RETRIES = 3
RETRY_DELAY = 5

# ── Road network ─────────────────────────────────────────────────────
# highway=* classes a bus can drive on.  Everything else is dropped when
# the graph is built.
DRIVEABLE_TYPES = frozenset({
    "motorway", "trunk", "primary", "secondary", "tertiary",
    "residential", "unclassified", "motorway_link", "trunk_link",
    "primary_link", "secondary_link", "tertiary_link",
})

# ── Loop waypoints ───────────────────────────────────────────────────
# Approximate points the loop must pass through, in driving order.  The
# last waypoint is routed back to the first to close the loop.
LOOP_WAYPOINTS = [
    {"lat": 51.5007, "lon": -0.1218, "name": "Westminster Bridge (south)"},
    {"lat": 51.5013, "lon": -0.1220, "name": "Westminster Bridge (north)"},
    {"lat": 51.5044, "lon": -0.1231, "name": "Victoria Embankment (midpoint)"},
    {"lat": 51.5075, "lon": -0.1238, "name": "Victoria Embankment (north)"},
    {"lat": 51.5073, "lon": -0.1270, "name": "Northumberland Avenue (top)"},
    {"lat": 51.5062, "lon": -0.1283, "name": "Northumberland Avenue (bottom)"},
    {"lat": 51.5065, "lon": -0.1290, "name": "Cockspur Street (east)"},
    {"lat": 51.5058, "lon": -0.1310, "name": "Cockspur Street (west)"},
    {"lat": 51.5050, "lon": -0.1340, "name": "The Mall (east)"},
    {"lat": 51.5020, "lon": -0.1410, "name": "The Mall (west) / Buckingham Palace"},
    {"lat": 51.5008, "lon": -0.1370, "name": "Birdcage Walk (west)"},
    {"lat": 51.5009, "lon": -0.1290, "name": "Birdcage Walk (east)"},
    {"lat": 51.5006, "lon": -0.1264, "name": "Great George Street"},
    {"lat": 51.5005, "lon": -0.1247, "name": "Parliament Square (south)"},
    {"lat": 51.5007, "lon": -0.1225, "name": "Bridge Street → Westminster Bridge"},
]

# ── Projection ───────────────────────────────────────────────────────
# The larger axis of the routed loop is scaled to this many game units.
TARGET_SPAN = 500

# ── Route cleanup / simplification ───────────────────────────────────
# Segments shorter than this (game units) mark their shared vertex as a
# routing artifact.
BACKTRACK_EPSILON = 0.01

# Consecutive points closer than this (game units) are collapsed.
DUPLICATE_POINT_DIST = 0.5

# "resample" walks the path at SAMPLE_INTERVAL; "douglas-peucker"
# simplifies with DP_EPSILON and re-densifies long gaps.
SIMPLIFY_METHOD = "resample"
SAMPLE_INTERVAL = 25
DP_EPSILON = 2

# The true end of the path is appended when the last sample is further
# away than this.
RESAMPLE_END_TOLERANCE = 1

# A closing point is appended when first and last points are further
# apart than this.
LOOP_CLOSE_TOLERANCE = 5

# Fewer points than this after routing means the waypoints are wrong.
MIN_ROUTE_POINTS = 10

# Gaps above this are reported by the quality check (warning only).
MAX_GAP_WARNING = 30

# ── Bus stops ────────────────────────────────────────────────────────
# Max distance (game units) from a stop to the route for it to be used.
STOP_MATCH_RADIUS = 30

# Min distance (game units) between consecutive stops.
MIN_STOP_SPACING = 40

# Matches whose route indices differ by less than this are duplicates.
STOP_DEDUP_WINDOW = 3

MAX_STOPS = 10

# Below MIN_MATCHED_STOPS real matches, synthetic stops are added every
# len(route) // SYNTHETIC_STOP_DIVISIONS points.
MIN_MATCHED_STOPS = 6
SYNTHETIC_STOP_DIVISIONS = 8

# A route with fewer stops than this is not emitted.
MIN_STOPS = 2

# Appended to repeated stop names, in order.
STOP_NAME_SUFFIXES = ("North", "South", "East", "West", "Central")

# ── Junctions & side roads ───────────────────────────────────────────
# OSM doesn't tag these as roundabouts, so they are curated by hand.
MANUAL_ROUNDABOUTS = [
    {"name": "Parliament Square", "lat": 51.5005, "lon": -0.1264, "radius_m": 35},
    {"name": "Trafalgar Square", "lat": 51.5063, "lon": -0.1285, "radius_m": 30},
]
JUNCTION_ARMS = 4

# Stubs within radius + margin of a junction centre are dropped.
JUNCTION_STUB_MARGIN = 5

MIN_STUB_SPACING = 15
MIN_STUB_LENGTH = 2
MAX_STUBS = 20

# Stub length is STUB_BASE_LENGTH plus a position-derived 0..VARIATION.
STUB_BASE_LENGTH = 20
STUB_LENGTH_VARIATION = 15

# ── Output ───────────────────────────────────────────────────────────
# Route bounding box is padded by this many game units on every side.
BOUNDS_PADDING = 100

# Decimal places for emitted coordinates and angles.
COORD_PRECISION = 1
ANGLE_PRECISION = 3

# ── Cache / output files ─────────────────────────────────────────────
CACHE_FILE = ".osm-cache-v2.json"
OUTPUT_FILE = "route_data.json"
LOG_FILE = "build_route.log"
