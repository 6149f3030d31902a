"""
osm_fetch.py — Fetch the driveable road network + bus stops from Overpass.

The pipeline never talks to the network directly; it asks a dataset source
for the raw Overpass response:

    CachedDataset  — load CACHE_FILE if present, otherwise download with
                     OverpassDownloader and write the cache.
    StaticDataset  — wrap an already-loaded response (fixtures, tests).

Both expose ``load() -> dict`` returning ``{"elements": [...]}``.
"""

import json
import logging
import os
import tempfile
import time

import requests

from config import (
    BBOX_STR, CACHE_FILE, DRIVEABLE_TYPES, MAX_RETRIES, OVERPASS_MIRRORS,
    OVERPASS_TIMEOUT, RETRY_DELAY,
)

logger = logging.getLogger(__name__)

# Status codes worth another attempt (possibly on another mirror).
RETRYABLE_STATUS = {429, 502, 503, 504}


class OverpassError(RuntimeError):
    """The road dataset could not be obtained."""


def parse_bbox(bbox_str):
    """Parse 'south,west,north,east' into a tuple of floats."""
    parts = bbox_str.split(',')
    if len(parts) != 4:
        raise ValueError("Bbox must have 4 values: south,west,north,east")
    return tuple(float(p) for p in parts)


def build_overpass_query(bbox, road_types=DRIVEABLE_TYPES, timeout=OVERPASS_TIMEOUT):
    """Build the Overpass query for driveable ways and bus stop nodes."""
    south, west, north, east = bbox
    area = f"{south},{west},{north},{east}"
    highway_re = "|".join(sorted(road_types))
    return f"""
[out:json][timeout:{timeout}];
(
  way["highway"~"^({highway_re})$"]({area});
  node["highway"="bus_stop"]({area});
  node["public_transport"="platform"]["bus"="yes"]({area});
);
out body;
>;
out skel qt;
"""


class OverpassDownloader:
    """Downloads the raw road dataset with retry and mirror rotation."""

    def __init__(self, mirrors=None, max_retries=MAX_RETRIES,
                 retry_delay=RETRY_DELAY, timeout=OVERPASS_TIMEOUT):
        self.mirrors = list(mirrors or OVERPASS_MIRRORS)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    def fetch(self, bbox_str=BBOX_STR):
        """Return the decoded Overpass response for ``bbox_str``.

        Rate limits, gateway errors and timeouts are retried with a growing
        delay; anything else, or running out of attempts, raises
        OverpassError.
        """
        query = build_overpass_query(parse_bbox(bbox_str), timeout=self.timeout)
        logger.info(f"Fetching driveable roads + bus stops for bbox: {bbox_str}")

        for attempt in range(1, self.max_retries + 1):
            mirror = self.mirrors[(attempt - 1) % len(self.mirrors)]
            logger.info(f"Attempt {attempt}/{self.max_retries} ({mirror})")
            try:
                response = requests.post(
                    mirror,
                    data={'data': query},
                    timeout=self.timeout + 30,
                )
            except requests.exceptions.Timeout:
                logger.warning(f"Request timeout on attempt {attempt}")
                self._backoff(attempt)
                continue
            except requests.exceptions.RequestException as e:
                logger.warning(f"Network error on attempt {attempt}: {e}")
                self._backoff(attempt)
                continue

            if response.status_code == 200:
                try:
                    data = response.json()
                except ValueError as e:
                    logger.warning(f"Unreadable response from {mirror}: {e}")
                    self._backoff(attempt)
                    continue
                logger.info(f"Got {len(data.get('elements', []))} total elements")
                return data
            if response.status_code in RETRYABLE_STATUS:
                logger.warning(f"Got {response.status_code} from {mirror}, retrying...")
                self._backoff(attempt)
                continue
            raise OverpassError(f"Overpass failed: {response.status_code}")

        raise OverpassError(f"Failed to download OSM data after {self.max_retries} attempts")

    def _backoff(self, attempt):
        if attempt < self.max_retries:
            time.sleep(self.retry_delay * attempt)


class CachedDataset:
    """Cache-or-fetch source for the raw Overpass response.

    A present cache file short-circuits the network entirely.  ``offline``
    turns a missing cache into an error, ``refresh`` ignores the cache and
    rewrites it.
    """

    def __init__(self, cache_file=CACHE_FILE, bbox_str=BBOX_STR,
                 downloader=None, offline=False, refresh=False):
        self.cache_file = cache_file
        self.bbox_str = bbox_str
        self.downloader = downloader or OverpassDownloader()
        self.offline = offline
        self.refresh = refresh

    def load(self):
        if os.path.exists(self.cache_file) and not self.refresh:
            logger.info(f"Using cached OSM data from {self.cache_file}")
            try:
                with open(self.cache_file) as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                raise OverpassError(f"Cannot read cache {self.cache_file}: {e}") from e

        if self.offline:
            raise OverpassError(f"Offline mode requested but {self.cache_file} not found")

        data = self.downloader.fetch(self.bbox_str)
        self._save(data)
        return data

    def _save(self, data):
        """Write through a temp file and os.replace; a failed write keeps the old cache."""
        directory = os.path.dirname(os.path.abspath(self.cache_file))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.cache_file)
        except OSError as e:
            logger.error(f"Error saving OSM cache: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info(f"Cached OSM data to {self.cache_file}")


class StaticDataset:
    """Dataset source over an in-memory Overpass response."""

    def __init__(self, data):
        self.data = data

    def load(self):
        return self.data
