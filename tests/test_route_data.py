"""Tests for route_data.py"""

import json
import os
from unittest.mock import patch

import pytest

from route_data import (
    build_route_data, compute_bounds, render_js_module, render_route_data,
    route_quality, validate_route_data, write_route_data,
)


ROUTE = [(-120.04, 80.26), (0.0, 100.0), (130.55, -2.0), (-0.04, -140.949)]
STOPS = [{"idx": 0, "name": "Trafalgar Square", "dist": 3.0},
         {"idx": 2, "name": "St James's Park", "dist": 0.0}]
JUNCTIONS = [{"x": 10.04, "z": -5.0, "radius": 37.456, "name": "Parliament Square", "arms": 4}]
STUBS = [{"x": 1.26, "z": 2.0, "angle": 1.5707963, "length": 27}]


@pytest.fixture
def data():
    return build_route_data(ROUTE, STOPS, JUNCTIONS, STUBS)


class TestBounds:
    def test_padding_with_floor_and_ceil(self):
        bounds = compute_bounds(ROUTE, padding=100)
        assert bounds == {"minX": -221, "maxX": 231, "minZ": -241, "maxZ": 200}

    def test_bounds_are_ints(self):
        assert all(isinstance(v, int) for v in compute_bounds(ROUTE).values())


class TestBuildRouteData:
    def test_has_all_sections(self, data):
        assert set(data) == {"route", "stops", "bounds", "junctions", "sideRoads"}

    def test_coordinates_rounded_to_tenths(self, data):
        assert data["route"][0] == [-120.0, 80.3]
        assert data["route"][3] == [0.0, -140.9]

    def test_negative_zero_is_folded(self, data):
        assert str(data["route"][3][0]) == "0.0"

    def test_stops_use_short_keys(self, data):
        assert data["stops"] == [{"i": 0, "n": "Trafalgar Square"},
                                 {"i": 2, "n": "St James's Park"}]

    def test_junction_and_stub_rounding(self, data):
        assert data["junctions"][0]["radius"] == 37.5
        assert data["sideRoads"][0]["angle"] == 1.571
        assert data["sideRoads"][0]["x"] == 1.3

    def test_empty_junctions_and_stubs(self):
        out = build_route_data(ROUTE, STOPS)
        assert out["junctions"] == []
        assert out["sideRoads"] == []


class TestValidate:
    def test_valid(self, data):
        assert validate_route_data(data) == []

    def test_missing_key(self, data):
        del data["sideRoads"]
        assert validate_route_data(data) == ["Missing 'sideRoads'"]

    def test_too_few_points(self, data):
        assert validate_route_data(data, min_points=10)

    def test_stop_index_out_of_range(self, data):
        data["stops"].append({"i": 4, "n": "Off the end"})
        errors = validate_route_data(data)
        assert len(errors) == 1 and "outside route" in errors[0]

    def test_stop_order_must_increase(self, data):
        data["stops"] = [{"i": 2, "n": "B"}, {"i": 2, "n": "C"}]
        assert any("not after" in e for e in validate_route_data(data))

    def test_unnamed_stop(self, data):
        data["stops"][0]["n"] = ""
        assert any("no name" in e for e in validate_route_data(data))

    def test_inverted_bounds(self, data):
        data["bounds"]["minX"] = 500
        assert validate_route_data(data) == ["Bounds min exceeds max"]

    def test_bad_junction_radius(self, data):
        data["junctions"][0]["radius"] = 0
        assert any("radius" in e for e in validate_route_data(data))


class TestRouteQuality:
    def test_reports_max_gap(self):
        report = route_quality([(0, 0), (10, 0), (10, 20)], max_gap=30)
        assert report == {"max_gap": 20.0, "gap_warnings": []}

    def test_warns_on_large_gap(self, caplog):
        report = route_quality([(0, 0), (40, 0), (50, 0)], max_gap=30)
        assert len(report["gap_warnings"]) == 1
        assert "between waypoints 0 and 1" in report["gap_warnings"][0]
        assert "WARNING" in caplog.text


class TestRender:
    def test_json_ends_with_newline(self, data):
        text = render_route_data(data, "route_data.json")
        assert text.endswith("}\n")
        assert json.loads(text) == data

    def test_js_module_exports(self, data):
        text = render_js_module(data)
        for name in ("ROUTE", "STOPS", "BOUNDS", "JUNCTIONS", "SIDE_ROADS"):
            assert f"export const {name} =" in text
        assert "[-120.0, 80.3]" in text
        assert "minX: -221," in text

    def test_js_escapes_quotes(self, data):
        text = render_route_data(data, "routeData.js")
        assert "n: 'St James\\'s Park'" in text

    def test_js_route_chunks_of_five(self):
        route = [(float(i), 0.0) for i in range(12)]
        text = render_js_module(build_route_data(route, []))
        route_block = text.split("export const ROUTE = [\n")[1].split("\n];")[0]
        assert len(route_block.splitlines()) == 3

    def test_rendering_is_deterministic(self, data):
        again = build_route_data(ROUTE, STOPS, JUNCTIONS, STUBS)
        assert render_route_data(data, "x.json") == render_route_data(again, "x.json")
        assert render_route_data(data, "x.js") == render_route_data(again, "x.js")


class TestWrite:
    def test_writes_file(self, data, tmp_path):
        out = tmp_path / "route_data.json"
        write_route_data(data, str(out))
        assert json.loads(out.read_text()) == data
        assert [p.name for p in tmp_path.iterdir()] == ["route_data.json"]

    def test_failed_write_keeps_previous_file(self, data, tmp_path):
        out = tmp_path / "route_data.json"
        out.write_text("previous")
        with patch("route_data.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_route_data(data, str(out))
        assert out.read_text() == "previous"
        assert [p.name for p in tmp_path.iterdir()] == ["route_data.json"]

    def test_overwrite_is_idempotent(self, data, tmp_path):
        out = tmp_path / "routeData.js"
        write_route_data(data, str(out))
        first = out.read_bytes()
        write_route_data(data, str(out))
        assert out.read_bytes() == first
        assert os.path.getsize(out) > 0
