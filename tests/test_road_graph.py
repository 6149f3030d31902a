"""Tests for road_graph.py"""

import pytest

from conftest import grid_id, make_block_osm
from road_graph import build_graph, extract_bus_stops, haversine_m


class TestHaversine:
    def test_known_distance(self):
        """Philadelphia City Hall to the Art Museum is roughly 2 km."""
        dist = haversine_m(39.9524, -75.1636, 39.9656, -75.1810)
        assert 1500 < dist < 2500

    def test_same_point_is_zero(self):
        assert haversine_m(51.5, -0.12, 51.5, -0.12) == 0.0

    def test_one_millidegree_of_latitude(self):
        assert haversine_m(51.5, -0.12, 51.501, -0.12) == pytest.approx(111.19, abs=0.1)


class TestBuildGraph:
    def setup_method(self):
        self.graph = build_graph(make_block_osm())

    def test_edges_are_bidirectional(self):
        a, b = grid_id(0, 0), grid_id(0, 1)
        assert self.graph.has_edge(a, b)
        assert self.graph.has_edge(b, a)

    def test_edge_carries_distance_and_name(self):
        edge = self.graph.edge_between(grid_id(0, 0), grid_id(0, 1))
        assert edge.name == "South Street"
        assert 90 < edge.dist < 110

    def test_footway_contributes_no_edges(self):
        assert not self.graph.has_edge(grid_id(1, 1), grid_id(1, 3))
        assert grid_id(1, 1) not in self.graph.adj

    def test_footway_nodes_stay_in_node_table(self):
        assert grid_id(1, 1) in self.graph.nodes

    def test_connected_nodes_exclude_unreachable(self):
        ids = {n.id for n in self.graph.connected_nodes()}
        assert grid_id(1, 1) not in ids
        assert grid_id(2, 2) in ids

    def test_every_edge_target_is_a_known_node(self):
        for edges in self.graph.adj.values():
            for edge in edges:
                assert edge.to in self.graph.nodes

    def test_stats(self):
        stats = self.graph.stats()
        assert stats["ways"] == 7
        assert stats["bus_stops"] == 3
        assert stats["nodes"] == 25 + 2 + 3
        # 6 block ways of 4 segments + 1 island segment, both directions
        assert stats["edges"] == 2 * (6 * 4 + 1)


class TestParallelAndMissing:
    def test_parallel_ways_are_not_merged(self):
        data = {"elements": [
            {"type": "node", "id": 1, "lat": 51.5, "lon": -0.12},
            {"type": "node", "id": 2, "lat": 51.501, "lon": -0.12},
            {"type": "way", "id": 10, "nodes": [1, 2], "tags": {"highway": "primary", "name": "A"}},
            {"type": "way", "id": 11, "nodes": [1, 2], "tags": {"highway": "primary_link", "name": "B"}},
        ]}
        graph = build_graph(data)
        assert [e.name for e in graph.edges_from(1)] == ["A", "B"]

    def test_missing_node_segments_are_skipped(self):
        data = {"elements": [
            {"type": "node", "id": 1, "lat": 51.5, "lon": -0.12},
            {"type": "node", "id": 2, "lat": 51.501, "lon": -0.12},
            {"type": "way", "id": 10, "nodes": [1, 2, 99], "tags": {"highway": "tertiary"}},
        ]}
        graph = build_graph(data)
        assert graph.has_edge(1, 2)
        assert 99 not in graph.adj
        assert graph.edge_between(1, 2).name is None

    def test_empty_response(self):
        graph = build_graph({"elements": []})
        assert graph.connected_nodes() == []


class TestBusStops:
    def test_name_falls_back_to_description(self):
        data = {"elements": [
            {"type": "node", "id": 1, "lat": 51.5, "lon": -0.12,
             "tags": {"public_transport": "platform", "description": "Stand C"}},
            {"type": "node", "id": 2, "lat": 51.5, "lon": -0.12,
             "tags": {"highway": "bus_stop"}},
            {"type": "node", "id": 3, "lat": 51.5, "lon": -0.12,
             "tags": {"amenity": "bench", "name": "Not a stop"}},
        ]}
        stops = extract_bus_stops(data)
        assert [s["name"] for s in stops] == ["Stand C", None]

    def test_block_stops(self, block_osm):
        names = [s["name"] for s in extract_bus_stops(block_osm)]
        assert names == ["Parliament Street", None, "Far Away Stop"]
