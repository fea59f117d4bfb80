"""Tests for the insertion-depth solver."""
import math

import numpy as np
import pytest

from wire_joints.angles import (
    COINCIDENT_ANGLE_EPS,
    edge_directions,
    insertion_depths,
    solve_angle_table,
)
from wire_joints.contracts import WireGraph
from wire_joints.errors import GeometricAmbiguity


class TestEdgeDirections:

    def test_unit_length(self, tetrahedron_graph):
        directions = edge_directions(tetrahedron_graph)
        assert np.allclose(np.linalg.norm(directions, axis=1), 1.0)

    def test_points_from_first_to_second_endpoint(self, single_edge_graph):
        assert np.allclose(edge_directions(single_edge_graph), [[1.0, 0.0, 0.0]])

    def test_zero_length_edge_raises(self):
        graph = WireGraph(vertices=[[0, 0, 0], [0, 0, 0]], edges=[[0, 1]])
        with pytest.raises(GeometricAmbiguity, match="zero length"):
            edge_directions(graph)


class TestAngleTable:

    def test_isolated_edge_is_unconstrained(self, single_edge_graph):
        table = solve_angle_table(single_edge_graph)
        assert np.all(np.isinf(table.theta))
        assert table.ambiguous == []

    def test_isolated_edge_depth(self, single_edge_graph, default_config):
        table = solve_angle_table(single_edge_graph)
        depths = insertion_depths(table.theta, default_config.outer_radius)
        expected = default_config.outer_radius / (math.pi / 2.0)
        assert np.allclose(depths, expected, rtol=0, atol=1e-15)

    def test_tripod_angles_are_equal(self, tripod_graph):
        table = solve_angle_table(tripod_graph)
        centre = table.theta[:, 0]
        assert np.allclose(centre, 2.0 * math.pi / 3.0)
        # leaves have only one rod
        assert np.all(np.isinf(table.theta[:, 1]))

    def test_tripod_depths_are_equal(self, tripod_graph, default_config):
        depths = insertion_depths(
            solve_angle_table(tripod_graph).theta, default_config.outer_radius
        )
        assert np.allclose(depths[:, 0], depths[0, 0])

    def test_tetrahedron_angles(self, tetrahedron_graph):
        table = solve_angle_table(tetrahedron_graph)
        assert np.allclose(table.theta, math.pi / 3.0)

    def test_flip_is_independent_of_edge_orientation(self, tetrahedron_graph):
        flipped = WireGraph(
            vertices=tetrahedron_graph.vertices,
            edges=tetrahedron_graph.edges[:, ::-1],
        )
        original = solve_angle_table(tetrahedron_graph).theta
        reversed_table = solve_angle_table(flipped).theta
        assert np.allclose(original, reversed_table[:, ::-1])

    def test_minimum_over_neighbors(self):
        # vertex 0 has rods at 30 and 90 degrees from the X rod
        graph = WireGraph(
            vertices=[
                [0, 0, 0],
                [1, 0, 0],
                [math.cos(math.radians(30)), math.sin(math.radians(30)), 0],
                [0, 0, 1],
            ],
            edges=[[0, 1], [0, 2], [0, 3]],
        )
        table = solve_angle_table(graph)
        assert table.theta[0, 0] == pytest.approx(math.radians(30))
        assert table.theta[1, 0] == pytest.approx(math.radians(30))
        assert table.theta[2, 0] == pytest.approx(math.radians(90))

    def test_straight_chain_has_no_nan(self, chain_graph, default_config):
        table = solve_angle_table(chain_graph)
        depths = insertion_depths(table.theta, default_config.outer_radius)
        assert not np.any(np.isnan(table.theta))
        assert np.all(np.isfinite(depths))
        assert table.theta[0, 1] == pytest.approx(math.pi)
        assert table.theta[1, 0] == pytest.approx(math.pi)
        assert depths[0, 1] == pytest.approx(
            default_config.outer_radius / math.atan(math.pi / 2.0)
        )

    def test_straight_chain_is_recorded_as_antiparallel(self, chain_graph):
        table = solve_angle_table(chain_graph)
        kinds = {(a.edge, a.endpoint, a.kind) for a in table.ambiguous}
        assert kinds == {(0, 1, "antiparallel"), (1, 0, "antiparallel")}

    def test_coincident_neighbor_does_not_constrain(self, caplog):
        # edges 0-1 and 0-2 leave vertex 0 in the same direction
        graph = WireGraph(
            vertices=[[0, 0, 0], [1, 0, 0], [2, 0, 0], [0, 1, 0]],
            edges=[[0, 1], [0, 2], [0, 3]],
        )
        with caplog.at_level("WARNING"):
            table = solve_angle_table(graph)
        # only the perpendicular rod constrains the two coincident ones
        assert table.theta[0, 0] == pytest.approx(math.pi / 2.0)
        assert table.theta[1, 0] == pytest.approx(math.pi / 2.0)
        coincident = [a for a in table.ambiguous if a.kind == "coincident"]
        assert {(a.edge, a.neighbor) for a in coincident} == {(0, 1), (1, 0)}
        assert all(a.angle < COINCIDENT_ANGLE_EPS for a in coincident)
        assert "coincide" in caplog.text

    def test_only_coincident_neighbor_leaves_end_unconstrained(self):
        graph = WireGraph(
            vertices=[[0, 0, 0], [1, 0, 0], [2, 0, 0]],
            edges=[[0, 1], [0, 2]],
        )
        table = solve_angle_table(graph)
        assert np.isinf(table.theta[0, 0])
        assert np.isinf(table.theta[1, 0])


class TestInsertionDepths:

    def test_formula_uses_inverse_tangent(self):
        theta = np.array([[math.pi / 3.0, math.pi / 2.0]])
        depths = insertion_depths(theta, 0.06)
        assert depths[0, 0] == pytest.approx(0.06 / math.atan(math.pi / 6.0))
        assert depths[0, 1] == pytest.approx(0.06 / math.atan(math.pi / 4.0))

    def test_finite_and_positive(self, tetrahedron_graph, tripod_graph, chain_graph):
        for graph in (tetrahedron_graph, tripod_graph, chain_graph):
            theta = solve_angle_table(graph).theta
            assert np.all((theta > 0.0) & ((theta <= math.pi) | np.isinf(theta)))
            depths = insertion_depths(theta, 0.06)
            assert np.all(np.isfinite(depths))
            assert np.all(depths > 0.0)

    def test_sharper_angles_go_deeper(self):
        depths = insertion_depths(np.array([0.2, 0.5, 1.0, 2.0]), 0.06)
        assert np.all(np.diff(depths) < 0.0)
