"""Tests for per-vertex socket shell assembly."""
import numpy as np
import pytest

from wire_joints.angles import edge_directions, insertion_depths, solve_angle_table
from wire_joints.contracts import WireGraph
from wire_joints.offsets import build_offset_families
from wire_joints.shells import (
    assemble_shell,
    assemble_shells,
    concatenate_shells,
    outward_hull_faces,
    shell_mesh,
)
from wire_joints.tubes import edge_cylinders


def _shell_tubes(graph, config):
    directions = edge_directions(graph)
    depths = insertion_depths(solve_angle_table(graph, directions).theta, config.outer_radius)
    families = build_offset_families(graph, directions, depths, config)
    overhang = edge_cylinders(
        families.overhang.points, families.overhang.pairs,
        config.shell_tube_thickness, config.poly_size, graph.rail_vertex,
    )
    trim = edge_cylinders(
        families.trim.points, families.trim.pairs,
        config.shell_tube_thickness, config.poly_size, graph.rail_vertex,
    )
    return overhang, trim


class TestOutwardHull:

    def test_cube_hull_is_outward(self):
        corners = np.array([[x, y, z] for x in (0, 1) for y in (0, 1) for z in (0, 1)], dtype=float)
        faces = outward_hull_faces(corners)
        tri = corners[faces]
        normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
        outward = tri.mean(axis=1) - corners.mean(axis=0)
        assert np.all(np.einsum("ij,ij->i", normals, outward) > 0.0)


class TestAssembleShell:

    def test_point_cloud_layout(self, tripod_graph, default_config):
        overhang, trim = _shell_tubes(tripod_graph, default_config)
        rows = overhang.graph_vertex == 0
        shell = assemble_shell(
            0, tripod_graph.vertices[0],
            overhang.vertices[rows], trim.vertices[trim.graph_vertex == 0],
        )
        poly = default_config.poly_size
        assert shell.vertex_id == 0
        assert len(shell.points) == 1 + 2 * 3 * poly
        assert np.allclose(shell.points[0], tripod_graph.vertices[0])

    def test_shell_is_closed_solid(self, tripod_graph, default_config):
        overhang, trim = _shell_tubes(tripod_graph, default_config)
        shells = assemble_shells(tripod_graph, overhang, trim, max_workers=1)
        for shell in shells:
            mesh = shell_mesh(shell)
            assert mesh.is_watertight
            assert mesh.volume > 0.0

    def test_shell_contains_vertex(self, tetrahedron_graph, default_config):
        overhang, trim = _shell_tubes(tetrahedron_graph, default_config)
        shells = assemble_shells(tetrahedron_graph, overhang, trim, max_workers=1)
        for shell in shells:
            mesh = shell_mesh(shell)
            position = tetrahedron_graph.vertices[shell.vertex_id]
            offsets = np.einsum("ij,ij->i", mesh.face_normals, position - mesh.triangles[:, 0])
            assert np.all(offsets <= 1e-12)

    def test_isolated_vertex_has_empty_shell(self, default_config):
        graph = WireGraph(
            vertices=[[0, 0, 0], [1, 0, 0], [5, 5, 5]],
            edges=[[0, 1]],
        )
        overhang, trim = _shell_tubes(graph, default_config)
        shells = assemble_shells(graph, overhang, trim, max_workers=1)
        assert len(shells[2].faces) == 0
        assert len(shells[0].faces) > 0


class TestParallelAssembly:

    def test_parallel_matches_serial(self, tetrahedron_graph, default_config):
        overhang, trim = _shell_tubes(tetrahedron_graph, default_config)
        serial = assemble_shells(tetrahedron_graph, overhang, trim, max_workers=1)
        parallel = assemble_shells(tetrahedron_graph, overhang, trim, max_workers=4)
        assert [s.vertex_id for s in parallel] == [0, 1, 2, 3]
        for a, b in zip(serial, parallel):
            assert np.array_equal(a.points, b.points)
            assert np.array_equal(a.faces, b.faces)


class TestConcatenateShells:

    def test_tags_and_offsets(self, tripod_graph, default_config):
        overhang, trim = _shell_tubes(tripod_graph, default_config)
        shells = assemble_shells(tripod_graph, overhang, trim, max_workers=1)
        vertices, faces, tags = concatenate_shells(shells)

        assert len(faces) == sum(len(s.faces) for s in shells)
        assert len(tags) == len(faces)
        assert faces.max() == len(vertices) - 1
        expected = np.concatenate([np.full(len(s.faces), s.vertex_id) for s in shells])
        assert np.array_equal(tags, expected)

        # each tagged block only references its own vertex range
        start = 0
        for shell in shells:
            block = faces[tags == shell.vertex_id]
            count = len(shell_mesh(shell).vertices)
            assert block.min() == start
            assert block.max() == start + count - 1
            start += count

    def test_empty_input(self):
        vertices, faces, tags = concatenate_shells([])
        assert vertices.shape == (0, 3)
        assert faces.shape == (0, 3)
        assert tags.shape == (0,)

    @pytest.mark.parametrize("vertex_id", [0, 1, 2, 3])
    def test_hull_only_uses_hull_points(self, tetrahedron_graph, default_config, vertex_id):
        overhang, trim = _shell_tubes(tetrahedron_graph, default_config)
        shells = assemble_shells(tetrahedron_graph, overhang, trim, max_workers=1)
        mesh = shell_mesh(shells[vertex_id])
        assert len(mesh.vertices) == len(np.unique(shells[vertex_id].faces))
