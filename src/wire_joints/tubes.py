"""
Polygonal tube extrusion along two-point rail polylines.

Each rail pair becomes a closed prism whose cross-section is a regular
``poly_size``-gon. Every generated vertex remembers the rail row it was built
around, which is what lets the shell assembler collect the ring points that
belong to one graph vertex.
"""
from typing import Optional

import numpy as np
import trimesh

from wire_joints.contracts import TubeMesh
from wire_joints.errors import GeometricAmbiguity

_Z_AXIS = np.array([0.0, 0.0, 1.0])


def ring_frame(direction: np.ndarray) -> np.ndarray:
    """3x3 rotation taking +Z onto ``direction``."""
    return trimesh.geometry.align_vectors(_Z_AXIS, direction)[:3, :3]


def prism_faces(poly_size: int) -> np.ndarray:
    """Outward triangles of one closed prism with rings ``[0, p)`` and ``[p, 2p)``."""
    p = poly_size
    k = np.arange(p)
    k1 = (k + 1) % p
    side = np.vstack([
        np.column_stack([k, k1, p + k1]),
        np.column_stack([k, p + k1, p + k]),
    ])
    fan = np.arange(1, p - 1)
    cap_start = np.column_stack([np.zeros_like(fan), fan + 1, fan])
    cap_end = np.column_stack([np.full_like(fan, p), p + fan, p + fan + 1])
    return np.vstack([side, cap_start, cap_end]).astype(np.int64)


def edge_cylinders(
    points: np.ndarray,
    pairs: np.ndarray,
    thickness: float,
    poly_size: int,
    rail_vertex: Optional[np.ndarray] = None,
) -> TubeMesh:
    """Extrude one closed tube of diameter ``thickness`` per rail pair.

    Args:
        points: (k, 3) rail points.
        pairs: (m, 2) rows into ``points``; each row is one tube segment.
        thickness: circumscribed diameter of the cross-section polygon.
        poly_size: number of polygon sides.
        rail_vertex: optional (k,) graph vertex of each rail point, used to
            fill ``TubeMesh.graph_vertex``.

    Returns:
        TubeMesh with ``2 * poly_size`` vertices per tube (start ring then end
        ring) and per-vertex rail/edge provenance.
    """
    points = np.asarray(points, dtype=np.float64)
    pairs = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
    p = int(poly_size)
    m = len(pairs)

    angles = 2.0 * np.pi * np.arange(p) / p
    ring = 0.5 * thickness * np.column_stack(
        [np.cos(angles), np.sin(angles), np.zeros(p)]
    )

    vertices = np.zeros((m * 2 * p, 3))
    for t, (a, b) in enumerate(pairs):
        segment = points[b] - points[a]
        length = float(np.linalg.norm(segment))
        if length <= 0.0:
            raise GeometricAmbiguity(
                f"Tube segment {t} (rail rows {a}, {b}) has zero length"
            )
        oriented = ring @ ring_frame(segment / length).T
        base = t * 2 * p
        vertices[base:base + p] = points[a] + oriented
        vertices[base + p:base + 2 * p] = points[b] + oriented

    template = prism_faces(p)
    offsets = (np.arange(m) * 2 * p)[:, None, None]
    faces = (template[None, :, :] + offsets).reshape(-1, 3)

    point_index = np.repeat(pairs, p, axis=1).reshape(-1)
    edge_index = np.repeat(np.arange(m), 2 * p)
    graph_vertex = None
    if rail_vertex is not None:
        graph_vertex = np.asarray(rail_vertex, dtype=np.int64)[point_index]

    return TubeMesh(
        vertices=vertices,
        faces=faces,
        point_index=point_index,
        edge_index=edge_index,
        graph_vertex=graph_vertex,
    )


def tube_trimesh(tubes: TubeMesh) -> trimesh.Trimesh:
    return trimesh.Trimesh(vertices=tubes.vertices, faces=tubes.faces, process=False)
