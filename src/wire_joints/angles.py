"""
Insertion-depth solver.

For every rod end, finds the smallest angle to any other rod converging on the
same vertex and turns it into the maximum channel depth that keeps neighbouring
sockets from colliding.
"""
import logging
from typing import List, Optional

import numpy as np

from wire_joints.contracts import AngleAmbiguity, AngleTable, WireGraph
from wire_joints.errors import GeometricAmbiguity

logger = logging.getLogger(__name__)

# Neighbour angles below this are treated as coincident rods (radians).
COINCIDENT_ANGLE_EPS = 1e-6


def edge_directions(graph: WireGraph) -> np.ndarray:
    """Unit direction of every edge, pointing from endpoint 0 to endpoint 1."""
    vecs = graph.vertices[graph.edges[:, 1]] - graph.vertices[graph.edges[:, 0]]
    lengths = np.linalg.norm(vecs, axis=1)
    degenerate = np.flatnonzero(lengths <= 0.0)
    if len(degenerate):
        raise GeometricAmbiguity(
            f"Edge {int(degenerate[0])} has zero length; its direction is undefined"
        )
    return vecs / lengths[:, None]


def solve_angle_table(
    graph: WireGraph,
    directions: Optional[np.ndarray] = None,
) -> AngleTable:
    """Minimal convergence angle for every (edge, endpoint).

    A neighbour's direction is flipped unless it shares the vertex at the same
    endpoint slot, so both vectors leave (or both enter) the shared vertex.
    Endpoints with no constraining neighbour get ``inf``.

    Neighbours whose angle is within ``COINCIDENT_ANGLE_EPS`` of zero overlap
    the rod completely; no depth can separate them, so they are skipped (same
    as having no neighbour) and reported in ``AngleTable.ambiguous``.
    Antiparallel neighbours give ``pi`` and still constrain.
    """
    if directions is None:
        directions = edge_directions(graph)
    edges = graph.edges
    theta = np.full((graph.edge_count, 2), np.inf)
    incident = graph.incident_edges()
    ambiguous: List[AngleAmbiguity] = []

    for ei in range(graph.edge_count):
        for c in range(2):
            i = edges[ei, c]
            neighbors = incident[i][incident[i] != ei]
            if len(neighbors) == 0:
                continue
            flip = np.where(edges[neighbors, c] == i, 1.0, -1.0)
            dots = flip * (directions[neighbors] @ directions[ei])
            angles = np.arccos(np.clip(dots, -1.0, 1.0))

            coincident = angles < COINCIDENT_ANGLE_EPS
            antiparallel = angles > np.pi - COINCIDENT_ANGLE_EPS
            for nei, ang in zip(neighbors[coincident], angles[coincident]):
                logger.warning(
                    "Edges %d and %d coincide at vertex %d; ignoring as constraint",
                    ei, nei, i,
                )
                ambiguous.append(AngleAmbiguity(ei, c, int(nei), "coincident", float(ang)))
            for nei, ang in zip(neighbors[antiparallel], angles[antiparallel]):
                logger.debug("Edges %d and %d run straight through vertex %d", ei, nei, i)
                ambiguous.append(AngleAmbiguity(ei, c, int(nei), "antiparallel", float(ang)))

            constraining = angles[~coincident]
            if len(constraining):
                theta[ei, c] = float(constraining.min())

    return AngleTable(theta=theta, ambiguous=ambiguous)


def insertion_depths(theta: np.ndarray, outer_radius: float) -> np.ndarray:
    """Channel depth ``J = R / atan(theta / 2)`` per (edge, endpoint).

    Unconstrained ends (``theta == inf``) evaluate to ``R / (pi / 2)``.
    """
    return outer_radius / np.arctan(np.asarray(theta, dtype=np.float64) / 2.0)
