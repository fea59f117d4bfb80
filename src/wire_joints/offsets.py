"""Offset rail points along every edge for the four nested depth families."""
import math

import numpy as np

from wire_joints.contracts import JointConfig, OffsetFamilies, OffsetPointSet, WireGraph


def offset_points(
    graph: WireGraph,
    directions: np.ndarray,
    depths: np.ndarray,
) -> OffsetPointSet:
    """Advance endpoint 0 and retreat endpoint 1 of every edge by ``depths``.

    Returns ``2m`` points; pair ``k`` joins row ``k`` and row ``k + m``.
    """
    depths = np.asarray(depths, dtype=np.float64)
    m = graph.edge_count
    start = graph.vertices[graph.edges[:, 0]] + directions * depths[:, [0]]
    end = graph.vertices[graph.edges[:, 1]] - directions * depths[:, [1]]
    pairs = np.column_stack([np.arange(m), m + np.arange(m)]).astype(np.int64)
    return OffsetPointSet(points=np.vstack([start, end]), pairs=pairs, depths=depths)


def family_depths(nominal: np.ndarray, config: JointConfig) -> dict:
    """Depth arrays of the trim, nominal, wrapped and overhang families."""
    th = config.joint_thickness
    return {
        "trim": np.minimum(nominal - th * math.sqrt(2.0), 2.0 * config.outer_radius),
        "nominal": nominal,
        "wrapped": nominal + th,
        "overhang": nominal + config.overhang,
    }


def build_offset_families(
    graph: WireGraph,
    directions: np.ndarray,
    nominal: np.ndarray,
    config: JointConfig,
) -> OffsetFamilies:
    depths = family_depths(np.asarray(nominal, dtype=np.float64), config)
    return OffsetFamilies(
        **{name: offset_points(graph, directions, d) for name, d in depths.items()}
    )
