"""Wire graph -> printable joints + rods."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from wire_joints.angles import edge_directions, insertion_depths, solve_angle_table
from wire_joints.boolean import remap_face_tags, subtract_with_provenance
from wire_joints.checks import check_joint_rod_clearance
from wire_joints.contracts import JointConfig, JointResult, WireGraph
from wire_joints.labels import socket_label_meshes
from wire_joints.offsets import build_offset_families
from wire_joints.shells import assemble_shells, concatenate_shells, shell_mesh
from wire_joints.tubes import edge_cylinders, tube_trimesh

logger = logging.getLogger(__name__)


def build_joints(
    graph: WireGraph,
    config: Optional[JointConfig] = None,
    max_workers: Optional[int] = None,
) -> JointResult:
    """Generate one socketed joint per graph vertex plus the rod stock.

    Args:
        graph: Wire frame to realise.
        config: Joint parameters; defaults to ``JointConfig()``.
        max_workers: Thread count for per-vertex shell assembly
            (``1`` runs serially, ``None`` lets the executor decide).

    Returns:
        JointResult whose ``face_joint`` holds 0-based graph vertex ids in
        ``[0, n)``, one per joint face.

    Raises:
        GeometricAmbiguity: an edge or rail segment has no direction.
        FatalConsistencyFailure: joints touch each other or the rods.
    """
    if config is None:
        config = JointConfig()
    if graph.edge_count == 0:
        raise ValueError("Wire graph has no edges")

    R = config.outer_radius
    poly = config.poly_size

    logger.info("Solving insertion depths for %d edges", graph.edge_count)
    directions = edge_directions(graph)
    angles = solve_angle_table(graph, directions)
    depths = insertion_depths(angles.theta, R)
    offsets = build_offset_families(graph, directions, depths, config)

    rail_vertex = graph.rail_vertex
    channels = edge_cylinders(
        offsets.nominal.points, offsets.nominal.pairs, 2.0 * R, poly, rail_vertex
    )
    rods = edge_cylinders(
        offsets.wrapped.points, offsets.wrapped.pairs, 2.0 * config.radius, poly, rail_vertex
    )
    overhang = edge_cylinders(
        offsets.overhang.points, offsets.overhang.pairs,
        config.shell_tube_thickness, poly, rail_vertex,
    )
    trim = edge_cylinders(
        offsets.trim.points, offsets.trim.pairs,
        config.shell_tube_thickness, poly, rail_vertex,
    )

    logger.info("Assembling %d joint shells", graph.vertex_count)
    shells = assemble_shells(graph, overhang, trim, max_workers=max_workers)
    _, shell_faces, _ = concatenate_shells(shells)
    solid_shells = [s for s in shells if len(s.faces)]
    shell_tags = np.array([s.vertex_id for s in solid_shells], dtype=np.int64)

    cutters = [tube_trimesh(channels)]
    if config.label_sockets:
        logger.info("Labeling sockets")
        cutters.extend(socket_label_meshes(graph, depths, config))

    logger.info("Boolean")
    carved = subtract_with_provenance([shell_mesh(s) for s in solid_shells], cutters)
    face_joint = remap_face_tags(carved.faces, carved.face_source, shell_tags)

    logger.info("Check")
    check_joint_rod_clearance(carved.vertices, carved.faces, rods.vertices, rods.faces)

    logger.info(
        "Built %d joints: %d faces, rods: %d faces",
        len(np.unique(face_joint)), len(carved.faces), len(rods.faces),
    )
    return JointResult(
        vertices=carved.vertices,
        faces=carved.faces,
        face_joint=face_joint,
        face_source=carved.face_source,
        shell_count=carved.tagged_count,
        rod_vertices=rods.vertices,
        rod_faces=rods.faces,
        angles=angles,
        depths=depths,
        offsets=offsets,
        config=config,
        debug={
            "shell_faces": int(len(shell_faces)),
            "cutter_count": len(cutters),
            "ambiguous_angles": len(angles.ambiguous),
            "rod_watertight": bool(tube_trimesh(rods).is_watertight),
        },
    )
