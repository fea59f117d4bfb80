"""
Socket label glyphs.

Builds small extruded edge-number solids that sit on the floor of every
socket so each rod end can be matched to its socket after printing. The
glyphs are subtracted from the joints together with the channels, leaving an
engraved recess.
"""
import logging
from typing import List

import numpy as np
import trimesh
from matplotlib.textpath import TextPath
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from wire_joints.contracts import JointConfig, WireGraph
from wire_joints.tubes import ring_frame

logger = logging.getLogger(__name__)

_GLYPH_SIZE = 10.0


def _text_polygons(text: str) -> List[Polygon]:
    """Filled outline of ``text`` using even-odd nesting of the glyph loops."""
    loops = [
        Polygon(arr).buffer(0)
        for arr in TextPath((0.0, 0.0), text, size=_GLYPH_SIZE).to_polygons()
        if len(arr) >= 3
    ]
    loops = [p for p in loops if not p.is_empty and p.area > 1e-9]

    depth = [
        sum(1 for j, other in enumerate(loops) if j != i and other.contains(loop))
        for i, loop in enumerate(loops)
    ]
    filled = unary_union([p for p, d in zip(loops, depth) if d % 2 == 0])
    holes = [p for p, d in zip(loops, depth) if d % 2 == 1]
    if holes:
        filled = filled.difference(unary_union(holes))
    if isinstance(filled, Polygon):
        return [filled] if not filled.is_empty else []
    if isinstance(filled, MultiPolygon):
        return list(filled.geoms)
    return [g for g in getattr(filled, "geoms", []) if isinstance(g, Polygon)]


def glyph_mesh(text: str) -> trimesh.Trimesh:
    """Flat extruded label mesh for ``text`` (unit height, arbitrary planar scale)."""
    if not text.strip():
        raise ValueError(f"No glyph outline for label {text!r}")
    polygons = _text_polygons(text)
    if not polygons:
        raise ValueError(f"No glyph outline for label {text!r}")
    parts = [trimesh.creation.extrude_polygon(p, height=1.0) for p in polygons]
    mesh = trimesh.util.concatenate(parts)
    mesh.merge_vertices()
    return mesh


def normalize_glyph(mesh: trimesh.Trimesh, planar_radius: float, half_height: float) -> trimesh.Trimesh:
    """Centre a glyph on the origin and fit it in a disc of ``planar_radius``.

    The extrusion axis is scaled to span ``[-half_height, half_height]``.
    """
    vertices = mesh.vertices - mesh.bounds.mean(axis=0)
    vertices[:, :2] /= np.linalg.norm(vertices[:, :2], axis=1).max()
    vertices[:, 2] /= np.abs(vertices[:, 2]).max()
    vertices *= np.array([planar_radius, planar_radius, half_height])
    return trimesh.Trimesh(vertices=vertices, faces=mesh.faces.copy(), process=False)


def socket_label_meshes(
    graph: WireGraph,
    depths: np.ndarray,
    config: JointConfig,
) -> List[trimesh.Trimesh]:
    """One placed label solid per (edge, endpoint), ordered edge-major."""
    labels: List[trimesh.Trimesh] = []
    planar_radius = config.radius - config.joint_thickness
    for ei, (a, b) in enumerate(graph.edges):
        glyph = normalize_glyph(glyph_mesh(f"{ei + 1:02d}"), planar_radius, config.emboss_height)
        for c, (i, j) in enumerate(((a, b), (b, a))):
            direction = graph.vertices[j] - graph.vertices[i]
            direction = direction / np.linalg.norm(direction)
            placed = (glyph.vertices + [0.0, 0.0, depths[ei, c]]) @ ring_frame(direction).T
            labels.append(trimesh.Trimesh(
                vertices=placed + graph.vertices[i],
                faces=glyph.faces.copy(),
                process=False,
            ))
    logger.debug("Built %d socket labels", len(labels))
    return labels
