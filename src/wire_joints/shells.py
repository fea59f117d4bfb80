"""
Per-vertex socket shell assembly.

Each joint's outer shell is the convex hull of the graph vertex and the
overhang/trim ring points generated around its incident rod ends. Shells have
no data dependency on each other, so they are built as independent tasks and
joined by a single index-offset concatenation.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np
import trimesh
from scipy.spatial import ConvexHull

from wire_joints.contracts import SocketShell, TubeMesh, WireGraph

logger = logging.getLogger(__name__)


def _group_rows(labels: np.ndarray, count: int) -> List[np.ndarray]:
    """Row indices of ``labels`` grouped by label value ``0..count-1``."""
    order = np.argsort(labels, kind="stable")
    bounds = np.searchsorted(labels[order], np.arange(count + 1))
    return [order[bounds[i]:bounds[i + 1]] for i in range(count)]


def outward_hull_faces(points: np.ndarray) -> np.ndarray:
    """Convex hull triangles of ``points`` wound so normals point outward."""
    hull = ConvexHull(points)
    faces = hull.simplices.astype(np.int64)
    tri = points[faces]
    normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
    inward = np.einsum("ij,ij->i", normals, hull.equations[:, :3]) < 0.0
    faces[inward] = faces[inward][:, ::-1]
    return faces


def assemble_shell(
    vertex_id: int,
    position: np.ndarray,
    overhang_points: np.ndarray,
    trim_points: np.ndarray,
) -> SocketShell:
    """Hull the vertex position together with its incident ring points."""
    points = np.vstack([np.asarray(position, dtype=np.float64).reshape(1, 3),
                        overhang_points, trim_points])
    if len(points) < 4:
        logger.warning("Vertex %d has no incident rods; its shell is empty", vertex_id)
        return SocketShell(vertex_id, points, np.zeros((0, 3), dtype=np.int64))
    return SocketShell(vertex_id, points, outward_hull_faces(points))


def assemble_shells(
    graph: WireGraph,
    overhang_tubes: TubeMesh,
    trim_tubes: TubeMesh,
    max_workers: Optional[int] = None,
) -> List[SocketShell]:
    """Build every vertex's shell; the result is ordered by vertex id."""
    n = graph.vertex_count
    overhang_rows = _group_rows(overhang_tubes.graph_vertex, n)
    trim_rows = _group_rows(trim_tubes.graph_vertex, n)

    def task(i: int) -> SocketShell:
        return assemble_shell(
            i,
            graph.vertices[i],
            overhang_tubes.vertices[overhang_rows[i]],
            trim_tubes.vertices[trim_rows[i]],
        )

    if max_workers == 1 or n <= 1:
        return [task(i) for i in range(n)]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(task, range(n)))


def shell_mesh(shell: SocketShell) -> trimesh.Trimesh:
    """Hull of one shell as a mesh holding only the referenced points."""
    used, local = np.unique(shell.faces.reshape(-1), return_inverse=True)
    return trimesh.Trimesh(
        vertices=shell.points[used],
        faces=local.reshape(-1, 3),
        process=False,
    )


def concatenate_shells(
    shells: Sequence[SocketShell],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Stack shells into one mesh with a per-face vertex-id tag.

    Only points referenced by hull faces are emitted.
    """
    vertices: List[np.ndarray] = []
    faces: List[np.ndarray] = []
    tags: List[np.ndarray] = []
    offset = 0
    for shell in shells:
        mesh = shell_mesh(shell)
        vertices.append(np.asarray(mesh.vertices))
        faces.append(np.asarray(mesh.faces) + offset)
        tags.append(np.full(len(shell.faces), shell.vertex_id, dtype=np.int64))
        offset += len(mesh.vertices)
    if not vertices:
        return np.zeros((0, 3)), np.zeros((0, 3), dtype=np.int64), np.zeros(0, dtype=np.int64)
    return np.vstack(vertices), np.vstack(faces).astype(np.int64), np.concatenate(tags)
