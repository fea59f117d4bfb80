"""Joint/rod consistency checks."""
import logging

import numpy as np
import trimesh

from wire_joints.boolean import to_manifold
from wire_joints.errors import FatalConsistencyFailure

logger = logging.getLogger(__name__)

# Overlap volumes at or below this are float noise from touching surfaces.
OVERLAP_VOLUME_EPS = 1e-12


def nondegenerate_faces(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Faces with strictly positive area."""
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    if len(faces) == 0:
        return faces
    area = trimesh.triangles.area(np.asarray(vertices, dtype=np.float64)[faces])
    return faces[area > 0.0]


def overlap_volume(
    vertices_a: np.ndarray,
    faces_a: np.ndarray,
    vertices_b: np.ndarray,
    faces_b: np.ndarray,
) -> float:
    """Volume shared by two closed meshes (manifold3d intersection)."""
    if len(faces_a) == 0 or len(faces_b) == 0:
        return 0.0
    shared = to_manifold(vertices_a, faces_a) ^ to_manifold(vertices_b, faces_b)
    return float(shared.volume())


def check_joint_rod_clearance(
    joint_vertices: np.ndarray,
    joint_faces: np.ndarray,
    rod_vertices: np.ndarray,
    rod_faces: np.ndarray,
) -> None:
    """Fail if the finished joints and the rods share any volume.

    Raises:
        FatalConsistencyFailure: radius/tolerance/overhang leave no clearance.
    """
    faces = nondegenerate_faces(joint_vertices, joint_faces)
    volume = overlap_volume(joint_vertices, faces, rod_vertices, rod_faces)
    if volume > OVERLAP_VOLUME_EPS:
        raise FatalConsistencyFailure(
            f"Joint mesh intersects rod mesh (overlap volume {volume:.3g}); "
            "increase Tol or adjust Radius/Overhang"
        )
    logger.debug("Clearance check passed (%d joint faces, %d rod faces)",
                 len(faces), len(rod_faces))
