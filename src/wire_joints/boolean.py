"""
Boolean subtraction with operand provenance.

Socket channels and labels are carved out of the union of joint shells with
manifold3d. The boolean re-triangulates, so the per-shell joint tag is not
carried over face by face. Every operand is registered as an original solid
before the operation; manifold3d groups output triangles into runs and
reports, for each run, the original solid it derives from. Output faces are
then grouped into connected surface patches and each patch takes the tag of
its shell faces.

This only works while no patch contains faces of two different joints, i.e.
joints must not touch or fuse during the union. The remapper checks that
instead of assuming it.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

import manifold3d
import numpy as np
import trimesh
from manifold3d import Manifold, Mesh, OpType

from wire_joints.errors import FatalConsistencyFailure

logger = logging.getLogger(__name__)


@dataclass
class BooleanResult:
    vertices: np.ndarray
    faces: np.ndarray
    face_source: np.ndarray  # per output face: operand index; < tagged_count is a shell
    tagged_count: int        # number of shell operands


def to_manifold(vertices: np.ndarray, faces: np.ndarray) -> Manifold:
    """Closed solid from an indexed triangle mesh, registered as an original."""
    mesh = Mesh(
        vert_properties=np.ascontiguousarray(vertices, dtype=np.float32),
        tri_verts=np.ascontiguousarray(faces, dtype=np.uint32),
    )
    solid = Manifold(mesh)
    status = solid.status()
    if status != manifold3d.Error.NoError:
        raise FatalConsistencyFailure(f"Boolean operand is not a closed manifold: {status}")
    return solid.as_original()


def union_all(solids: List[Manifold]) -> Manifold:
    if len(solids) == 1:
        return solids[0]
    return Manifold.batch_boolean(solids, OpType.Add)


def face_operands(out: Mesh, operand_ids: np.ndarray) -> np.ndarray:
    """Operand index of every triangle of ``out``.

    ``operand_ids[k]`` is the original id of operand ``k``.
    """
    faces_count = len(np.asarray(out.tri_verts).reshape(-1, 3))
    run_index = np.asarray(out.run_index, dtype=np.int64)
    run_original = np.asarray(out.run_original_id, dtype=np.int64)
    face_run = np.searchsorted(run_index, 3 * np.arange(faces_count), side="right") - 1
    face_original = run_original[face_run]

    order = np.argsort(operand_ids, kind="stable")
    keys = operand_ids[order]
    pos = np.clip(np.searchsorted(keys, face_original), 0, max(len(keys) - 1, 0))
    known = keys[pos] == face_original
    if not np.all(known):
        raise FatalConsistencyFailure(
            f"{int((~known).sum())} boolean faces come from no known operand"
        )
    return order[pos].astype(np.int64)


def subtract_with_provenance(
    shells: Sequence[trimesh.Trimesh],
    cutters: Sequence[trimesh.Trimesh],
) -> BooleanResult:
    """Compute ``union(shells) - union(cutters)``.

    Shells are operands ``[0, len(shells))`` and cutters follow them; the
    returned ``face_source`` maps every output face to its operand.
    Empty cutters are ignored; every shell must have faces.
    """
    if not shells:
        raise FatalConsistencyFailure("No joint shells to subtract from")
    shell_solids: List[Manifold] = []
    for k, shell in enumerate(shells):
        if len(shell.faces) == 0:
            raise FatalConsistencyFailure(f"Joint shell {k} has no faces")
        shell_solids.append(to_manifold(shell.vertices, shell.faces))
    cutter_solids = [
        to_manifold(cutter.vertices, cutter.faces) for cutter in cutters if len(cutter.faces)
    ]
    operand_ids = np.array(
        [s.original_id() for s in shell_solids + cutter_solids], dtype=np.int64
    )

    solid = union_all(shell_solids)
    if cutter_solids:
        solid = solid - union_all(cutter_solids)

    out = solid.to_mesh()
    vertices = np.asarray(out.vert_properties, dtype=np.float64)[:, :3]
    faces = np.asarray(out.tri_verts, dtype=np.int64).reshape(-1, 3)
    face_source = face_operands(out, operand_ids)

    from_shell = int((face_source < len(shell_solids)).sum())
    logger.debug(
        "Boolean: %d shells, %d cutters -> %d faces (%d from shells)",
        len(shell_solids), len(cutter_solids), len(faces), from_shell,
    )
    return BooleanResult(
        vertices=vertices,
        faces=faces,
        face_source=face_source,
        tagged_count=len(shell_solids),
    )


def remap_face_tags(
    faces: np.ndarray,
    face_source: np.ndarray,
    source_tags: np.ndarray,
) -> np.ndarray:
    """Spread source tags over connected patches of the output mesh.

    Args:
        faces: (f, 3) output triangles.
        face_source: (f,) source (e.g. boolean operand) of every output
            face; values below ``len(source_tags)`` are tagged sources.
        source_tags: (k,) tag of every tagged source.

    Returns:
        (f,) tag per output face.

    Raises:
        FatalConsistencyFailure: a patch has no tagged face, or tagged faces
            with different tags.
    """
    faces = np.asarray(faces, dtype=np.int64)
    face_source = np.asarray(face_source, dtype=np.int64)
    source_tags = np.asarray(source_tags, dtype=np.int64)
    if len(faces) == 0:
        return np.zeros(0, dtype=np.int64)

    adjacency = trimesh.graph.face_adjacency(faces=faces)
    components = trimesh.graph.connected_component_labels(adjacency, node_count=len(faces))
    count = int(components.max()) + 1

    tagged = face_source < len(source_tags)
    votes = source_tags[face_source[tagged]]
    voters = components[tagged]

    low = np.full(count, np.iinfo(np.int64).max)
    high = np.full(count, -1)
    np.minimum.at(low, voters, votes)
    np.maximum.at(high, voters, votes)

    unresolved = np.flatnonzero(high < 0)
    if len(unresolved):
        raise FatalConsistencyFailure(
            f"{len(unresolved)} of {count} surface patches have no joint provenance"
        )
    conflicted = np.flatnonzero(low != high)
    if len(conflicted):
        raise FatalConsistencyFailure(
            f"Surface patch {int(conflicted[0])} merges joints "
            f"{int(low[conflicted[0]])} and {int(high[conflicted[0]])}; joints touch"
        )
    return high[components]
