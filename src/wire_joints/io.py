"""Wire-graph loading and joint mesh export."""
import json
import logging
from pathlib import Path
from typing import Dict, List, Union

import numpy as np
import trimesh

from wire_joints.contracts import JointResult, WireGraph

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_wire_graph(path: PathLike) -> WireGraph:
    """Read a wire graph from ``.json`` or Wavefront ``.obj`` (``v``/``l`` records)."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        return WireGraph(
            vertices=np.asarray(payload["vertices"], dtype=float).reshape(-1, 3),
            edges=np.asarray(payload["edges"], dtype=int).reshape(-1, 2),
        )
    if suffix == ".obj":
        return _load_obj_lines(path)
    raise ValueError(f"Unsupported wire graph format: {path.suffix}")


def _load_obj_lines(path: Path) -> WireGraph:
    vertices: List[List[float]] = []
    edges = set()
    with path.open("r", encoding="utf-8") as handle:
        for raw in handle:
            parts = raw.split("#", 1)[0].split()
            if not parts:
                continue
            if parts[0] == "v":
                vertices.append([float(x) for x in parts[1:4]])
            elif parts[0] == "l":
                # "l 1 2 3" is a polyline; entries may carry "/vt" suffixes
                ids = []
                for token in parts[1:]:
                    index = int(token.split("/")[0])
                    ids.append(index - 1 if index > 0 else len(vertices) + index)
                for a, b in zip(ids[:-1], ids[1:]):
                    if a != b:
                        edges.add((min(a, b), max(a, b)))
    return WireGraph(
        vertices=np.asarray(vertices, dtype=float).reshape(-1, 3),
        edges=np.asarray(sorted(edges), dtype=int).reshape(-1, 2),
    )


def save_wire_graph(graph: WireGraph, path: PathLike) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "vertices": graph.vertices.tolist(),
        "edges": graph.edges.tolist(),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def joint_submesh(result: JointResult, vertex_id: int) -> trimesh.Trimesh:
    """The faces of one joint as a standalone, compacted mesh."""
    faces = result.faces[result.face_joint == vertex_id]
    used, local = np.unique(faces.reshape(-1), return_inverse=True)
    return trimesh.Trimesh(
        vertices=result.vertices[used],
        faces=local.reshape(-1, 3),
        process=False,
    )


def export_joint_meshes(
    result: JointResult,
    out_dir: PathLike,
    file_type: str = "stl",
) -> Dict[str, object]:
    """Write the joint mesh, rod mesh, per-face joint ids and per-joint meshes.

    ``face_joint.npy`` holds one 0-based graph vertex id per joint face, and
    ``joint_XX`` files are numbered by the same 0-based ids.

    Returns a mapping of artifact name to path (``joints`` is a list).
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    joints_path = out_dir / f"joints.{file_type}"
    rods_path = out_dir / f"rods.{file_type}"
    ids_path = out_dir / "face_joint.npy"

    trimesh.Trimesh(vertices=result.vertices, faces=result.faces, process=False).export(joints_path)
    trimesh.Trimesh(vertices=result.rod_vertices, faces=result.rod_faces, process=False).export(rods_path)
    np.save(ids_path, result.face_joint)

    per_joint: List[str] = []
    for vertex_id in np.unique(result.face_joint):
        path = out_dir / f"joint_{int(vertex_id):02d}.{file_type}"
        joint_submesh(result, int(vertex_id)).export(path)
        per_joint.append(str(path))

    logger.info("Exported %d joints to %s", len(per_joint), out_dir)
    return {
        "joint_mesh": str(joints_path),
        "rod_mesh": str(rods_path),
        "face_joint": str(ids_path),
        "joints": per_joint,
    }
