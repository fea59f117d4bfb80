#!/usr/bin/env python3
"""Generate 3-D printable joints (and rod stock) for a wire-frame graph."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from run_protocol import open_run
from wire_joints import ConfigurationError, JointConfig, JointError, build_joints
from wire_joints.io import export_joint_meshes, load_wire_graph

logger = logging.getLogger("generate_joints")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build socketed joints for every vertex of a wire graph"
    )
    parser.add_argument(
        "--graph", required=True, help="Path to wire graph (.json or .obj with l records)"
    )
    parser.add_argument("--name", default="joints", help="Design/run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument("--radius", type=float, default=None, help="Rod radius {0.05}")
    parser.add_argument("--tol", type=float, default=None, help="Clearance added to rod radius {0.01}")
    parser.add_argument(
        "--poly-size", type=int, default=None, help="Sides of the rod cross-section polygon {5}"
    )
    parser.add_argument(
        "--joint-thickness", type=float, default=None, help="Joint wall thickness {0.25*radius}"
    )
    parser.add_argument(
        "--overhang", type=float, default=None, help="Channel length past insertion depth {2*radius}"
    )
    parser.add_argument(
        "--emboss-height", type=float, default=None, help="Label engraving height {0.5*joint-thickness}"
    )
    parser.add_argument(
        "--label-sockets", action="store_true", help="Engrave edge numbers into socket floors"
    )
    parser.add_argument(
        "--format", default="stl", choices=["stl", "obj", "ply"], help="Mesh export format"
    )
    parser.add_argument(
        "--workers", type=int, default=None, help="Threads for per-vertex shell assembly"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def options_from_args(args: argparse.Namespace) -> dict:
    """Named joint options given on the command line (unset ones omitted)."""
    given = {
        "Radius": args.radius,
        "Tol": args.tol,
        "PolySize": args.poly_size,
        "JointThickness": args.joint_thickness,
        "Overhang": args.overhang,
        "EmbossHeight": args.emboss_height,
    }
    options = {name: value for name, value in given.items() if value is not None}
    if args.label_sockets:
        options["LabelSockets"] = True
    return options


def _build_summary(
    *,
    run_id: str,
    elapsed_s: float,
    vertex_count: int,
    edge_count: int,
    face_count: int,
    rod_face_count: int,
    ambiguous: int,
) -> str:
    return "\n".join(
        [
            f"# Run {run_id}",
            "",
            f"- Duration: {elapsed_s:.2f}s",
            f"- Graph: {vertex_count} vertices, {edge_count} edges",
            f"- Joint mesh: {face_count} faces",
            f"- Rod mesh: {rod_face_count} faces",
            f"- Ambiguous rod pairs: {ambiguous}",
            "",
        ]
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = JointConfig.from_options(options_from_args(args))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2

    try:
        graph = load_wire_graph(args.graph)
    except (OSError, KeyError, ValueError) as exc:
        logger.error("Could not read wire graph %s: %s", args.graph, exc)
        return 2

    started = time.perf_counter()
    try:
        result = build_joints(graph, config, max_workers=args.workers)
    except JointError as exc:
        logger.error("Joint generation failed: %s", exc)
        return 1
    elapsed = time.perf_counter() - started

    run = open_run(args.runs_dir, args.name)
    graph_record = run.keep_graph(args.graph)
    graph_record.update(vertices=graph.vertex_count, edges=graph.edge_count)
    artifacts = export_joint_meshes(result, run.artifacts_dir, file_type=args.format)

    metrics = {
        "elapsed_s": round(elapsed, 3),
        "counts": {
            "graph_vertices": graph.vertex_count,
            "graph_edges": graph.edge_count,
            "joint_faces": int(len(result.faces)),
            "joint_vertices": int(len(result.vertices)),
            "rod_faces": int(len(result.rod_faces)),
            "shell_faces": int(result.debug["shell_faces"]),
            "ambiguous_angles": len(result.angles.ambiguous),
        },
        "insertion_depth": {
            "min": float(result.depths.min()),
            "max": float(result.depths.max()),
        },
        "debug": result.debug,
    }
    summary = _build_summary(
        run_id=run.run_id,
        elapsed_s=elapsed,
        vertex_count=graph.vertex_count,
        edge_count=graph.edge_count,
        face_count=len(result.faces),
        rod_face_count=len(result.rod_faces),
        ambiguous=len(result.angles.ambiguous),
    )
    run.finish(
        design_name=args.name,
        graph=graph_record,
        config=config.as_options(),
        artifacts=artifacts,
        metrics=metrics,
        summary=summary,
    )

    print(f"Run ID: {run.run_id}")
    print(f"Run dir: {run.run_dir}")
    print(f"Joints: {len(artifacts['joints'])}")
    print(f"Joint mesh: {artifacts['joint_mesh']}")
    print(f"Rod mesh: {artifacts['rod_mesh']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
