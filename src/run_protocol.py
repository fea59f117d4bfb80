"""Run folders for joint generation.

Each run keeps the wire graph it was built from, the exported joint and rod
meshes, and a manifest that pins both ends with SHA-256 digests::

    <runs>/<stamp>_<name>/
        input/<graph file>
        artifacts/joints.stl, rods.stl, face_joint.npy, joint_XX.stl
        manifest.json  metrics.json  summary.md
    <runs>/latest -> most recent run
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

MANIFEST_SCHEMA = "wire_joints.run.v1"


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _run_slug(design_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", design_name.strip().lower()).strip("-")
    return slug or "joints"


def _dump_json(path: Path, payload: Mapping[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


@dataclass
class JointRun:
    run_id: str
    run_dir: Path
    input_dir: Path
    artifacts_dir: Path

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    @property
    def metrics_path(self) -> Path:
        return self.run_dir / "metrics.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    def keep_graph(self, graph_path: Union[str, Path]) -> Dict[str, Any]:
        """Copy the input graph into the run; returns its provenance record."""
        src = Path(graph_path)
        dst = self.input_dir / src.name
        if src.resolve() != dst.resolve():
            shutil.copy2(src, dst)
        return {
            "source": str(src),
            "path": str(dst),
            "sha256": sha256_file(dst),
        }

    def finish(
        self,
        *,
        design_name: str,
        graph: Mapping[str, Any],
        config: Mapping[str, Any],
        artifacts: Mapping[str, Any],
        metrics: Mapping[str, Any],
        summary: str,
    ) -> Dict[str, Any]:
        """Write metrics, summary and manifest, then point ``latest`` here."""
        _dump_json(self.metrics_path, {"run_id": self.run_id, **metrics})
        self.summary_path.write_text(summary, encoding="utf-8")

        manifest = {
            "schema_version": MANIFEST_SCHEMA,
            "run_id": self.run_id,
            "design_name": design_name,
            "created_utc": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            "graph": dict(graph),
            "config": dict(config),
            "artifacts": {
                **artifacts,
                "metrics": str(self.metrics_path),
                "summary": str(self.summary_path),
            },
            "artifact_sha256": _artifact_digests(artifacts),
        }
        _dump_json(self.manifest_path, manifest)
        _point_latest(self.run_dir)
        return manifest


def _artifact_digests(artifacts: Mapping[str, Any]) -> Dict[str, str]:
    paths: List[Path] = []
    for value in artifacts.values():
        items = value if isinstance(value, list) else [value]
        paths.extend(Path(item) for item in items)
    return {path.name: sha256_file(path) for path in paths if path.is_file()}


def open_run(runs_root: Union[str, Path], design_name: str) -> JointRun:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
    run_id = f"{stamp}_{_run_slug(design_name)}"
    run_dir = Path(runs_root) / run_id
    run = JointRun(
        run_id=run_id,
        run_dir=run_dir,
        input_dir=run_dir / "input",
        artifacts_dir=run_dir / "artifacts",
    )
    run.input_dir.mkdir(parents=True, exist_ok=True)
    run.artifacts_dir.mkdir(parents=True, exist_ok=True)
    return run


def _point_latest(run_dir: Path) -> None:
    latest = run_dir.parent / "latest"
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, run_dir.parent))
    except OSError:
        # No symlinks on this filesystem: leave a pointer file instead.
        latest.mkdir(parents=True, exist_ok=True)
        (latest / "latest_run.txt").write_text(run_dir.name, encoding="utf-8")
