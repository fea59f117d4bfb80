"""Contracts for the wire-graph joint pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np

from wire_joints.errors import ConfigurationError


# Option name -> JointConfig field
OPTION_FIELDS: Dict[str, str] = {
    "EmbossHeight": "emboss_height",
    "JointThickness": "joint_thickness",
    "LabelSockets": "label_sockets",
    "Overhang": "overhang",
    "PolySize": "poly_size",
    "Radius": "radius",
    "Tol": "tol",
}


@dataclass(frozen=True)
class JointConfig:
    """Parameters for joint generation.

    ``joint_thickness``, ``overhang`` and ``emboss_height`` default to values
    derived from ``radius`` (and from each other) when left as ``None``.
    """

    radius: float = 0.05                    # dowel rod radius r
    tol: float = 0.01                       # clearance added to the rod radius
    poly_size: int = 5                      # sides of the cross-section polygon
    joint_thickness: Optional[float] = None  # {0.25 * radius}
    overhang: Optional[float] = None         # {2 * radius}
    emboss_height: Optional[float] = None    # {0.5 * joint_thickness}
    label_sockets: bool = False

    def __post_init__(self) -> None:
        if self.joint_thickness is None:
            object.__setattr__(self, "joint_thickness", 0.25 * self.radius)
        if self.overhang is None:
            object.__setattr__(self, "overhang", 2.0 * self.radius)
        if self.emboss_height is None:
            object.__setattr__(self, "emboss_height", 0.5 * self.joint_thickness)
        self._validate()

    def _validate(self) -> None:
        if isinstance(self.poly_size, bool) or not isinstance(self.poly_size, (int, np.integer)):
            raise ConfigurationError(f"PolySize must be an integer, got {self.poly_size!r}")
        if self.poly_size < 3:
            raise ConfigurationError(f"PolySize must be >= 3, got {self.poly_size}")
        for name, value in (
            ("Radius", self.radius),
            ("JointThickness", self.joint_thickness),
            ("EmbossHeight", self.emboss_height),
        ):
            if not math.isfinite(value) or value <= 0.0:
                raise ConfigurationError(f"{name} must be positive, got {value!r}")
        for name, value in (("Tol", self.tol), ("Overhang", self.overhang)):
            if not math.isfinite(value) or value < 0.0:
                raise ConfigurationError(f"{name} must be non-negative, got {value!r}")
        if self.label_sockets and self.joint_thickness >= self.radius:
            raise ConfigurationError(
                "LabelSockets needs JointThickness < Radius so labels fit inside the socket"
            )

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> "JointConfig":
        """Build a config from named options (``{"Radius": 0.04, ...}``).

        Unknown option names and options given without a value are rejected
        before any geometry work happens.
        """
        kwargs: Dict[str, object] = {}
        for name, value in options.items():
            if name not in OPTION_FIELDS:
                raise ConfigurationError(f"Unsupported parameter: {name}")
            if value is None:
                raise ConfigurationError(f"Missing value for parameter: {name}")
            kwargs[OPTION_FIELDS[name]] = value
        if "poly_size" in kwargs:
            kwargs["poly_size"] = _integral_option("PolySize", kwargs["poly_size"])
        if "label_sockets" in kwargs:
            kwargs["label_sockets"] = bool(kwargs["label_sockets"])
        for key in ("radius", "tol", "joint_thickness", "overhang", "emboss_height"):
            if key in kwargs:
                try:
                    kwargs[key] = float(kwargs[key])
                except (TypeError, ValueError) as exc:
                    raise ConfigurationError(f"Invalid value for {key}: {kwargs[key]!r}") from exc
        return cls(**kwargs)

    def as_options(self) -> Dict[str, object]:
        return {name: getattr(self, attr) for name, attr in OPTION_FIELDS.items()}

    @property
    def outer_radius(self) -> float:
        """R: rod radius plus tolerance, the radius of a socket channel."""
        return self.radius + self.tol

    @property
    def shell_tube_thickness(self) -> float:
        """Diameter of the overhang/trim tubes.

        Widened so the inscribed circle of the ``poly_size``-gon still clears
        the wall around a channel.
        """
        correction = 1.0 + 2.0 * (1.0 - math.cos(math.pi / self.poly_size))
        return 2.0 * correction * (self.radius + self.joint_thickness + self.tol)


def _integral_option(name: str, value: object) -> int:
    try:
        as_float = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from exc
    if not as_float.is_integer():
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    return int(as_float)


@dataclass
class WireGraph:
    """Straight-rod wire frame: vertex positions and undirected edges."""

    vertices: np.ndarray  # (n, 3) float
    edges: np.ndarray     # (m, 2) int, 0-based

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=np.float64)
        self.edges = np.asarray(self.edges, dtype=np.int64)
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 3:
            raise ValueError(f"vertices must be (n, 3), got {self.vertices.shape}")
        if self.edges.size == 0:
            self.edges = self.edges.reshape(0, 2)
        if self.edges.ndim != 2 or self.edges.shape[1] != 2:
            raise ValueError(f"edges must be (m, 2), got {self.edges.shape}")
        if not np.all(np.isfinite(self.vertices)):
            raise ValueError("vertex coordinates must be finite")
        if len(self.edges):
            if self.edges.min() < 0 or self.edges.max() >= len(self.vertices):
                raise ValueError("edge index out of range")
            if np.any(self.edges[:, 0] == self.edges[:, 1]):
                raise ValueError("self-loop edges are not supported")
            undirected = np.sort(self.edges, axis=1)
            if len(np.unique(undirected, axis=0)) != len(undirected):
                raise ValueError("duplicate edges are not supported")

    @property
    def vertex_count(self) -> int:
        return int(len(self.vertices))

    @property
    def edge_count(self) -> int:
        return int(len(self.edges))

    @property
    def rail_vertex(self) -> np.ndarray:
        """Graph vertex of every offset-family row (``E`` flattened column-major)."""
        return self.edges.T.reshape(-1)

    def degrees(self) -> np.ndarray:
        return np.bincount(self.edges.reshape(-1), minlength=self.vertex_count)

    def incident_edges(self) -> List[np.ndarray]:
        """Per vertex, the sorted indices of edges touching it."""
        incident: List[List[int]] = [[] for _ in range(self.vertex_count)]
        for ei, (a, b) in enumerate(self.edges):
            incident[a].append(ei)
            incident[b].append(ei)
        return [np.asarray(ids, dtype=np.int64) for ids in incident]


@dataclass
class AngleAmbiguity:
    """A neighbouring edge whose direction degenerately matches an edge end."""

    edge: int
    endpoint: int          # 0 or 1
    neighbor: int
    kind: str              # "coincident" | "antiparallel"
    angle: float


@dataclass
class AngleTable:
    """Minimal convergence angle per (edge, endpoint); ``inf`` if unconstrained."""

    theta: np.ndarray  # (m, 2)
    ambiguous: List[AngleAmbiguity] = field(default_factory=list)


@dataclass
class OffsetPointSet:
    """Rail points along every edge and their two-point polyline pairing.

    Row ``k`` is endpoint 0 of edge ``k``; row ``k + m`` is endpoint 1.
    """

    points: np.ndarray  # (2m, 3)
    pairs: np.ndarray   # (m, 2)
    depths: np.ndarray  # (m, 2)


@dataclass
class OffsetFamilies:
    trim: OffsetPointSet
    nominal: OffsetPointSet
    wrapped: OffsetPointSet
    overhang: OffsetPointSet


@dataclass
class TubeMesh:
    """Closed prism tubes around rail segments, with per-vertex provenance."""

    vertices: np.ndarray      # (k, 3)
    faces: np.ndarray         # (f, 3)
    point_index: np.ndarray   # (k,) rail row each tube vertex was generated from
    edge_index: np.ndarray    # (k,) edge (pair) each tube vertex belongs to
    graph_vertex: Optional[np.ndarray] = None  # (k,) graph vertex of the rail row


@dataclass
class SocketShell:
    """Convex outer shell of one joint."""

    vertex_id: int
    points: np.ndarray  # (p, 3) vertex position first, then ring points
    faces: np.ndarray   # (f, 3) outward triangles into ``points``


@dataclass
class JointResult:
    """In-memory result of a joint generation run."""

    vertices: np.ndarray     # joint mesh vertices
    faces: np.ndarray        # joint mesh triangles
    face_joint: np.ndarray   # per joint face: 0-based graph vertex id in [0, n)
    face_source: np.ndarray  # per joint face: boolean operand; < shell_count is a shell
    shell_count: int
    rod_vertices: np.ndarray
    rod_faces: np.ndarray
    angles: AngleTable
    depths: np.ndarray       # nominal insertion depth J, (m, 2)
    offsets: OffsetFamilies
    config: JointConfig
    debug: Dict[str, object] = field(default_factory=dict)
