"""Public API for the wire-graph joint generator."""

from wire_joints.contracts import JointConfig, JointResult, WireGraph
from wire_joints.errors import (
    ConfigurationError,
    FatalConsistencyFailure,
    GeometricAmbiguity,
    JointError,
)
from wire_joints.pipeline import build_joints

__all__ = [
    "ConfigurationError",
    "FatalConsistencyFailure",
    "GeometricAmbiguity",
    "JointConfig",
    "JointError",
    "JointResult",
    "WireGraph",
    "build_joints",
]
