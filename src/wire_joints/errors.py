"""Exception hierarchy for the joint generator."""


class JointError(Exception):
    """Base exception for joint generation errors."""
    pass


class ConfigurationError(JointError, ValueError):
    """Unrecognized option name, missing value, or out-of-range parameter."""
    pass


class GeometricAmbiguity(JointError):
    """An edge direction is undefined (zero-length edge or tube segment)."""
    pass


class FatalConsistencyFailure(JointError):
    """Post-assembly invariant violated; the run cannot produce valid output.

    Raised when the joint mesh intersects the rod mesh, when a boolean operand
    is not a closed manifold, or when a connected surface patch of the boolean
    result cannot be attributed to exactly one graph vertex.
    """
    pass
