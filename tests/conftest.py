"""
Shared test fixtures for the joint generator tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from wire_joints.contracts import JointConfig, WireGraph


@pytest.fixture
def default_config():
    return JointConfig()


@pytest.fixture
def single_edge_graph():
    """Two vertices joined by one unit-length edge along X."""
    return WireGraph(
        vertices=[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
        edges=[[0, 1]],
    )


@pytest.fixture
def tripod_graph():
    """Three unit edges leaving the origin at 120 degrees in the XY plane."""
    angles = np.radians([90.0, 210.0, 330.0])
    leaves = np.column_stack([np.cos(angles), np.sin(angles), np.zeros(3)])
    return WireGraph(
        vertices=np.vstack([np.zeros((1, 3)), leaves]),
        edges=[[0, 1], [0, 2], [0, 3]],
    )


@pytest.fixture
def chain_graph():
    """Two collinear edges running straight through the middle vertex."""
    return WireGraph(
        vertices=[[-1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
        edges=[[0, 1], [1, 2]],
    )


@pytest.fixture
def tetrahedron_graph():
    """Regular tetrahedron wire frame with unit edge length."""
    vertices = np.array([
        [1.0, 1.0, 1.0],
        [1.0, -1.0, -1.0],
        [-1.0, 1.0, -1.0],
        [-1.0, -1.0, 1.0],
    ]) / (2.0 * np.sqrt(2.0))
    edges = [[0, 1], [0, 2], [0, 3], [1, 2], [1, 3], [2, 3]]
    return WireGraph(vertices=vertices, edges=edges)
