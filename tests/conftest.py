"""
Pytest configuration and shared fixtures for the TDOA filter tests.

Provides the factory anchor layout, fresh filters and helpers for computing
true range differences.
"""

import sys
import math
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tdoa_core.metrics import reset_metrics
from tdoa_core.localization import (
    AnchorRegistry,
    TdoaEKF,
    TdoaEKFConfig,
    create_default_registry,
)


# =============================================================================
# Metrics isolation
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test its own global metrics collector."""
    reset_metrics()
    yield


# =============================================================================
# Anchor Fixtures
# =============================================================================


@pytest.fixture
def default_anchor_positions() -> Dict[int, Tuple[float, float, float]]:
    """
    Factory survey layout.

    Returns:
        Dict of anchor index -> (x, y, z) in meters.
    """
    return {
        0: (4.628, 0.600, 1.312),
        1: (4.628, 3.810, 1.297),
        2: (0.043, 4.210, 1.302),
        3: (0.123, 1.673, 1.903),
    }


@pytest.fixture
def default_registry() -> AnchorRegistry:
    """Registry with the factory layout loaded."""
    return create_default_registry()


@pytest.fixture
def empty_registry() -> AnchorRegistry:
    """Registry with no anchors configured (capacity 8)."""
    return AnchorRegistry(max_anchors=8)


# =============================================================================
# Filter Fixtures
# =============================================================================


@pytest.fixture
def ekf() -> TdoaEKF:
    """Filter with default configuration and factory anchors."""
    return TdoaEKF()


@pytest.fixture
def true_position() -> Tuple[float, float, float]:
    """Agent ground truth used by the convergence scenarios."""
    return (2.0, 2.5, 1.3)


@pytest.fixture
def all_pairs() -> List[Tuple[int, int]]:
    """Every pair of the four factory anchors."""
    return [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]


# =============================================================================
# Helper Functions
# =============================================================================


def calculate_distance_3d(
    p1: Tuple[float, float, float], p2: Tuple[float, float, float]
) -> float:
    """
    Calculate Euclidean distance between two 3D points.

    Args:
        p1: First point (x, y, z).
        p2: Second point (x, y, z).

    Returns:
        Distance in the same units as input.
    """
    return math.sqrt(
        (p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2 + (p1[2] - p2[2]) ** 2
    )


def calculate_distance_2d(
    p1: Tuple[float, ...], p2: Tuple[float, ...]
) -> float:
    """Horizontal (x, y) distance between two points."""
    return math.sqrt((p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2)


def calculate_range_difference(
    position: Tuple[float, float, float],
    reference: Tuple[float, float, float],
    neighbor: Tuple[float, float, float],
) -> float:
    """d(neighbor) - d(reference) computed independently of the package."""
    return calculate_distance_3d(position, neighbor) - calculate_distance_3d(position, reference)


def assert_covariance_invariants(P: np.ndarray, atol: float = 1e-9):
    """Covariance is symmetric, finite and has a non-negative diagonal."""
    assert P.shape == (6, 6)
    assert np.all(np.isfinite(P)), "Covariance contains non-finite values"
    assert np.allclose(P, P.T, rtol=0.0, atol=atol), "Covariance is not symmetric"
    assert np.all(np.diagonal(P) >= 0.0), "Covariance has a negative variance"
