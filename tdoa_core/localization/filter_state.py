"""
State vector and covariance helpers for the TDOA EKF.

State vector (6D constant-velocity layout):
    x = [X, Y, Z, VX, VY, VZ]^T

Covariance P is 6x6 and must stay symmetric with a non-negative diagonal
after every predict/update.
"""

from enum import IntEnum
from typing import Sequence
import numpy as np


class StateIndex(IntEnum):
    """Index of each component in the state vector."""

    X = 0
    Y = 1
    Z = 2
    VX = 3
    VY = 4
    VZ = 5


STATE_DIM = len(StateIndex)

POSITION_SLICE = slice(StateIndex.X, StateIndex.Z + 1)
VELOCITY_SLICE = slice(StateIndex.VX, StateIndex.VZ + 1)

# Rough starting guess near the deployment area
DEFAULT_INITIAL_STATE = (2.0, 2.6, 0.0, 0.0, 0.0, 0.0)

# Initial standard deviations: x, y, z, vx, vy, vz
DEFAULT_INITIAL_STD = (100.0, 100.0, 1.0, 0.01, 0.01, 0.01)

# Predict cadence baked into the default transition matrix (seconds)
DEFAULT_DT = 0.016


def default_state() -> np.ndarray:
    """Initial state vector."""
    return np.array(DEFAULT_INITIAL_STATE, dtype=float)


def default_covariance(initial_std: Sequence[float] = DEFAULT_INITIAL_STD) -> np.ndarray:
    """
    Initial diagonal covariance.

    Args:
        initial_std: Per-component standard deviation (length STATE_DIM)

    Returns:
        6x6 diagonal covariance
    """
    std = np.asarray(initial_std, dtype=float)
    if std.shape != (STATE_DIM,):
        raise ValueError(f"Expected {STATE_DIM} standard deviations, got {std.shape}")
    return np.diag(std ** 2)


def default_transition_matrix(dt: float = DEFAULT_DT) -> np.ndarray:
    """
    Constant-velocity transition matrix.

    Identity with each velocity component coupled into its position
    component by dt.
    """
    A = np.eye(STATE_DIM)
    A[POSITION_SLICE, VELOCITY_SLICE] = np.eye(3) * dt
    return A


def is_square_state_matrix(matrix) -> bool:
    """
    Check that a matrix can replace A or P.

    Returns:
        True if matrix is STATE_DIM x STATE_DIM with finite entries
    """
    try:
        m = np.asarray(matrix, dtype=float)
    except (TypeError, ValueError):
        return False
    return m.shape == (STATE_DIM, STATE_DIM) and bool(np.all(np.isfinite(m)))


def condition_covariance(P: np.ndarray, min_variance: float = 0.0) -> np.ndarray:
    """
    Restore symmetry and floor the diagonal.

    Args:
        P: Covariance after a predict or update
        min_variance: Smallest allowed diagonal value (>= 0)

    Returns:
        New symmetric matrix 0.5 (P + P') with diagonal >= min_variance
    """
    P_sym = 0.5 * (P + P.T)
    diag = np.diagonal(P_sym).copy()
    np.fill_diagonal(P_sym, np.maximum(diag, min_variance))
    return P_sym


def is_symmetric(P: np.ndarray, atol: float = 1e-9) -> bool:
    """Check symmetry within tolerance."""
    return bool(np.allclose(P, P.T, rtol=0.0, atol=atol))


def has_non_negative_diagonal(P: np.ndarray) -> bool:
    """Check that every variance on the diagonal is >= 0."""
    return bool(np.all(np.diagonal(P) >= 0.0))
