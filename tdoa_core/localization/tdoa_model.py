"""
TDOA measurement model.

Measurement equation for a reference anchor Ar and neighbor anchor An:

    h(x) = d1 - d0,   d0 = ||p - p_Ar||,   d1 = ||p - p_An||

Jacobian (1 x 6, position block only; velocity is not observed):

    dh/dp = (p - p_An) / d1 - (p - p_Ar) / d0
"""

from dataclasses import dataclass
from typing import Sequence
import numpy as np

from .filter_state import STATE_DIM, POSITION_SLICE


@dataclass
class TdoaPrediction:
    """
    Measurement model evaluated at a state.

    Attributes:
        d0: Distance to the reference anchor (m)
        d1: Distance to the neighbor anchor (m)
        predicted_m: Predicted range difference d1 - d0 (m)
        jacobian: 1 x STATE_DIM observation row H
    """

    d0: float
    d1: float
    predicted_m: float
    jacobian: np.ndarray

    def is_degenerate(self, min_distance_m: float) -> bool:
        """True if either distance is too small for a defined Jacobian."""
        return self.d0 <= min_distance_m or self.d1 <= min_distance_m


def anchor_distance(position: Sequence[float], anchor: Sequence[float]) -> float:
    """Euclidean distance between a position and an anchor."""
    return float(np.linalg.norm(np.asarray(position, dtype=float) - np.asarray(anchor, dtype=float)))


def range_difference(
    position: Sequence[float],
    reference_anchor: Sequence[float],
    neighbor_anchor: Sequence[float],
) -> float:
    """
    Range difference seen at position.

    Args:
        position: (x, y, z) of the agent
        reference_anchor: (x, y, z) of Ar
        neighbor_anchor: (x, y, z) of An

    Returns:
        ||p - p_An|| - ||p - p_Ar|| in meters
    """
    return anchor_distance(position, neighbor_anchor) - anchor_distance(position, reference_anchor)


def tdoa_jacobian(
    position: Sequence[float],
    reference_anchor: Sequence[float],
    neighbor_anchor: Sequence[float],
    d0: float,
    d1: float,
) -> np.ndarray:
    """
    Observation row H for the range-difference measurement.

    d0 and d1 must be strictly positive; callers check degeneracy first.
    """
    p = np.asarray(position, dtype=float)
    H = np.zeros((1, STATE_DIM))
    H[0, POSITION_SLICE] = (
        (p - np.asarray(neighbor_anchor, dtype=float)) / d1
        - (p - np.asarray(reference_anchor, dtype=float)) / d0
    )
    return H


def predict_measurement(
    position: Sequence[float],
    reference_anchor: Sequence[float],
    neighbor_anchor: Sequence[float],
    min_distance_m: float = 0.0,
) -> TdoaPrediction:
    """
    Evaluate the measurement model and its Jacobian.

    Args:
        position: (x, y, z) of the current estimate
        reference_anchor: (x, y, z) of Ar
        neighbor_anchor: (x, y, z) of An
        min_distance_m: Distances at or below this leave the Jacobian at zero

    Returns:
        TdoaPrediction; check is_degenerate() before using the Jacobian
    """
    d0 = anchor_distance(position, reference_anchor)
    d1 = anchor_distance(position, neighbor_anchor)

    if d0 <= min_distance_m or d1 <= min_distance_m:
        jacobian = np.zeros((1, STATE_DIM))
    else:
        jacobian = tdoa_jacobian(position, reference_anchor, neighbor_anchor, d0, d1)

    return TdoaPrediction(d0=d0, d1=d1, predicted_m=d1 - d0, jacobian=jacobian)
