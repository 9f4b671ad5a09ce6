"""
Position Estimate Output Schema.

Snapshot of the TDOA filter published to consumers (motion control,
diagnostics). Carries copies of the state and covariance so that readers
never alias the filter's working arrays.
"""

from dataclasses import dataclass, field
from typing import Tuple
import numpy as np


@dataclass
class PositionEstimate:
    """
    Agent position estimate from the TDOA EKF.

    Attributes:
        pos: Position (x, y, z) in meters
        vel: Velocity (vx, vy, vz) in m/s
        pos_std: Position standard deviation (x, y, z) in meters
        num_updates: Measurement updates applied since construction
        num_predicts: Predict steps applied since construction
        num_rejected: Updates refused since construction
        state: Copy of the 6D state vector
        covariance: Copy of the 6x6 covariance matrix
    """

    pos: Tuple[float, float, float]
    vel: Tuple[float, float, float]
    pos_std: Tuple[float, float, float]
    num_updates: int = 0
    num_predicts: int = 0
    num_rejected: int = 0
    state: np.ndarray = field(default=None, repr=False)
    covariance: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        """Validate position estimate."""
        if any(s < 0 for s in self.pos_std):
            raise ValueError(f"Position std cannot be negative: {self.pos_std}")

    @property
    def position_2d(self) -> Tuple[float, float]:
        """Get 2D position (x, y) in meters."""
        return (self.pos[0], self.pos[1])

    @property
    def horizontal_uncertainty_m(self) -> float:
        """RMS horizontal uncertainty in meters."""
        return float(np.sqrt(self.pos_std[0] ** 2 + self.pos_std[1] ** 2))

    @property
    def speed_m_s(self) -> float:
        """Magnitude of the velocity estimate."""
        return float(np.linalg.norm(self.vel))

    def distance_to(self, point: Tuple[float, float, float]) -> float:
        """3D distance from the estimate to a point."""
        return float(np.linalg.norm(np.asarray(self.pos) - np.asarray(point, dtype=float)))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'pos': self.pos,
            'vel': self.vel,
            'pos_std': self.pos_std,
            'num_updates': self.num_updates,
            'num_predicts': self.num_predicts,
            'num_rejected': self.num_rejected,
        }
