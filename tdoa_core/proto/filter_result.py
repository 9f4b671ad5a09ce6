"""
Filter Result Schema.

Discriminated results returned by every filter operation that can be
refused. A refused call never modifies the filter; the host keeps running
on the prior estimate and inspects the status instead of catching
exceptions.
"""

from dataclasses import dataclass
from typing import Optional
from enum import IntEnum


class FilterStatus(IntEnum):
    """Outcome of a filter configuration or update call."""

    OK = 0                     # Applied
    DIMENSION_MISMATCH = 1     # Matrix is not STATE_DIM x STATE_DIM (or non-finite)
    INVALID_ANCHOR_INDEX = 2   # Index outside [0, max_anchors)
    INVALID_ANCHOR_PAIR = 3    # Reference and neighbor are the same anchor
    UNCONFIGURED_ANCHOR = 4    # Anchor slot never set
    NON_FINITE_INPUT = 5       # NaN/inf measurement or parameter
    DEGENERATE_GEOMETRY = 6    # Estimate sits on an anchor (zero distance)
    NUMERICAL_FAILURE = 7      # Innovation variance or result not finite

    @property
    def is_ok(self) -> bool:
        """True if the call was applied."""
        return self == FilterStatus.OK

    @property
    def drop_reason(self) -> Optional[str]:
        """Metrics drop-reason code for this status (None for OK)."""
        if self == FilterStatus.OK:
            return None
        return self.name.lower()


@dataclass
class UpdateResult:
    """
    Outcome of one scalar TDOA measurement update.

    Attributes:
        status: FilterStatus of the update
        reference_anchor: Reference anchor index (Ar)
        neighbor_anchor: Neighbor anchor index (An)
        measured_m: Measured range difference d(An) - d(Ar) in meters
        predicted_m: Range difference predicted from the prior state
        innovation_m: measured - predicted (the residual)
        innovation_var: Innovation variance H P H' + R (m^2)

    Notes:
        - predicted/innovation fields are None when the update was refused
          before the measurement model could be evaluated
    """

    status: FilterStatus
    reference_anchor: int
    neighbor_anchor: int
    measured_m: float
    predicted_m: Optional[float] = None
    innovation_m: Optional[float] = None
    innovation_var: Optional[float] = None

    @property
    def applied(self) -> bool:
        """True if state and covariance were updated."""
        return self.status == FilterStatus.OK

    @property
    def normalized_innovation(self) -> Optional[float]:
        """Innovation divided by its standard deviation, if available."""
        if self.innovation_m is None or not self.innovation_var:
            return None
        return self.innovation_m / self.innovation_var ** 0.5

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'status': self.status.name,
            'reference_anchor': self.reference_anchor,
            'neighbor_anchor': self.neighbor_anchor,
            'measured_m': self.measured_m,
            'predicted_m': self.predicted_m,
            'innovation_m': self.innovation_m,
            'innovation_var': self.innovation_var,
        }


def create_rejected_update(
    status: FilterStatus,
    reference_anchor: int,
    neighbor_anchor: int,
    measured_m: float,
    predicted_m: Optional[float] = None,
) -> UpdateResult:
    """
    Create an UpdateResult for a refused update.

    Args:
        status: Non-OK status describing why the update was refused
        reference_anchor: Reference anchor index
        neighbor_anchor: Neighbor anchor index
        measured_m: The measurement that was refused
        predicted_m: Predicted measurement, if it was computed

    Returns:
        UpdateResult with the given status
    """
    if status == FilterStatus.OK:
        raise ValueError("Rejected update cannot carry status OK")

    return UpdateResult(
        status=status,
        reference_anchor=reference_anchor,
        neighbor_anchor=neighbor_anchor,
        measured_m=measured_m,
        predicted_m=predicted_m,
    )
