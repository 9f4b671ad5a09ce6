"""
TDOA Sample Message Schema.

One range-difference observation between a reference anchor and a neighbor
anchor, as delivered by the transport layer. Samples arrive one anchor pair
at a time at irregular intervals.
"""

from dataclasses import dataclass
from typing import Tuple
import math


@dataclass
class TdoaSample:
    """
    Range-difference measurement for one anchor pair.

    Attributes:
        reference_anchor: Reference anchor index (Ar)
        neighbor_anchor: Neighbor anchor index (An)
        distance_diff_m: Measured d(An) - d(Ar) in meters
        t_measurement: Measurement timestamp (seconds, host clock)

    Notes:
        - distance_diff_m may be negative (agent closer to An than Ar)
        - Finiteness is checked by the filter, not here, so a corrupt
          value is counted as a rejected update rather than a parse error
    """

    reference_anchor: int
    neighbor_anchor: int
    distance_diff_m: float
    t_measurement: float = 0.0

    def __post_init__(self):
        """Validate sample after initialization."""
        if self.reference_anchor < 0 or self.neighbor_anchor < 0:
            raise ValueError(
                f"Anchor index cannot be negative: "
                f"({self.reference_anchor}, {self.neighbor_anchor})"
            )

    @property
    def anchor_pair(self) -> Tuple[int, int]:
        """(reference, neighbor) anchor indices."""
        return (self.reference_anchor, self.neighbor_anchor)

    @property
    def is_finite(self) -> bool:
        """Check if the measured range difference is a finite number."""
        return math.isfinite(self.distance_diff_m)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'reference_anchor': self.reference_anchor,
            'neighbor_anchor': self.neighbor_anchor,
            'distance_diff_m': self.distance_diff_m,
            't_measurement': self.t_measurement,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TdoaSample':
        """
        Build a sample from a transport dictionary.

        Args:
            data: Dict with reference_anchor, neighbor_anchor,
                distance_diff_m and optional t_measurement

        Returns:
            TdoaSample

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field cannot be converted
        """
        return cls(
            reference_anchor=int(data['reference_anchor']),
            neighbor_anchor=int(data['neighbor_anchor']),
            distance_diff_m=float(data['distance_diff_m']),
            t_measurement=float(data.get('t_measurement', 0.0)),
        )
