"""
Anchor Registry.

Fixed 3D anchor coordinates addressable by a small integer index. Anchors
are configuration: set once at startup (explicitly or from the factory
layout) and only read by the estimator.
"""

import logging
import math
import operator
from typing import Dict, List, Optional, Tuple

from tdoa_core.proto.filter_result import FilterStatus
from tdoa_core.metrics import get_metrics

logger = logging.getLogger(__name__)

Position3D = Tuple[float, float, float]

DEFAULT_MAX_ANCHORS = 8

# Factory survey coordinates (meters)
DEFAULT_ANCHOR_LAYOUT: Dict[int, Position3D] = {
    0: (4.628, 0.600, 1.312),
    1: (4.628, 3.810, 1.297),
    2: (0.043, 4.210, 1.302),
    3: (0.123, 1.673, 1.903),
}


class AnchorRegistry:
    """
    Bounded table of anchor positions.

    Usage:
        registry = AnchorRegistry(max_anchors=8)
        registry.load_default_layout()
        status = registry.set_anchor_position(4, 2.0, 0.1, 2.5)
        pos = registry.get_anchor_position(4)   # (2.0, 0.1, 2.5)

    Out-of-range indices and non-finite coordinates are refused with a
    FilterStatus; the prior configuration is kept.
    """

    def __init__(self, max_anchors: int = DEFAULT_MAX_ANCHORS):
        """
        Initialize an empty registry.

        Args:
            max_anchors: Capacity; valid indices are 0 .. max_anchors - 1
        """
        if max_anchors < 1:
            raise ValueError(f"max_anchors must be positive: {max_anchors}")

        self._max_anchors = int(max_anchors)
        self._positions: Dict[int, Position3D] = {}
        self.metrics = get_metrics()

    @property
    def max_anchors(self) -> int:
        """Registry capacity."""
        return self._max_anchors

    def is_valid_index(self, index) -> bool:
        """Check that index addresses a slot in this registry."""
        if isinstance(index, bool):
            return False
        try:
            # Accepts numpy integers, refuses floats
            index = operator.index(index)
        except TypeError:
            return False
        return 0 <= index < self._max_anchors

    def set_position(self, index: int, position: Position3D) -> FilterStatus:
        """
        Store an anchor position.

        Args:
            index: Anchor index
            position: (x, y, z) in meters

        Returns:
            FilterStatus.OK, INVALID_ANCHOR_INDEX or NON_FINITE_INPUT
        """
        if not self.is_valid_index(index):
            logger.warning(f"Anchor index {index} outside [0, {self._max_anchors}), ignored")
            self.metrics.record_status(FilterStatus.INVALID_ANCHOR_INDEX)
            return FilterStatus.INVALID_ANCHOR_INDEX

        try:
            x, y, z = (float(c) for c in position)
        except (TypeError, ValueError):
            logger.warning(f"Anchor {index}: malformed position {position!r}, ignored")
            self.metrics.record_status(FilterStatus.NON_FINITE_INPUT)
            return FilterStatus.NON_FINITE_INPUT

        if not all(math.isfinite(c) for c in (x, y, z)):
            logger.warning(f"Anchor {index}: non-finite position {position!r}, ignored")
            self.metrics.record_status(FilterStatus.NON_FINITE_INPUT)
            return FilterStatus.NON_FINITE_INPUT

        self._positions[int(index)] = (x, y, z)
        self.metrics.increment('config_changes')
        logger.debug(f"Anchor {index} set to ({x:.3f}, {y:.3f}, {z:.3f})")
        return FilterStatus.OK

    def set_anchor_position(self, index: int, x: float, y: float, z: float) -> FilterStatus:
        """Store an anchor position from separate coordinates."""
        return self.set_position(index, (x, y, z))

    def get_position(self, index: int) -> Optional[Position3D]:
        """
        Get an anchor position.

        Returns:
            (x, y, z), or None if the index is invalid or never configured
        """
        if not self.is_valid_index(index):
            return None
        return self._positions.get(int(index))

    get_anchor_position = get_position

    def is_configured(self, index: int) -> bool:
        """True if the anchor slot holds a position."""
        return self.get_position(index) is not None

    def configured_indices(self) -> List[int]:
        """Sorted indices of configured anchors."""
        return sorted(self._positions)

    def load_default_layout(self):
        """Populate the factory four-anchor layout."""
        for index, position in DEFAULT_ANCHOR_LAYOUT.items():
            self.set_position(index, position)
        logger.info(f"Loaded default anchor layout ({len(DEFAULT_ANCHOR_LAYOUT)} anchors)")

    def as_dict(self) -> Dict[int, Position3D]:
        """Copy of all configured positions."""
        return dict(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, index) -> bool:
        return self.is_configured(index)


def create_default_registry(max_anchors: int = DEFAULT_MAX_ANCHORS) -> AnchorRegistry:
    """
    Create a registry with the factory anchor layout loaded.

    Args:
        max_anchors: Registry capacity (must hold the default layout)

    Returns:
        AnchorRegistry with anchors 0-3 configured
    """
    if max_anchors < len(DEFAULT_ANCHOR_LAYOUT):
        raise ValueError(
            f"max_anchors={max_anchors} cannot hold the "
            f"{len(DEFAULT_ANCHOR_LAYOUT)}-anchor default layout"
        )

    registry = AnchorRegistry(max_anchors)
    registry.load_default_layout()
    return registry
