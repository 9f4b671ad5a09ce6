"""
Simulation Module: synthetic TDOA samples for demos and tests.
"""

from .synthetic import (
    SyntheticTdoaSource,
    true_range_difference,
    all_anchor_pairs,
    stationary_trajectory,
    circle_trajectory,
)

__all__ = [
    'SyntheticTdoaSource',
    'true_range_difference',
    'all_anchor_pairs',
    'stationary_trajectory',
    'circle_trajectory',
]
