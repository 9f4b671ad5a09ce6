"""
Protocol Module: Message schemas and result types.

- TdoaSample: one range-difference observation for an anchor pair
- FilterStatus / UpdateResult: discriminated outcomes of filter calls
- PositionEstimate: published filter snapshot
"""

from .tdoa_sample import TdoaSample
from .filter_result import (
    FilterStatus,
    UpdateResult,
    create_rejected_update,
)
from .position_estimate import PositionEstimate

__all__ = [
    'TdoaSample',
    'FilterStatus',
    'UpdateResult',
    'create_rejected_update',
    'PositionEstimate',
]
