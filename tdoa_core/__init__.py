"""
TDOA Core Package.

3D position estimation of a mobile agent from TDOA range differences
against fixed anchors, using an extended Kalman filter.

Package structure:
- io: Bounded sample queue and single-threaded estimator loop
- proto: Sample schema, result types, position estimate
- localization: Anchor registry, measurement model, TdoaEKF
- sim: Synthetic sample generation
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.2.0"
__author__ = "TDOA Positioning Team"

from .localization import TdoaEKF, TdoaEKFConfig, AnchorRegistry
from .proto import FilterStatus, UpdateResult, TdoaSample, PositionEstimate

__all__ = [
    'TdoaEKF',
    'TdoaEKFConfig',
    'AnchorRegistry',
    'FilterStatus',
    'UpdateResult',
    'TdoaSample',
    'PositionEstimate',
]
