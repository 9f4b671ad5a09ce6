"""
Localization Module: TDOA extended Kalman filter.

Key classes:
- AnchorRegistry: Bounded table of fixed anchor positions
- TdoaEKF: 6D position/velocity EKF with scalar TDOA updates
- TdoaEKFConfig: Filter tuning

Measurement model helpers live in tdoa_model, state/covariance layout in
filter_state.
"""

from .filter_state import (
    StateIndex,
    STATE_DIM,
    default_state,
    default_covariance,
    default_transition_matrix,
    condition_covariance,
    is_symmetric,
    has_non_negative_diagonal,
)
from .anchor_registry import (
    AnchorRegistry,
    DEFAULT_ANCHOR_LAYOUT,
    DEFAULT_MAX_ANCHORS,
    create_default_registry,
)
from .tdoa_model import (
    TdoaPrediction,
    anchor_distance,
    range_difference,
    tdoa_jacobian,
    predict_measurement,
)
from .tdoa_ekf import (
    TdoaEKF,
    TdoaEKFConfig,
    create_default_filter,
)

__all__ = [
    # State layout
    'StateIndex',
    'STATE_DIM',
    'default_state',
    'default_covariance',
    'default_transition_matrix',
    'condition_covariance',
    'is_symmetric',
    'has_non_negative_diagonal',
    # Anchors
    'AnchorRegistry',
    'DEFAULT_ANCHOR_LAYOUT',
    'DEFAULT_MAX_ANCHORS',
    'create_default_registry',
    # Measurement model
    'TdoaPrediction',
    'anchor_distance',
    'range_difference',
    'tdoa_jacobian',
    'predict_measurement',
    # Filter
    'TdoaEKF',
    'TdoaEKFConfig',
    'create_default_filter',
]
