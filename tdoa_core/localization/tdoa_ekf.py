"""
TDOA Extended Kalman Filter.

Estimates the 3D position (and velocity) of a mobile agent from
range-difference measurements between pairs of fixed anchors.

State vector (6D):
    x = [X, Y, Z, VX, VY, VZ]^T

Measurement (scalar, one anchor pair at a time):
    z = ||p - p_An|| - ||p - p_Ar||

Steps:
- predict(): time update of the covariance, P <- A P A' (+ Q)
- update(Ar, An, z): scalar EKF update, applied sequentially so the gain is
  a scalar divide instead of a matrix inversion

All refused calls return a FilterStatus / UpdateResult and leave the state
and covariance untouched.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .anchor_registry import (
    AnchorRegistry,
    DEFAULT_MAX_ANCHORS,
    create_default_registry,
)
from .filter_state import (
    STATE_DIM,
    POSITION_SLICE,
    VELOCITY_SLICE,
    DEFAULT_DT,
    DEFAULT_INITIAL_STATE,
    DEFAULT_INITIAL_STD,
    default_covariance,
    default_transition_matrix,
    is_square_state_matrix,
    condition_covariance,
)
from .tdoa_model import predict_measurement
from tdoa_core.proto.filter_result import (
    FilterStatus,
    UpdateResult,
    create_rejected_update,
)
from tdoa_core.proto.position_estimate import PositionEstimate
from tdoa_core.proto.tdoa_sample import TdoaSample
from tdoa_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class TdoaEKFConfig:
    """
    Configuration for the TDOA filter.

    Attributes:
        dt: Predict period baked into the default transition matrix (s)
        measurement_std: Std dev of every range-difference measurement (m)
        max_anchors: Anchor registry capacity
        min_anchor_distance_m: Estimate-to-anchor distance at or below which
            an update is refused as degenerate geometry (m)
        min_variance: Floor for covariance diagonal entries (m^2, (m/s)^2)
        propagate_state: If True, predict() also advances the state mean
            through A (off by default: the mean moves only on updates)
        process_noise_std: Velocity process noise std; Q = diag(0,0,0,s^2,s^2,s^2) * dt
        initial_state: Initial [x, y, z, vx, vy, vz]
        initial_std: Initial per-component standard deviations
        load_default_anchors: Load the factory anchor layout at construction
    """

    dt: float = DEFAULT_DT
    measurement_std: float = 0.15
    max_anchors: int = DEFAULT_MAX_ANCHORS
    min_anchor_distance_m: float = 1e-6
    min_variance: float = 0.0
    propagate_state: bool = False
    process_noise_std: float = 0.0
    initial_state: Tuple[float, ...] = DEFAULT_INITIAL_STATE
    initial_std: Tuple[float, ...] = DEFAULT_INITIAL_STD
    load_default_anchors: bool = True

    def __post_init__(self):
        """Validate configuration."""
        assert self.dt > 0, "dt must be positive"
        assert self.measurement_std > 0, "measurement_std must be positive"
        assert self.max_anchors >= 1, "max_anchors must be at least 1"
        assert self.min_anchor_distance_m >= 0, "min_anchor_distance_m cannot be negative"
        assert self.min_variance >= 0, "min_variance cannot be negative"
        assert self.process_noise_std >= 0, "process_noise_std cannot be negative"
        assert len(self.initial_state) == STATE_DIM, f"initial_state needs {STATE_DIM} values"
        assert len(self.initial_std) == STATE_DIM, f"initial_std needs {STATE_DIM} values"


class TdoaEKF:
    """
    Extended Kalman filter for TDOA positioning.

    Usage:
        ekf = TdoaEKF()                      # default anchors loaded

        # fixed cadence
        ekf.predict()

        # whenever a range-difference sample arrives
        result = ekf.update(0, 1, -0.31)
        if not result.applied:
            print(f"Update refused: {result.status.name}")

        x, y, z = ekf.get_location()

    One lock serializes predict/update/setters: a half-applied covariance
    update is never observable.
    """

    def __init__(
        self,
        config: Optional[TdoaEKFConfig] = None,
        anchors: Optional[AnchorRegistry] = None,
    ):
        """
        Initialize the filter.

        Args:
            config: Filter configuration (uses defaults if None)
            anchors: Anchor registry to read from; if None, one is created
                (with the factory layout when config.load_default_anchors)
        """
        self.config = config or TdoaEKFConfig()
        self.metrics = get_metrics()

        if anchors is None:
            if self.config.load_default_anchors:
                anchors = create_default_registry(self.config.max_anchors)
            else:
                anchors = AnchorRegistry(self.config.max_anchors)
        self._anchors = anchors

        # State vector [X, Y, Z, VX, VY, VZ]
        self._x = np.array(self.config.initial_state, dtype=float)

        # State covariance (6x6)
        self._P = default_covariance(self.config.initial_std)

        # Transition matrix (identity + velocity coupling)
        self._A = default_transition_matrix(self.config.dt)

        self._std_dev = float(self.config.measurement_std)

        self._Q = None
        if self.config.process_noise_std > 0:
            self._Q = np.zeros((STATE_DIM, STATE_DIM))
            self._Q[VELOCITY_SLICE, VELOCITY_SLICE] = (
                np.eye(3) * self.config.process_noise_std ** 2 * self.config.dt
            )

        self._lock = threading.Lock()
        self._num_updates = 0
        self._num_predicts = 0
        self._num_rejected = 0

        logger.info(
            f"TdoaEKF initialized: {len(self._anchors)} anchors, "
            f"std_dev={self._std_dev:.3f}m, dt={self.config.dt:.3f}s"
        )

    # ------------------------------------------------------------------
    # Read access (copies only)
    # ------------------------------------------------------------------

    @property
    def anchors(self) -> AnchorRegistry:
        """Anchor registry used by this filter."""
        return self._anchors

    @property
    def state(self) -> np.ndarray:
        """Copy of the state vector."""
        with self._lock:
            return self._x.copy()

    @property
    def covariance(self) -> np.ndarray:
        """Copy of the covariance matrix."""
        with self._lock:
            return self._P.copy()

    @property
    def transition_matrix(self) -> np.ndarray:
        """Copy of the transition matrix A."""
        with self._lock:
            return self._A.copy()

    @property
    def measurement_std(self) -> float:
        """Measurement noise standard deviation (m)."""
        return self._std_dev

    def get_location(self) -> Tuple[float, float, float]:
        """
        Current position estimate.

        Returns:
            (x, y, z) in meters
        """
        with self._lock:
            pos = self._x[POSITION_SLICE].copy()
            logger.debug(f"State: {np.array2string(self._x, precision=4)}")
        return (float(pos[0]), float(pos[1]), float(pos[2]))

    get_position = get_location

    def get_velocity(self) -> Tuple[float, float, float]:
        """Current velocity estimate (vx, vy, vz) in m/s."""
        with self._lock:
            vel = self._x[VELOCITY_SLICE].copy()
        return (float(vel[0]), float(vel[1]), float(vel[2]))

    def snapshot(self) -> PositionEstimate:
        """
        Consistent copy of state and covariance.

        Returns:
            PositionEstimate with position, velocity and position std
        """
        with self._lock:
            x = self._x.copy()
            P = self._P.copy()
            counts = (self._num_updates, self._num_predicts, self._num_rejected)

        pos_std = np.sqrt(np.maximum(np.diagonal(P)[POSITION_SLICE], 0.0))

        return PositionEstimate(
            pos=tuple(float(v) for v in x[POSITION_SLICE]),
            vel=tuple(float(v) for v in x[VELOCITY_SLICE]),
            pos_std=tuple(float(v) for v in pos_std),
            num_updates=counts[0],
            num_predicts=counts[1],
            num_rejected=counts[2],
            state=x,
            covariance=P,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_transition_matrix(self, transition_matrix) -> FilterStatus:
        """
        Replace the transition matrix A.

        Args:
            transition_matrix: STATE_DIM x STATE_DIM array

        Returns:
            FilterStatus.OK, or DIMENSION_MISMATCH (prior A kept)
        """
        if not is_square_state_matrix(transition_matrix):
            return self._reject_config('transition matrix', transition_matrix)

        with self._lock:
            self._A = np.array(transition_matrix, dtype=float)
        self.metrics.increment('config_changes')
        return FilterStatus.OK

    def set_covariance_matrix(self, covariance_matrix) -> FilterStatus:
        """
        Replace the covariance P.

        Args:
            covariance_matrix: STATE_DIM x STATE_DIM array

        Returns:
            FilterStatus.OK, or DIMENSION_MISMATCH (prior P kept)
        """
        if not is_square_state_matrix(covariance_matrix):
            return self._reject_config('covariance matrix', covariance_matrix)

        with self._lock:
            self._P = np.array(covariance_matrix, dtype=float)
        self.metrics.increment('config_changes')
        return FilterStatus.OK

    def set_anchor_position(self, index: int, x: float, y: float, z: float) -> FilterStatus:
        """
        Set an anchor position.

        Returns:
            FilterStatus.OK, INVALID_ANCHOR_INDEX or NON_FINITE_INPUT
        """
        with self._lock:
            return self._anchors.set_anchor_position(index, x, y, z)

    def get_anchor_position(self, index: int) -> Optional[Tuple[float, float, float]]:
        """Anchor position, or None if not configured."""
        return self._anchors.get_anchor_position(index)

    def set_measurement_std(self, std_dev: float) -> FilterStatus:
        """
        Set the measurement noise standard deviation.

        Returns:
            FilterStatus.OK, or NON_FINITE_INPUT if std_dev is not finite and > 0
        """
        try:
            value = float(std_dev)
        except (TypeError, ValueError):
            value = float('nan')

        if not math.isfinite(value) or value <= 0:
            logger.warning(f"Refusing measurement std {std_dev!r}")
            self.metrics.record_status(FilterStatus.NON_FINITE_INPUT)
            return FilterStatus.NON_FINITE_INPUT

        with self._lock:
            self._std_dev = value
        self.metrics.increment('config_changes')
        return FilterStatus.OK

    def _reject_config(self, what: str, matrix) -> FilterStatus:
        try:
            shape = np.shape(matrix)
        except ValueError:
            shape = 'ragged'
        logger.warning(
            f"Refusing {what} of shape {shape}: expected ({STATE_DIM}, {STATE_DIM}) finite"
        )
        self.metrics.record_status(FilterStatus.DIMENSION_MISMATCH)
        return FilterStatus.DIMENSION_MISMATCH

    # ------------------------------------------------------------------
    # Time update
    # ------------------------------------------------------------------

    def predict(self):
        """
        Propagate the covariance one period forward: P <- A P A' (+ Q).

        The state mean is left in place unless config.propagate_state is
        set; without process noise the covariance trace cannot shrink.
        """
        with self._lock:
            P = self._A @ self._P @ self._A.T
            if self._Q is not None:
                P = P + self._Q

            if self.config.propagate_state:
                self._x = self._A @ self._x

            self._P = condition_covariance(P, self.config.min_variance)
            self._num_predicts += 1

        self.metrics.increment('tdoa_predicts')

    # ------------------------------------------------------------------
    # Measurement update
    # ------------------------------------------------------------------

    def update(
        self,
        reference_anchor: int,
        neighbor_anchor: int,
        distance_diff_m: float,
    ) -> UpdateResult:
        """
        Fuse one range-difference measurement.

        Args:
            reference_anchor: Index of Ar
            neighbor_anchor: Index of An
            distance_diff_m: Measured d(An) - d(Ar) in meters

        Returns:
            UpdateResult; on any non-OK status state and covariance are
            unchanged
        """
        self.metrics.increment('tdoa_update_attempts')

        with self._lock:
            result = self._scalar_tdoa_update(reference_anchor, neighbor_anchor, distance_diff_m)
            if result.applied:
                self._num_updates += 1
            else:
                self._num_rejected += 1

        self.metrics.record_status(result.status)
        if result.applied:
            self.metrics.increment('tdoa_updates')
            self.metrics.record_histogram('tdoa_innovation_m', result.innovation_m)
            self.metrics.record_histogram('tdoa_normalized_innovation', result.normalized_innovation)
            logger.debug(
                f"Update ({reference_anchor},{neighbor_anchor}): "
                f"measured={result.measured_m:.3f}m predicted={result.predicted_m:.3f}m "
                f"innovation={result.innovation_m:.3f}m"
            )
        else:
            logger.warning(
                f"Update ({reference_anchor},{neighbor_anchor}) refused: {result.status.name}"
            )

        return result

    def apply_sample(self, sample: TdoaSample) -> UpdateResult:
        """Fuse a transport-delivered sample."""
        return self.update(sample.reference_anchor, sample.neighbor_anchor, sample.distance_diff_m)

    def _scalar_tdoa_update(
        self,
        reference_anchor: int,
        neighbor_anchor: int,
        distance_diff_m: float,
    ) -> UpdateResult:
        """
        Measurement model, linearization and scalar update (lock held).

        Measurement equation:
            dR = d1 - d0
        """
        try:
            measurement = float(distance_diff_m)
        except (TypeError, ValueError):
            measurement = float('nan')

        def rejected(status: FilterStatus, predicted: Optional[float] = None) -> UpdateResult:
            return create_rejected_update(
                status, reference_anchor, neighbor_anchor, measurement, predicted
            )

        if not (self._anchors.is_valid_index(reference_anchor)
                and self._anchors.is_valid_index(neighbor_anchor)):
            return rejected(FilterStatus.INVALID_ANCHOR_INDEX)

        if reference_anchor == neighbor_anchor:
            return rejected(FilterStatus.INVALID_ANCHOR_PAIR)

        pos_ref = self._anchors.get_position(reference_anchor)
        pos_nbr = self._anchors.get_position(neighbor_anchor)
        if pos_ref is None or pos_nbr is None:
            return rejected(FilterStatus.UNCONFIGURED_ANCHOR)

        if not math.isfinite(measurement):
            return rejected(FilterStatus.NON_FINITE_INPUT)

        # Predict based on current state
        prediction = predict_measurement(
            self._x[POSITION_SLICE],
            pos_ref,
            pos_nbr,
            self.config.min_anchor_distance_m,
        )
        if prediction.is_degenerate(self.config.min_anchor_distance_m):
            return rejected(FilterStatus.DEGENERATE_GEOMETRY, prediction.predicted_m)

        error = measurement - prediction.predicted_m

        candidate = self._scalar_update(prediction.jacobian, error, self._std_dev)
        if candidate is None:
            return rejected(FilterStatus.NUMERICAL_FAILURE, prediction.predicted_m)

        x_new, P_new, innovation_var = candidate
        self._x = x_new
        self._P = P_new

        return UpdateResult(
            status=FilterStatus.OK,
            reference_anchor=reference_anchor,
            neighbor_anchor=neighbor_anchor,
            measured_m=measurement,
            predicted_m=prediction.predicted_m,
            innovation_m=error,
            innovation_var=innovation_var,
        )

    def _scalar_update(
        self,
        H: np.ndarray,
        error: float,
        std_meas_noise: float,
    ) -> Optional[Tuple[np.ndarray, np.ndarray, float]]:
        """
        Scalar Kalman update (pure: returns candidates, commits nothing).

        Args:
            H: 1 x STATE_DIM observation row
            error: Innovation (measured - predicted)
            std_meas_noise: Measurement noise std

        Returns:
            (x_new, P_new, innovation_variance), or None if any value is
            not finite
        """
        # Innovation covariance
        PHT = self._P @ H.T                  # P H'
        R = std_meas_noise ** 2
        HPHR = (H @ PHT).item() + R          # H P H' + R

        if not math.isfinite(HPHR) or HPHR <= 0:
            return None

        # Kalman gain as a column vector, state update
        K = PHT / HPHR
        x_new = self._x + K[:, 0] * error

        # Covariance update
        P_new = (np.eye(STATE_DIM) - K @ H) @ self._P
        P_new = condition_covariance(P_new, self.config.min_variance)

        if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(P_new))):
            return None

        return x_new, P_new, HPHR


def create_default_filter(
    measurement_std: float = 0.15,
    anchor_positions: Optional[Sequence[Tuple[float, float, float]]] = None,
) -> TdoaEKF:
    """
    Create a filter with default tuning.

    Args:
        measurement_std: Range-difference noise std (m)
        anchor_positions: Optional anchor list (index = position in list);
            factory layout is used when None

    Returns:
        Configured TdoaEKF
    """
    if anchor_positions is None:
        return TdoaEKF(TdoaEKFConfig(measurement_std=measurement_std))

    config = TdoaEKFConfig(
        measurement_std=measurement_std,
        max_anchors=max(DEFAULT_MAX_ANCHORS, len(anchor_positions)),
        load_default_anchors=False,
    )
    ekf = TdoaEKF(config)
    for index, position in enumerate(anchor_positions):
        ekf.anchors.set_position(index, position)
    return ekf
