"""
Synthetic TDOA sample generation.

Produces range-difference samples for a known agent trajectory against an
AnchorRegistry, with optional Gaussian noise. Used by the demo entry point
and by the tests.
"""

from typing import Callable, Iterator, List, Optional, Sequence, Tuple
import itertools
import numpy as np

from tdoa_core.localization.anchor_registry import AnchorRegistry
from tdoa_core.localization.tdoa_model import range_difference
from tdoa_core.proto.tdoa_sample import TdoaSample

Position3D = Tuple[float, float, float]
Trajectory = Callable[[float], Position3D]


def true_range_difference(
    position: Sequence[float],
    registry: AnchorRegistry,
    reference_anchor: int,
    neighbor_anchor: int,
) -> float:
    """
    Noise-free range difference d(An) - d(Ar) at position.

    Raises:
        KeyError: If either anchor is not configured
    """
    pos_ref = registry.get_position(reference_anchor)
    pos_nbr = registry.get_position(neighbor_anchor)
    if pos_ref is None or pos_nbr is None:
        raise KeyError(f"Anchor pair ({reference_anchor}, {neighbor_anchor}) not configured")
    return range_difference(position, pos_ref, pos_nbr)


def all_anchor_pairs(registry: AnchorRegistry) -> List[Tuple[int, int]]:
    """Every (reference, neighbor) pair with reference < neighbor."""
    return list(itertools.combinations(registry.configured_indices(), 2))


def stationary_trajectory(position: Position3D) -> Trajectory:
    """Trajectory that stays at one point."""
    fixed = tuple(float(c) for c in position)
    return lambda t: fixed


def circle_trajectory(
    center: Position3D,
    radius_m: float,
    period_s: float,
) -> Trajectory:
    """
    Horizontal circle at constant height.

    Args:
        center: Circle center (x, y, z)
        radius_m: Radius (m)
        period_s: Time for one lap (s)
    """
    cx, cy, cz = center
    omega = 2.0 * np.pi / period_s

    def position_at(t: float) -> Position3D:
        return (
            float(cx + radius_m * np.cos(omega * t)),
            float(cy + radius_m * np.sin(omega * t)),
            float(cz),
        )

    return position_at


class SyntheticTdoaSource:
    """
    Round-robin TDOA sample generator.

    Usage:
        source = SyntheticTdoaSource(registry, circle_trajectory((2, 2.5, 1.3), 1.0, 20.0),
                                     noise_std_m=0.05, seed=42)
        for sample in source.samples(duration_s=5.0, rate_hz=100.0):
            ekf.apply_sample(sample)
    """

    def __init__(
        self,
        registry: AnchorRegistry,
        trajectory: Trajectory,
        pairs: Optional[Sequence[Tuple[int, int]]] = None,
        noise_std_m: float = 0.0,
        seed: int = 42,
    ):
        """
        Initialize source.

        Args:
            registry: Anchors used to compute true range differences
            trajectory: Function t -> true (x, y, z)
            pairs: Anchor pairs to cycle through (default: all pairs)
            noise_std_m: Gaussian noise std added to each sample (m)
            seed: Random seed
        """
        self.registry = registry
        self.trajectory = trajectory
        self.pairs = list(pairs) if pairs is not None else all_anchor_pairs(registry)
        if not self.pairs:
            raise ValueError("SyntheticTdoaSource needs at least one anchor pair")
        self.noise_std_m = noise_std_m
        self._rng = np.random.default_rng(seed)
        self._pair_cycle = itertools.cycle(self.pairs)

    def sample_at(self, t: float) -> TdoaSample:
        """Next sample in the pair rotation at time t."""
        reference, neighbor = next(self._pair_cycle)
        diff = true_range_difference(self.trajectory(t), self.registry, reference, neighbor)
        if self.noise_std_m > 0:
            diff += float(self._rng.normal(0.0, self.noise_std_m))
        return TdoaSample(reference, neighbor, diff, t_measurement=t)

    def samples(self, duration_s: float, rate_hz: float, t0: float = 0.0) -> Iterator[TdoaSample]:
        """
        Samples at a fixed rate.

        Args:
            duration_s: Time span covered (s)
            rate_hz: Sample rate (Hz)
            t0: Start time (s)
        """
        num = int(round(duration_s * rate_hz))
        for k in range(num):
            yield self.sample_at(t0 + k / rate_hz)
