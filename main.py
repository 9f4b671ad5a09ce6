"""
TDOA positioning demo.

Runs a synthetic agent around a circle inside the anchor layout, feeds the
range-difference samples to the estimator worker and reports the position
error against ground truth.
"""

import sys
import time
import signal
import logging
import argparse
from typing import Optional, Tuple

import numpy as np

import config
from tdoa_core.localization import AnchorRegistry, TdoaEKF, TdoaEKFConfig, create_default_registry
from tdoa_core.io import EstimatorWorker, EstimatorWorkerConfig
from tdoa_core.proto import UpdateResult
from tdoa_core.sim import SyntheticTdoaSource, circle_trajectory
from tdoa_core.metrics import get_metrics

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


def build_registry() -> AnchorRegistry:
    """Anchor registry from ANCHOR_CONFIG (factory layout if empty)."""
    max_anchors = config.FILTER_CONFIG.get("max_anchors", 8)
    if not config.ANCHOR_CONFIG:
        return create_default_registry(max_anchors)

    registry = AnchorRegistry(max_anchors)
    for index, position in config.ANCHOR_CONFIG.items():
        status = registry.set_position(index, position)
        if not status.is_ok:
            logger.error(f"Anchor {index} rejected: {status.name}")
    return registry


class TdoaPositioningDemo:
    """Synthetic agent -> worker -> filter, with error reporting."""

    def __init__(self, noise_std_m: Optional[float] = None):
        """
        Initialize demo.

        Args:
            noise_std_m: Overrides SIMULATION_CONFIG noise if given
        """
        self.running = False
        self.sample_count = 0
        self.errors_m = []

        sim = config.SIMULATION_CONFIG
        self.registry = build_registry()
        self.ekf = TdoaEKF(TdoaEKFConfig(**config.FILTER_CONFIG), anchors=self.registry)
        self.trajectory = circle_trajectory(sim["center"], sim["radius_m"], sim["period_s"])
        self.source = SyntheticTdoaSource(
            self.registry,
            self.trajectory,
            noise_std_m=sim["noise_std_m"] if noise_std_m is None else noise_std_m,
            seed=sim["seed"],
        )
        self.worker = EstimatorWorker(
            self.ekf,
            EstimatorWorkerConfig(**config.WORKER_CONFIG),
            on_update=self._on_update,
        )
        self._truth: Tuple[float, float, float] = self.trajectory(0.0)

    def _on_update(self, result: UpdateResult, position: Tuple[float, float, float]):
        """Record error against ground truth after each sample."""
        self.sample_count += 1
        error = float(np.linalg.norm(np.subtract(position, self._truth)))
        self.errors_m.append(error)

        if self.sample_count % config.OUTPUT_CONFIG["print_interval"] == 0:
            print(f"[{self.sample_count:6d}] pos=({position[0]:.3f}, {position[1]:.3f}, "
                  f"{position[2]:.3f}) error={error:.3f}m status={result.status.name}")

    def run(self, duration_s: float, replay: bool = False):
        """
        Run the simulation.

        Args:
            duration_s: Simulated time (s)
            replay: If True, drive the worker synchronously as fast as possible
        """
        rate_hz = config.SIMULATION_CONFIG["sample_rate_hz"]
        period_s = config.WORKER_CONFIG["predict_period_s"]
        self.running = True

        if replay:
            next_predict = period_s
            for sample in self.source.samples(duration_s, rate_hz):
                if not self.running:
                    break
                while sample.t_measurement >= next_predict:
                    self.worker.tick()
                    next_predict += period_s
                self._truth = self.trajectory(sample.t_measurement)
                self.worker.process_sample(sample)
            return

        self.worker.start()
        t_start = time.monotonic()
        try:
            for sample in self.source.samples(duration_s, rate_hz):
                if not self.running:
                    break
                delay = sample.t_measurement - (time.monotonic() - t_start)
                if delay > 0:
                    time.sleep(delay)
                self._truth = self.trajectory(sample.t_measurement)
                self.worker.submit(sample)
        finally:
            self.worker.stop()

    def stop(self):
        """Stop the demo and print final statistics."""
        self.running = False

        print("\n" + "=" * 60)
        print("               TDOA demo finished")
        print("=" * 60)
        if self.errors_m:
            tail = np.array(self.errors_m[len(self.errors_m) // 2:])
            print(f"Samples processed: {self.sample_count}")
            print(f"Final error:       {self.errors_m[-1]:.3f} m")
            print(f"Mean error (2nd half): {tail.mean():.3f} m")
        snapshot = self.ekf.snapshot()
        print(f"Position std:      ({snapshot.pos_std[0]:.3f}, {snapshot.pos_std[1]:.3f}, "
              f"{snapshot.pos_std[2]:.3f}) m")
        print("=" * 60)

        get_metrics().print_summary()


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description='TDOA EKF positioning demo')
    parser.add_argument('--duration', '-t', type=float, default=10.0,
                        help='Simulated duration in seconds')
    parser.add_argument('--noise', '-n', type=float, default=None,
                        help='Range-difference noise std in meters')
    parser.add_argument('--replay', '-r', action='store_true',
                        help='Run synchronously instead of in real time')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    demo = TdoaPositioningDemo(noise_std_m=args.noise)

    def handle_sigint(signum, frame):
        logger.info("Interrupted, stopping...")
        demo.running = False

    signal.signal(signal.SIGINT, handle_sigint)

    demo.run(args.duration, replay=args.replay)
    demo.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
