"""
Estimator Worker.

Single serialization point for one TdoaEKF: samples from the transport are
pushed into a bounded queue and a single worker thread applies them, while
predict() runs at a fixed cadence on the same thread. Predict and update
therefore never overlap.
"""

import logging
import threading
import time
from dataclasses import dataclass
from queue import Queue, Empty, Full
from typing import Callable, List, Optional, Tuple

from tdoa_core.localization.tdoa_ekf import TdoaEKF
from tdoa_core.proto.filter_result import UpdateResult
from tdoa_core.proto.tdoa_sample import TdoaSample
from tdoa_core.metrics import get_metrics

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[UpdateResult, Tuple[float, float, float]], None]


@dataclass
class EstimatorWorkerConfig:
    """
    Configuration for the estimator worker.

    Attributes:
        predict_period_s: Time between predict() calls (s)
        max_queue_size: Bounded sample queue capacity
        stop_timeout_s: How long stop() waits for the thread to exit (s)
    """

    predict_period_s: float = 0.016
    max_queue_size: int = 256
    stop_timeout_s: float = 1.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.predict_period_s > 0, "predict_period_s must be positive"
        assert self.max_queue_size > 0, "max_queue_size must be positive"
        assert self.stop_timeout_s > 0, "stop_timeout_s must be positive"


class EstimatorWorker:
    """
    Owns the update loop of one filter.

    Usage:
        worker = EstimatorWorker(ekf, on_update=publish)
        worker.start()

        # transport thread(s)
        worker.submit(TdoaSample(0, 1, -0.31))

        worker.stop()

    tick() and process_sample() are what the loop calls; they can also be
    driven directly (without start()) for deterministic replay.
    """

    def __init__(
        self,
        ekf: TdoaEKF,
        config: Optional[EstimatorWorkerConfig] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        """
        Initialize worker.

        Args:
            ekf: Filter owned by this worker
            config: Worker configuration (uses defaults if None)
            on_update: Called after every processed sample with the result
                and the current position
        """
        self.ekf = ekf
        self.config = config or EstimatorWorkerConfig()
        self.on_update = on_update
        self.metrics = get_metrics()

        self._queue: Queue = Queue(maxsize=self.config.max_queue_size)
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        """True while the worker thread is active."""
        return self._running.is_set()

    @property
    def pending(self) -> int:
        """Approximate number of queued samples."""
        return self._queue.qsize()

    def submit(self, sample: TdoaSample) -> bool:
        """
        Queue a sample for the worker.

        Args:
            sample: Range-difference sample

        Returns:
            True if queued, False if the item is not a TdoaSample or the
            queue is full (item dropped)
        """
        self.metrics.increment('samples_in')
        if not isinstance(sample, TdoaSample):
            logger.warning(f"Refusing non-sample item of type {type(sample).__name__}")
            self.metrics.increment_drop('malformed_sample')
            return False

        try:
            self._queue.put_nowait(sample)
        except Full:
            logger.warning(f"Sample queue full ({self.config.max_queue_size}), dropping {sample.anchor_pair}")
            self.metrics.increment_drop('queue_full')
            return False
        return True

    def tick(self):
        """Run one predict step."""
        self.ekf.predict()

    def process_sample(self, sample: TdoaSample) -> UpdateResult:
        """
        Apply one sample to the filter and notify the callback.

        Returns:
            UpdateResult from the filter
        """
        result = self.ekf.apply_sample(sample)
        self.metrics.increment('samples_processed')

        if self.on_update is not None:
            try:
                self.on_update(result, self.ekf.get_location())
            except Exception as e:
                # A failing consumer must not stop the estimator
                logger.error(f"on_update callback failed: {e}")

        return result

    def drain(self) -> List[UpdateResult]:
        """
        Process every queued sample on the calling thread.

        Only call when the worker thread is not running.
        """
        results = []
        while True:
            try:
                sample = self._queue.get_nowait()
            except Empty:
                break
            results.append(self.process_sample(sample))
        return results

    def start(self) -> bool:
        """
        Start the worker thread.

        Returns:
            True if started, False if already running
        """
        if self.is_running:
            logger.warning("EstimatorWorker already running")
            return False

        self._running.set()
        self._thread = threading.Thread(target=self._run_loop, name="tdoa-estimator", daemon=True)
        self._thread.start()
        logger.info(f"EstimatorWorker started (predict every {self.config.predict_period_s * 1000:.1f}ms)")
        return True

    def stop(self):
        """Stop the worker thread and wait for it to exit."""
        if not self.is_running:
            return

        self._running.clear()
        if self._thread is not None:
            self._thread.join(timeout=self.config.stop_timeout_s)
            if self._thread.is_alive():
                logger.warning("EstimatorWorker thread did not exit in time")
            self._thread = None

        logger.info("EstimatorWorker stopped")

    def _run_loop(self):
        """Predict on schedule, update on sample arrival."""
        period = self.config.predict_period_s
        next_predict = time.monotonic() + period

        while self._running.is_set():
            timeout = next_predict - time.monotonic()
            if timeout > 0:
                try:
                    sample = self._queue.get(timeout=timeout)
                except Empty:
                    sample = None

                if sample is not None:
                    self._guarded_step(self.process_sample, sample)
                    continue

            self._guarded_step(self.tick)
            next_predict += period

            # Skip missed periods instead of bursting predicts
            now = time.monotonic()
            if next_predict < now:
                missed = int((now - next_predict) / period) + 1
                next_predict += missed * period
                self.metrics.increment('predict_overruns', missed)

    def _guarded_step(self, step, *args):
        """Run one loop step; an error is logged and counted, the loop goes on."""
        try:
            step(*args)
        except Exception as e:
            logger.error(f"Estimator {step.__name__} failed: {e}")
            self.metrics.increment('worker_errors')
