"""
IO Module: bounded sample queue and the single-threaded estimator loop.
"""

from .estimator_worker import (
    EstimatorWorker,
    EstimatorWorkerConfig,
)

__all__ = [
    'EstimatorWorker',
    'EstimatorWorkerConfig',
]
