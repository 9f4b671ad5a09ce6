"""
Metrics Module: counters, rejection reasons, innovation series.

Usage:
    from tdoa_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('tdoa_predicts')
    metrics.record_status(FilterStatus.DEGENERATE_GEOMETRY)
    metrics.record_histogram('tdoa_innovation_m', 0.02)
"""

from .counters import MetricsCollector, MetricsSnapshot, DROP_REASONS

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'MetricsSnapshot', 'DROP_REASONS', 'get_metrics', 'reset_metrics']
