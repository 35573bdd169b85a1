"""Stage 5: Metrics"""

from .aggregator import MetricsAggregator, compute_metrics

__all__ = ["MetricsAggregator", "compute_metrics"]
