"""Pipeline stages"""

from .s0_reception import Receiver
from .s1_detection import HeaderDetector
from .s2_normalization import SheetNormalizer
from .s3_validation import EditSession
from .s4_persistence import ReportPersistence
from .s5_metrics import MetricsAggregator
from .s6_report import ReportEmitter

__all__ = [
    "Receiver",
    "HeaderDetector",
    "SheetNormalizer",
    "EditSession",
    "ReportPersistence",
    "MetricsAggregator",
    "ReportEmitter",
]
