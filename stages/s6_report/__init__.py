"""Stage 6: Report"""

from .emitter import ReportEmitter, render_bundle, render_report

__all__ = ["ReportEmitter", "render_bundle", "render_report"]
