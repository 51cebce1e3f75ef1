"""Centralized metrics module for Prometheus instrumentation.

Usage:
    from timeline_feedback.metrics.engine_metrics import reaction_toggles_total
"""

from timeline_feedback.metrics import engine_metrics

__all__ = ["engine_metrics"]
