"""Plots of recorded metric series."""

from .plot import METRIC_LABELS, plot_comparison, plot_metric, plot_run

__all__ = ["METRIC_LABELS", "plot_comparison", "plot_metric", "plot_run"]
