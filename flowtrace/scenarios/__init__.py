"""End-to-end protocol comparison runs."""

from .comparison import FlowHarness, build_flow, run_comparison, run_flow

__all__ = ["FlowHarness", "build_flow", "run_comparison", "run_flow"]
