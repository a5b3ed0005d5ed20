"""Checkpoint/restart of gauge state."""

from amrgauges.diagnostics.checkpoint import load_gauge_state, save_gauge_state

__all__ = ["load_gauge_state", "save_gauge_state"]
