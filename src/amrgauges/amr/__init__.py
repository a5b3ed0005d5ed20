"""Read-only patch views handed to the gauge subsystem by the AMR engine."""

from amrgauges.amr.patch import GridPatch

__all__ = ["GridPatch"]
