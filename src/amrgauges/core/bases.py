"""Abstract interface between an AMR driver and its per-patch diagnostics.

The driver calls, in order:
- ``on_regrid(patches)`` after every remesh, before the next step;
- ``record_patch(patch, ...)`` once per active patch per time step,
  possibly from several worker threads at once;
- ``checkpoint()`` at checkpoint times and ``finalize()`` at shutdown.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from amrgauges.amr.patch import GridPatch


class PatchDiagnosticsBase(ABC):
    """Abstract base for diagnostics sampled patch by patch."""

    @abstractmethod
    def on_regrid(self, patches: Iterable[GridPatch]) -> None:
        """Rebuild any patch-dependent state for the new hierarchy.

        Args:
            patches: All active patches after the remesh.
        """

    @abstractmethod
    def record_patch(self, patch: GridPatch, dry_tolerance: float) -> int:
        """Record diagnostic quantities from one patch.

        Args:
            patch: Patch with ghost cells filled.
            dry_tolerance: Depth below which a cell is considered dry.

        Returns:
            Number of samples recorded.
        """

    def checkpoint(self) -> None:
        """Make all recorded data durable."""

    def finalize(self) -> None:
        """Clean up resources (close files, flush buffers)."""
