"""Best source patch for each gauge.

After every regrid each gauge is assigned to the finest active patch that
covers it. Patches are swept from the coarsest level to the finest and
every covering patch overwrites the previous owner; since patches at the
same level never overlap, the last writer is the unique finest one.

Gauges are then grouped by owner with a stable sort so that each patch can
iterate over exactly its own gauges:

    order[ranges[pid][0] : ranges[pid][1]]  ->  gauges owned by patch pid
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from amrgauges.amr.patch import GridPatch
from amrgauges.gauges.registry import GaugeRegistry

logger = logging.getLogger(__name__)

UNASSIGNED = 0


class PatchAssignmentIndex:
    """Gauge-to-patch ownership, rebuilt from scratch on every regrid.

    Args:
        registry: The gauges to assign.

    Attributes:
        owner: Owning patch id per gauge (0 = unassigned).
        order: Gauge indices stably sorted by owner.
        ranges: Half-open ``(start, stop)`` slice of ``order`` per patch id.
        levels: Refinement level of each patch that owns gauges.
    """

    def __init__(self, registry: GaugeRegistry) -> None:
        self.registry = registry
        n = len(registry)
        self.owner = np.zeros(n, dtype=np.int64)
        self.order = np.arange(n, dtype=np.int64)
        self.ranges: dict[int, tuple[int, int]] = {}
        self.levels: dict[int, int] = {}

    def update(self, patches: Iterable[GridPatch]) -> None:
        """Recompute ownership for the current set of active patches.

        Args:
            patches: All active patches, any order. Patches at the same
                level must not overlap.
        """
        x = self.registry.x
        y = self.registry.y
        owner = np.full(len(self.registry), UNASSIGNED, dtype=np.int64)
        levels: dict[int, int] = {}

        # sorted() is stable, so the traversal order within a level is kept
        for patch in sorted(patches, key=lambda p: p.level):
            inside = patch.contains(x, y)
            if np.any(inside):
                owner[inside] = patch.patch_id
                levels[patch.patch_id] = patch.level

        for i in np.flatnonzero(owner == UNASSIGNED):
            logger.warning(
                "No source patch found for gauge %d at (%g, %g)",
                self.registry[i].gauge_id,
                self.registry[i].x,
                self.registry[i].y,
            )

        order = np.argsort(owner, kind="stable")
        self.owner = owner
        self.order = order
        self.ranges = _group_ranges(owner[order])
        self.levels = {pid: lev for pid, lev in levels.items() if pid in self.ranges}

        logger.info(
            "Assigned %d / %d gauges to %d patches",
            int(np.count_nonzero(owner)),
            len(owner),
            len(self.ranges),
        )

    def owner_of(self, index: int) -> int:
        """Owning patch id of gauge ``index`` (0 if unassigned)."""
        return int(self.owner[index])

    def gauges_for(self, patch_id: int) -> np.ndarray:
        """Gauge indices owned by ``patch_id`` in assignment order."""
        span = self.ranges.get(patch_id)
        if span is None:
            return self.order[:0]
        return self.order[span[0] : span[1]]

    def unassigned(self) -> np.ndarray:
        """Indices of gauges without a source patch."""
        return np.flatnonzero(self.owner == UNASSIGNED)

    def patch_ids(self) -> list[int]:
        """Patch ids that own at least one gauge, ascending."""
        return sorted(self.ranges)


def _group_ranges(sorted_owner: np.ndarray) -> dict[int, tuple[int, int]]:
    """Contiguous ``(start, stop)`` of each nonzero owner in a sorted array."""
    if sorted_owner.size == 0:
        return {}
    ids, starts, counts = np.unique(sorted_owner, return_index=True, return_counts=True)
    return {
        int(pid): (int(start), int(start + count))
        for pid, start, count in zip(ids, starts, counts)
        if pid != UNASSIGNED
    }
