"""Per-patch gauge sampling.

Called once per patch per time step, after ghost cells are filled, for the
gauges that the assignment index gives to that patch. The output vector of
a gauge is laid out as::

    [selected q vars][eta][selected aux vars]

where ``eta = depth + topography`` (q[0] + aux[0]).
"""

from __future__ import annotations

import logging

import numpy as np

from amrgauges.amr.patch import GridPatch
from amrgauges.constants import DRY_TOLERANCE_FACTOR, TINY_VALUE
from amrgauges.errors import ConsistencyError
from amrgauges.gauges.assignment import PatchAssignmentIndex
from amrgauges.gauges.flusher import BufferFlusher
from amrgauges.gauges.interpolation import Stencil, bilinear_select, locate, stencil_min, zero_tiny
from amrgauges.gauges.registry import Gauge, GaugeRegistry

logger = logging.getLogger(__name__)

_DEPTH = np.array([0], dtype=np.int64)


class SampleRecorder:
    """Samples gauges from patch data into their buffers.

    Args:
        registry: Gauges and their buffers.
        index: Current gauge ownership.
        flusher: Used when a gauge buffer fills up.
        interpolate: Bilinear interpolation; when False every sample uses
            the containing cell.
    """

    def __init__(
        self,
        registry: GaugeRegistry,
        index: PatchAssignmentIndex,
        flusher: BufferFlusher,
        interpolate: bool = True,
    ) -> None:
        self.registry = registry
        self.index = index
        self.flusher = flusher
        self.interpolate = interpolate

    def record(self, patch: GridPatch, dry_tolerance: float) -> int:
        """Record every gauge owned by ``patch`` at ``patch.time``.

        Args:
            patch: Patch with ghost cells filled.
            dry_tolerance: Depth below which a cell is considered dry.

        Returns:
            Number of samples recorded.

        Raises:
            ConsistencyError: If a gauge in this patch's range is owned by
                another patch, or the output vector has the wrong length.
        """
        owned = self.index.gauges_for(patch.patch_id)
        if owned.size == 0:
            return 0

        time = patch.time
        recorded = 0
        for ii in owned:
            if self.index.owner[ii] != patch.patch_id:
                raise ConsistencyError(
                    f"patch {patch.patch_id} asked to record gauge "
                    f"{self.registry[ii].gauge_id} owned by patch {self.index.owner[ii]}"
                )
            gauge = self.registry[ii]
            if not gauge.active_at(time):
                continue
            if time - gauge.last_time < gauge.min_time_increment:
                continue

            values = self.sample(gauge, patch, dry_tolerance)
            with gauge.lock:
                gauge.buffer.append(patch.level, time, values)
                if gauge.buffer.full:
                    self.flusher.flush(gauge)
                gauge.last_time = time
            recorded += 1

        return recorded

    def sample(self, gauge: Gauge, patch: GridPatch, dry_tolerance: float) -> np.ndarray:
        """Output vector of ``gauge`` from ``patch`` data.

        Raises:
            ConsistencyError: If the stencil lies outside the patch arrays
                or the vector length differs from ``gauge.num_out_vars``.
        """
        st = locate(gauge.x, gauge.y, patch.xlow_ghost, patch.ylow_ghost, patch.dx, patch.dy)
        self._check_indices(gauge, patch, st)

        q, aux = patch.q, patch.aux
        use_cell = not self.interpolate
        if not use_cell:
            dry_limit = DRY_TOLERANCE_FACTOR * dry_tolerance
            use_cell = stencil_min(q, 0, st.i, st.j) < dry_limit

        if use_cell:
            q_vals = q[gauge.q_indices, st.icell, st.jcell]
            aux_vals = aux[gauge.aux_indices, st.icell, st.jcell]
            depth = q[0, st.icell, st.jcell]
            topo = aux[0, st.icell, st.jcell]
        else:
            q_vals = bilinear_select(q, gauge.q_indices, st.i, st.j, st.xoff, st.yoff)
            aux_vals = bilinear_select(aux, gauge.aux_indices, st.i, st.j, st.xoff, st.yoff)
            topo = bilinear_select(aux, _DEPTH, st.i, st.j, st.xoff, st.yoff)[0]
            if gauge.q_out_vars[0]:
                depth = q_vals[0]
            else:
                depth = bilinear_select(q, _DEPTH, st.i, st.j, st.xoff, st.yoff)[0]

        values = np.concatenate((q_vals, [depth + topo], aux_vals)).astype(float)
        zero_tiny(values, TINY_VALUE)

        if values.shape[0] != gauge.num_out_vars:
            raise ConsistencyError(
                f"gauge {gauge.gauge_id}: produced {values.shape[0]} values, "
                f"expected num_out_vars={gauge.num_out_vars}"
            )
        return values

    def _check_indices(self, gauge: Gauge, patch: GridPatch, st: Stencil) -> None:
        mitot, mjtot = patch.shape
        ng = patch.num_ghost
        if self.interpolate:
            lo_i, lo_j = min(st.i, st.icell), min(st.j, st.jcell)
            hi_i, hi_j = max(st.i + 1, st.icell), max(st.j + 1, st.jcell)
        else:
            # Only the containing cell is read
            lo_i, hi_i = st.icell, st.icell
            lo_j, hi_j = st.jcell, st.jcell

        if lo_i < 0 or lo_j < 0 or hi_i >= mitot or hi_j >= mjtot:
            raise ConsistencyError(
                f"gauge {gauge.gauge_id} at ({gauge.x}, {gauge.y}): cells "
                f"({lo_i}..{hi_i}, {lo_j}..{hi_j}) outside patch {patch.patch_id} "
                f"arrays {patch.shape}"
            )
        if not self.interpolate:
            return
        if st.i < ng - 1 or st.i > mitot - ng - 1 or st.j < ng - 1 or st.j > mjtot - ng - 1:
            logger.warning(
                "Gauge %d stencil (%d, %d) lies in the ghost band of patch %d",
                gauge.gauge_id,
                st.i,
                st.j,
                patch.patch_id,
            )
