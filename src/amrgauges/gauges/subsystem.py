"""The gauge subsystem of one simulation run.

``GaugeSubsystem`` owns the registry, the assignment index, the recorder
and the flusher, and is passed explicitly to whatever drives the run.

Typical driver loop::

    gauges = GaugeSubsystem(config, num_eqn=3, num_aux=1)
    gauges.on_regrid(hierarchy.active_patches())
    for step in ...:
        gauges.record_patches(hierarchy.active_patches(), dry_tolerance)
        if regridded:
            gauges.on_regrid(hierarchy.active_patches())
    gauges.finalize()
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Iterable, Iterator

from amrgauges.amr.patch import GridPatch
from amrgauges.config import GaugesConfig
from amrgauges.core.bases import PatchDiagnosticsBase
from amrgauges.gauges.assignment import PatchAssignmentIndex
from amrgauges.gauges.flusher import BufferFlusher
from amrgauges.gauges.recorder import SampleRecorder
from amrgauges.gauges.registry import GaugeRegistry

logger = logging.getLogger(__name__)


class GaugeSubsystem(PatchDiagnosticsBase):
    """Gauge registry, ownership index, recorder and flusher for one run.

    Recording from several patches may run concurrently; regridding waits
    for in-flight recorders to finish and holds off new ones until the
    ownership index is rebuilt.

    Args:
        config: Gauge configuration.
        num_eqn: Number of state variables carried by the solver.
        num_aux: Number of auxiliary variables carried by the solver.
        create_files: Prepare the gauge output files immediately.
    """

    def __init__(
        self,
        config: GaugesConfig,
        num_eqn: int,
        num_aux: int,
        create_files: bool = True,
    ) -> None:
        self.config = config
        self.registry = GaugeRegistry(config, num_eqn, num_aux)
        self.index = PatchAssignmentIndex(self.registry)
        self.flusher = BufferFlusher(self.registry)
        self.recorder = SampleRecorder(
            self.registry,
            self.index,
            self.flusher,
            interpolate=config.output.interpolate,
        )

        self._cond = threading.Condition()
        self._active_recorders = 0
        self._regridding = False

        if create_files:
            self.registry.create_files()

    # ----------------------------------------------------------
    # Exclusion between regrid and recording
    # ----------------------------------------------------------

    @contextmanager
    def _recording(self) -> Iterator[None]:
        with self._cond:
            while self._regridding:
                self._cond.wait()
            self._active_recorders += 1
        try:
            yield
        finally:
            with self._cond:
                self._active_recorders -= 1
                self._cond.notify_all()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._cond:
            while self._regridding or self._active_recorders:
                self._cond.wait()
            self._regridding = True
        try:
            yield
        finally:
            with self._cond:
                self._regridding = False
                self._cond.notify_all()

    # ----------------------------------------------------------
    # Driver interface
    # ----------------------------------------------------------

    def on_regrid(self, patches: Iterable[GridPatch]) -> None:
        """Reassign every gauge to the finest patch covering it."""
        with self._exclusive():
            self.index.update(patches)

    def record_patch(self, patch: GridPatch, dry_tolerance: float) -> int:
        """Record the gauges owned by ``patch``."""
        with self._recording():
            return self.recorder.record(patch, dry_tolerance)

    def record_patches(
        self,
        patches: Iterable[GridPatch],
        dry_tolerance: float,
        max_workers: int | None = None,
    ) -> int:
        """Record all patches of one time step, one worker task per patch.

        Args:
            patches: Active patches with ghost cells filled.
            dry_tolerance: Depth below which a cell is considered dry.
            max_workers: Thread pool size (``None`` = executor default,
                ``1`` = record serially in the calling thread).

        Returns:
            Total number of samples recorded.
        """
        patches = list(patches)
        if max_workers == 1 or len(patches) <= 1:
            return sum(self.record_patch(p, dry_tolerance) for p in patches)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            counts = list(executor.map(lambda p: self.record_patch(p, dry_tolerance), patches))
        return sum(counts)

    def flush(self, gauge_id: int) -> int:
        """Flush a single gauge by id."""
        return self.flusher.flush(self.registry.by_id(gauge_id))

    def checkpoint(self) -> None:
        """Write every pending sample to disk."""
        self.flusher.flush_all()

    def finalize(self) -> None:
        """Flush all gauges at the end of the run."""
        self.flusher.flush_all()
        logger.info("Gauge output finalized for %d gauges", len(self.registry))

    # ----------------------------------------------------------
    # Restart support
    # ----------------------------------------------------------

    def last_times(self) -> dict[int, float]:
        """Last recorded time per gauge id."""
        return {g.gauge_id: g.last_time for g in self.registry}

    def restore(self, last_times: dict[int, float]) -> None:
        """Restore ``last_time`` of gauges present in ``last_times``.

        Gauges missing from the mapping keep their initial value; ids not
        in the registry are ignored with a warning.
        """
        for gauge_id, last_time in last_times.items():
            try:
                gauge = self.registry.by_id(int(gauge_id))
            except KeyError:
                logger.warning("Ignoring saved state for unknown gauge %d", gauge_id)
                continue
            gauge.last_time = float(last_time)
