"""End-to-end tests for GaugeSubsystem."""

from __future__ import annotations

import logging
import threading

import numpy as np
import pytest

from amrgauges.core.bases import PatchDiagnosticsBase
from amrgauges.gauges import GaugeSubsystem, read_gauge_file

DRY_TOLERANCE = 1e-3


@pytest.fixture
def two_gauges(make_config):
    """Gauge 1 at (5, 5) and gauge 2 at (15, 5), each recording depth and momentum."""
    return make_config(
        {"gauge_id": 1, "x": 5.0, "y": 5.0, "q_out_vars": [True, True, False]},
        {"gauge_id": 2, "x": 15.0, "y": 5.0, "q_out_vars": [True, True, False]},
    )


class TestSubsystem:
    """Driver-level behavior."""

    def test_is_patch_diagnostics(self, make_config):
        assert isinstance(GaugeSubsystem(make_config(), 3, 1), PatchDiagnosticsBase)

    def test_files_created(self, two_gauges, tmp_path):
        GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1)
        assert (tmp_path / "gauge00001.txt").exists()
        assert (tmp_path / "gauge00002.txt").exists()

    def test_deferred_file_creation(self, make_config, tmp_path):
        GaugeSubsystem(make_config(), num_eqn=3, num_aux=1, create_files=False)
        assert not (tmp_path / "gauge00001.txt").exists()

    def test_run_with_regrid(self, two_gauges, uniform_patch, tmp_path):
        """A refined patch takes over a gauge mid-run; levels follow the owner."""
        gauges = GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1)
        coarse = [
            uniform_patch(patch_id=1, lower=(0.0, 0.0), upper=(10.0, 10.0), q=(2.0, 0.5, 0.0)),
            uniform_patch(patch_id=2, lower=(10.0, 0.0), upper=(20.0, 10.0), q=(3.0, 0.1, 0.0)),
        ]
        fine = uniform_patch(
            patch_id=3, level=2, lower=(4.0, 4.0), upper=(6.0, 6.0), cells=(4, 4), q=(2.5, 0.4, 0.0)
        )

        gauges.on_regrid(coarse)
        for t in (0.1, 0.2):
            for p in coarse:
                p.time = t
            assert gauges.record_patches(coarse, DRY_TOLERANCE, max_workers=4) == 2

        hierarchy = coarse + [fine]
        gauges.on_regrid(hierarchy)
        for t in (0.3, 0.4):
            for p in hierarchy:
                p.time = t
            assert gauges.record_patches(hierarchy, DRY_TOLERANCE, max_workers=4) == 2
        gauges.finalize()

        g1 = read_gauge_file(tmp_path / "gauge00001.txt")
        np.testing.assert_array_equal(g1.levels, [1, 1, 2, 2])
        np.testing.assert_allclose(g1.times, [0.1, 0.2, 0.3, 0.4])
        np.testing.assert_allclose(g1.values[:, 0], [2.0, 2.0, 2.5, 2.5])
        np.testing.assert_allclose(g1.eta, [2.0, 2.0, 2.5, 2.5])
        assert g1.q_indices == [1, 2]

        g2 = read_gauge_file(tmp_path / "gauge00002.txt")
        np.testing.assert_array_equal(g2.levels, [1, 1, 1, 1])
        np.testing.assert_allclose(g2.values[:, 1], [0.1] * 4)

    def test_serial_and_threaded_agree(self, two_gauges, uniform_patch, tmp_path):
        patches = [
            uniform_patch(patch_id=1, lower=(0.0, 0.0), upper=(10.0, 10.0), time=1.0),
            uniform_patch(patch_id=2, lower=(10.0, 0.0), upper=(20.0, 10.0), time=1.0),
        ]
        serial = GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1, create_files=False)
        serial.on_regrid(patches)
        serial.record_patches(patches, DRY_TOLERANCE, max_workers=1)

        threaded = GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1, create_files=False)
        threaded.on_regrid(patches)
        threaded.record_patches(patches, DRY_TOLERANCE, max_workers=2)

        for a, b in zip(serial.registry, threaded.registry):
            np.testing.assert_array_equal(a.buffer.pending(), b.buffer.pending())

    def test_flush_by_id(self, two_gauges, uniform_patch, tmp_path):
        gauges = GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1)
        patch = uniform_patch(patch_id=1, upper=(20.0, 10.0), cells=(20, 10), time=1.0)
        gauges.on_regrid([patch])
        gauges.record_patch(patch, DRY_TOLERANCE)

        assert gauges.flush(2) == 1
        assert len(gauges.registry.by_id(1).buffer) == 1
        assert len(gauges.registry.by_id(2).buffer) == 0

    def test_regrid_waits_for_recorders(self, make_config, uniform_patch):
        """on_regrid blocks while a recording is in progress."""
        gauges = GaugeSubsystem(make_config(), num_eqn=3, num_aux=1, create_files=False)
        patch = uniform_patch(time=1.0)
        gauges.on_regrid([patch])

        finished = threading.Event()
        with gauges._recording():
            t = threading.Thread(target=lambda: (gauges.on_regrid([patch]), finished.set()))
            t.start()
            assert not finished.wait(timeout=0.2)
        t.join(timeout=5.0)
        assert finished.is_set()


class TestRestart:
    """last_time round trip through restore()."""

    def test_last_times(self, two_gauges, uniform_patch):
        gauges = GaugeSubsystem(two_gauges, num_eqn=3, num_aux=1, create_files=False)
        patch = uniform_patch(patch_id=1, time=2.0)
        gauges.on_regrid([patch])
        gauges.record_patch(patch, DRY_TOLERANCE)
        assert gauges.last_times() == {1: 2.0, 2: 0.0}

    def test_restore_enforces_increment(self, make_config, uniform_patch):
        """A restored last_time keeps the minimum increment across restarts."""
        config = make_config({"min_time_increment": 1.0})
        gauges = GaugeSubsystem(config, num_eqn=3, num_aux=1, create_files=False)
        gauges.restore({1: 5.0})
        patch = uniform_patch(time=5.5)
        gauges.on_regrid([patch])
        assert gauges.record_patch(patch, DRY_TOLERANCE) == 0
        patch.time = 6.0
        assert gauges.record_patch(patch, DRY_TOLERANCE) == 1

    def test_restore_unknown_gauge(self, make_config, caplog):
        gauges = GaugeSubsystem(make_config(), num_eqn=3, num_aux=1, create_files=False)
        with caplog.at_level(logging.WARNING, logger="amrgauges.gauges.subsystem"):
            gauges.restore({1: 3.0, 77: 1.0})
        assert gauges.last_times() == {1: 3.0}
        assert "unknown gauge 77" in caplog.text

    def test_restart_appends(self, make_config, uniform_patch, tmp_path):
        """A restarted run appends after the previous run's samples."""
        patch = uniform_patch(time=1.0)
        first = GaugeSubsystem(make_config(), num_eqn=3, num_aux=1)
        first.on_regrid([patch])
        first.record_patch(patch, DRY_TOLERANCE)
        first.finalize()

        second = GaugeSubsystem(make_config(restart=True), num_eqn=3, num_aux=1)
        second.restore(first.last_times())
        second.on_regrid([patch])
        patch.time = 2.0
        second.record_patch(patch, DRY_TOLERANCE)
        second.finalize()

        record = read_gauge_file(tmp_path / "gauge00001.txt")
        np.testing.assert_allclose(record.times, [1.0, 2.0])
