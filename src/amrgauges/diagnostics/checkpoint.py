"""Checkpoint/restart support for gauge state.

Gauge files already hold every flushed sample, so the only state that must
survive a restart is each gauge's last recorded time (which enforces the
minimum sampling interval). Saving a checkpoint flushes every gauge first.

Usage:
    # Save checkpoint
    save_gauge_state("gauges_chk.h5", gauges, time)

    # Load checkpoint
    data = load_gauge_state("gauges_chk.h5")
    gauges.restore(data["last_times"])
"""

from __future__ import annotations

import logging
from typing import Any

import h5py
import numpy as np

from amrgauges.gauges.subsystem import GaugeSubsystem

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = 1


def save_gauge_state(
    filename: str,
    subsystem: GaugeSubsystem,
    time: float,
) -> None:
    """Flush all gauges and save their state to an HDF5 file.

    Args:
        filename: Output HDF5 file path.
        subsystem: Gauge subsystem to checkpoint.
        time: Current simulation time.
    """
    subsystem.checkpoint()

    last_times = subsystem.last_times()
    ids = np.array(list(last_times.keys()), dtype=np.int64)
    times = np.array(list(last_times.values()), dtype=float)

    logger.info("Saving gauge checkpoint to %s at t=%.4e (%d gauges)", filename, time, ids.size)

    with h5py.File(filename, "w") as f:
        f.attrs["time"] = time
        f.attrs["checkpoint_version"] = CHECKPOINT_VERSION
        f.attrs["config_json"] = subsystem.config.model_dump_json()

        grp = f.create_group("gauges")
        grp.create_dataset("gauge_id", data=ids)
        grp.create_dataset("last_time", data=times)

    logger.info("Gauge checkpoint saved: %s", filename)


def load_gauge_state(filename: str) -> dict[str, Any]:
    """Load gauge state from an HDF5 checkpoint file.

    Args:
        filename: Input HDF5 file path.

    Returns:
        Dictionary with keys:
            - "time": float (simulation time at the checkpoint)
            - "last_times": dict of gauge id -> last recorded time
            - "config_json": str (gauge configuration at the checkpoint)
    """
    logger.info("Loading gauge checkpoint from %s", filename)

    with h5py.File(filename, "r") as f:
        time = float(f.attrs["time"])
        config_json = str(f.attrs["config_json"])
        ids = np.array(f["gauges"]["gauge_id"])
        times = np.array(f["gauges"]["last_time"])

    last_times = {int(i): float(t) for i, t in zip(ids, times)}

    logger.info("Gauge checkpoint loaded: t=%.4e, %d gauges", time, len(last_times))

    return {
        "time": time,
        "last_times": last_times,
        "config_json": config_json,
    }
