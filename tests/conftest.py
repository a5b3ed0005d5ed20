"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from amrgauges.amr.patch import GridPatch
from amrgauges.config import GaugesConfig


@pytest.fixture
def gauge_params():
    """Gauge at (5, 5) recording depth only over [0, 10]."""
    return {
        "gauge_id": 1,
        "x": 5.0,
        "y": 5.0,
        "t_start": 0.0,
        "t_end": 10.0,
        "min_time_increment": 0.0,
        "q_out_vars": [True, False, False],
        "aux_out_vars": [False],
    }


@pytest.fixture
def make_config(tmp_path, gauge_params):
    """Factory for GaugesConfig writing into tmp_path.

    Each positional dict overrides fields of ``gauge_params``.
    """

    def _make(*overrides, **output):
        gauges = [{**gauge_params, **o} for o in (overrides or ({},))]
        output.setdefault("output_dir", str(tmp_path))
        return GaugesConfig(gauges=gauges, output=output)

    return _make


@pytest.fixture
def uniform_patch():
    """Factory for constant-valued patches with 2 ghost cells."""

    def _make(
        patch_id=1,
        level=1,
        lower=(0.0, 0.0),
        upper=(10.0, 10.0),
        cells=(10, 10),
        q=(2.0, 0.0, 0.0),
        aux=(0.0,),
        time=0.0,
    ):
        return GridPatch.uniform(
            patch_id=patch_id,
            level=level,
            xlow=lower[0],
            ylow=lower[1],
            xhi=upper[0],
            yhi=upper[1],
            mx=cells[0],
            my=cells[1],
            q_values=list(q),
            aux_values=list(aux),
            time=time,
        )

    return _make
