"""Tests for PatchAssignmentIndex: finest covering patch and grouping."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from amrgauges.gauges.assignment import PatchAssignmentIndex
from amrgauges.gauges.registry import GaugeRegistry


@pytest.fixture
def nested_patches(uniform_patch):
    """Two level-1 patches side by side, refined around (5, 5) and (15, 5)."""
    return [
        uniform_patch(patch_id=1, level=1, lower=(0.0, 0.0), upper=(10.0, 10.0)),
        uniform_patch(patch_id=2, level=1, lower=(10.0, 0.0), upper=(20.0, 10.0)),
        uniform_patch(patch_id=3, level=2, lower=(4.0, 4.0), upper=(6.0, 6.0), cells=(4, 4)),
        uniform_patch(patch_id=4, level=2, lower=(14.0, 2.0), upper=(18.0, 8.0), cells=(8, 12)),
        uniform_patch(patch_id=5, level=3, lower=(4.5, 4.5), upper=(5.5, 5.5), cells=(4, 4)),
    ]


@pytest.fixture
def gauge_points():
    return [
        (5.0, 5.0),  # level 3
        (1.0, 1.0),  # level 1, patch 1
        (15.0, 5.0),  # level 2, patch 4
        (4.2, 5.8),  # level 2, patch 3
        (19.0, 9.0),  # level 1, patch 2
        (5.2, 4.9),  # level 3
        (30.0, 30.0),  # outside everything
    ]


def _registry(make_config, points):
    config = make_config(*({"gauge_id": n + 1, "x": x, "y": y} for n, (x, y) in enumerate(points)))
    return GaugeRegistry(config, num_eqn=3, num_aux=1)


class TestOwnership:
    """Tests for the coarse-to-fine sweep."""

    def test_single_patch(self, make_config, uniform_patch):
        registry = _registry(make_config, [(5.0, 5.0)])
        index = PatchAssignmentIndex(registry)
        index.update([uniform_patch(patch_id=9)])
        assert index.owner_of(0) == 9
        np.testing.assert_array_equal(index.gauges_for(9), [0])

    def test_expected_owners(self, make_config, nested_patches, gauge_points):
        registry = _registry(make_config, gauge_points)
        index = PatchAssignmentIndex(registry)
        index.update(nested_patches)
        np.testing.assert_array_equal(index.owner, [5, 1, 4, 3, 2, 5, 0])

    def test_finest_covering_patch(self, make_config, nested_patches, gauge_points):
        """The owner is at least as fine as every other covering patch."""
        registry = _registry(make_config, gauge_points)
        index = PatchAssignmentIndex(registry)
        index.update(nested_patches)
        by_id = {p.patch_id: p for p in nested_patches}

        for i, (x, y) in enumerate(gauge_points):
            owner = index.owner_of(i)
            covering = [p for p in nested_patches if p.contains(x, y)]
            if owner == 0:
                assert covering == []
                continue
            assert by_id[owner].contains(x, y)
            assert all(by_id[owner].level >= p.level for p in covering)

    def test_patch_order_does_not_matter(self, make_config, nested_patches, gauge_points):
        """Patches listed fine-to-coarse still yield the finest owner."""
        registry = _registry(make_config, gauge_points)
        forward = PatchAssignmentIndex(registry)
        forward.update(nested_patches)
        backward = PatchAssignmentIndex(registry)
        backward.update(list(reversed(nested_patches)))
        np.testing.assert_array_equal(forward.owner, backward.owner)

    def test_inclusive_bounds(self, make_config, uniform_patch):
        """Gauges on the patch boundary are covered."""
        registry = _registry(make_config, [(10.0, 10.0), (0.0, 3.0)])
        index = PatchAssignmentIndex(registry)
        index.update([uniform_patch(patch_id=1)])
        np.testing.assert_array_equal(index.owner, [1, 1])

    def test_unassigned_logged(self, make_config, nested_patches, gauge_points, caplog):
        """A gauge outside every patch is reported but not fatal."""
        registry = _registry(make_config, gauge_points)
        index = PatchAssignmentIndex(registry)
        with caplog.at_level(logging.WARNING, logger="amrgauges.gauges.assignment"):
            index.update(nested_patches)
        assert "gauge 7" in caplog.text
        np.testing.assert_array_equal(index.unassigned(), [6])
        assert 0 not in index.ranges

    def test_ownership_switch_after_regrid(self, make_config, uniform_patch):
        """A gauge moves from a removed level-1 patch to a new level-2 patch."""
        registry = _registry(make_config, [(5.0, 5.0)])
        index = PatchAssignmentIndex(registry)

        index.update([uniform_patch(patch_id=1, level=1)])
        assert index.owner_of(0) == 1

        index.update([uniform_patch(patch_id=7, level=2, lower=(4.0, 4.0), upper=(6.0, 6.0))])
        assert index.owner_of(0) == 7
        assert index.gauges_for(1).size == 0
        assert 1 not in index.ranges
        assert 1 not in index.levels
        assert index.levels == {7: 2}


class TestGrouping:
    """Tests for the stable grouping of gauges by owner."""

    def test_ranges_partition_assigned_gauges(self, make_config, nested_patches, gauge_points):
        """Every assigned gauge appears in exactly one range; no gaps or overlaps."""
        registry = _registry(make_config, gauge_points)
        index = PatchAssignmentIndex(registry)
        index.update(nested_patches)

        spans = sorted(index.ranges.values())
        assert spans[0][0] == len(index.unassigned())
        for (_, stop), (start, _) in zip(spans, spans[1:]):
            assert stop == start
        assert spans[-1][1] == len(gauge_points)

        grouped = np.concatenate([index.gauges_for(pid) for pid in index.patch_ids()])
        assert sorted(grouped.tolist()) == sorted(np.flatnonzero(index.owner).tolist())
        for pid in index.patch_ids():
            assert np.all(index.owner[index.gauges_for(pid)] == pid)

    def test_stable_order(self, make_config, nested_patches, gauge_points):
        """Gauges of one patch keep their configuration order."""
        registry = _registry(make_config, gauge_points)
        index = PatchAssignmentIndex(registry)
        index.update(nested_patches)
        np.testing.assert_array_equal(index.gauges_for(5), [0, 5])
        np.testing.assert_array_equal(index.order, [6, 1, 4, 3, 2, 0, 5])

    def test_no_gauges(self, make_config, uniform_patch):
        config = make_config()
        config.gauges.clear()
        index = PatchAssignmentIndex(GaugeRegistry(config, num_eqn=3, num_aux=1))
        index.update([uniform_patch()])
        assert index.ranges == {}
        assert index.gauges_for(1).size == 0

    def test_patch_without_gauges(self, make_config, nested_patches):
        registry = _registry(make_config, [(1.0, 1.0)])
        index = PatchAssignmentIndex(registry)
        index.update(nested_patches)
        assert index.patch_ids() == [1]
        assert index.gauges_for(5).size == 0
