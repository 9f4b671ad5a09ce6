"""
Unit tests for AnchorRegistry.

Tests cover:
- Factory layout loading
- Setting and reading anchor positions
- Out-of-range / malformed configuration refused without side effects
- Capacity is a construction-time parameter
"""

import math

import numpy as np
import pytest

from tdoa_core.localization import (
    AnchorRegistry,
    DEFAULT_ANCHOR_LAYOUT,
    DEFAULT_MAX_ANCHORS,
    create_default_registry,
)
from tdoa_core.proto import FilterStatus
from tdoa_core.metrics import get_metrics


class TestDefaultLayout:
    """Tests for the factory anchor layout."""

    def test_default_registry_has_four_anchors(self, default_registry):
        """Test default registry loads anchors 0-3."""
        assert len(default_registry) == 4
        assert default_registry.configured_indices() == [0, 1, 2, 3]

    def test_default_coordinates(self, default_registry, default_anchor_positions):
        """Test survey coordinates are stored literally."""
        for index, expected in default_anchor_positions.items():
            assert default_registry.get_anchor_position(index) == pytest.approx(expected)

    def test_default_capacity(self, default_registry):
        """Test default capacity."""
        assert default_registry.max_anchors == DEFAULT_MAX_ANCHORS

    def test_default_layout_needs_capacity(self):
        """Test a registry too small for the layout is a construction error."""
        with pytest.raises(ValueError):
            create_default_registry(max_anchors=3)

    def test_layout_constant_matches_registry(self, default_registry):
        """Test DEFAULT_ANCHOR_LAYOUT is what gets loaded."""
        assert default_registry.as_dict() == DEFAULT_ANCHOR_LAYOUT


class TestSetPosition:
    """Tests for configuring anchors."""

    def test_set_and_get(self, empty_registry):
        """Test storing an anchor at a valid index."""
        status = empty_registry.set_anchor_position(5, 1.0, 2.0, 3.0)

        assert status == FilterStatus.OK
        assert empty_registry.get_anchor_position(5) == (1.0, 2.0, 3.0)
        assert empty_registry.is_configured(5)
        assert 5 in empty_registry

    def test_set_from_tuple_and_array(self, empty_registry):
        """Test set_position accepts tuples and numpy arrays."""
        assert empty_registry.set_position(0, (1.0, 1.0, 1.0)) == FilterStatus.OK
        assert empty_registry.set_position(1, np.array([2.0, 2.0, 2.0])) == FilterStatus.OK
        assert empty_registry.get_position(1) == (2.0, 2.0, 2.0)

    def test_overwrite_existing(self, default_registry):
        """Test re-configuring an anchor replaces its position."""
        default_registry.set_anchor_position(0, 0.0, 0.0, 0.0)
        assert default_registry.get_anchor_position(0) == (0.0, 0.0, 0.0)

    def test_last_slot_is_valid(self, empty_registry):
        """Test index max_anchors - 1 is accepted."""
        last = empty_registry.max_anchors - 1
        assert empty_registry.set_anchor_position(last, 1.0, 1.0, 1.0) == FilterStatus.OK

    def test_numpy_integer_index(self, empty_registry):
        """Test numpy integer indices are accepted."""
        assert empty_registry.set_anchor_position(np.int64(2), 1.0, 1.0, 1.0) == FilterStatus.OK
        assert empty_registry.is_configured(2)

    def test_unset_anchor_reads_none(self, empty_registry):
        """Test never-configured slots read back as None."""
        assert empty_registry.get_anchor_position(3) is None
        assert not empty_registry.is_configured(3)


class TestRejection:
    """Tests that invalid configuration is refused as a no-op."""

    @pytest.mark.parametrize("index", [-1, 8, 9, 100])
    def test_out_of_range_index(self, default_registry, index):
        """Test out-of-range indices are refused and nothing changes."""
        before = default_registry.as_dict()

        status = default_registry.set_anchor_position(index, 9.0, 9.0, 9.0)

        assert status == FilterStatus.INVALID_ANCHOR_INDEX
        assert default_registry.as_dict() == before
        assert default_registry.get_anchor_position(index) is None

    @pytest.mark.parametrize("index", [1.0, "1", None, True])
    def test_non_integer_index(self, default_registry, index):
        """Test non-integer indices are refused."""
        before = default_registry.as_dict()

        assert default_registry.set_position(index, (9.0, 9.0, 9.0)) == FilterStatus.INVALID_ANCHOR_INDEX
        assert default_registry.as_dict() == before

    def test_max_anchors_boundary(self):
        """Test index == max_anchors is out of range."""
        registry = AnchorRegistry(max_anchors=4)
        assert registry.set_anchor_position(4, 0.0, 0.0, 0.0) == FilterStatus.INVALID_ANCHOR_INDEX
        assert registry.set_anchor_position(3, 0.0, 0.0, 0.0) == FilterStatus.OK

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_position(self, default_registry, bad):
        """Test non-finite coordinates are refused and prior value kept."""
        before = default_registry.get_anchor_position(1)

        status = default_registry.set_anchor_position(1, bad, 0.0, 0.0)

        assert status == FilterStatus.NON_FINITE_INPUT
        assert default_registry.get_anchor_position(1) == before

    def test_malformed_position(self, default_registry):
        """Test a position with the wrong number of coordinates is refused."""
        before = default_registry.as_dict()
        assert default_registry.set_position(0, (1.0, 2.0)) == FilterStatus.NON_FINITE_INPUT
        assert default_registry.as_dict() == before

    def test_rejection_records_reason(self, default_registry):
        """Test refused configuration is counted with a reason code."""
        default_registry.set_anchor_position(42, 0.0, 0.0, 0.0)
        default_registry.set_anchor_position(0, math.nan, 0.0, 0.0)

        metrics = get_metrics()
        assert metrics.get_drop_count('invalid_anchor_index') == 1
        assert metrics.get_drop_count('non_finite_input') == 1


class TestCapacity:
    """Tests for construction-time capacity."""

    def test_custom_capacity(self):
        """Test capacity is configurable."""
        registry = AnchorRegistry(max_anchors=16)
        assert registry.max_anchors == 16
        assert registry.set_anchor_position(15, 0.0, 0.0, 0.0) == FilterStatus.OK

    @pytest.mark.parametrize("capacity", [0, -3])
    def test_invalid_capacity_raises(self, capacity):
        """Test non-positive capacity is a construction error."""
        with pytest.raises(ValueError):
            AnchorRegistry(max_anchors=capacity)
