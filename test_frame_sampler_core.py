"""
Unit tests for frame_sampler_core.py - Functional Core

Tests grid partitioning and per-cell luminance with small synthetic frames.
All functions are pure, so tests are fast and deterministic.
"""

import math
import pytest
import numpy as np
from halftone_types import SourceFrame, InvalidFrameDimensions
from frame_sampler_core import (
    validate_frame_dimensions,
    count_cells,
    iterate_cell_origins,
    calculate_cell_luminance,
    sample
)


def make_frame(width, height, rgb=(255, 255, 255), alpha=255):
    """Uniform RGBA frame"""
    pixels = np.zeros((max(height, 0), max(width, 0), 4), dtype=np.uint8)
    pixels[:, :, :3] = rgb
    pixels[:, :, 3] = alpha
    return SourceFrame(width=width, height=height, pixels=pixels)


# ============================================================================
# Validation Tests
# ============================================================================

class TestValidation:
    """Tests for frame dimension checks"""

    def test_positive_dimensions_pass(self):
        validate_frame_dimensions(1, 1)
        validate_frame_dimensions(1920, 1080)

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (0, 0), (-5, 10), (10, -1)])
    def test_non_positive_dimensions_fail(self, width, height):
        with pytest.raises(InvalidFrameDimensions):
            validate_frame_dimensions(width, height)

    def test_zero_width_fails_before_iteration(self):
        """sample() raises on call, not on first next()"""
        frame = make_frame(0, 20)

        with pytest.raises(InvalidFrameDimensions):
            sample(frame, 10)

    def test_mismatched_buffer_rejected(self):
        """Pixel buffer must match declared dimensions"""
        frame = SourceFrame(width=20, height=20, pixels=np.zeros((10, 20, 4), dtype=np.uint8))

        with pytest.raises(ValueError):
            sample(frame, 10)

    @pytest.mark.parametrize("dtype", [np.float64, np.float32, np.uint16, np.int64])
    def test_non_byte_buffer_rejected(self, dtype):
        """A 0-1 float frame is not silently read as near-black bytes"""
        frame = SourceFrame(width=20, height=20, pixels=np.ones((20, 20, 4), dtype=dtype))

        with pytest.raises(ValueError):
            sample(frame, 10)

    def test_non_positive_grid_size_rejected(self):
        with pytest.raises(ValueError):
            sample(make_frame(10, 10), 0)


# ============================================================================
# Grid Geometry Tests
# ============================================================================

class TestGridGeometry:
    """Tests for cell counting and origins"""

    def test_exact_multiple(self):
        assert count_cells(20, 20, 10) == 4

    def test_partial_cells_counted(self):
        assert count_cells(15, 15, 10) == 4
        assert count_cells(21, 10, 10) == 3

    def test_origins_row_major(self):
        """Top-to-bottom, then left-to-right"""
        origins = list(iterate_cell_origins(20, 20, 10))

        assert origins == [(0, 0), (10, 0), (0, 10), (10, 10)]

    def test_origins_aligned_to_grid(self):
        for x, y in iterate_cell_origins(37, 23, 7):
            assert x % 7 == 0
            assert y % 7 == 0

    @pytest.mark.parametrize("grid_size", range(5, 21))
    def test_sample_count_matches_ceil_formula(self, grid_size):
        """Sampled cell count = ceil(w/g) * ceil(h/g) across the valid grid range"""
        frame = make_frame(37, 23, rgb=(10, 200, 90))

        cells = list(sample(frame, grid_size))

        assert len(cells) == math.ceil(37 / grid_size) * math.ceil(23 / grid_size)
        assert len(cells) == count_cells(37, 23, grid_size)


# ============================================================================
# Luminance Tests
# ============================================================================

class TestLuminance:
    """Tests for luma weighting and averaging"""

    def test_white_is_exactly_one(self):
        block = np.full((10, 10, 4), 255, dtype=np.uint8)

        assert calculate_cell_luminance(block) == 1.0

    def test_black_is_zero(self):
        block = np.zeros((10, 10, 4), dtype=np.uint8)
        block[:, :, 3] = 255

        assert calculate_cell_luminance(block) == 0.0

    def test_channel_weights(self):
        """Rec. 601 weights: 0.299 R, 0.587 G, 0.114 B"""
        for channel, weight in ((0, 0.299), (1, 0.587), (2, 0.114)):
            block = np.zeros((2, 2, 4), dtype=np.uint8)
            block[:, :, channel] = 255

            assert calculate_cell_luminance(block) == pytest.approx(weight)

    def test_mean_over_pixels(self):
        """Half white, half black averages to 0.5"""
        block = np.zeros((4, 4, 4), dtype=np.uint8)
        block[:, :2, :3] = 255

        assert calculate_cell_luminance(block) == pytest.approx(0.5)

    def test_alpha_ignored(self):
        """Fully transparent white still samples as white"""
        block = np.full((3, 3, 4), 255, dtype=np.uint8)
        block[:, :, 3] = 0

        assert calculate_cell_luminance(block) == 1.0

    def test_rgb_block_without_alpha(self):
        block = np.full((3, 3, 3), 255, dtype=np.uint8)

        assert calculate_cell_luminance(block) == 1.0


# ============================================================================
# Sampling Tests
# ============================================================================

class TestSample:
    """Tests for whole-frame sampling"""

    def test_uniform_white_frame(self):
        cells = list(sample(make_frame(30, 20), 10))

        assert len(cells) == 6
        assert all(lum == 1.0 for _, _, lum in cells)

    def test_uniform_black_frame(self):
        cells = list(sample(make_frame(30, 20, rgb=(0, 0, 0)), 10))

        assert all(lum == 0.0 for _, _, lum in cells)

    def test_yields_cell_origins(self):
        cells = list(sample(make_frame(20, 20), 10))

        assert [(x, y) for x, y, _ in cells] == [(0, 0), (10, 0), (0, 10), (10, 10)]

    def test_partial_cells_use_in_bounds_pixels_only(self):
        """15x15 with grid 10: right/bottom cells average only 5-pixel strips"""
        frame = make_frame(15, 15, rgb=(0, 0, 0))
        frame.pixels[:, 10:, :3] = 128  # Right strip gray
        frame.pixels[10:, :10, :3] = 255  # Bottom-left strip white

        cells = {(x, y): lum for x, y, lum in sample(frame, 10)}

        assert len(cells) == 4
        assert cells[(0, 0)] == 0.0
        assert cells[(10, 0)] == pytest.approx(128 / 255)
        assert cells[(0, 10)] == 1.0
        assert cells[(10, 10)] == pytest.approx(128 / 255)

    def test_per_cell_values_differ(self):
        """Each cell reflects its own region"""
        frame = make_frame(20, 10, rgb=(0, 0, 0))
        frame.pixels[:, 10:, :3] = 255

        cells = list(sample(frame, 10))

        assert cells[0][2] == 0.0
        assert cells[1][2] == 1.0

    def test_lazy_single_use_iterator(self):
        """Each call produces a fresh iterator; a consumed one stays empty"""
        frame = make_frame(20, 20)

        first = sample(frame, 10)
        assert len(list(first)) == 4
        assert list(first) == []

        assert len(list(sample(frame, 10))) == 4

    def test_deterministic(self):
        rng = np.random.default_rng(7)
        frame = SourceFrame(33, 17, rng.integers(0, 256, (17, 33, 4), dtype=np.uint8))

        assert list(sample(frame, 6)) == list(sample(frame, 6))
