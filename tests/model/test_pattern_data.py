"""Tests for pixel_wfc.model.pattern_data module."""

import numpy as np
import pytest

from pixel_wfc.enums import Direction
from pixel_wfc.exceptions import WFCConfigurationError
from pixel_wfc.model.pattern_data import PatternData


def _pattern_keys(pattern_data):
    return {pattern.tobytes() for pattern in pattern_data.patterns}


class TestPatternExtraction:
    """Tests for pattern extraction, symmetry expansion and deduplication."""

    def test_uniform_sample_yields_single_pattern(self, uniform_sample):
        """Test a single-color sample yields one pattern counted 12 times per pixel."""
        pixels, width, height = uniform_sample
        pattern_data = PatternData(pixels, width, height, 1)

        assert pattern_data.pattern_count == 1
        assert pattern_data.frequencies.tolist() == [12 * width * height]

    def test_uniform_sample_with_larger_pattern(self, uniform_sample):
        """Test larger windows of a uniform sample still collapse to one pattern."""
        pixels, width, height = uniform_sample
        pattern_data = PatternData(pixels, width, height, 3)

        assert pattern_data.pattern_count == 1
        assert pattern_data.get_pattern(0).shape == (3, 3, 4)

    def test_two_color_sample(self, two_color_sample):
        """Test two distinct pixels yield two equally frequent patterns."""
        pixels, width, height = two_color_sample
        pattern_data = PatternData(pixels, width, height, 1)

        assert pattern_data.pattern_count == 2
        assert pattern_data.frequencies.tolist() == [12, 12]

    def test_frequencies_follow_occurrences(self, weighted_sample):
        """Test frequencies are proportional to how often a pixel occurs."""
        pixels, width, height = weighted_sample
        pattern_data = PatternData(pixels, width, height, 1)

        assert pattern_data.frequencies.tolist() == [36, 12]
        assert pattern_data.get_color_from_pattern_index(0) == (255, 0, 0, 255)
        assert pattern_data.get_color_from_pattern_index(1) == (0, 0, 255, 255)

    def test_stripes_patterns_in_first_seen_order(self, stripes_sample):
        """Test the stripes sample yields its four patterns in first-seen order."""
        pixels, width, height = stripes_sample
        pattern_data = PatternData(pixels, width, height, 2)

        black = pattern_data.get_pattern(0)[0, 0]
        white = pattern_data.get_pattern(0)[0, 1]
        assert pattern_data.pattern_count == 4
        assert np.array_equal(pattern_data.get_pattern(0), np.array([[black, white], [black, white]]))
        assert np.array_equal(pattern_data.get_pattern(1), np.array([[white, black], [white, black]]))
        assert np.array_equal(pattern_data.get_pattern(2), np.array([[black, black], [white, white]]))
        assert np.array_equal(pattern_data.get_pattern(3), np.array([[white, white], [black, black]]))
        assert pattern_data.frequencies.tolist() == [12, 12, 12, 12]

    def test_total_frequency_counts_all_variants(self, noisy_sample):
        """Test every sampled window contributes exactly 12 variants."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 2)

        assert int(pattern_data.frequencies.sum()) == 12 * width * height
        assert all(frequency >= 1 for frequency in pattern_data.frequencies)

    def test_patterns_are_unique(self, noisy_sample):
        """Test no two patterns share the same content."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 2)

        assert len(_pattern_keys(pattern_data)) == pattern_data.pattern_count

    def test_patterns_closed_under_symmetries(self, noisy_sample):
        """Test rotating or mirroring any pattern yields another pattern of the library."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 3)
        keys = _pattern_keys(pattern_data)

        for pattern in pattern_data.patterns:
            assert np.ascontiguousarray(np.rot90(pattern)).tobytes() in keys
            assert np.ascontiguousarray(pattern[::-1]).tobytes() in keys
            assert np.ascontiguousarray(pattern[:, ::-1]).tobytes() in keys

    def test_wrapped_windows_are_extracted(self, noisy_sample):
        """Test the window at the bottom-right corner wraps around both axes."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 2)
        sample = np.frombuffer(pixels, dtype=np.uint8).reshape(height, width, 4)

        corner_window = sample[np.ix_([3, 0], [3, 0])]
        assert np.ascontiguousarray(corner_window).tobytes() in _pattern_keys(pattern_data)

    def test_extraction_is_deterministic(self, noisy_sample):
        """Test building twice yields identical patterns and frequencies."""
        pixels, width, height = noisy_sample
        first = PatternData(pixels, width, height, 2)
        second = PatternData(pixels, width, height, 2)

        assert first.pattern_count == second.pattern_count
        assert first.frequencies.tolist() == second.frequencies.tolist()
        for first_pattern, second_pattern in zip(first.patterns, second.patterns):
            assert np.array_equal(first_pattern, second_pattern)

    def test_accepts_pixel_array(self, noisy_sample):
        """Test an (h, w, 4) array gives the same result as the flat buffer."""
        pixels, width, height = noisy_sample
        array = np.frombuffer(pixels, dtype=np.uint8).reshape(height, width, 4)

        from_buffer = PatternData(pixels, width, height, 2)
        from_array = PatternData(array, width, height, 2)

        assert from_buffer.frequencies.tolist() == from_array.frequencies.tolist()

    def test_accepts_int_list(self, two_color_sample):
        """Test a plain list of channel values is accepted."""
        pixels, width, height = two_color_sample
        pattern_data = PatternData(list(pixels), width, height, 1)

        assert pattern_data.pattern_count == 2

    def test_patterns_are_read_only(self, uniform_sample):
        """Test patterns cannot be modified after creation."""
        pixels, width, height = uniform_sample
        pattern_data = PatternData(pixels, width, height, 1)

        with pytest.raises(ValueError):
            pattern_data.get_pattern(0)[0, 0, 0] = 1


class TestAdjacencyRules:
    """Tests for adjacency rule derivation."""

    def test_single_pattern_compatible_with_itself(self, uniform_sample):
        """Test the only pattern of a uniform sample is its own neighbor everywhere."""
        pixels, width, height = uniform_sample
        pattern_data = PatternData(pixels, width, height, 2)

        for direction in Direction:
            assert pattern_data.get_compatible_patterns(0, direction) == [0]

    def test_single_pixel_patterns_all_compatible(self, two_color_sample):
        """Test 1x1 patterns have no overlap to check and are all compatible."""
        pixels, width, height = two_color_sample
        pattern_data = PatternData(pixels, width, height, 1)

        for pattern_index in range(pattern_data.pattern_count):
            for direction in Direction:
                assert pattern_data.get_compatible_patterns(pattern_index, direction) == [0, 1]

    def test_stripes_adjacency(self, stripes_sample):
        """Test the overlap rules for the stripes patterns."""
        pixels, width, height = stripes_sample
        pattern_data = PatternData(pixels, width, height, 2)

        assert pattern_data.get_compatible_patterns(0, Direction.LEFT) == [1]
        assert pattern_data.get_compatible_patterns(0, Direction.RIGHT) == [1]
        assert pattern_data.get_compatible_patterns(0, Direction.UP) == [0]
        assert pattern_data.get_compatible_patterns(0, Direction.DOWN) == [0]
        assert pattern_data.get_compatible_patterns(2, Direction.LEFT) == [2]
        assert pattern_data.get_compatible_patterns(2, Direction.RIGHT) == [2]
        assert pattern_data.get_compatible_patterns(2, Direction.UP) == [3]
        assert pattern_data.get_compatible_patterns(2, Direction.DOWN) == [3]

    def test_adjacency_symmetry(self, noisy_sample):
        """Test j is left of i exactly if i is right of j (same for up/down)."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 2)

        for direction in Direction:
            matrix = pattern_data.get_compatibility_matrix(direction)
            opposite = pattern_data.get_compatibility_matrix(direction.reverse())
            assert np.array_equal(matrix, opposite.T)

    def test_adjacency_matches_flattened_overlap(self, noisy_sample):
        """Test the rules against a direct comparison of the flattened overlap regions."""
        pixels, width, height = noisy_sample
        pattern_data = PatternData(pixels, width, height, 2)
        patterns = pattern_data.patterns

        for i, first in enumerate(patterns):
            for j, second in enumerate(patterns):
                horizontal = first[:, :-1].reshape(-1).tolist() == second[:, 1:].reshape(-1).tolist()
                vertical = first[:-1, :].reshape(-1).tolist() == second[1:, :].reshape(-1).tolist()
                assert (j in pattern_data.get_compatible_patterns(i, Direction.LEFT)) == horizontal
                assert (i in pattern_data.get_compatible_patterns(j, Direction.RIGHT)) == horizontal
                assert (j in pattern_data.get_compatible_patterns(i, Direction.UP)) == vertical
                assert (i in pattern_data.get_compatible_patterns(j, Direction.DOWN)) == vertical


class TestColorGrid:
    """Tests for converting pattern grids into color grids."""

    def test_uncollapsed_cells_are_transparent(self, weighted_sample):
        """Test -1 entries map to transparent and others to the top-left color."""
        pixels, width, height = weighted_sample
        pattern_data = PatternData(pixels, width, height, 1)

        color_grid = pattern_data.get_color_grid_from_pattern_grid(np.array([[0, -1], [1, 0]]))

        assert color_grid.shape == (2, 2, 4)
        assert tuple(color_grid[0, 0]) == (255, 0, 0, 255)
        assert tuple(color_grid[0, 1]) == (0, 0, 0, 0)
        assert tuple(color_grid[1, 0]) == (0, 0, 255, 255)
        assert pattern_data.get_color_from_pattern_index(-1) == (0, 0, 0, 0)


class TestInvalidConfiguration:
    """Tests for setup validation."""

    def test_pattern_larger_than_sample(self, two_color_sample):
        """Test a pattern size beyond the sample dimensions is rejected."""
        pixels, width, height = two_color_sample

        with pytest.raises(WFCConfigurationError):
            PatternData(pixels, width, height, 2)

    def test_zero_pattern_size(self, uniform_sample):
        """Test a pattern size of 0 is rejected."""
        pixels, width, height = uniform_sample

        with pytest.raises(WFCConfigurationError):
            PatternData(pixels, width, height, 0)

    def test_empty_sample(self):
        """Test zero sample dimensions are rejected."""
        with pytest.raises(WFCConfigurationError):
            PatternData(b"", 0, 0, 1)

    def test_buffer_size_mismatch(self, uniform_sample):
        """Test a pixel buffer that doesn't match the dimensions is rejected."""
        pixels, width, height = uniform_sample

        with pytest.raises(WFCConfigurationError):
            PatternData(pixels[:-4], width, height, 1)

    def test_channel_value_out_of_range(self):
        """Test channel values beyond 255 are rejected."""
        with pytest.raises(WFCConfigurationError):
            PatternData([0, 0, 0, 256], 1, 1, 1)

    def test_configuration_error_is_value_error(self, uniform_sample):
        """Test configuration errors can be caught as ValueError."""
        pixels, width, height = uniform_sample

        with pytest.raises(ValueError):
            PatternData(pixels, width, height, 9)

    def test_pixel_array_accepted(self):
        """Test a (height, width, 4) integer array is accepted as sample."""
        pixels = np.zeros((3, 2, 4), dtype=np.uint8)
        pixels[..., 3] = 255

        pattern_data = PatternData(pixels, 2, 3, 1)

        assert pattern_data.pattern_count == 1
        assert pattern_data.get_color_from_pattern_index(0) == (0, 0, 0, 255)

    def test_pixel_array_shape_mismatch(self):
        """Test a pixel array whose shape disagrees with the dimensions is rejected even with a matching size."""
        pixels = np.zeros((2, 3, 4), dtype=np.uint8)

        with pytest.raises(WFCConfigurationError):
            PatternData(pixels, 2, 3, 1)

    def test_float_pixels_rejected(self):
        """Test non-integer pixel values are rejected instead of being truncated."""
        pixels = np.full((1, 1, 4), 0.5)

        with pytest.raises(WFCConfigurationError):
            PatternData(pixels, 1, 1, 1)
