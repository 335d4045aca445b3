"""Manages pixel pattern data for the WFC algorithm."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

import numpy as np

from pixel_wfc.constants import PIXEL_CHANNELS
from pixel_wfc.enums import Direction
from pixel_wfc.exceptions import WFCConfigurationError
from pixel_wfc.logging_config import get_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = get_logger(__name__)

# The color returned for cells that are not collapsed yet (fully transparent black).
UNCOLLAPSED_COLOR: tuple[int, int, int, int] = (0, 0, 0, 0)


class PatternData:
    """Extracts pixel patterns and adjacency rules from a sample image for the Overlapping WFC model.

    Patterns of size NxN are extracted by sliding a window over every pixel position of the sample image, wrapping
    around its borders in both axes. Every window is expanded into 12 symmetry variants (4 rotations, each together with
    its row reversal and its column reversal). Identical variants are merged into a single pattern whose frequency
    counts how often it was generated. Adjacency is determined by checking if the Nx(N-1) / (N-1)xN overlap regions of
    two patterns match exactly. The extracted patterns and adjacency rules are immutable after construction and serve
    as the source of this data for the WFC engine.

    Attributes:
        pattern_size: The width and height of the square patterns extracted (in pixels).
        pattern_count: The total number of unique patterns discovered.
        sample_size: (width, height) of the sample image (in pixels).
    """

    pattern_size: int
    pattern_count: int
    sample_size: tuple[int, int]

    # The (height, width, 4) RGBA sample image which is used for pattern extraction.
    _sample_array: NDArray[np.uint8]

    # An array storing the frequency count for each pattern (used as probability weights).
    _frequency_hints: NDArray[np.int_]

    # A list of unique pattern objects in the order they were first generated, where the index is the pattern ID.
    _patterns: list[_Pattern]

    # The 3D boolean array defining compatibility: [p1, p2, direction] is True exactly if pattern p2 can be placed next
    # to pattern p1 in the specified direction.
    _adjacency_rules: NDArray[np.bool_]

    def __init__(
        self,
        sample_pixels: bytes | bytearray | Sequence[int] | NDArray[np.integer],
        sample_width: int,
        sample_height: int,
        pattern_size: int,
    ) -> None:
        """Validates the sample, then extracts and counts the patterns and determines the adjacency rules.

        Args:
            sample_pixels: The raw sample pixels, row-major with 4 channels (RGBA, 0-255) per pixel. Either a flat
                buffer of width * height * 4 values or an array of shape (height, width, 4).
            sample_width: The width of the sample image (in pixels).
            sample_height: The height of the sample image (in pixels).
            pattern_size: The width and height of the square patterns to extract (in pixels).

        Raises:
            WFCConfigurationError: If the sample dimensions or the pattern size are invalid or the pixel buffer does
                not match the sample dimensions.
        """
        if sample_width < 1 or sample_height < 1:
            raise WFCConfigurationError(f"Sample dimensions must be positive, got {sample_width}x{sample_height}.")
        if pattern_size < 1:
            raise WFCConfigurationError(f"Pattern size must be at least 1, got {pattern_size}.")
        if pattern_size > min(sample_width, sample_height):
            raise WFCConfigurationError(
                f"Pattern size {pattern_size} exceeds the sample dimensions {sample_width}x{sample_height}."
            )

        self.pattern_size = pattern_size
        self.sample_size = (sample_width, sample_height)

        self._sample_array = _to_sample_array(sample_pixels, sample_width, sample_height)

        self._extract_and_count_patterns()
        self._frequency_hints = np.array([pattern._frequency for pattern in self._patterns], dtype=np.int_)
        self._frequency_hints.setflags(write=False)
        self._determine_adjacency_rules()

        logger.info(
            "Extracted %d unique %dx%d patterns from a %dx%d sample",
            self.pattern_count,
            self.pattern_size,
            self.pattern_size,
            sample_width,
            sample_height,
        )

    @property
    def frequencies(self) -> NDArray[np.int_]:
        """The (read-only) frequency of each pattern, indexed by pattern ID."""
        return self._frequency_hints

    @property
    def patterns(self) -> list[NDArray[np.uint8]]:
        """The (read-only) NxNx4 pixel arrays of all patterns, indexed by pattern ID."""
        return [pattern._pixels for pattern in self._patterns]

    def get_pattern(self, pattern_index: int) -> NDArray[np.uint8]:
        """Returns the (read-only) NxNx4 pixel array of the pattern with the given index."""
        return self._patterns[pattern_index]._pixels

    def get_compatible_patterns(self, pattern_index: int, direction: Direction) -> list[int]:
        """Returns all compatible pattern indices for a pattern and direction.

        Returns a list of all pattern indices that can legally be placed adjacent to the pattern with the specified
        index in the specified direction, based on the precalculated adjacency rules matrix.

        Args:
            pattern_index: The index of the pattern to check compatibility for.
            direction: The direction to check compatibility for.

        Returns:
            A list of all pattern indices that can legally be placed adjacent to the pattern with the specified index
                in the specified direction, in ascending order.
        """
        return np.flatnonzero(self._adjacency_rules[pattern_index, :, direction.value]).tolist()

    def get_compatibility_matrix(self, direction: Direction) -> NDArray[np.bool_]:
        """Returns the (read-only) PxP boolean matrix [p1, p2] of the adjacency rules for one direction."""
        matrix = np.ascontiguousarray(self._adjacency_rules[:, :, direction.value])
        matrix.setflags(write=False)
        return matrix

    def get_color_from_pattern_index(self, pattern_index: int) -> tuple[int, int, int, int]:
        """Returns the RGBA color at the pattern's top-left corner (0, 0).

        Args:
            pattern_index: The index of the pattern.

        Returns:
            The color at the top-left corner of the pattern specified by the given pattern index, or a fully
                transparent color if the pattern index is negative (uncollapsed cell).
        """
        if pattern_index >= 0:
            red, green, blue, alpha = self._patterns[pattern_index]._pixels[0, 0]
            return int(red), int(green), int(blue), int(alpha)
        else:
            return UNCOLLAPSED_COLOR

    def get_color_grid_from_pattern_grid(self, pattern_grid: NDArray[np.int_]) -> NDArray[np.uint8]:
        """Converts a grid of pattern indices into a grid of RGBA colors.

        Each element in the pattern index grid is mapped to the color located at the top-left corner (0, 0) of that
        pattern. Negative indices (uncollapsed cells) are mapped to a fully transparent color.

        Args:
            pattern_grid: A 2D array where each element is a pattern index.

        Returns:
            An array of shape (rows, cols, 4) holding the color of each cell.
        """
        top_left_colors = np.array([pattern._pixels[0, 0] for pattern in self._patterns], dtype=np.uint8)
        color_grid = np.empty((*pattern_grid.shape, PIXEL_CHANNELS), dtype=np.uint8)
        collapsed = pattern_grid >= 0
        color_grid[collapsed] = top_left_colors[pattern_grid[collapsed]]
        color_grid[~collapsed] = UNCOLLAPSED_COLOR
        return color_grid

    def _extract_and_count_patterns(self) -> None:
        """Extracts all unique NxN patterns (including symmetry variants) and counts their frequency."""
        self._patterns = []
        patterns_by_key: dict[bytes, _Pattern] = {}
        self.pattern_count = 0

        # Wrap the sample around its right and bottom borders so that every pixel position yields a full window.
        sample_array_padded = np.pad(
            self._sample_array, ((0, self.pattern_size - 1), (0, self.pattern_size - 1), (0, 0)), mode="wrap"
        )

        for row in range(self._sample_array.shape[0]):
            for col in range(self._sample_array.shape[1]):
                window = sample_array_padded[row : row + self.pattern_size, col : col + self.pattern_size]

                for variant in _symmetry_variants(window):
                    key = variant.tobytes()
                    if key not in patterns_by_key:
                        new_pattern = _Pattern(self.pattern_count, variant)
                        self._patterns.append(new_pattern)
                        self.pattern_count += 1
                        patterns_by_key[key] = new_pattern
                    else:
                        patterns_by_key[key]._frequency += 1

    def _determine_adjacency_rules(self) -> None:
        """Calculates compatibility by checking overlapping pattern regions."""
        self._adjacency_rules = np.full((self.pattern_count, self.pattern_count, len(Direction)), False, dtype=bool)

        all_pixels = np.stack([pattern._pixels for pattern in self._patterns])

        # adjacency_rules[p1, p2, direction] is True if and only if it is legal for p2 to be positioned one step to the
        # left of / to the right of / above / below p1 (according to the specified direction).
        for p1 in self._patterns:
            # p1 without its rightmost column must match p2 without its leftmost column for p2 to sit LEFT of p1.
            horizontal = (p1._pixels[:, :-1] == all_pixels[:, :, 1:]).all(axis=(1, 2, 3))
            self._adjacency_rules[p1._index, horizontal, Direction.LEFT.value] = True
            self._adjacency_rules[horizontal, p1._index, Direction.RIGHT.value] = True

            # p1 without its bottom row must match p2 without its top row for p2 to sit ABOVE p1.
            vertical = (p1._pixels[:-1, :] == all_pixels[:, 1:, :]).all(axis=(1, 2, 3))
            self._adjacency_rules[p1._index, vertical, Direction.UP.value] = True
            self._adjacency_rules[vertical, p1._index, Direction.DOWN.value] = True

        self._adjacency_rules.setflags(write=False)


class _Pattern:
    """Internal class to represent a single unique NxN pixel pattern."""

    # The unique integer ID for this pattern.
    _index: int
    # The NxNx4 (read-only) array of RGBA pixels that define the pattern.
    _pixels: NDArray[np.uint8]
    # The number of times this pattern was generated from the sample (symmetry variants included).
    _frequency: int

    def __init__(self, index: int, pixels: NDArray[np.uint8]) -> None:
        """Initializes a pattern object. Frequency starts at 1 upon creation."""
        self._index = index
        self._pixels = np.ascontiguousarray(pixels).copy()
        self._pixels.setflags(write=False)
        self._frequency = 1


def _symmetry_variants(window: NDArray[np.uint8]) -> Iterator[NDArray[np.uint8]]:
    """Yields the 12 symmetry variants of a window (duplicates included).

    For each of the 4 clockwise quarter turns (0, 90, 180, 270 degrees), the rotated window itself, its row reversal
    and its per-row column reversal are yielded, in this order.
    """
    variant = window
    for _ in range(4):
        yield variant
        yield variant[::-1, :]
        yield variant[:, ::-1]
        variant = np.rot90(variant, k=-1, axes=(0, 1))


def _to_sample_array(
    sample_pixels: bytes | bytearray | Sequence[int] | NDArray[np.integer], width: int, height: int
) -> NDArray[np.uint8]:
    """Converts a raw row-major RGBA pixel buffer into a (height, width, 4) uint8 array."""
    if isinstance(sample_pixels, (bytes, bytearray, memoryview)):
        flat_pixels = np.frombuffer(sample_pixels, dtype=np.uint8)
    else:
        raw_pixels = np.asarray(sample_pixels)
        if raw_pixels.size and not np.issubdtype(raw_pixels.dtype, np.integer):
            raise WFCConfigurationError(f"Sample pixel values must be integers, got dtype {raw_pixels.dtype}.")
        if raw_pixels.ndim == 3 and raw_pixels.shape != (height, width, PIXEL_CHANNELS):
            raise WFCConfigurationError(
                f"Sample pixel array has shape {raw_pixels.shape}, expected {(height, width, PIXEL_CHANNELS)}."
            )
        if raw_pixels.size and (raw_pixels.min() < 0 or raw_pixels.max() > 255):
            raise WFCConfigurationError("Sample pixel channel values must lie between 0 and 255.")
        flat_pixels = raw_pixels.astype(np.uint8).reshape(-1)

    expected_size = width * height * PIXEL_CHANNELS
    if flat_pixels.size != expected_size:
        raise WFCConfigurationError(
            f"Sample pixel buffer holds {flat_pixels.size} values, expected {expected_size} "
            f"({width}x{height} pixels with {PIXEL_CHANNELS} channels)."
        )

    return flat_pixels.reshape(height, width, PIXEL_CHANNELS).copy()
