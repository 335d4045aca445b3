"""Contains the settings that configure a WFC generation run."""

from __future__ import annotations

from dataclasses import dataclass, field
import random

from pixel_wfc import constants
from pixel_wfc.exceptions import WFCConfigurationError


@dataclass
class GenerationSettings:
    """Groups the developer-facing settings of a generation run.

    The output grid is rendered onto a canvas of (output size * scale factor) pixels, so every output cell covers
    (canvas size // output size) pixels in each axis. All values are checked against the limits defined in
    'constants' by 'validate()'.

    Attributes:
        output_width: The width of the output grid (in cells).
        output_height: The height of the output grid (in cells).
        pattern_size: The width and height of the square patterns extracted from the sample (in pixels).
        scale_factor: The number of canvas pixels per output cell in each axis.
        random_seed: The seed for the random number generator of the WFC engine.
        rollback_on_contradiction: Whether a step that runs into a contradiction restores the pre-step state.
    """

    output_width: int = constants.OUTPUT_WIDTH_DEFAULT
    output_height: int = constants.OUTPUT_HEIGHT_DEFAULT
    pattern_size: int = constants.PATTERN_SIZE_DEFAULT
    scale_factor: int = constants.SCALE_FACTOR_DEFAULT
    random_seed: int = field(default_factory=lambda: random.randint(0, constants.RANDOM_SEED_MAX))
    rollback_on_contradiction: bool = constants.ROLLBACK_ON_CONTRADICTION

    @property
    def canvas_size(self) -> tuple[int, int]:
        """(width, height) of the render target (in pixels)."""
        return self.output_width * self.scale_factor, self.output_height * self.scale_factor

    @property
    def cell_pixel_size(self) -> tuple[int, int]:
        """(width, height) of a single output cell on the render target (in pixels)."""
        canvas_width, canvas_height = self.canvas_size
        return canvas_width // self.output_width, canvas_height // self.output_height

    def validate(self) -> None:
        """Checks every setting against its limits.

        The pattern size is only checked against its lower limit here, its upper limit depends on the sample and is
        checked by 'PatternData'.

        Raises:
            WFCConfigurationError: If a setting lies outside of its limits.
        """
        _check_limits("output_width", self.output_width, constants.OUTPUT_SIZE_MIN_LIMIT)
        _check_limits("output_height", self.output_height, constants.OUTPUT_SIZE_MIN_LIMIT)
        _check_limits("pattern_size", self.pattern_size, constants.PATTERN_SIZE_MIN_LIMIT)
        _check_limits(
            "scale_factor", self.scale_factor, constants.SCALE_FACTOR_MIN_LIMIT, constants.SCALE_FACTOR_MAX_LIMIT
        )
        _check_limits("random_seed", self.random_seed, 0, constants.RANDOM_SEED_MAX)


def _check_limits(name: str, value: int, min_value: int, max_value: int | None = None) -> None:
    if max_value is None:
        if value < min_value:
            raise WFCConfigurationError(f"{name} must be at least {min_value}, got {value}.")
    elif not min_value <= value <= max_value:
        raise WFCConfigurationError(f"{name} must lie between {min_value} and {max_value}, got {value}.")
