"""Contains the class that sets up and drives the WFC engine."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import random
from typing import TYPE_CHECKING

import numpy as np

from pixel_wfc.enums import WFCStepOutcome
from pixel_wfc.exceptions import WFCError
from pixel_wfc.logging_config import get_logger
from pixel_wfc.model.generation_settings import GenerationSettings
from pixel_wfc.model.pattern_data import PatternData
from pixel_wfc.model.wfc import WFC

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from pixel_wfc.model.wfc import WFCStepResult

logger = get_logger(__name__)


class WFCManager:
    """Manages setup and execution of a WFC generation run.

    The manager builds the pattern library from a sample image and the WFC engine from the generation settings, and
    drives the engine either one step at a time ('step()') or until the output grid is finished ('generate()'). It
    keeps track of the output pattern grid and the progress of the run, so that a renderer only needs to consume the
    step results.

    The output grid size is taken from the settings at setup time. Changing the settings afterwards only affects the
    next call of 'setup()'.

    Attributes:
        settings: The settings of the generation run.
    """

    settings: GenerationSettings

    # Source of randomness handed to the engine (None to seed a fresh one from the settings at every setup).
    _random_source: random.Random | None

    # The pattern library derived from the current sample (None before setup).
    _pattern_data: PatternData | None
    # The WFC engine collapsing the output grid (None before setup).
    _wfc: WFC | None

    # The output grid of pattern indices (-1 for uncollapsed cells).
    _pattern_grid: NDArray[np.int_]
    # Count of cells that have been successfully collapsed so far.
    _collapsed_cells: int
    # The outcome of the most recent step (None if no step was made since setup/reset).
    _last_outcome: WFCStepOutcome | None

    def __init__(self, settings: GenerationSettings | None = None, random_source: random.Random | None = None) -> None:
        """Initializes the WFC manager.

        Args:
            settings: The settings of the generation run. Default settings are used if None.
            random_source: Source of randomness for the engine. If None, a 'random.Random' seeded with the random
                seed of the settings is created at every setup.
        """
        self.settings = settings if settings is not None else GenerationSettings()
        self._random_source = random_source
        self._pattern_data = None
        self._wfc = None
        self._pattern_grid = np.full((0, 0), -1, dtype=np.int_)
        self._collapsed_cells = 0
        self._last_outcome = None

    @property
    def pattern_data(self) -> PatternData | None:
        """The pattern library derived from the current sample (None before setup)."""
        return self._pattern_data

    @property
    def wfc(self) -> WFC | None:
        """The WFC engine of the current run (None before setup)."""
        return self._wfc

    @property
    def total_cells(self) -> int:
        """The total number of cells of the output grid (0 before setup)."""
        return self._pattern_grid.size

    @property
    def collapsed_cells(self) -> int:
        """The number of cells that have been collapsed so far."""
        return self._collapsed_cells

    @property
    def progress(self) -> float:
        """The fraction of collapsed cells, between 0.0 and 1.0."""
        if self.total_cells == 0:
            return 0.0
        return self._collapsed_cells / self.total_cells

    @property
    def contradiction_found(self) -> bool:
        """True if the current run has failed because of a contradiction."""
        return self._last_outcome == WFCStepOutcome.CONTRADICTION

    @property
    def is_finished(self) -> bool:
        """True if the current run has either completed or failed."""
        return self._last_outcome in (WFCStepOutcome.DONE, WFCStepOutcome.CONTRADICTION)

    def setup(
        self,
        sample_pixels: bytes | bytearray | Sequence[int] | NDArray[np.integer],
        sample_width: int,
        sample_height: int,
    ) -> None:
        """Builds the pattern library from the sample and initializes a fresh WFC engine.

        Any state of a previous run is discarded.

        Args:
            sample_pixels: The raw sample pixels, row-major with 4 channels (RGBA, 0-255) per pixel.
            sample_width: The width of the sample image (in pixels).
            sample_height: The height of the sample image (in pixels).

        Raises:
            WFCConfigurationError: If the settings or the sample are invalid.
        """
        self.settings.validate()

        self._pattern_data = PatternData(sample_pixels, sample_width, sample_height, self.settings.pattern_size)
        self._wfc = WFC(
            self._pattern_data,
            self.settings.output_width,
            self.settings.output_height,
            cell_pixel_size=self.settings.cell_pixel_size,
            random_source=(
                self._random_source if self._random_source is not None else random.Random(self.settings.random_seed)
            ),
            rollback_on_contradiction=self.settings.rollback_on_contradiction,
        )
        self._reset_progress()

        logger.info(
            "Set up %dx%d output grid with %d patterns (seed %d)",
            self.settings.output_width,
            self.settings.output_height,
            self._pattern_data.pattern_count,
            self.settings.random_seed,
        )

    def reset(self) -> None:
        """Resets the engine to the uncollapsed state, keeping the pattern library of the current sample."""
        self._get_wfc().reset()
        self._reset_progress()

    def step(self) -> WFCStepResult:
        """Performs a single collapse step and records its result.

        Raises:
            WFCError: If 'setup()' has not been called yet.
        """
        result = self._get_wfc().collapse_step()
        self._last_outcome = result.outcome

        if result.outcome == WFCStepOutcome.COLLAPSED:
            assert result.collapsed_cell_coords is not None
            x, y = result.collapsed_cell_coords
            self._pattern_grid[y, x] = result.pattern_index
            self._collapsed_cells += 1
        elif result.outcome == WFCStepOutcome.DONE:
            logger.info("Generation complete, %d cells collapsed", self._collapsed_cells)
        else:
            # Without rollback, the cell collapsed in the failed step stays collapsed in the engine.
            self._sync_with_wfc()
            logger.warning(
                "Generation failed because of a contradiction after %d of %d cells",
                self._collapsed_cells,
                self.total_cells,
            )

        return result

    def generate(
        self,
        on_cell_collapsed: Callable[[WFCStepResult], None] | None = None,
        max_steps: int | None = None,
    ) -> WFCStepOutcome:
        """Repeatedly performs collapse steps until the output grid is finished.

        Args:
            on_cell_collapsed: Called with the step result after every collapsed cell (e.g. to paint it).
            max_steps: The maximum number of steps to perform. Unlimited if None.

        Returns:
            DONE if every cell was collapsed, CONTRADICTION if the run failed, and COLLAPSED if the step limit was
                reached before the run was finished.

        Raises:
            WFCError: If 'setup()' has not been called yet.
        """
        steps = 0
        outcome = WFCStepOutcome.COLLAPSED
        while max_steps is None or steps < max_steps:
            result = self.step()
            outcome = result.outcome
            steps += 1
            if outcome != WFCStepOutcome.COLLAPSED:
                break
            if on_cell_collapsed is not None:
                on_cell_collapsed(result)
        return outcome

    def get_pattern_grid(self) -> NDArray[np.int_]:
        """Returns a copy of the (height, width) output grid of pattern indices (-1 for uncollapsed cells)."""
        return self._pattern_grid.copy()

    def get_color_grid(self) -> NDArray[np.uint8]:
        """Returns the (height, width, 4) output grid of colors (top-left pixel of each chosen pattern).

        Raises:
            WFCError: If 'setup()' has not been called yet.
        """
        if self._pattern_data is None:
            raise WFCError("The WFC manager has not been set up with a sample yet.")
        return self._pattern_data.get_color_grid_from_pattern_grid(self._pattern_grid)

    def _get_wfc(self) -> WFC:
        """Returns the engine of the current run or raises if there is none."""
        if self._wfc is None:
            raise WFCError("The WFC manager has not been set up with a sample yet.")
        return self._wfc

    def _reset_progress(self) -> None:
        """Clears the output pattern grid and the progress counters."""
        self._sync_with_wfc()
        self._last_outcome = None

    def _sync_with_wfc(self) -> None:
        """Copies the output pattern grid and the collapsed cell count from the engine."""
        wfc = self._get_wfc()
        self._pattern_grid = wfc.get_pattern_grid()
        self._collapsed_cells = wfc.collapsed_cell_count
