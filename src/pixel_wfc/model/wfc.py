"""Implements the core WFC algorithm as a step-wise collapse engine."""

from __future__ import annotations

from dataclasses import dataclass
import heapq
import random
from typing import TYPE_CHECKING

import numpy as np

from pixel_wfc.constants import ENTROPY_NOISE_MAX, ROLLBACK_ON_CONTRADICTION
from pixel_wfc.enums import Direction, WFCStepOutcome
from pixel_wfc.exceptions import WFCConfigurationError, WFCInvariantError
from pixel_wfc.logging_config import get_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from pixel_wfc.model.pattern_data import PatternData

logger = get_logger(__name__)


@dataclass(frozen=True)
class WFCStepResult:
    """Result record of a single collapse step, sufficient for a renderer to paint the one resolved cell.

    Attributes:
        outcome: Whether a cell was collapsed, the grid was already done, or a contradiction occurred.
        cell_pixel_width: The width of a single output cell (in pixels) on the render target.
        cell_pixel_height: The height of a single output cell (in pixels) on the render target.
        collapsed_cell_index: The index of the collapsed cell (only for COLLAPSED outcomes).
        collapsed_cell_coords: The (x, y) coords of the collapsed cell (only for COLLAPSED outcomes).
        pattern_index: The index of the pattern chosen for the collapsed cell (only for COLLAPSED outcomes).
        pattern_pixels: The NxNx4 pixels of the chosen pattern (only for COLLAPSED outcomes).
    """

    outcome: WFCStepOutcome
    cell_pixel_width: int
    cell_pixel_height: int
    collapsed_cell_index: int | None = None
    collapsed_cell_coords: tuple[int, int] | None = None
    pattern_index: int | None = None
    pattern_pixels: NDArray[np.uint8] | None = None

    @property
    def outputs_complete(self) -> bool:
        """True if every cell of the output grid has been collapsed."""
        return self.outcome == WFCStepOutcome.DONE

    @property
    def contradiction(self) -> bool:
        """True if the generation attempt has failed because of a contradiction."""
        return self.outcome == WFCStepOutcome.CONTRADICTION


class WFC:
    """Step-wise engine that executes the WFC algorithm on an output grid.

    The engine owns the wave (for every cell, a boolean array containing True for each pattern that is still possible
    there) and the entropy index (the entropy of every uncollapsed cell, backed by a heap for efficient selection). Each
    call of 'collapse_step()' picks the uncollapsed cell with the lowest entropy, collapses it to a single pattern chosen
    randomly (weighed by pattern frequency) and propagates the consequences to the neighboring cells until either a
    fixed point or a contradiction is reached. The output grid wraps around horizontally but not vertically.

    When a contradiction is found, the generation attempt is over: all further calls report the contradiction again
    until 'reset()' is called. Unless disabled, the wave and entropy index are restored to their state before the failed
    step, so they stay consistent.

    The engine is not thread-safe: calls of 'collapse_step()' must be serialized.
    """

    # === CONSTRUCTOR PARAMETERS (initialized in __init__()) ===

    # Patterns, their frequencies and their adjacency rules, derived from the sample image. Shared, never modified.
    _pattern_data: PatternData
    # (width, height) of the output grid (in cells).
    _output_size: tuple[int, int]
    # (width, height) of a single output cell (in pixels) on the render target.
    _cell_pixel_size: tuple[int, int]
    # Source of randomness for the seeded cell, the pattern choice and the entropy noise.
    _random: random.Random
    # Whether the state is restored to the pre-step state when a step runs into a contradiction.
    _rollback_on_contradiction: bool
    # One PxP boolean matrix per direction: [p1, p2] is True if p2 may be placed next to p1 in that direction.
    _compatibility: list[NDArray[np.bool_]]

    # === RUNTIME STATE (initialized in reset()) ===

    # 2D boolean array [cell, pattern] which contains True for each pattern that is still possible in that cell.
    _wave: NDArray[np.bool_]
    # Maps each uncollapsed cell index to its entropy. A cell is collapsed exactly if it's missing here.
    _entropies: dict[int, float]
    # Heap of entropy/cell items for efficient cell selection. Items whose entropy is outdated are skipped lazily.
    _entropy_heap: list[_HeapItem]
    # Journal of the changes made during the current step (None if the step doesn't need to be undoable).
    _journal: list[_JournalEntry] | None
    # True once a step has run into a contradiction.
    _contradiction_found: bool

    def __init__(
        self,
        pattern_data: PatternData,
        output_width: int,
        output_height: int,
        cell_pixel_size: tuple[int, int] = (1, 1),
        random_source: random.Random | None = None,
        rollback_on_contradiction: bool = ROLLBACK_ON_CONTRADICTION,
    ) -> None:
        """Initializes the engine and its wave with every pattern possible in every cell.

        Args:
            pattern_data: Patterns, their frequencies and their adjacency rules, derived from the sample image.
            output_width: The width of the output grid (in cells).
            output_height: The height of the output grid (in cells).
            cell_pixel_size: (width, height) of a single output cell (in pixels), reported in every step result.
            random_source: Source of randomness. A fresh unseeded 'random.Random' is used if None.
            rollback_on_contradiction: Whether a step that runs into a contradiction restores the pre-step state.

        Raises:
            WFCConfigurationError: If the output grid or the cell pixel size is empty.
        """
        if output_width < 1 or output_height < 1:
            raise WFCConfigurationError(f"Output grid must not be empty, got {output_width}x{output_height}.")
        if cell_pixel_size[0] < 1 or cell_pixel_size[1] < 1:
            raise WFCConfigurationError(f"Cell pixel size must be positive, got {cell_pixel_size}.")

        self._pattern_data = pattern_data
        self._output_size = (output_width, output_height)
        self._cell_pixel_size = cell_pixel_size
        self._random = random_source if random_source is not None else random.Random()
        self._rollback_on_contradiction = rollback_on_contradiction
        self._compatibility = [pattern_data.get_compatibility_matrix(direction) for direction in Direction]

        self.reset()

    @property
    def pattern_data(self) -> PatternData:
        """The pattern library the engine collapses the output grid with."""
        return self._pattern_data

    @property
    def output_size(self) -> tuple[int, int]:
        """(width, height) of the output grid (in cells)."""
        return self._output_size

    @property
    def cell_pixel_size(self) -> tuple[int, int]:
        """(width, height) of a single output cell (in pixels)."""
        return self._cell_pixel_size

    @property
    def cell_count(self) -> int:
        """The total number of cells of the output grid."""
        return self._output_size[0] * self._output_size[1]

    @property
    def uncollapsed_cell_count(self) -> int:
        """The number of cells that are not collapsed yet."""
        return len(self._entropies)

    @property
    def collapsed_cell_count(self) -> int:
        """The number of cells that are collapsed already."""
        return self.cell_count - len(self._entropies)

    @property
    def contradiction_found(self) -> bool:
        """True if a step of the current generation attempt has run into a contradiction."""
        return self._contradiction_found

    def reset(self) -> None:
        """Resets the wave and the entropy index to their initial state.

        Every pattern becomes possible in every cell again and every cell gets the pattern count as entropy, except
        for one randomly chosen cell which gets a slightly lower entropy, so that it is collapsed first.
        """
        pattern_count = self._pattern_data.pattern_count
        cell_count = self.cell_count

        self._wave = np.full((cell_count, pattern_count), True, dtype=bool)

        self._entropies = {cell_index: float(pattern_count) for cell_index in range(cell_count)}
        self._entropies[self._random.randrange(cell_count)] = float(pattern_count - 1)

        self._entropy_heap = [_HeapItem(entropy, cell_index) for cell_index, entropy in self._entropies.items()]
        heapq.heapify(self._entropy_heap)

        self._journal = None
        self._contradiction_found = False

        logger.debug(
            "Reset %dx%d output grid with %d patterns", self._output_size[0], self._output_size[1], pattern_count
        )

    def collapse_step(self) -> WFCStepResult:
        """Collapses the uncollapsed cell with the lowest entropy and propagates the consequences.

        Returns:
            A DONE result if every cell is collapsed already, a CONTRADICTION result if propagation left a cell without
                any legal pattern (or an earlier step did), and a COLLAPSED result with the collapsed cell and its
                chosen pattern otherwise.
        """
        if self._contradiction_found:
            return self._make_result(WFCStepOutcome.CONTRADICTION)

        cell_index = self._choose_next_cell()
        if cell_index is None:
            return self._make_result(WFCStepOutcome.DONE)

        self._journal = [] if self._rollback_on_contradiction else None

        pattern_index = self._choose_pattern_index(cell_index)
        self._collapse_cell_at(cell_index, pattern_index)

        propagation_successful = self._propagate(cell_index)

        if not propagation_successful:
            self._contradiction_found = True
            if self._journal is not None:
                self._rollback()
            self._journal = None
            return self._make_result(WFCStepOutcome.CONTRADICTION)

        self._journal = None
        logger.debug("Collapsed cell %d to pattern %d", cell_index, pattern_index)
        return self._make_result(WFCStepOutcome.COLLAPSED, cell_index, pattern_index)

    def is_collapsed(self, cell_index: int) -> bool:
        """Returns True if the cell with the given index is collapsed."""
        return cell_index not in self._entropies

    def get_domain(self, cell_index: int) -> list[int]:
        """Returns the indices of all patterns still possible in the cell with the given index, in ascending order."""
        return np.flatnonzero(self._wave[cell_index]).tolist()

    def get_entropy(self, cell_index: int) -> float | None:
        """Returns the entropy of the cell with the given index, or None if the cell is collapsed."""
        return self._entropies.get(cell_index)

    def get_cell_coords(self, cell_index: int) -> tuple[int, int]:
        """Returns the (x, y) coords of the cell with the given index."""
        return cell_index % self._output_size[0], cell_index // self._output_size[0]

    def get_neighbor_index(self, cell_index: int, direction: Direction) -> int | None:
        """Returns the index of the neighboring cell in the given direction.

        The output grid wraps around horizontally, but not vertically.

        Returns:
            The index of the neighboring cell, or None if the cell lies on the top/bottom border and the direction
                points out of the grid.
        """
        width, height = self._output_size
        dx, dy = direction.to_vector()
        x = (cell_index % width + dx) % width
        y = cell_index // width + dy
        if y < 0 or y >= height:
            return None
        return x + y * width

    def get_pattern_grid(self) -> NDArray[np.int_]:
        """Returns a (height, width) array of the chosen pattern indices, -1 for uncollapsed cells."""
        collapsed = np.full(self.cell_count, True, dtype=bool)
        collapsed[list(self._entropies)] = False
        pattern_grid = np.where(collapsed, self._wave.argmax(axis=1), -1)
        return pattern_grid.reshape(self._output_size[1], self._output_size[0])

    def _choose_next_cell(self) -> int | None:
        """Returns the index of the uncollapsed cell with the lowest entropy (lowest index on ties) or None."""
        while self._entropy_heap:
            heap_item = self._entropy_heap[0]
            if self._entropies.get(heap_item._cell_index) == heap_item._priority:
                return heap_item._cell_index
            # Outdated item (cell collapsed or entropy changed since the item was pushed).
            heapq.heappop(self._entropy_heap)
        return None

    def _choose_pattern_index(self, cell_index: int) -> int:
        """Randomly picks one of the cell's possible patterns, weighed by pattern frequency."""
        possible_pattern_indices = np.flatnonzero(self._wave[cell_index])
        if possible_pattern_indices.size == 0:
            raise WFCInvariantError(f"Cell {cell_index} has no possible pattern left outside of propagation.")

        weights = self._pattern_data.frequencies[possible_pattern_indices]
        remaining = self._random.randrange(int(weights.sum()))
        for pattern_index, weight in zip(possible_pattern_indices.tolist(), weights.tolist()):
            if remaining < weight:
                return pattern_index
            remaining -= weight

        raise WFCInvariantError(f"Weighted pattern choice for cell {cell_index} ran past the total weight.")

    def _collapse_cell_at(self, cell_index: int, pattern_index: int) -> None:
        """Reduces the cell's domain to the chosen pattern and removes it from the entropy index."""
        self._record(cell_index)
        self._wave[cell_index] = False
        self._wave[cell_index, pattern_index] = True
        del self._entropies[cell_index]

    def _propagate(self, start_cell_index: int) -> bool:
        """Performs the depth-first constraint propagation starting from a collapsed cell.

        Returns:
            False if a neighboring cell was left without any possible pattern (contradiction), True otherwise.
        """
        stack = [start_cell_index]
        while stack:
            cell_index = stack.pop()
            for direction in Direction:
                neighbor_index = self.get_neighbor_index(cell_index, direction)

                if neighbor_index is None or neighbor_index not in self._entropies:
                    continue

                # All patterns that may be placed in the given direction of any pattern still possible in this cell.
                possible = self._compatibility[direction.value][self._wave[cell_index]].any(axis=0)
                available = self._wave[neighbor_index]

                if not (available & ~possible).any():
                    continue

                intersection = available & possible
                remaining_pattern_count = int(intersection.sum())

                if remaining_pattern_count == 0:
                    logger.warning(
                        "Contradiction: no pattern left for cell %d (%s of cell %d)",
                        neighbor_index,
                        direction.name,
                        cell_index,
                    )
                    return False

                self._record(neighbor_index)
                self._wave[neighbor_index] = intersection
                self._set_entropy(
                    neighbor_index, remaining_pattern_count - self._random.random() * ENTROPY_NOISE_MAX
                )
                stack.append(neighbor_index)

        return True

    def _set_entropy(self, cell_index: int, entropy: float) -> None:
        """Updates the entropy of an uncollapsed cell and pushes it to the selection heap."""
        self._entropies[cell_index] = entropy
        heapq.heappush(self._entropy_heap, _HeapItem(entropy, cell_index))

    def _record(self, cell_index: int) -> None:
        """Saves the cell's current domain and entropy to the journal before they get modified."""
        if self._journal is not None:
            self._journal.append(
                _JournalEntry(cell_index, self._wave[cell_index].copy(), self._entropies.get(cell_index))
            )

    def _rollback(self) -> None:
        """Restores every cell modified during the current step to its pre-step domain and entropy."""
        assert self._journal is not None
        for entry in reversed(self._journal):
            self._wave[entry._cell_index] = entry._domain
            if entry._entropy is None:
                self._entropies.pop(entry._cell_index, None)
            else:
                # Heap items that were valid before the step are never popped during it, so they are still present.
                self._entropies[entry._cell_index] = entry._entropy
        logger.debug("Rolled back %d cell modifications", len(self._journal))

    def _make_result(
        self, outcome: WFCStepOutcome, cell_index: int | None = None, pattern_index: int | None = None
    ) -> WFCStepResult:
        """Builds the step result record for the given outcome."""
        if cell_index is None or pattern_index is None:
            return WFCStepResult(outcome, self._cell_pixel_size[0], self._cell_pixel_size[1])
        return WFCStepResult(
            outcome,
            self._cell_pixel_size[0],
            self._cell_pixel_size[1],
            collapsed_cell_index=cell_index,
            collapsed_cell_coords=self.get_cell_coords(cell_index),
            pattern_index=pattern_index,
            pattern_pixels=self._pattern_data.get_pattern(pattern_index),
        )


class _JournalEntry:
    """Container tracking the pre-step state of a modified cell."""

    # The index of the modified cell.
    _cell_index: int
    # The boolean domain of the cell before the modification.
    _domain: NDArray[np.bool_]
    # The entropy of the cell before the modification (None if it was collapsed).
    _entropy: float | None

    def __init__(self, cell_index: int, domain: NDArray[np.bool_], entropy: float | None) -> None:
        """Creates a new journal entry instance and initializes it."""
        self._cell_index = cell_index
        self._domain = domain
        self._entropy = entropy


@dataclass(order=True)
class _HeapItem:
    """Dataclass storing a cell index for the priority queue."""

    # The entropy of the cell when the item was pushed.
    _priority: float
    # The index of the cell (breaks ties in favor of the lowest index).
    _cell_index: int
