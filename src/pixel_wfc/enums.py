"""Contains all global enumeration classes used throughout the project."""

from __future__ import annotations

from enum import Enum


class Direction(Enum):
    """Defines the cardinal directions used for pattern adjacency and neighbor lookup."""

    LEFT = 0
    """Left direction."""
    RIGHT = 1
    """Right direction."""
    UP = 2
    """Upward direction."""
    DOWN = 3
    """Downward direction."""

    def reverse(self) -> Direction:
        """Returns the opposite direction of the current direction."""
        match self:
            case Direction.LEFT:
                return Direction.RIGHT
            case Direction.RIGHT:
                return Direction.LEFT
            case Direction.UP:
                return Direction.DOWN
            case Direction.DOWN:
                return Direction.UP

    def to_vector(self) -> tuple[int, int]:
        """Returns the (dx, dy) vector representation for the direction."""
        match self:
            case Direction.LEFT:
                return (-1, 0)
            case Direction.RIGHT:
                return (1, 0)
            case Direction.UP:
                return (0, -1)
            case Direction.DOWN:
                return (0, 1)


class WFCStepOutcome(Enum):
    """Defines the possible outcomes of a single collapse step of the WFC engine."""

    DONE = "Done"
    """Every cell of the output grid is already collapsed, nothing was done."""
    COLLAPSED = "Collapsed"
    """One cell was collapsed and the propagation of its constraints succeeded."""
    CONTRADICTION = "Contradiction"
    """The propagation left a cell without any legal pattern, the generation attempt has failed."""
