"""Shared pytest fixtures for pixel_wfc tests."""

from __future__ import annotations

import logging

import pytest

from pixel_wfc.constants import LOGGER_NAME

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def pixels_from_rows(rows: list[list[tuple[int, int, int, int]]]) -> tuple[bytes, int, int]:
    """Flattens rows of RGBA tuples into a (pixels, width, height) sample."""
    flat = bytes(channel for row in rows for pixel in row for channel in pixel)
    return flat, len(rows[0]), len(rows)


class ScriptedRandom:
    """Random source returning scripted values for randrange() and a fixed value for random()."""

    def __init__(self, randrange_values: list[int] | None = None, random_value: float = 0.0) -> None:
        self._randrange_values = list(randrange_values or [])
        self._random_value = random_value
        self.randrange_calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.randrange_calls.append(stop)
        value = self._randrange_values.pop(0) if self._randrange_values else 0
        return value % stop

    def random(self) -> float:
        return self._random_value


# =============================================================================
# Samples
# =============================================================================


@pytest.fixture
def uniform_sample() -> tuple[bytes, int, int]:
    """A 5x4 sample of a single color."""
    return pixels_from_rows([[RED] * 5 for _ in range(4)])


@pytest.fixture
def two_color_sample() -> tuple[bytes, int, int]:
    """A 1x2 sample with two distinct colors."""
    return pixels_from_rows([[RED], [BLUE]])


@pytest.fixture
def weighted_sample() -> tuple[bytes, int, int]:
    """A 4x1 sample with three red pixels and one blue pixel."""
    return pixels_from_rows([[RED, RED, RED, BLUE]])


@pytest.fixture
def stripes_sample() -> tuple[bytes, int, int]:
    """A 2x2 sample of a black and a white vertical stripe.

    With pattern size 2 it yields exactly four patterns in this order:
        0: black|white vertical stripes, 1: white|black vertical stripes,
        2: black row above white row, 3: white row above black row.
    """
    return pixels_from_rows([[BLACK, WHITE], [BLACK, WHITE]])


@pytest.fixture
def noisy_sample() -> tuple[bytes, int, int]:
    """A 4x4 sample with an irregular arrangement of three colors."""
    return pixels_from_rows(
        [
            [BLACK, BLACK, WHITE, BLACK],
            [BLACK, RED, WHITE, WHITE],
            [WHITE, WHITE, WHITE, BLACK],
            [BLACK, WHITE, BLACK, BLACK],
        ]
    )


# =============================================================================
# Randomness & logging
# =============================================================================


@pytest.fixture
def scripted_random() -> type[ScriptedRandom]:
    """The scripted random source class."""
    return ScriptedRandom


@pytest.fixture
def clean_package_logger():
    """Removes all handlers from the package root logger after the test."""
    yield logging.getLogger(LOGGER_NAME)
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(package_logger.handlers):
        handler.close()
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
