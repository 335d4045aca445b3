"""Generates pixel grids that locally resemble a sample image using the Overlapping Wave Function Collapse model."""

from pixel_wfc.enums import Direction, WFCStepOutcome
from pixel_wfc.exceptions import WFCConfigurationError, WFCError, WFCInvariantError
from pixel_wfc.model.generation_settings import GenerationSettings
from pixel_wfc.model.pattern_data import PatternData
from pixel_wfc.model.wfc import WFC, WFCStepResult
from pixel_wfc.model.wfc_manager import WFCManager

__all__ = [
    "Direction",
    "GenerationSettings",
    "PatternData",
    "WFC",
    "WFCConfigurationError",
    "WFCError",
    "WFCInvariantError",
    "WFCManager",
    "WFCStepOutcome",
    "WFCStepResult",
]

__version__ = "0.1.0"
