"""Contains global constants and default values used throughout the project."""

# === PATTERN CONSTANTS ===

# Number of color channels per pixel (RGBA, 8 bits each).
PIXEL_CHANNELS: int = 4

PATTERN_SIZE_DEFAULT: int = 3
# Upper bound is the smaller sample dimension, checked when the patterns are extracted.
PATTERN_SIZE_MIN_LIMIT: int = 1

# === MODEL CONSTANTS ===

OUTPUT_WIDTH_DEFAULT: int = 96
OUTPUT_HEIGHT_DEFAULT: int = 50

OUTPUT_SIZE_MIN_LIMIT: int = 1

SCALE_FACTOR_DEFAULT: int = 9
SCALE_FACTOR_MIN_LIMIT: int = 1
SCALE_FACTOR_MAX_LIMIT: int = 64

RANDOM_SEED_MAX: int = 999999999

# Upper bound (exclusive) of the random value subtracted from a narrowed cell's entropy to break ties.
ENTROPY_NOISE_MAX: float = 0.1

# Restore the pre-step wave and entropy when a collapse step runs into a contradiction.
ROLLBACK_ON_CONTRADICTION: bool = True

# === LOGGING CONSTANTS ===

LOGGER_NAME: str = "pixel_wfc"
LOG_FILE_NAME: str = "pixel_wfc.log"
LOG_FILE_MAX_BYTES: int = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT: int = 3
