"""Contains the exception classes raised by the pattern library and the WFC engine."""


class WFCError(Exception):
    """Base class for all errors raised by this package."""

    pass


class WFCConfigurationError(WFCError, ValueError):
    """Raised at setup when the sample, the pattern size or the output grid settings are invalid."""

    pass


class WFCInvariantError(WFCError, RuntimeError):
    """Raised when the engine state violates an internal invariant (e.g. an empty domain outside propagation)."""

    pass
