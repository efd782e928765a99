"""
Exceptions for the N-gram Miner.
"""


class ConfigurationError(ValueError):
    """Raised when the analysis configuration is invalid. Nothing is computed."""


class InputFileError(ValueError):
    """Raised when an uploaded search query report cannot be read."""


class InvalidRecordError(ValueError):
    """Raised when a posted query record has missing, mistyped or negative metrics."""
