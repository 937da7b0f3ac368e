"""Custom exception classes for the FX Forecaster."""


class ForecasterError(Exception):
    """Base exception for all FX Forecaster errors."""
    pass


class ConfigurationError(ForecasterError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(ForecasterError):
    """Raised when input validation fails."""
    pass


class DataProviderError(ForecasterError):
    """Base exception for data provider errors (transport, HTTP status)."""
    pass


class DataError(DataProviderError):
    """Raised when a provider response is malformed or contains no usable rates."""
    pass


class InsufficientDataError(ForecasterError):
    """Raised when a series is too short to produce any training windows."""

    def __init__(self, message: str, available: int = 0, required: int = 0):
        super().__init__(message)
        self.available = available
        self.required = required


class NumericDegeneracyError(ForecasterError):
    """Raised when min-max normalization has a zero span (constant series)."""
    pass


class TrainingError(ForecasterError):
    """Raised when the model fit rejects its input or fails mid-training."""
    pass


class PipelineStateError(ForecasterError):
    """Raised on an illegal pipeline state transition."""
    pass
