"""
Custom exception types for Contact-Timing.

Every exception carries a machine-readable code so callers can
handle specific failure modes programmatically.
"""


class ContactTimingError(Exception):
    """Base exception for all Contact-Timing errors."""

    def __init__(self, message: str, code: str = "CONTACT_TIMING_ERROR"):
        self.code = code
        super().__init__(message)


class InvalidInputError(ContactTimingError, ValueError):
    """Raised when a caller passes an argument the engine cannot use (a caller bug)."""

    def __init__(self, message: str, argument: str | None = None):
        self.argument = argument
        super().__init__(message, code="INVALID_INPUT")


class ConfigurationError(ContactTimingError):
    """Raised when an algorithm config fails its quality gates."""

    def __init__(self, message: str, failed_gates: list[str] | None = None):
        self.failed_gates = failed_gates or []
        super().__init__(message, code="CONFIG_ERROR")


class ConnectorError(ContactTimingError):
    """Raised when event data cannot be loaded from its source."""

    def __init__(self, message: str, source: str = ""):
        self.source = source
        super().__init__(message, code="CONNECTOR_ERROR")


class PipelineError(ContactTimingError):
    """Raised when a batch run cannot proceed."""

    def __init__(self, message: str, step: str = ""):
        self.step = step
        super().__init__(message, code="PIPELINE_ERROR")
