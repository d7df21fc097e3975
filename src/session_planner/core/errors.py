"""
Exception taxonomy for session-planner.

Pure heuristics (metrics, progression, recovery, duration, equipment) never
raise on their documented inputs.  Everything that crosses a boundary
(generator output, data store, configuration) raises one of these.
"""


class PlannerError(Exception):
    """Base class for all session-planner errors."""

    pass


class ConfigurationError(PlannerError):
    """Raised when the generator cannot be configured (e.g. missing API key)."""

    pass


class ParseError(PlannerError):
    """Raised when generator output is not recoverable structured data."""

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class ValidationError(PlannerError):
    """
    Raised when data is structurally parseable but violates the schema.

    ``problems`` holds one human-readable line per offending field.
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = list(problems or [])


class ModelUnavailableError(PlannerError):
    """Raised when the external service reports the requested model does not exist."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class GeneratorIOError(PlannerError):
    """Transient network failure while talking to the text generator."""

    pass


class DataStoreError(PlannerError):
    """Transient failure while reading or writing the data store."""

    pass
