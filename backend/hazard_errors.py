# hazard_errors.py
# Error taxonomy for the hazard aggregation engine


class HazardEngineError(Exception):
    """Base class for engine errors"""


class SourceUnavailableError(HazardEngineError):
    """A data source failed, timed out or was rate limited"""

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}")
        self.source = source


class CircuitOpenError(SourceUnavailableError):
    """Raised without calling the source while its circuit is open"""


class NoHazardDataError(HazardEngineError):
    """A strategy found nothing to build an assessment from"""


class ConfigurationError(HazardEngineError):
    """
    The infallible final strategy failed, or a strategy list is malformed.
    Indicates a programming defect and is never recovered.
    """
