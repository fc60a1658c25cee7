"""Domain exceptions for tracking and recommendation flows."""


class RecommendationServiceError(Exception):
    """Base class for service errors."""


class ValidationError(RecommendationServiceError):
    """Raised when an interaction payload is malformed. Rendered as HTTP 400."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class PersistenceError(RecommendationServiceError):
    """Raised when a storage write fails. Tracking callers log and continue."""


class RecommendationComputationError(RecommendationServiceError):
    """Raised inside the recommendation engine. Never surfaced to API callers."""
