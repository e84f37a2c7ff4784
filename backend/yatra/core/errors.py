"""
Error taxonomy for itinerary generation.

Each error carries the HTTP status and machine-readable code the API returns,
so callers can show a specific message per failure. Enrichment failures
from the weather, maps and photo lookups never surface as errors.
"""

from typing import Optional


class ItineraryGenerationError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        if message is not None:
            self.message = message
        # detail is for logs only, it is never sent to the client
        self.detail = detail or self.message
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class AuthenticationError(ItineraryGenerationError):
    status_code = 401
    code = "unauthorized"
    message = "Unauthorized"


class QuotaExceededError(ItineraryGenerationError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Daily API limit reached ({limit} requests per day)")


class UpstreamUnavailableError(ItineraryGenerationError):
    status_code = 503
    code = "upstream_unavailable"
    message = "AI service temporarily unavailable"


class ResponseParseError(ItineraryGenerationError):
    status_code = 502
    code = "parse_failure"
    message = "Failed to parse AI response"


class PersistenceError(ItineraryGenerationError):
    status_code = 500
    code = "persistence_failure"
    message = "Failed to save itinerary"


class InternalError(ItineraryGenerationError):
    pass
