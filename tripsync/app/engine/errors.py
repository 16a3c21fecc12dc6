"""Error taxonomy for itinerary mutations.

InputValidationError and NotFoundError abort before any write and are reported
verbatim. ConflictError is only raised once transaction retries are exhausted.
PartialDegradation never escapes a mutation: it is turned into a warning on
the committed result.
"""

from typing import Any


class ItineraryError(Exception):
    """Base class for engine errors."""

    pass


class InputValidationError(ItineraryError):
    """Malformed input, rejected before any store access."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(ItineraryError):
    """Referenced document absent at transaction time."""

    kind = "Document"

    def __init__(self, doc_id: str) -> None:
        super().__init__(f"{self.kind} not found: {doc_id}")
        self.doc_id = doc_id


class TripNotFoundError(NotFoundError):
    kind = "Trip"


class JourneyNotFoundError(NotFoundError):
    kind = "Journey"


class BookingNotFoundError(NotFoundError):
    kind = "Booking"


class ConflictError(ItineraryError):
    """Transaction retries exhausted; the caller should retry the operation."""

    pass


class TransactionTimeoutError(ItineraryError):
    """Transaction attempt exceeded its deadline before commit."""

    pass


class PartialDegradation(ItineraryError):
    """Post-commit route recompute failed; the committed mutation stands."""

    def __init__(self, journey_id: str, reason: str) -> None:
        super().__init__(f"Route for journey {journey_id} could not be refreshed: {reason}")
        self.journey_id = journey_id
        self.reason = reason
