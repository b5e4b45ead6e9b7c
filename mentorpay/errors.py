"""Domain errors shared by services and the HTTP layer.

Services raise these; `mentorpay.api.errors` maps them onto HTTP responses.
"""

from __future__ import annotations


class MentorpayError(Exception):
    status_code: int = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(MentorpayError):
    status_code = 404


class InvalidStatus(MentorpayError):
    status_code = 422


class InvalidServiceType(MentorpayError):
    status_code = 422


class CoachNotOnboarded(MentorpayError):
    status_code = 409


class ConcurrentUpdate(MentorpayError):
    status_code = 409


class InvalidSignature(MentorpayError):
    status_code = 400


class MalformedEvent(MentorpayError):
    status_code = 400


class ProcessorUnavailable(MentorpayError):
    status_code = 503


class AlreadyProcessed(MentorpayError):
    """Idempotency short-circuit. Callers treat this as success."""

    status_code = 200

    def __init__(self, detail: str, *, key: str) -> None:
        super().__init__(detail)
        self.key = key
