"""
Domain exceptions - Semantic error types for BMM registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every failure is local to one request: raising any of these means
the underlying transaction was not applied.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class MemberNotFound(RegistrationError):
    """Unknown access token or membership number."""

    pass


class SessionNotFound(RegistrationError):
    """Unknown venue session."""

    pass


class InvalidCredentials(RegistrationError):
    """Membership number or verification code mismatch."""

    pass


class CodeExpired(RegistrationError):
    """Verification code is older than the configured TTL."""

    pass


class IllegalStageTransition(RegistrationError):
    """Operation is not allowed from the member's current stage."""

    def __init__(self, operation: str, current: str) -> None:
        super().__init__(f"{operation} not allowed from stage {current}")
        self.operation = operation
        self.current = current


class CapacityExceeded(RegistrationError):
    """Venue session has no remaining seats."""

    pass


class InvalidSelection(RegistrationError):
    """Preferences or assignment target rejected by business rules."""

    pass


class AbsenceReasonRequired(RegistrationError):
    """Declining attendance without a reason."""

    pass


class NotEligible(RegistrationError):
    """Member is not eligible for a special vote."""

    pass
