"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the state enumerations shared by every layer and
the interfaces (ports) that the domain requires from infrastructure.
Adapters implement these protocols through structural subtyping.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import (
        Member,
        Preferences,
        SpecialVoteApplication,
        Ticket,
        VenueSession,
        WriteResult,
    )


class Stage(str, Enum):
    """
    Registration stage of a member.

    Forward path:
        NOT_STARTED -> VERIFIED -> PREFERENCES_SUBMITTED -> VENUE_ASSIGNED
        VENUE_ASSIGNED -> ATTENDANCE_CONFIRMED -> CHECKED_IN
        VENUE_ASSIGNED -> ATTENDANCE_DECLINED

    A ticket is issued in the same transaction that enters
    ATTENDANCE_CONFIRMED, so "ticket issued" is never observable as a
    separate stage. The special vote pathway is tracked by
    SpecialVoteState alongside ATTENDANCE_DECLINED.
    """

    NOT_STARTED = "not_started"
    VERIFIED = "verified"
    PREFERENCES_SUBMITTED = "preferences_submitted"
    VENUE_ASSIGNED = "venue_assigned"
    ATTENDANCE_CONFIRMED = "attendance_confirmed"
    ATTENDANCE_DECLINED = "attendance_declined"
    CHECKED_IN = "checked_in"


class Region(str, Enum):
    """Home regions members are imported into."""

    NORTHERN = "Northern Region"
    CENTRAL = "Central Region"
    SOUTHERN = "Southern Region"


class AttendanceDecision(str, Enum):
    UNDECIDED = "undecided"
    ATTENDING = "attending"
    NOT_ATTENDING = "not_attending"


class SpecialVoteState(str, Enum):
    NONE = "none"
    REQUESTED = "requested"
    DECIDED = "decided"


class Willingness(str, Enum):
    YES = "yes"
    NO = "no"


class SpecialVoteInterest(str, Enum):
    YES = "yes"
    NO = "no"
    UNSURE = "unsure"


class VerifyResult(Enum):
    """Result of a verification attempt against the store."""

    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class ReserveResult(Enum):
    RESERVED = "reserved"
    CAPACITY_EXCEEDED = "capacity_exceeded"


class CheckInResult(Enum):
    SUCCESS = "success"
    ALREADY_USED = "already_used"
    UNKNOWN = "unknown"


class WriteStatus(Enum):
    """
    Status of a guarded repository write.

    The repository re-checks the guard inside its transaction; the
    domain translates anything other than APPLIED into an exception.
    """

    APPLIED = "applied"
    NOT_FOUND = "not_found"
    STAGE_CONFLICT = "stage_conflict"
    NOT_WILLING = "not_willing"
    CAPACITY_EXCEEDED = "capacity_exceeded"


class MemberRepository(Protocol):
    """Port interface for member and ticket persistence.

    Every mutating method is a single atomic transaction. Methods taking
    `allowed` re-check the member's stage under a row lock and return
    STAGE_CONFLICT without mutating anything when it does not match.
    """

    def add_member(self, member: Member) -> None: ...

    def get(self, membership_number: str) -> Member | None: ...

    def get_by_token(self, token: str) -> Member | None: ...

    def list_members(self) -> list[Member]: ...

    def store_code(self, token: str, code_hash: str) -> bool:
        """Replace the active verification code. False if token unknown."""
        ...

    def verify_code(
        self, token: str, membership_number: str, code: str, ttl_seconds: int
    ) -> tuple[VerifyResult, Member | None]:
        """
        Check membership number and code, consume the code on success.

        On SUCCESS the code is cleared and NOT_STARTED advances to
        VERIFIED in the same transaction. Failures never mutate.
        """
        ...

    def save_preferences(
        self, membership_number: str, preferences: Preferences, allowed: Collection[Stage]
    ) -> WriteResult: ...

    def assign_session(
        self,
        membership_number: str,
        session_id: int,
        allowed: Collection[Stage],
        replacement_credential: str,
    ) -> WriteResult:
        """
        Reserve a seat in `session_id` and release the previous one.

        Reserve-new and release-old commit together; on CAPACITY_EXCEEDED
        nothing changes. A confirmed member's live ticket is revoked and
        replaced by `replacement_credential`.
        """
        ...

    def confirm_attendance(
        self, membership_number: str, credential: str, allowed: Collection[Stage]
    ) -> WriteResult:
        """Mark attending and issue `credential` unless a live ticket exists."""
        ...

    def decline_attendance(
        self, membership_number: str, reason: str, allowed: Collection[Stage]
    ) -> WriteResult:
        """Mark not attending and release the member's own reservation."""
        ...

    def save_special_vote(
        self,
        membership_number: str,
        application: SpecialVoteApplication,
        allowed: Collection[SpecialVoteState],
    ) -> WriteResult: ...

    def decide_special_vote(self, membership_number: str, approved: bool) -> WriteResult: ...

    def issue_ticket(self, membership_number: str, credential: str) -> WriteResult: ...

    def get_ticket(self, credential: str) -> Ticket | None: ...

    def consume_ticket(self, credential: str) -> tuple[CheckInResult, Ticket | None]:
        """Set consumed_at and the member's CHECKED_IN stage, at most once."""
        ...


class VenueSessionRepository(Protocol):
    """Port interface for the venue session directory and seat counters."""

    def add_session(
        self,
        venue: str,
        address: str,
        region: Region,
        starts_at: datetime,
        capacity: int,
    ) -> VenueSession: ...

    def get_session(self, session_id: int) -> VenueSession | None: ...

    def find_session(self, venue: str, starts_at: datetime) -> VenueSession | None: ...

    def list_sessions(self, region: Region | None = None) -> list[VenueSession]: ...

    def reserve(self, session_id: int) -> bool:
        """Compare-and-increment. False when reserved == capacity."""
        ...

    def release(self, session_id: int) -> None:
        """Decrement, never below zero."""
        ...


class NotificationDispatcher(Protocol):
    """Port interface for member notifications (fire-and-forget)."""

    def code_issued(self, member: Member, code: str) -> None: ...

    def ticket_ready(self, member: Member, ticket: Ticket) -> None: ...
