"""Domain models representing persisted registration state.

These are pure, immutable value objects. Adapters build them from
storage rows and the domain never mutates them in place.
"""

from dataclasses import dataclass, field
from datetime import datetime

from .ports import (
    AttendanceDecision,
    CheckInResult,
    Region,
    SpecialVoteInterest,
    SpecialVoteState,
    Stage,
    Willingness,
    WriteStatus,
)


@dataclass(frozen=True)
class Preferences:
    """Venue and time preferences submitted by a member."""

    preferred_venues: tuple[str, ...]
    preferred_times: tuple[str, ...] = ()
    attendance_willingness: Willingness = Willingness.YES
    special_vote_interest: SpecialVoteInterest | None = None


@dataclass(frozen=True)
class SpecialVoteApplication:
    """Special vote request details."""

    eligibility_reason: str
    evidence: str
    contact_phone: str


@dataclass(frozen=True)
class Member:
    """Identity and registration state for one member in the event."""

    membership_number: str
    name: str
    region: Region
    token: str
    email: str | None = None
    mobile: str | None = None
    stage: Stage = Stage.NOT_STARTED
    attendance: AttendanceDecision = AttendanceDecision.UNDECIDED
    absence_reason: str | None = None
    preferences: Preferences | None = None
    special_vote_state: SpecialVoteState = SpecialVoteState.NONE
    special_vote_application: SpecialVoteApplication | None = None
    special_vote_approved: bool | None = None
    assigned_session_id: int | None = None
    ticket_credential: str | None = None
    checked_in_at: datetime | None = None
    verified_at: datetime | None = None
    preferences_submitted_at: datetime | None = None
    venue_assigned_at: datetime | None = None
    attendance_decided_at: datetime | None = None

    @property
    def is_willing(self) -> bool:
        return (
            self.preferences is not None
            and self.preferences.attendance_willingness == Willingness.YES
        )


@dataclass(frozen=True)
class VenueSession:
    """A bookable meeting slot at one venue."""

    id: int
    venue: str
    address: str
    region: Region
    starts_at: datetime
    capacity: int
    reserved: int = 0

    @property
    def remaining(self) -> int:
        return self.capacity - self.reserved


@dataclass(frozen=True)
class Ticket:
    """Single-use check-in credential bound to one member."""

    credential: str
    membership_number: str
    session_id: int | None
    issued_at: datetime
    consumed_at: datetime | None = None
    revoked_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.revoked_at is None


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an atomic repository write.

    `member` is the post-write snapshot when the write was applied.
    `ticket_created` is True only when this write inserted a new ticket.
    """

    status: WriteStatus
    member: Member | None = None
    ticket: Ticket | None = None
    ticket_created: bool = False


@dataclass(frozen=True)
class AttendanceOutcome:
    """Result of confirming or declining attendance."""

    member: Member
    ticket: Ticket | None = None


@dataclass(frozen=True)
class CheckInOutcome:
    """Result of presenting a ticket credential at the venue gate."""

    result: CheckInResult
    membership_number: str | None = None
    checked_in_at: datetime | None = None
    session: VenueSession | None = None


@dataclass(frozen=True)
class AssignmentFailure:
    membership_number: str
    reason: str


@dataclass(frozen=True)
class BulkAssignment:
    """Per-member outcomes of an administrative bulk assignment."""

    session: VenueSession
    assigned: list[Member] = field(default_factory=list)
    failed: list[AssignmentFailure] = field(default_factory=list)

@dataclass(frozen=True)
class PreferenceAssignment:
    """Outcomes of assigning members to their first preferred venue."""

    assigned: list[Member] = field(default_factory=list)
    failed: list[AssignmentFailure] = field(default_factory=list)
