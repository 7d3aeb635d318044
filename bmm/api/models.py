"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Response models are built from domain dataclasses with `from_domain`.
"""

from datetime import date, datetime, time

from pydantic import BaseModel, Field

from bmm.domain.models import (
    AttendanceOutcome,
    BulkAssignment,
    CheckInOutcome,
    Member,
    PreferenceAssignment,
    Preferences,
    Ticket,
    VenueSession,
)
from bmm.domain.ports import (
    AttendanceDecision,
    CheckInResult,
    Region,
    SpecialVoteInterest,
    SpecialVoteState,
    Stage,
    Willingness,
)
from bmm.domain.statistics import Statistics


class CodeRequest(BaseModel):
    """Request model for issuing a verification code."""

    token: str = Field(..., min_length=1, description="Member access token")


class CodeResponse(BaseModel):
    message: str
    expires_in_seconds: int


class VerifyRequest(BaseModel):
    """Request model for identity verification."""

    token: str = Field(..., min_length=1)
    membership_number: str = Field(..., min_length=1)
    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class PreferencesRequest(BaseModel):
    """Request model for venue and time preferences."""

    token: str = Field(..., min_length=1)
    preferred_venues: list[str] = Field(..., description="1 to 3 venue names in the home region")
    preferred_times: list[str] = Field(default_factory=list)
    attendance_willingness: Willingness
    special_vote_interest: SpecialVoteInterest | None = None

    def to_domain(self) -> Preferences:
        return Preferences(
            preferred_venues=tuple(self.preferred_venues),
            preferred_times=tuple(self.preferred_times),
            attendance_willingness=self.attendance_willingness,
            special_vote_interest=self.special_vote_interest,
        )


class AttendanceRequest(BaseModel):
    """Request model for the final attendance decision."""

    token: str = Field(..., min_length=1)
    is_attending: bool
    absence_reason: str | None = None


class SpecialVoteRequest(BaseModel):
    """Request model for a special vote application."""

    token: str = Field(..., min_length=1)
    eligibility_reason: str = Field(..., min_length=1)
    evidence: str = Field(..., min_length=1, description="Supporting evidence for the request")
    contact_phone: str = Field(..., min_length=1)


class CheckInRequest(BaseModel):
    credential: str = Field(..., min_length=1, description="Ticket credential from the QR code")


class BulkAssignmentRequest(BaseModel):
    """Request model for administrative bulk assignment."""

    membership_numbers: list[str] = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    session_date: date
    session_time: time


class AssignmentRequest(BaseModel):
    session_id: int


class PreferenceAssignmentRequest(BaseModel):
    """Request model for assigning members by first preference."""

    region: Region | None = Field(None, description="Limit to one region; all when omitted")


class SpecialVoteDecisionRequest(BaseModel):
    approved: bool


class PreferencesResponse(BaseModel):
    preferred_venues: list[str]
    preferred_times: list[str]
    attendance_willingness: Willingness
    special_vote_interest: SpecialVoteInterest | None

    @classmethod
    def from_domain(cls, preferences: Preferences) -> "PreferencesResponse":
        return cls(
            preferred_venues=list(preferences.preferred_venues),
            preferred_times=list(preferences.preferred_times),
            attendance_willingness=preferences.attendance_willingness,
            special_vote_interest=preferences.special_vote_interest,
        )


class SessionResponse(BaseModel):
    """A venue session with its live seat counts."""

    id: int
    venue: str
    address: str
    region: Region
    starts_at: datetime
    capacity: int
    reserved: int
    remaining: int

    @classmethod
    def from_domain(cls, session: VenueSession) -> "SessionResponse":
        return cls(
            id=session.id,
            venue=session.venue,
            address=session.address,
            region=session.region,
            starts_at=session.starts_at,
            capacity=session.capacity,
            reserved=session.reserved,
            remaining=session.remaining,
        )


class MemberResponse(BaseModel):
    """Registration snapshot of one member."""

    membership_number: str
    name: str
    region: Region
    stage: Stage
    attendance: AttendanceDecision
    absence_reason: str | None
    preferences: PreferencesResponse | None
    special_vote_state: SpecialVoteState
    special_vote_approved: bool | None
    assigned_session_id: int | None
    ticket_credential: str | None
    checked_in_at: datetime | None

    @classmethod
    def from_domain(cls, member: Member) -> "MemberResponse":
        preferences = member.preferences
        return cls(
            membership_number=member.membership_number,
            name=member.name,
            region=member.region,
            stage=member.stage,
            attendance=member.attendance,
            absence_reason=member.absence_reason,
            preferences=PreferencesResponse.from_domain(preferences) if preferences else None,
            special_vote_state=member.special_vote_state,
            special_vote_approved=member.special_vote_approved,
            assigned_session_id=member.assigned_session_id,
            ticket_credential=member.ticket_credential,
            checked_in_at=member.checked_in_at,
        )


class TicketResponse(BaseModel):
    credential: str
    membership_number: str
    session_id: int | None
    issued_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            credential=ticket.credential,
            membership_number=ticket.membership_number,
            session_id=ticket.session_id,
            issued_at=ticket.issued_at,
        )


class AttendanceResponse(BaseModel):
    member: MemberResponse
    ticket: TicketResponse | None

    @classmethod
    def from_domain(cls, outcome: AttendanceOutcome) -> "AttendanceResponse":
        return cls(
            member=MemberResponse.from_domain(outcome.member),
            ticket=TicketResponse.from_domain(outcome.ticket) if outcome.ticket else None,
        )


class CheckInResponse(BaseModel):
    result: CheckInResult
    membership_number: str | None
    checked_in_at: datetime | None
    session: SessionResponse | None

    @classmethod
    def from_domain(cls, outcome: CheckInOutcome) -> "CheckInResponse":
        return cls(
            result=outcome.result,
            membership_number=outcome.membership_number,
            checked_in_at=outcome.checked_in_at,
            session=SessionResponse.from_domain(outcome.session) if outcome.session else None,
        )


class AssignmentFailureResponse(BaseModel):
    membership_number: str
    reason: str


class BulkAssignmentResponse(BaseModel):
    """Per-member outcomes of a bulk assignment."""

    session: SessionResponse
    assigned: list[str]
    failed: list[AssignmentFailureResponse]

    @classmethod
    def from_domain(cls, outcome: BulkAssignment) -> "BulkAssignmentResponse":
        return cls(
            session=SessionResponse.from_domain(outcome.session),
            assigned=[m.membership_number for m in outcome.assigned],
            failed=[
                AssignmentFailureResponse(membership_number=f.membership_number, reason=f.reason)
                for f in outcome.failed
            ],
        )


class AssignedSessionResponse(BaseModel):
    membership_number: str
    session_id: int


class PreferenceAssignmentResponse(BaseModel):
    """Per-member outcomes of assignment by first preference."""

    assigned: list[AssignedSessionResponse]
    failed: list[AssignmentFailureResponse]

    @classmethod
    def from_domain(cls, outcome: PreferenceAssignment) -> "PreferenceAssignmentResponse":
        return cls(
            assigned=[
                AssignedSessionResponse(
                    membership_number=m.membership_number, session_id=m.assigned_session_id
                )
                for m in outcome.assigned
            ],
            failed=[
                AssignmentFailureResponse(membership_number=f.membership_number, reason=f.reason)
                for f in outcome.failed
            ],
        )


class RegionStatsResponse(BaseModel):
    members: int
    attending: int
    not_attending: int
    special_votes_requested: int


class SessionStatsResponse(BaseModel):
    session: SessionResponse
    utilization: float


class StatisticsResponse(BaseModel):
    """Aggregate registration counts for the admin dashboard."""

    total_members: int
    by_stage: dict[str, int]
    by_region: dict[str, RegionStatsResponse]
    sessions: list[SessionStatsResponse]

    @classmethod
    def from_domain(cls, stats: Statistics) -> "StatisticsResponse":
        return cls(
            total_members=stats.total_members,
            by_stage={stage.value: count for stage, count in stats.by_stage.items()},
            by_region={
                region.value: RegionStatsResponse(
                    members=r.members,
                    attending=r.attending,
                    not_attending=r.not_attending,
                    special_votes_requested=r.special_votes_requested,
                )
                for region, r in stats.by_region.items()
            },
            sessions=[
                SessionStatsResponse(
                    session=SessionResponse.from_domain(s.session), utilization=s.utilization
                )
                for s in stats.sessions
            ],
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
