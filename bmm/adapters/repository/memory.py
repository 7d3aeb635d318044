"""
In-memory repository adapter - Implements MemberRepository and
VenueSessionRepository protocols for development and tests.

One process-wide lock makes every method a single atomic step, which
gives the same guarantees as the PostgreSQL adapter within a single
process. State is lost on restart.
"""

import threading
from collections.abc import Callable, Collection
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from bmm.domain.codes import check_code, same_identifier
from bmm.domain.models import (
    Member,
    Preferences,
    SpecialVoteApplication,
    Ticket,
    VenueSession,
    WriteResult,
)
from bmm.domain.ports import (
    AttendanceDecision,
    CheckInResult,
    Region,
    SpecialVoteState,
    Stage,
    VerifyResult,
    WriteStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _MemberRecord:
    member: Member
    code_hash: str | None = None
    code_issued_at: datetime | None = None


class InMemoryRegistrationStore:
    """
    Implements both repository protocols over plain dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._members: dict[str, _MemberRecord] = {}
        self._tokens: dict[str, str] = {}
        self._sessions: dict[int, VenueSession] = {}
        self._tickets: dict[str, Ticket] = {}
        self._next_session_id = 1

    # Members

    def add_member(self, member: Member) -> None:
        with self._lock:
            if member.membership_number in self._members or member.token in self._tokens:
                raise ValueError(f"member {member.membership_number} already exists")
            self._members[member.membership_number] = _MemberRecord(member)
            self._tokens[member.token] = member.membership_number

    def get(self, membership_number: str) -> Member | None:
        with self._lock:
            record = self._members.get(membership_number)
            return record.member if record else None

    def get_by_token(self, token: str) -> Member | None:
        with self._lock:
            record = self._by_token(token)
            return record.member if record else None

    def list_members(self) -> list[Member]:
        with self._lock:
            return [self._members[k].member for k in sorted(self._members)]

    def store_code(self, token: str, code_hash: str) -> bool:
        with self._lock:
            record = self._by_token(token)
            if record is None:
                return False
            record.code_hash = code_hash
            record.code_issued_at = self._clock()
            return True

    def verify_code(
        self, token: str, membership_number: str, code: str, ttl_seconds: int
    ) -> tuple[VerifyResult, Member | None]:
        with self._lock:
            record = self._by_token(token)

            # Both comparisons always run, matching the PostgreSQL adapter
            expected = record.member.membership_number if record else ""
            number_valid = same_identifier(expected, membership_number)
            code_valid = check_code(code, record.code_hash if record else None)

            if record is None:
                return VerifyResult.NOT_FOUND, None
            if not (number_valid and code_valid):
                return VerifyResult.INVALID_CREDENTIALS, None

            now = self._clock()
            if record.code_issued_at is None or now - record.code_issued_at > timedelta(
                seconds=ttl_seconds
            ):
                return VerifyResult.EXPIRED, None

            record.code_hash = None
            record.code_issued_at = None
            if record.member.stage == Stage.NOT_STARTED:
                record.member = replace(record.member, stage=Stage.VERIFIED, verified_at=now)
            return VerifyResult.SUCCESS, record.member

    def save_preferences(
        self, membership_number: str, preferences: Preferences, allowed: Collection[Stage]
    ) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            if record.member.stage not in allowed:
                return WriteResult(WriteStatus.STAGE_CONFLICT, record.member)

            record.member = replace(
                record.member,
                preferences=preferences,
                stage=Stage.PREFERENCES_SUBMITTED,
                preferences_submitted_at=self._clock(),
            )
            return WriteResult(WriteStatus.APPLIED, record.member)

    def assign_session(
        self,
        membership_number: str,
        session_id: int,
        allowed: Collection[Stage],
        replacement_credential: str,
    ) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None or session_id not in self._sessions:
                return WriteResult(WriteStatus.NOT_FOUND)
            member = record.member
            if member.stage not in allowed:
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)
            if not member.is_willing:
                return WriteResult(WriteStatus.NOT_WILLING, member)

            previous = member.assigned_session_id
            moving = previous != session_id
            if moving:
                if not self._reserve_locked(session_id):
                    return WriteResult(WriteStatus.CAPACITY_EXCEEDED, member)
                if previous is not None:
                    self._release_locked(previous)

            now = self._clock()
            ticket = None
            created = False
            if member.stage == Stage.ATTENDANCE_CONFIRMED:
                ticket = self._live_ticket(membership_number)
                if moving or ticket is None:
                    if ticket is not None:
                        self._tickets[ticket.credential] = replace(ticket, revoked_at=now)
                    ticket = Ticket(replacement_credential, membership_number, session_id, now)
                    self._tickets[ticket.credential] = ticket
                    created = True
                record.member = replace(
                    member,
                    assigned_session_id=session_id,
                    venue_assigned_at=now,
                    ticket_credential=ticket.credential,
                )
            else:
                record.member = replace(
                    member,
                    assigned_session_id=session_id,
                    venue_assigned_at=now,
                    stage=Stage.VENUE_ASSIGNED,
                )
            return WriteResult(WriteStatus.APPLIED, record.member, ticket, created)

    def confirm_attendance(
        self, membership_number: str, credential: str, allowed: Collection[Stage]
    ) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            member = record.member
            if member.stage not in allowed or member.assigned_session_id is None:
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            now = self._clock()
            ticket = self._live_ticket(membership_number)
            created = ticket is None
            if ticket is None:
                ticket = Ticket(credential, membership_number, member.assigned_session_id, now)
                self._tickets[credential] = ticket

            record.member = replace(
                member,
                stage=Stage.ATTENDANCE_CONFIRMED,
                attendance=AttendanceDecision.ATTENDING,
                absence_reason=None,
                ticket_credential=ticket.credential,
                attendance_decided_at=member.attendance_decided_at
                if member.stage == Stage.ATTENDANCE_CONFIRMED
                else now,
            )
            return WriteResult(WriteStatus.APPLIED, record.member, ticket, created)

    def decline_attendance(
        self, membership_number: str, reason: str, allowed: Collection[Stage]
    ) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            member = record.member
            if member.stage not in allowed:
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            # Only the member's own reservation is released
            if member.assigned_session_id is not None:
                self._release_locked(member.assigned_session_id)

            record.member = replace(
                member,
                stage=Stage.ATTENDANCE_DECLINED,
                attendance=AttendanceDecision.NOT_ATTENDING,
                absence_reason=reason,
                assigned_session_id=None,
                attendance_decided_at=self._clock(),
            )
            return WriteResult(WriteStatus.APPLIED, record.member)

    def save_special_vote(
        self,
        membership_number: str,
        application: SpecialVoteApplication,
        allowed: Collection[SpecialVoteState],
    ) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            member = record.member
            if (
                member.stage != Stage.ATTENDANCE_DECLINED
                or member.special_vote_state not in allowed
            ):
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            record.member = replace(
                member,
                special_vote_state=SpecialVoteState.REQUESTED,
                special_vote_application=application,
            )
            return WriteResult(WriteStatus.APPLIED, record.member)

    def decide_special_vote(self, membership_number: str, approved: bool) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            if record.member.special_vote_state != SpecialVoteState.REQUESTED:
                return WriteResult(WriteStatus.STAGE_CONFLICT, record.member)

            record.member = replace(
                record.member,
                special_vote_state=SpecialVoteState.DECIDED,
                special_vote_approved=approved,
            )
            return WriteResult(WriteStatus.APPLIED, record.member)

    # Tickets

    def issue_ticket(self, membership_number: str, credential: str) -> WriteResult:
        with self._lock:
            record = self._members.get(membership_number)
            if record is None:
                return WriteResult(WriteStatus.NOT_FOUND)
            member = record.member
            ticket = self._live_ticket(membership_number)
            if ticket is not None and member.stage in (
                Stage.ATTENDANCE_CONFIRMED,
                Stage.CHECKED_IN,
            ):
                return WriteResult(WriteStatus.APPLIED, member, ticket)
            if member.stage != Stage.ATTENDANCE_CONFIRMED:
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            ticket = Ticket(credential, membership_number, member.assigned_session_id, self._clock())
            self._tickets[credential] = ticket
            record.member = replace(member, ticket_credential=credential)
            return WriteResult(WriteStatus.APPLIED, record.member, ticket, True)

    def get_ticket(self, credential: str) -> Ticket | None:
        with self._lock:
            return self._tickets.get(credential)

    def consume_ticket(self, credential: str) -> tuple[CheckInResult, Ticket | None]:
        with self._lock:
            ticket = self._tickets.get(credential)
            if ticket is None or not ticket.is_live:
                return CheckInResult.UNKNOWN, None
            if ticket.consumed_at is not None:
                return CheckInResult.ALREADY_USED, ticket

            now = self._clock()
            ticket = replace(ticket, consumed_at=now)
            self._tickets[credential] = ticket
            record = self._members[ticket.membership_number]
            record.member = replace(record.member, stage=Stage.CHECKED_IN, checked_in_at=now)
            return CheckInResult.SUCCESS, ticket

    # Venue sessions

    def add_session(
        self,
        venue: str,
        address: str,
        region: Region,
        starts_at: datetime,
        capacity: int,
    ) -> VenueSession:
        if capacity < 0:
            raise ValueError("capacity cannot be negative")
        with self._lock:
            session = VenueSession(
                id=self._next_session_id,
                venue=venue,
                address=address,
                region=region,
                starts_at=starts_at,
                capacity=capacity,
            )
            self._sessions[session.id] = session
            self._next_session_id += 1
            return session

    def get_session(self, session_id: int) -> VenueSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def find_session(self, venue: str, starts_at: datetime) -> VenueSession | None:
        with self._lock:
            for session in self._sessions.values():
                if session.venue == venue and session.starts_at == starts_at:
                    return session
            return None

    def list_sessions(self, region: Region | None = None) -> list[VenueSession]:
        with self._lock:
            sessions = [
                s for s in self._sessions.values() if region is None or s.region == region
            ]
        return sorted(sessions, key=lambda s: (s.starts_at, s.venue, s.id))

    def reserve(self, session_id: int) -> bool:
        with self._lock:
            return self._reserve_locked(session_id)

    def release(self, session_id: int) -> None:
        with self._lock:
            self._release_locked(session_id)

    # Helpers - caller holds self._lock

    def _by_token(self, token: str) -> _MemberRecord | None:
        number = self._tokens.get(token)
        return self._members.get(number) if number is not None else None

    def _live_ticket(self, membership_number: str) -> Ticket | None:
        for ticket in self._tickets.values():
            if ticket.membership_number == membership_number and ticket.is_live:
                return ticket
        return None

    def _reserve_locked(self, session_id: int) -> bool:
        session = self._sessions.get(session_id)
        if session is None or session.reserved >= session.capacity:
            return False
        self._sessions[session_id] = replace(session, reserved=session.reserved + 1)
        return True

    def _release_locked(self, session_id: int) -> None:
        session = self._sessions.get(session_id)
        if session is not None and session.reserved > 0:
            self._sessions[session_id] = replace(session, reserved=session.reserved - 1)
