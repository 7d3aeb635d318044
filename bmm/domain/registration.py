"""
Registration domain service - BMM stage state machine.

This module contains the core business logic for moving one member
through the biennial membership meeting registration.

Stage State Machine
===================

    not_started -> verified                  (TokenVerifier.verify)
    verified -> preferences_submitted        (submit_preferences)
    preferences_submitted -> venue_assigned  (assign_venue)
    venue_assigned -> attendance_confirmed   (confirm_attendance True, ticket issued)
    venue_assigned -> attendance_declined    (confirm_attendance False, seat released)
    attendance_confirmed -> checked_in       (CheckInProcessor)

Re-entrant calls overwrite the previous value when the member is still
in the stage the call produces:

    preferences_submitted -> preferences_submitted  (resubmit before assignment)
    venue_assigned -> venue_assigned                (administrative re-assignment)
    attendance_confirmed -> attendance_confirmed    (re-confirm returns same ticket,
                                                     or re-assignment with a new ticket)
    attendance_declined -> attendance_declined      (new absence reason)

Special votes run alongside attendance_declined:

    none -> requested -> decided

Each guard is checked twice: here against a snapshot to produce a precise
error, and again by the repository under a row lock so a concurrent caller
cannot slip in between.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .capacity import VenueCapacityAllocator
from .eligibility import SpecialVoteEligibilityEvaluator
from .exceptions import (
    AbsenceReasonRequired,
    CapacityExceeded,
    IllegalStageTransition,
    InvalidSelection,
    MemberNotFound,
    NotEligible,
    RegistrationError,
    SessionNotFound,
)
from .models import (
    AssignmentFailure,
    AttendanceOutcome,
    BulkAssignment,
    Member,
    PreferenceAssignment,
    Preferences,
    SpecialVoteApplication,
    VenueSession,
    WriteResult,
)
from .ports import MemberRepository, Region, SpecialVoteState, Stage, WriteStatus
from .tickets import TicketIssuer
from .verification import TokenVerifier

logger = logging.getLogger(__name__)

PREFERENCE_STAGES = frozenset({Stage.VERIFIED, Stage.PREFERENCES_SUBMITTED})
ASSIGNMENT_STAGES = frozenset(
    {Stage.PREFERENCES_SUBMITTED, Stage.VENUE_ASSIGNED, Stage.ATTENDANCE_CONFIRMED}
)
CONFIRM_STAGES = frozenset({Stage.VENUE_ASSIGNED, Stage.ATTENDANCE_CONFIRMED})
WAITING_STAGES = frozenset({Stage.PREFERENCES_SUBMITTED})
DECLINE_STAGES = frozenset({Stage.VENUE_ASSIGNED, Stage.ATTENDANCE_DECLINED})
SPECIAL_VOTE_REQUEST_STATES = frozenset({SpecialVoteState.NONE, SpecialVoteState.REQUESTED})


def _require_stage(member: Member, operation: str, allowed: frozenset[Stage]) -> None:
    if member.stage not in allowed:
        raise IllegalStageTransition(operation, member.stage.value)


@dataclass
class StageStateMachine:
    """
    Domain service for registration stage transitions.

    Member-facing operations take the access token; administrative
    operations take the membership number.
    """

    repository: MemberRepository
    verifier: TokenVerifier
    allocator: VenueCapacityAllocator
    tickets: TicketIssuer
    eligibility: SpecialVoteEligibilityEvaluator
    max_preferred_venues: int = 3

    def submit_preferences(self, token: str, preferences: Preferences) -> Member:
        """
        Record venue/time preferences and attendance willingness.

        Raises:
            MemberNotFound: Unknown token
            IllegalStageTransition: Member not verified, or already assigned
            InvalidSelection: Empty, too many, or out-of-region venues
        """
        member = self.verifier.resolve(token)
        _require_stage(member, "submit_preferences", PREFERENCE_STAGES)

        cleaned = self._validate_preferences(member, preferences)
        result = self.repository.save_preferences(
            member.membership_number, cleaned, PREFERENCE_STAGES
        )
        updated = self._applied(result, "submit_preferences")
        logger.info(
            "Member %s submitted preferences %s",
            updated.membership_number,
            list(cleaned.preferred_venues),
        )
        return updated

    def assign_venue(self, membership_number: str, session_id: int) -> Member:
        """
        Assign a member to a venue session, reserving one seat.

        Re-assignment releases the old seat in the same transaction. A
        confirmed member keeps their stage and receives a replacement ticket.

        Raises:
            MemberNotFound: Unknown membership number
            SessionNotFound: Unknown session
            IllegalStageTransition: Member not at an assignable stage
            InvalidSelection: Member unwilling to attend, or session outside region
            CapacityExceeded: Session is full (caller picks another venue)
        """
        return self._assign(membership_number, session_id, ASSIGNMENT_STAGES)

    def _assign(
        self, membership_number: str, session_id: int, allowed: frozenset[Stage]
    ) -> Member:
        member = self._get(membership_number)
        _require_stage(member, "assign_venue", allowed)
        if not member.is_willing:
            raise InvalidSelection("member has not declared willingness to attend")

        session = self.allocator.get_session(session_id)
        if session.region != member.region:
            raise InvalidSelection(f"{session.venue} is not in {member.region.value}")

        replacing_ticket = member.stage == Stage.ATTENDANCE_CONFIRMED
        result = self.repository.assign_session(
            member.membership_number,
            session.id,
            allowed,
            self.tickets.new_credential(),
        )
        if result.status == WriteStatus.CAPACITY_EXCEEDED:
            logger.info("Assignment of %s to session %s rejected: full", membership_number, session.id)
            raise CapacityExceeded(f"{session.venue} at {session.starts_at.isoformat()} is full")
        if result.status == WriteStatus.NOT_WILLING:
            raise InvalidSelection("member has not declared willingness to attend")

        updated = self._applied(result, "assign_venue")
        logger.info("Member %s assigned to session %s", membership_number, session.id)

        if replacing_ticket and result.ticket_created and result.ticket is not None:
            self.tickets.announce(updated, result.ticket)
        return updated

    def assign_venue_bulk(
        self, membership_numbers: list[str], venue: str, starts_at: datetime
    ) -> BulkAssignment:
        """
        Assign several members to the session identified by venue and time.

        Each member is assigned independently; failures are reported per
        member and do not roll back the others.

        Raises:
            SessionNotFound: No session for venue at starts_at
        """
        session = self.allocator.find_session(venue, starts_at)
        outcome = BulkAssignment(session=session)

        for membership_number in dict.fromkeys(membership_numbers):
            try:
                outcome.assigned.append(self.assign_venue(membership_number, session.id))
            except RegistrationError as exc:
                outcome.failed.append(
                    AssignmentFailure(membership_number, type(exc).__name__)
                )

        logger.info(
            "Bulk assignment to session %s: %d assigned, %d failed",
            session.id,
            len(outcome.assigned),
            len(outcome.failed),
        )
        return outcome

    def assign_by_preference(self, region: Region | None = None) -> PreferenceAssignment:
        """
        Assign every member awaiting a venue to their first preferred venue.

        Picks the earliest session of that venue with a free seat. A member
        whose first choice is full is reported as failed and left for manual
        assignment; later preferences are not tried.
        """
        outcome = PreferenceAssignment()
        waiting = [
            m
            for m in self.repository.list_members()
            if m.stage == Stage.PREFERENCES_SUBMITTED and region in (None, m.region)
        ]

        for member in waiting:
            try:
                session = self._first_choice_session(member)
                outcome.assigned.append(
                    self._assign(member.membership_number, session.id, WAITING_STAGES)
                )
            except RegistrationError as exc:
                outcome.failed.append(
                    AssignmentFailure(member.membership_number, type(exc).__name__)
                )

        logger.info(
            "Preference assignment%s: %d assigned, %d failed",
            f" for {region.value}" if region else "",
            len(outcome.assigned),
            len(outcome.failed),
        )
        return outcome

    def confirm_attendance(
        self, token: str, is_attending: bool, absence_reason: str | None = None
    ) -> AttendanceOutcome:
        """
        Record the member's final attendance decision.

        Attending issues the ticket in the same transaction; confirming
        again returns the same ticket. Declining releases the reserved seat.

        Raises:
            MemberNotFound: Unknown token
            IllegalStageTransition: No venue assigned, or decision conflicts
            AbsenceReasonRequired: Declining without a reason
        """
        member = self.verifier.resolve(token)

        if is_attending:
            _require_stage(member, "confirm_attendance", CONFIRM_STAGES)
            result = self.repository.confirm_attendance(
                member.membership_number, self.tickets.new_credential(), CONFIRM_STAGES
            )
            updated = self._applied(result, "confirm_attendance")
            if result.ticket_created and result.ticket is not None:
                self.tickets.announce(updated, result.ticket)
            logger.info("Member %s confirmed attendance", updated.membership_number)
            return AttendanceOutcome(member=updated, ticket=result.ticket)

        reason = (absence_reason or "").strip()
        if not reason:
            raise AbsenceReasonRequired("absence reason is required when not attending")
        _require_stage(member, "decline_attendance", DECLINE_STAGES)

        result = self.repository.decline_attendance(
            member.membership_number, reason, DECLINE_STAGES
        )
        updated = self._applied(result, "decline_attendance")
        logger.info("Member %s declined attendance", updated.membership_number)
        return AttendanceOutcome(member=updated)

    def request_special_vote(self, token: str, application: SpecialVoteApplication) -> Member:
        """
        Apply for a special vote after declining attendance.

        Does not change the main stage.

        Raises:
            MemberNotFound: Unknown token
            NotEligible: Outside the designated region, or not declined
            IllegalStageTransition: A decision was already made
        """
        member = self.verifier.resolve(token)
        if not self.eligibility.is_eligible(member):
            logger.info("Special vote rejected for member %s", member.membership_number)
            raise NotEligible("special vote is not available for this member")
        if member.special_vote_state not in SPECIAL_VOTE_REQUEST_STATES:
            raise IllegalStageTransition(
                "request_special_vote", member.special_vote_state.value
            )

        for label, value in (
            ("eligibility reason", application.eligibility_reason),
            ("evidence", application.evidence),
            ("contact phone", application.contact_phone),
        ):
            if not value.strip():
                raise InvalidSelection(f"{label} is required")

        result = self.repository.save_special_vote(
            member.membership_number, application, SPECIAL_VOTE_REQUEST_STATES
        )
        updated = self._applied(result, "request_special_vote")
        logger.info("Member %s requested a special vote", updated.membership_number)
        return updated

    def decide_special_vote(self, membership_number: str, approved: bool) -> Member:
        """
        Record the administrative decision on a special vote request.

        Raises:
            MemberNotFound: Unknown membership number
            IllegalStageTransition: No pending request
        """
        member = self._get(membership_number)
        if member.special_vote_state != SpecialVoteState.REQUESTED:
            raise IllegalStageTransition(
                "decide_special_vote", member.special_vote_state.value
            )
        result = self.repository.decide_special_vote(membership_number, approved)
        updated = self._applied(result, "decide_special_vote")
        logger.info(
            "Special vote for %s %s", membership_number, "approved" if approved else "rejected"
        )
        return updated

    def _validate_preferences(self, member: Member, preferences: Preferences) -> Preferences:
        venues = tuple(
            dict.fromkeys(v.strip() for v in preferences.preferred_venues if v.strip())
        )
        if not venues:
            raise InvalidSelection("at least one venue must be selected")
        if len(venues) > self.max_preferred_venues:
            raise InvalidSelection(
                f"at most {self.max_preferred_venues} venues can be selected"
            )

        known = self.allocator.venues_in_region(member.region)
        outside = [v for v in venues if v not in known]
        if outside:
            raise InvalidSelection(
                f"venues not in {member.region.value}: {', '.join(outside)}"
            )

        if preferences.special_vote_interest is not None and not (
            self.eligibility.offers_special_vote(member.region)
        ):
            raise InvalidSelection("special vote is not offered in this region")

        times = tuple(dict.fromkeys(t.strip() for t in preferences.preferred_times if t.strip()))
        return Preferences(
            preferred_venues=venues,
            preferred_times=times,
            attendance_willingness=preferences.attendance_willingness,
            special_vote_interest=preferences.special_vote_interest,
        )

    def _first_choice_session(self, member: Member) -> VenueSession:
        if member.preferences is None:
            raise InvalidSelection("member has no venue preferences")
        venue = member.preferences.preferred_venues[0]
        sessions = [s for s in self.allocator.list_sessions(member.region) if s.venue == venue]
        if not sessions:
            raise SessionNotFound(venue)
        for session in sessions:
            if session.remaining > 0:
                return session
        raise CapacityExceeded(f"{venue} is full")

    def _get(self, membership_number: str) -> Member:
        member = self.repository.get(membership_number.strip())
        if member is None:
            raise MemberNotFound(membership_number)
        return member

    def _applied(self, result: WriteResult, operation: str) -> Member:
        """Translate a guarded write into the post-write member or an error."""
        if result.status == WriteStatus.APPLIED and result.member is not None:
            return result.member
        if result.status == WriteStatus.NOT_FOUND:
            raise MemberNotFound(operation)
        current = result.member.stage.value if result.member else "unknown"
        raise IllegalStageTransition(operation, current)
