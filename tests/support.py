"""Test helpers shared by unit, integration and adversarial suites."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from bmm.domain.capacity import VenueCapacityAllocator
from bmm.domain.codes import hash_code
from bmm.domain.eligibility import SpecialVoteEligibilityEvaluator
from bmm.domain.models import Member, Preferences
from bmm.domain.ports import MemberRepository, Region, Stage, VenueSessionRepository, Willingness
from bmm.domain.registration import StageStateMachine
from bmm.domain.statistics import RegistrationStatistics
from bmm.domain.tickets import CheckInProcessor, TicketIssuer
from bmm.domain.verification import TokenVerifier

# Low bcrypt cost keeps the suite fast; production uses Settings.bcrypt_cost
TEST_BCRYPT_COST = 4

EVENT_DAY = datetime(2025, 9, 1, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = EVENT_DAY) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class Services:
    verifier: TokenVerifier
    allocator: VenueCapacityAllocator
    tickets: TicketIssuer
    eligibility: SpecialVoteEligibilityEvaluator
    machine: StageStateMachine
    check_in: CheckInProcessor
    statistics: RegistrationStatistics


def build_services(
    members: MemberRepository,
    sessions: VenueSessionRepository,
    dispatcher: Mock,
    designated_region: Region = Region.SOUTHERN,
) -> Services:
    verifier = TokenVerifier(
        repository=members,
        dispatcher=dispatcher,
        code_ttl_seconds=600,
        bcrypt_cost=TEST_BCRYPT_COST,
    )
    allocator = VenueCapacityAllocator(sessions=sessions)
    tickets = TicketIssuer(repository=members, dispatcher=dispatcher)
    eligibility = SpecialVoteEligibilityEvaluator(designated_region=designated_region)
    machine = StageStateMachine(
        repository=members,
        verifier=verifier,
        allocator=allocator,
        tickets=tickets,
        eligibility=eligibility,
    )
    return Services(
        verifier=verifier,
        allocator=allocator,
        tickets=tickets,
        eligibility=eligibility,
        machine=machine,
        check_in=CheckInProcessor(repository=members, allocator=allocator),
        statistics=RegistrationStatistics(members=members, sessions=sessions),
    )


def make_member(
    membership_number: str,
    region: Region = Region.SOUTHERN,
    stage: Stage = Stage.NOT_STARTED,
    **overrides,
) -> Member:
    """Build a member with a fresh token; keyword overrides go to Member."""
    fields = {
        "membership_number": membership_number,
        "name": f"Member {membership_number}",
        "region": region,
        "token": str(uuid.uuid4()),
        "email": f"{membership_number}@example.org",
        "stage": stage,
    }
    fields.update(overrides)
    return Member(**fields)


def willing(*venues: str) -> Preferences:
    return Preferences(preferred_venues=venues, attendance_willingness=Willingness.YES)


def store_known_code(repository: MemberRepository, token: str, code: str = "000111") -> None:
    """Put a known code in place of the random one issue_code would send."""
    assert repository.store_code(token, hash_code(code, TEST_BCRYPT_COST))
