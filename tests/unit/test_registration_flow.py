"""
End-to-end registration flows through the domain services.

Covers a member walking the whole happy path to check-in and two
members racing for the last seat of a venue.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from bmm.adapters.repository.memory import InMemoryRegistrationStore
from bmm.domain.exceptions import CapacityExceeded, NotEligible
from bmm.domain.models import Preferences, SpecialVoteApplication
from bmm.domain.ports import CheckInResult, Region, Stage, Willingness
from tests.support import EVENT_DAY, Services, make_member, store_known_code

VENUE = "Queenstown Memorial Centre"


def test_member_registers_and_checks_in(
    services: Services, store: InMemoryRegistrationStore
) -> None:
    session = store.add_session(VENUE, "1 Memorial St", Region.SOUTHERN, EVENT_DAY, 1)
    member = make_member("M123", region=Region.SOUTHERN)
    store.add_member(member)
    store_known_code(store, member.token, "000111")

    assert services.verifier.verify(member.token, "M123", "000111").stage == Stage.VERIFIED

    submitted = services.machine.submit_preferences(
        member.token, Preferences((VENUE,), attendance_willingness=Willingness.YES)
    )
    assert submitted.stage == Stage.PREFERENCES_SUBMITTED

    assigned = services.machine.assign_venue("M123", session.id)
    assert assigned.stage == Stage.VENUE_ASSIGNED
    assert store.get_session(session.id).reserved == 1

    outcome = services.machine.confirm_attendance(member.token, True)
    assert outcome.member.stage == Stage.ATTENDANCE_CONFIRMED
    ticket = outcome.ticket
    assert ticket is not None

    assert services.check_in.check_in(ticket.credential).result == CheckInResult.SUCCESS
    assert services.check_in.check_in(ticket.credential).result == CheckInResult.ALREADY_USED
    assert store.get("M123").stage == Stage.CHECKED_IN


def test_two_members_race_for_last_seat(
    services: Services, store: InMemoryRegistrationStore
) -> None:
    session = store.add_session(VENUE, "1 Memorial St", Region.SOUTHERN, EVENT_DAY, 1)
    for number in ("M201", "M202"):
        store.add_member(
            make_member(
                number,
                stage=Stage.PREFERENCES_SUBMITTED,
                preferences=Preferences((VENUE,)),
            )
        )
    barrier = threading.Barrier(2)

    def assign(number: str) -> str:
        barrier.wait()
        try:
            services.machine.assign_venue(number, session.id)
        except CapacityExceeded:
            return "full"
        return "assigned"

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(assign, ["M201", "M202"]))

    assert sorted(results) == ["assigned", "full"]
    assert store.get_session(session.id).reserved == 1
    stages = sorted(store.get(n).stage.value for n in ("M201", "M202"))
    assert stages == [Stage.PREFERENCES_SUBMITTED.value, Stage.VENUE_ASSIGNED.value]


@pytest.mark.parametrize("region", [Region.NORTHERN, Region.CENTRAL])
def test_declined_member_outside_designated_region_gets_no_special_vote(
    services: Services, store: InMemoryRegistrationStore, region: Region
) -> None:
    member = make_member("M301", region=region, stage=Stage.ATTENDANCE_DECLINED)
    store.add_member(member)

    with pytest.raises(NotEligible):
        services.machine.request_special_vote(
            member.token, SpecialVoteApplication("Away", "", "021 555 0101")
        )
