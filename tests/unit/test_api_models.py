"""
Unit tests for API request/response models.

Tests Pydantic model validation and conversion from domain objects.
"""

from datetime import date, time

import pytest
from pydantic import ValidationError

from bmm.api.models import (
    BulkAssignmentRequest,
    ErrorResponse,
    MemberResponse,
    PreferencesRequest,
    SessionResponse,
    SpecialVoteRequest,
    StatisticsResponse,
    VerifyRequest,
)
from bmm.domain.models import VenueSession
from bmm.domain.ports import Region, SpecialVoteInterest, Stage, Willingness
from bmm.domain.statistics import RegionStats, SessionStats, Statistics
from tests.support import EVENT_DAY, make_member, willing


class TestVerifyRequest:
    """Tests for VerifyRequest model."""

    def test_valid_request(self) -> None:
        request = VerifyRequest(token="tok", membership_number="100200", code="000111")
        assert request.code == "000111"

    @pytest.mark.parametrize("code", ["12345", "1234567", "12a456", ""])
    def test_code_must_be_six_digits(self, code: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            VerifyRequest(token="tok", membership_number="100200", code=code)
        assert "code" in str(exc_info.value)

    def test_missing_membership_number_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VerifyRequest(token="tok", code="000111")  # type: ignore[call-arg]


class TestPreferencesRequest:
    def test_to_domain(self) -> None:
        request = PreferencesRequest(
            token="tok",
            preferred_venues=["Dunedin Town Hall"],
            preferred_times=["morning"],
            attendance_willingness="yes",
            special_vote_interest="unsure",
        )

        preferences = request.to_domain()

        assert preferences.preferred_venues == ("Dunedin Town Hall",)
        assert preferences.preferred_times == ("morning",)
        assert preferences.attendance_willingness == Willingness.YES
        assert preferences.special_vote_interest == SpecialVoteInterest.UNSURE

    def test_invalid_willingness_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PreferencesRequest(
                token="tok", preferred_venues=["X"], attendance_willingness="maybe"
            )


class TestBulkAssignmentRequest:
    def test_parses_date_and_time(self) -> None:
        request = BulkAssignmentRequest(
            membership_numbers=["100200"],
            venue="Dunedin Town Hall",
            session_date="2025-09-01",
            session_time="10:30",
        )
        assert request.session_date == date(2025, 9, 1)
        assert request.session_time == time(10, 30)

    def test_requires_members(self) -> None:
        with pytest.raises(ValidationError):
            BulkAssignmentRequest(
                membership_numbers=[],
                venue="Dunedin Town Hall",
                session_date="2025-09-01",
                session_time="10:30",
            )


class TestSpecialVoteRequest:
    def test_all_application_fields_required(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            SpecialVoteRequest(
                token="tok", eligibility_reason="Shift work", contact_phone="021 555 0101"
            )
        assert "evidence" in str(exc_info.value)

    def test_blank_evidence_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SpecialVoteRequest(
                token="tok",
                eligibility_reason="Shift work",
                evidence="",
                contact_phone="021 555 0101",
            )


class TestResponses:
    def test_member_response_from_domain(self) -> None:
        member = make_member(
            "100200", stage=Stage.PREFERENCES_SUBMITTED, preferences=willing("Dunedin Town Hall")
        )

        body = MemberResponse.from_domain(member).model_dump(mode="json")

        assert body["membership_number"] == "100200"
        assert body["region"] == "Southern Region"
        assert body["stage"] == "preferences_submitted"
        assert body["preferences"]["preferred_venues"] == ["Dunedin Town Hall"]
        assert "token" not in body

    def test_session_response_includes_remaining(self) -> None:
        session = VenueSession(1, "Gore RSA", "", Region.SOUTHERN, EVENT_DAY, 10, 4)
        assert SessionResponse.from_domain(session).remaining == 6

    def test_statistics_keys_are_wire_values(self) -> None:
        session = VenueSession(1, "Gore RSA", "", Region.SOUTHERN, EVENT_DAY, 10, 4)
        stats = Statistics(
            total_members=1,
            by_stage={Stage.VERIFIED: 1},
            by_region={Region.SOUTHERN: RegionStats(members=1)},
            sessions=[SessionStats(session)],
        )

        body = StatisticsResponse.from_domain(stats).model_dump(mode="json")

        assert body["by_stage"] == {"verified": 1}
        assert body["by_region"]["Southern Region"]["members"] == 1
        assert body["sessions"][0]["utilization"] == pytest.approx(0.4)

    def test_error_response(self) -> None:
        assert ErrorResponse(detail="Member not found").detail == "Member not found"
