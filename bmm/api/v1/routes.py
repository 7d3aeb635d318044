"""
API v1 routes.

Defines REST endpoints for BMM registration: member self-service under
/v1, venue gate check-in, and administrative operations under /v1/admin.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Response, status

from bmm.api.dependencies import (
    get_allocator,
    get_check_in_processor,
    get_state_machine,
    get_statistics,
    get_ticket_issuer,
    get_token_verifier,
)
from bmm.api.models import (
    AttendanceRequest,
    AssignmentRequest,
    AttendanceResponse,
    BulkAssignmentRequest,
    BulkAssignmentResponse,
    CheckInRequest,
    CheckInResponse,
    CodeRequest,
    CodeResponse,
    ErrorResponse,
    MemberResponse,
    PreferenceAssignmentRequest,
    PreferenceAssignmentResponse,
    PreferencesRequest,
    SessionResponse,
    SpecialVoteDecisionRequest,
    SpecialVoteRequest,
    StatisticsResponse,
    TicketResponse,
    VerifyRequest,
)
from bmm.config.settings import Settings, get_settings
from bmm.domain.capacity import VenueCapacityAllocator
from bmm.domain.exceptions import (
    AbsenceReasonRequired,
    CapacityExceeded,
    CodeExpired,
    IllegalStageTransition,
    InvalidCredentials,
    InvalidSelection,
    MemberNotFound,
    NotEligible,
    RegistrationError,
    SessionNotFound,
)
from bmm.domain.models import SpecialVoteApplication
from bmm.domain.ports import CheckInResult, Region
from bmm.domain.registration import StageStateMachine
from bmm.domain.statistics import RegistrationStatistics
from bmm.domain.tickets import CheckInProcessor, TicketIssuer
from bmm.domain.verification import TokenVerifier

router = APIRouter(tags=["v1"])

# Status code and client-facing detail per domain error.
# A detail of None passes the exception message through.
_ERRORS: dict[type[RegistrationError], tuple[int, str | None]] = {
    MemberNotFound: (status.HTTP_404_NOT_FOUND, "Member not found"),
    SessionNotFound: (status.HTTP_404_NOT_FOUND, "Session not found"),
    InvalidCredentials: (status.HTTP_401_UNAUTHORIZED, "Invalid membership number or code"),
    CodeExpired: (status.HTTP_410_GONE, "Verification code expired"),
    IllegalStageTransition: (status.HTTP_409_CONFLICT, None),
    CapacityExceeded: (status.HTTP_409_CONFLICT, None),
    InvalidSelection: (status.HTTP_422_UNPROCESSABLE_CONTENT, None),
    AbsenceReasonRequired: (status.HTTP_422_UNPROCESSABLE_CONTENT, None),
    NotEligible: (status.HTTP_403_FORBIDDEN, "Special vote not available"),
}


def http_error(exc: RegistrationError) -> HTTPException:
    """Translate a domain error into the HTTPException a route raises."""
    status_code, detail = _ERRORS.get(
        type(exc), (status.HTTP_400_BAD_REQUEST, "Registration failed")
    )
    return HTTPException(status_code=status_code, detail=detail or str(exc))


_MEMBER_ERRORS = {404: {"model": ErrorResponse, "description": "Unknown token"}}


@router.post(
    "/verification-code",
    response_model=CodeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_MEMBER_ERRORS,
    summary="Send a verification code",
    description="Issue a fresh 6-digit code to the member bound to the token. "
    "Any previously issued code stops working.",
)
def issue_code(
    request_data: CodeRequest,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> CodeResponse:
    try:
        verifier.issue_code(request_data.token)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return CodeResponse(
        message="Verification code sent",
        expires_in_seconds=verifier.code_ttl_seconds,
    )


@router.post(
    "/verify",
    response_model=MemberResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid membership number or code"},
        404: {"model": ErrorResponse, "description": "Unknown token"},
        410: {"model": ErrorResponse, "description": "Code expired"},
    },
    summary="Verify member identity",
)
def verify(
    request_data: VerifyRequest,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> MemberResponse:
    """
    Verify identity with membership number and verification code.

    - **token**: Member access token from the invitation link
    - **membership_number**: Membership number as printed on the card
    - **code**: 6-digit verification code
    """
    try:
        member = verifier.verify(
            request_data.token, request_data.membership_number, request_data.code
        )
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.get(
    "/members/{token}",
    response_model=MemberResponse,
    responses=_MEMBER_ERRORS,
    summary="Current registration snapshot",
)
def get_member(
    token: str,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> MemberResponse:
    try:
        member = verifier.resolve(token)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.get(
    "/members/{token}/ticket",
    response_model=TicketResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "No live ticket"},
    },
    summary="Check-in ticket",
    description="Read the ticket issued when attendance was confirmed.",
)
def get_ticket(
    token: str,
    verifier: TokenVerifier = Depends(get_token_verifier),
    tickets: TicketIssuer = Depends(get_ticket_issuer),
) -> TicketResponse:
    try:
        member = verifier.resolve(token)
        ticket = tickets.current(member.membership_number)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return TicketResponse.from_domain(ticket)


@router.post(
    "/preferences",
    response_model=MemberResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "Not at a stage accepting preferences"},
        422: {"model": ErrorResponse, "description": "Invalid venue selection"},
    },
    summary="Submit venue preferences",
)
def submit_preferences(
    request_data: PreferencesRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> MemberResponse:
    try:
        member = machine.submit_preferences(request_data.token, request_data.to_domain())
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.post(
    "/attendance",
    response_model=AttendanceResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "No venue assigned"},
        422: {"model": ErrorResponse, "description": "Absence reason required"},
    },
    summary="Confirm or decline attendance",
    description="Confirming issues the check-in ticket; declining releases the seat.",
)
def confirm_attendance(
    request_data: AttendanceRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> AttendanceResponse:
    try:
        outcome = machine.confirm_attendance(
            request_data.token, request_data.is_attending, request_data.absence_reason
        )
    except RegistrationError as exc:
        raise http_error(exc) from None
    return AttendanceResponse.from_domain(outcome)


@router.post(
    "/special-vote",
    response_model=MemberResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not eligible"},
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "Already decided"},
    },
    summary="Apply for a special vote",
)
def request_special_vote(
    request_data: SpecialVoteRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> MemberResponse:
    application = SpecialVoteApplication(
        eligibility_reason=request_data.eligibility_reason,
        evidence=request_data.evidence,
        contact_phone=request_data.contact_phone,
    )
    try:
        member = machine.request_special_vote(request_data.token, application)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.post(
    "/check-in",
    response_model=CheckInResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown credential"},
        409: {"model": CheckInResponse, "description": "Ticket already used"},
    },
    summary="Check in at the venue",
)
def check_in(
    request_data: CheckInRequest,
    response: Response,
    processor: CheckInProcessor = Depends(get_check_in_processor),
) -> CheckInResponse:
    """
    Consume a ticket credential.

    A second scan of the same ticket answers 409 with the original
    check-in time.
    """
    outcome = processor.check_in(request_data.credential)
    if outcome.result == CheckInResult.UNKNOWN:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown ticket")
    if outcome.result == CheckInResult.ALREADY_USED:
        response.status_code = status.HTTP_409_CONFLICT
    return CheckInResponse.from_domain(outcome)


@router.get(
    "/sessions",
    response_model=list[SessionResponse],
    summary="Venue session directory",
)
def list_sessions(
    region: Region | None = None,
    allocator: VenueCapacityAllocator = Depends(get_allocator),
) -> list[SessionResponse]:
    return [SessionResponse.from_domain(s) for s in allocator.list_sessions(region)]


@router.post(
    "/admin/members/{membership_number}/assignment",
    response_model=MemberResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown member or session"},
        409: {"model": ErrorResponse, "description": "Session full or stage conflict"},
        422: {"model": ErrorResponse, "description": "Member unwilling or wrong region"},
    },
    summary="Assign one member to a session",
)
def assign_member(
    membership_number: str,
    request_data: AssignmentRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> MemberResponse:
    try:
        member = machine.assign_venue(membership_number, request_data.session_id)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.post(
    "/admin/assignments",
    response_model=BulkAssignmentResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Assign members to a venue session",
    description="Session date and time are read in the event timezone. "
    "Each member is assigned independently; failures are listed per member.",
)
def assign_bulk(
    request_data: BulkAssignmentRequest,
    machine: StageStateMachine = Depends(get_state_machine),
    settings: Settings = Depends(get_settings),
) -> BulkAssignmentResponse:
    starts_at = datetime.combine(
        request_data.session_date,
        request_data.session_time,
        tzinfo=ZoneInfo(settings.event_timezone),
    )
    try:
        outcome = machine.assign_venue_bulk(
            request_data.membership_numbers, request_data.venue, starts_at
        )
    except RegistrationError as exc:
        raise http_error(exc) from None
    return BulkAssignmentResponse.from_domain(outcome)


@router.post(
    "/admin/assignments/by-preference",
    response_model=PreferenceAssignmentResponse,
    summary="Assign waiting members to their first preferred venue",
    description="Each member gets the earliest session of their first choice "
    "with a free seat. Members whose first choice is full are listed as failed.",
)
def assign_by_preference(
    request_data: PreferenceAssignmentRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> PreferenceAssignmentResponse:
    outcome = machine.assign_by_preference(request_data.region)
    return PreferenceAssignmentResponse.from_domain(outcome)


@router.post(
    "/admin/special-votes/{membership_number}/decision",
    response_model=MemberResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown member"},
        409: {"model": ErrorResponse, "description": "No pending request"},
    },
    summary="Decide a special vote request",
)
def decide_special_vote(
    membership_number: str,
    request_data: SpecialVoteDecisionRequest,
    machine: StageStateMachine = Depends(get_state_machine),
) -> MemberResponse:
    try:
        member = machine.decide_special_vote(membership_number, request_data.approved)
    except RegistrationError as exc:
        raise http_error(exc) from None
    return MemberResponse.from_domain(member)


@router.get(
    "/admin/statistics",
    response_model=StatisticsResponse,
    summary="Registration statistics",
)
def statistics(
    stats: RegistrationStatistics = Depends(get_statistics),
) -> StatisticsResponse:
    return StatisticsResponse.from_domain(stats.compute())
