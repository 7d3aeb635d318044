"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

The stores are created during app lifespan startup and stored in
app.state: `members` (MemberRepository) and `sessions`
(VenueSessionRepository). Services are cheap dataclasses built per
request around them.
"""

from fastapi import Depends, Request

from bmm.adapters.notifications.console import ConsoleNotificationDispatcher
from bmm.config.settings import Settings, get_settings
from bmm.domain.capacity import VenueCapacityAllocator
from bmm.domain.eligibility import SpecialVoteEligibilityEvaluator
from bmm.domain.ports import MemberRepository, NotificationDispatcher, VenueSessionRepository
from bmm.domain.registration import StageStateMachine
from bmm.domain.statistics import RegistrationStatistics
from bmm.domain.tickets import CheckInProcessor, TicketIssuer
from bmm.domain.verification import TokenVerifier

# Module-level singleton - ConsoleNotificationDispatcher is stateless
_dispatcher = ConsoleNotificationDispatcher()


def get_member_repository(request: Request) -> MemberRepository:
    """Get the member store from app state."""
    return request.app.state.members


def get_session_repository(request: Request) -> VenueSessionRepository:
    """Get the venue session store from app state."""
    return request.app.state.sessions


def get_dispatcher() -> NotificationDispatcher:
    """Get console notification dispatcher (singleton)."""
    return _dispatcher


def get_token_verifier(
    repository: MemberRepository = Depends(get_member_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> TokenVerifier:
    return TokenVerifier(
        repository=repository,
        dispatcher=dispatcher,
        code_ttl_seconds=settings.code_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_allocator(
    sessions: VenueSessionRepository = Depends(get_session_repository),
) -> VenueCapacityAllocator:
    return VenueCapacityAllocator(sessions=sessions)


def get_ticket_issuer(
    repository: MemberRepository = Depends(get_member_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> TicketIssuer:
    return TicketIssuer(repository=repository, dispatcher=dispatcher)


def get_eligibility(
    settings: Settings = Depends(get_settings),
) -> SpecialVoteEligibilityEvaluator:
    return SpecialVoteEligibilityEvaluator(designated_region=settings.special_vote_region)


def get_state_machine(
    repository: MemberRepository = Depends(get_member_repository),
    verifier: TokenVerifier = Depends(get_token_verifier),
    allocator: VenueCapacityAllocator = Depends(get_allocator),
    tickets: TicketIssuer = Depends(get_ticket_issuer),
    eligibility: SpecialVoteEligibilityEvaluator = Depends(get_eligibility),
    settings: Settings = Depends(get_settings),
) -> StageStateMachine:
    """
    Create the stage state machine with injected dependencies.

    Wires together the repository, verifier, allocator, ticket issuer
    and eligibility evaluator for the domain service.
    """
    return StageStateMachine(
        repository=repository,
        verifier=verifier,
        allocator=allocator,
        tickets=tickets,
        eligibility=eligibility,
        max_preferred_venues=settings.max_preferred_venues,
    )


def get_check_in_processor(
    repository: MemberRepository = Depends(get_member_repository),
    allocator: VenueCapacityAllocator = Depends(get_allocator),
) -> CheckInProcessor:
    return CheckInProcessor(repository=repository, allocator=allocator)


def get_statistics(
    members: MemberRepository = Depends(get_member_repository),
    sessions: VenueSessionRepository = Depends(get_session_repository),
) -> RegistrationStatistics:
    return RegistrationStatistics(members=members, sessions=sessions)
