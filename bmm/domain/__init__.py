"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for BMM registration:
stage progression, capacity-constrained venue assignment, ticketing and
check-in. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .capacity import VenueCapacityAllocator
from .eligibility import SpecialVoteEligibilityEvaluator, is_eligible
from .exceptions import (
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
from .models import (
    AttendanceOutcome,
    BulkAssignment,
    CheckInOutcome,
    Member,
    PreferenceAssignment,
    Preferences,
    SpecialVoteApplication,
    Ticket,
    VenueSession,
)
from .ports import (
    AttendanceDecision,
    CheckInResult,
    MemberRepository,
    NotificationDispatcher,
    Region,
    ReserveResult,
    SpecialVoteInterest,
    SpecialVoteState,
    Stage,
    VenueSessionRepository,
    VerifyResult,
    Willingness,
)
from .registration import StageStateMachine
from .statistics import RegistrationStatistics, Statistics
from .tickets import CheckInProcessor, TicketIssuer
from .verification import TokenVerifier

__all__ = [
    "AbsenceReasonRequired",
    "AttendanceDecision",
    "AttendanceOutcome",
    "BulkAssignment",
    "CapacityExceeded",
    "CheckInOutcome",
    "CheckInProcessor",
    "CheckInResult",
    "CodeExpired",
    "IllegalStageTransition",
    "InvalidCredentials",
    "InvalidSelection",
    "Member",
    "MemberNotFound",
    "MemberRepository",
    "NotEligible",
    "NotificationDispatcher",
    "PreferenceAssignment",
    "Preferences",
    "Region",
    "RegistrationError",
    "RegistrationStatistics",
    "ReserveResult",
    "SessionNotFound",
    "SpecialVoteApplication",
    "SpecialVoteEligibilityEvaluator",
    "SpecialVoteInterest",
    "SpecialVoteState",
    "Stage",
    "StageStateMachine",
    "Statistics",
    "Ticket",
    "TicketIssuer",
    "TokenVerifier",
    "VenueCapacityAllocator",
    "VenueSession",
    "VenueSessionRepository",
    "VerifyResult",
    "Willingness",
    "is_eligible",
]
