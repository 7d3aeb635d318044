"""
Ticket issuance and venue check-in.

A ticket credential doubles as the check-in authorization and, for the
special vote region, as proof of voting eligibility, so it is random
rather than sequential. A member holds at most one live ticket and a
credential is consumed at most once.
"""

import logging
from dataclasses import dataclass

from .capacity import VenueCapacityAllocator
from .codes import generate_credential
from .exceptions import IllegalStageTransition, MemberNotFound
from .models import CheckInOutcome, Member, Ticket
from .ports import CheckInResult, MemberRepository, NotificationDispatcher, WriteStatus

logger = logging.getLogger(__name__)


@dataclass
class TicketIssuer:
    """Issues idempotent check-in credentials to confirmed members."""

    repository: MemberRepository
    dispatcher: NotificationDispatcher

    @staticmethod
    def new_credential() -> str:
        return generate_credential()

    def issue(self, membership_number: str) -> Ticket:
        """
        Return the member's live ticket, issuing one if none exists.

        Raises:
            MemberNotFound: Unknown membership number
            IllegalStageTransition: Member has not confirmed attendance
        """
        result = self.repository.issue_ticket(membership_number, self.new_credential())

        if result.status == WriteStatus.NOT_FOUND:
            raise MemberNotFound(membership_number)
        if result.status != WriteStatus.APPLIED or result.ticket is None:
            current = result.member.stage.value if result.member else "unknown"
            raise IllegalStageTransition("issue_ticket", current)

        if result.ticket_created and result.member is not None:
            self.announce(result.member, result.ticket)
        return result.ticket

    def current(self, membership_number: str) -> Ticket:
        """
        Look up the member's live ticket without issuing one.

        Raises:
            MemberNotFound: Unknown membership number
            IllegalStageTransition: Member holds no live ticket
        """
        member = self.repository.get(membership_number)
        if member is None:
            raise MemberNotFound(membership_number)

        ticket = None
        if member.ticket_credential is not None:
            ticket = self.repository.get_ticket(member.ticket_credential)
        if ticket is None or not ticket.is_live:
            raise IllegalStageTransition("get_ticket", member.stage.value)
        return ticket

    def announce(self, member: Member, ticket: Ticket) -> None:
        """Emit "ticket ready"; delivery failures never undo issuance."""
        logger.info("Ticket issued for member %s", member.membership_number)
        try:
            self.dispatcher.ticket_ready(member, ticket)
        except Exception:
            logger.exception("Dispatcher failed for ticket of %s", member.membership_number)


@dataclass
class CheckInProcessor:
    """Consumes ticket credentials at the venue gate."""

    repository: MemberRepository
    allocator: VenueCapacityAllocator

    def check_in(self, credential: str) -> CheckInOutcome:
        """
        Record a one-time attendance event for the ticket holder.

        Scanning the same ticket twice is normal operator behaviour and
        yields ALREADY_USED with the original timestamp.
        """
        result, ticket = self.repository.consume_ticket(credential.strip())

        if result == CheckInResult.UNKNOWN or ticket is None:
            logger.warning("Check-in with unknown credential")
            return CheckInOutcome(result=CheckInResult.UNKNOWN)

        session = None
        if ticket.session_id is not None:
            session = self.allocator.sessions.get_session(ticket.session_id)

        if result == CheckInResult.ALREADY_USED:
            logger.info("Ticket of member %s already used", ticket.membership_number)
        else:
            logger.info("Member %s checked in", ticket.membership_number)

        return CheckInOutcome(
            result=result,
            membership_number=ticket.membership_number,
            checked_in_at=ticket.consumed_at,
            session=session,
        )
