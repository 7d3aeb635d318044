"""
Console notification dispatcher - Implements NotificationDispatcher protocol.

This module provides a console-based implementation of the domain's
dispatcher port, logging verification codes and tickets to stdout for
demo purposes. Delivery over email or SMS is handled outside this service.
"""

import logging

from bmm.domain.models import Member, Ticket

logger = logging.getLogger(__name__)


class ConsoleNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def code_issued(self, member: Member, code: str) -> None:
        """
        Log the verification code (simulates email/SMS delivery).

        The code is logged at INFO level to be visible in docker-compose logs.

        Args:
            member: Member the code was issued to
            code: 6-digit verification code
        """
        logger.info("[VERIFICATION] Member: %s Code: %s", member.membership_number, code)

    def ticket_ready(self, member: Member, ticket: Ticket) -> None:
        logger.info(
            "[TICKET] Member: %s Credential: %s", member.membership_number, ticket.credential
        )
