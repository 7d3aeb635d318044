"""
Token verifier - member identity resolution and one-time codes.

A member's access token is long-lived and opaque; the verification
code is short-lived and single use. Consuming a code and advancing
NOT_STARTED -> VERIFIED happen in one repository transaction, so a
verification can never be replayed.
"""

import logging
from dataclasses import dataclass

from .codes import generate_code, hash_code
from .exceptions import CodeExpired, InvalidCredentials, MemberNotFound
from .models import Member
from .ports import MemberRepository, NotificationDispatcher, VerifyResult

logger = logging.getLogger(__name__)


@dataclass
class TokenVerifier:
    """Resolves access tokens and verifies one-time codes."""

    repository: MemberRepository
    dispatcher: NotificationDispatcher
    code_ttl_seconds: int = 600
    bcrypt_cost: int = 10

    def resolve(self, token: str) -> Member:
        """
        Look up the member bound to an access token.

        Raises:
            MemberNotFound: If no member holds the token
        """
        member = self.repository.get_by_token(token.strip())
        if member is None:
            raise MemberNotFound("unknown token")
        return member

    def issue_code(self, token: str) -> None:
        """
        Generate a fresh code for the member and hand it to the dispatcher.

        Any previously active code stops working.

        Raises:
            MemberNotFound: If no member holds the token
        """
        member = self.resolve(token)
        code = generate_code()
        if not self.repository.store_code(member.token, hash_code(code, self.bcrypt_cost)):
            raise MemberNotFound("unknown token")

        logger.info("Verification code issued for member %s", member.membership_number)
        try:
            self.dispatcher.code_issued(member, code)
        except Exception:
            logger.exception(
                "Dispatcher failed for code issued to %s", member.membership_number
            )

    def verify(self, token: str, membership_number: str, code: str) -> Member:
        """
        Verify a membership number and code against the token's member.

        Args:
            token: Member access token
            membership_number: Membership number typed by the member
            code: 6-digit verification code

        Returns:
            Member snapshot after the code was consumed

        Raises:
            MemberNotFound: Unknown token
            InvalidCredentials: Number or code mismatch, or no active code
            CodeExpired: Code matched but is older than the TTL
        """
        result, member = self.repository.verify_code(
            token.strip(), membership_number, code, self.code_ttl_seconds
        )

        if result == VerifyResult.SUCCESS and member is not None:
            logger.info("Member %s verified (stage %s)", member.membership_number, member.stage.value)
            return member
        if result == VerifyResult.NOT_FOUND:
            raise MemberNotFound("unknown token")
        if result == VerifyResult.EXPIRED:
            raise CodeExpired("verification code expired")
        raise InvalidCredentials("invalid membership number or code")
