"""
Venue capacity allocator - atomic seat reservation per venue session.

The reserved counter of a session is the only shared mutable resource
in the system. It changes only through the repository's conditional
increment/decrement, so `reserved <= capacity` holds across any number
of concurrent callers and service instances. Contention fails fast with
CAPACITY_EXCEEDED; nothing waits or retries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .exceptions import SessionNotFound
from .models import VenueSession
from .ports import Region, ReserveResult, VenueSessionRepository

logger = logging.getLogger(__name__)


@dataclass
class VenueCapacityAllocator:
    """Session directory plus compare-and-increment reservations."""

    sessions: VenueSessionRepository

    def reserve(self, session_id: int) -> ReserveResult:
        if self.sessions.reserve(session_id):
            return ReserveResult.RESERVED
        logger.info("Session %s is full", session_id)
        return ReserveResult.CAPACITY_EXCEEDED

    def release(self, session_id: int) -> None:
        self.sessions.release(session_id)

    def get_session(self, session_id: int) -> VenueSession:
        """
        Raises:
            SessionNotFound: If the session does not exist
        """
        session = self.sessions.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"session {session_id}")
        return session

    def find_session(self, venue: str, starts_at: datetime) -> VenueSession:
        """
        Look up a session by venue name and start time.

        Raises:
            SessionNotFound: If no session matches
        """
        session = self.sessions.find_session(venue.strip(), starts_at)
        if session is None:
            raise SessionNotFound(f"{venue} at {starts_at.isoformat()}")
        return session

    def list_sessions(self, region: Region | None = None) -> list[VenueSession]:
        return self.sessions.list_sessions(region)

    def venues_in_region(self, region: Region) -> set[str]:
        return {session.venue for session in self.sessions.list_sessions(region)}
