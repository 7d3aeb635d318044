"""Read-only registration statistics for the admin dashboard."""

from collections import Counter
from dataclasses import dataclass, field

from .models import VenueSession
from .ports import (
    AttendanceDecision,
    MemberRepository,
    Region,
    SpecialVoteState,
    Stage,
    VenueSessionRepository,
)


@dataclass(frozen=True)
class RegionStats:
    members: int = 0
    attending: int = 0
    not_attending: int = 0
    special_votes_requested: int = 0


@dataclass(frozen=True)
class SessionStats:
    session: VenueSession

    @property
    def utilization(self) -> float:
        if self.session.capacity == 0:
            return 0.0
        return self.session.reserved / self.session.capacity


@dataclass(frozen=True)
class Statistics:
    total_members: int
    by_stage: dict[Stage, int] = field(default_factory=dict)
    by_region: dict[Region, RegionStats] = field(default_factory=dict)
    sessions: list[SessionStats] = field(default_factory=list)


@dataclass
class RegistrationStatistics:
    members: MemberRepository
    sessions: VenueSessionRepository

    def compute(self) -> Statistics:
        members = self.members.list_members()
        stages = Counter(m.stage for m in members)

        by_region = {}
        for region in Region:
            in_region = [m for m in members if m.region == region]
            by_region[region] = RegionStats(
                members=len(in_region),
                attending=sum(m.attendance == AttendanceDecision.ATTENDING for m in in_region),
                not_attending=sum(
                    m.attendance == AttendanceDecision.NOT_ATTENDING for m in in_region
                ),
                special_votes_requested=sum(
                    m.special_vote_state != SpecialVoteState.NONE for m in in_region
                ),
            )

        return Statistics(
            total_members=len(members),
            by_stage={stage: stages.get(stage, 0) for stage in Stage},
            by_region=by_region,
            sessions=[SessionStats(s) for s in self.sessions.list_sessions()],
        )
