"""Special vote eligibility - pure decision over member attributes."""

from dataclasses import dataclass

from .models import Member
from .ports import Region, Stage


def is_eligible(member: Member, designated_region: Region) -> bool:
    """
    A member may request a special vote only when they live in the
    designated region and have declined to attend in person.
    """
    return member.region == designated_region and member.stage == Stage.ATTENDANCE_DECLINED


@dataclass(frozen=True)
class SpecialVoteEligibilityEvaluator:
    designated_region: Region = Region.SOUTHERN

    def is_eligible(self, member: Member) -> bool:
        return is_eligible(member, self.designated_region)

    def offers_special_vote(self, region: Region) -> bool:
        return region == self.designated_region
