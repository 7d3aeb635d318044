"""Unit tests for special vote eligibility."""

import pytest

from bmm.domain.eligibility import SpecialVoteEligibilityEvaluator, is_eligible
from bmm.domain.ports import Region, Stage
from tests.support import make_member


@pytest.mark.parametrize(
    ("region", "stage", "expected"),
    [
        (Region.SOUTHERN, Stage.ATTENDANCE_DECLINED, True),
        (Region.SOUTHERN, Stage.VENUE_ASSIGNED, False),
        (Region.SOUTHERN, Stage.ATTENDANCE_CONFIRMED, False),
        (Region.SOUTHERN, Stage.NOT_STARTED, False),
        (Region.NORTHERN, Stage.ATTENDANCE_DECLINED, False),
        (Region.CENTRAL, Stage.ATTENDANCE_DECLINED, False),
    ],
)
def test_is_eligible(region: Region, stage: Stage, expected: bool) -> None:
    member = make_member("800001", region=region, stage=stage)

    assert is_eligible(member, Region.SOUTHERN) is expected
    assert SpecialVoteEligibilityEvaluator().is_eligible(member) is expected


def test_designated_region_is_configurable() -> None:
    evaluator = SpecialVoteEligibilityEvaluator(designated_region=Region.CENTRAL)
    member = make_member("800002", region=Region.CENTRAL, stage=Stage.ATTENDANCE_DECLINED)

    assert evaluator.is_eligible(member)
    assert evaluator.offers_special_vote(Region.CENTRAL)
    assert not evaluator.offers_special_vote(Region.SOUTHERN)
