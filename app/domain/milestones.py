"""
Streak milestone configuration

One table per path archetype, keyed by progression level. The shipped
reward tuples are configuration data, not derivable from a formula; the
documented `2 * level + 1` rule is only used to validate the table.
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Dict, Iterable, List, Optional

import structlog

from app.domain.models import MilestoneConfig, MilestoneRewards, SubMilestoneConfig

logger = structlog.get_logger(__name__)

MAX_LEVEL = 10

# Maximum total Will earnable from the streak system (L1-10)
MAX_TOTAL_WILL = Decimal("15.00")

WILL_QUANTUM = Decimal("0.01")

# Sub-milestones start at this level (day 7); day 14 joins at level 7
SUB_MILESTONE_MIN_LEVEL = 4
SUB_MILESTONE_LEVEL_DAYS = {
    7: 4,
    14: 7,
}


def floor_will(value: Decimal) -> Decimal:
    """Floor a Will amount to 2 decimal places"""
    return Decimal(value).quantize(WILL_QUANTUM, rounding=ROUND_FLOOR)


def calculate_milestone_days(level: int) -> int:
    """Documented milestone formula: (2 * level) + 1"""
    return (2 * level) + 1


def _milestone(level: int, days: int, coins: int, stars: int, will: str,
               ticket: Optional[str] = None) -> MilestoneConfig:
    return MilestoneConfig(
        level=level,
        milestone_days=days,
        rewards=MilestoneRewards(coins=coins, stars=stars, ticket=ticket),
        will_gain=Decimal(will),
    )


DEFAULT_MILESTONES: List[MilestoneConfig] = [
    _milestone(1, 3, 50, 0, "0.25"),
    _milestone(2, 5, 75, 1, "0.40"),
    _milestone(3, 7, 100, 0, "0.60"),
    _milestone(4, 9, 150, 0, "0.80"),
    _milestone(5, 11, 250, 2, "1.00"),
    _milestone(6, 13, 350, 0, "1.25"),
    _milestone(7, 15, 450, 0, "1.50"),
    _milestone(8, 17, 500, 3, "2.00"),
    _milestone(9, 19, 750, 0, "2.50"),
    _milestone(10, 21, 1000, 5, "3.00"),
]

DEFAULT_SUB_MILESTONE = SubMilestoneConfig(
    days=(7, 14),
    rewards=MilestoneRewards(coins=50, stars=0),
    will_gain=Decimal("0.15"),
)


class MilestoneTable:
    """Level-indexed milestone configuration for one path archetype"""

    def __init__(
        self,
        milestones: Iterable[MilestoneConfig],
        sub_milestone: SubMilestoneConfig = DEFAULT_SUB_MILESTONE,
        max_total_will: Decimal = MAX_TOTAL_WILL,
    ):
        self._by_level: Dict[int, MilestoneConfig] = {m.level: m for m in milestones}
        self.sub_milestone = sub_milestone
        self.max_total_will = max_total_will

    def __iter__(self):
        return iter(sorted(self._by_level.values(), key=lambda m: m.level))

    def __len__(self) -> int:
        return len(self._by_level)

    def get(self, level: int) -> Optional[MilestoneConfig]:
        return self._by_level.get(level)

    def milestone_days(self, level: int) -> Optional[int]:
        milestone = self.get(level)
        return milestone.milestone_days if milestone else None

    @property
    def max_level(self) -> int:
        return max(self._by_level) if self._by_level else 0

    def is_sub_milestone_day(self, streak: int, level: int) -> bool:
        """
        Day 7 for levels >= 4, day 14 for levels >= 7, never on the
        day the main milestone fires
        """
        if level < SUB_MILESTONE_MIN_LEVEL:
            return False

        milestone = self.get(level)
        if milestone is None:
            return False

        if streak == milestone.milestone_days:
            return False

        min_level = SUB_MILESTONE_LEVEL_DAYS.get(streak)
        if min_level is None or streak not in self.sub_milestone.days:
            return False
        return level >= min_level

    def sub_milestones_for_level(self, level: int) -> int:
        """Number of sub-milestone days reachable before the level's milestone"""
        milestone = self.get(level)
        if milestone is None:
            return 0
        return sum(
            1 for day in range(1, milestone.milestone_days)
            if self.is_sub_milestone_day(day, level)
        )

    def total_will_from_milestones(self) -> Decimal:
        """All Will obtainable from main and sub-milestones, levels 1..N"""
        total = Decimal("0")
        for milestone in self:
            total += milestone.will_gain
            total += self.sub_milestones_for_level(milestone.level) * self.sub_milestone.will_gain
        return floor_will(total)


_tables: Dict[str, MilestoneTable] = {
    "default": MilestoneTable(DEFAULT_MILESTONES),
}


def register_milestone_table(archetype: str, table: MilestoneTable) -> None:
    """Register the milestone table used by a path archetype"""
    _tables[archetype] = table
    logger.info("Milestone table registered", archetype=archetype, levels=len(table))


def get_milestone_table(archetype: Optional[str] = None) -> MilestoneTable:
    """Table for the archetype, falling back to the default table"""
    if archetype and archetype in _tables:
        return _tables[archetype]
    return _tables["default"]


def validate_milestone_formula(table: Optional[MilestoneTable] = None) -> bool:
    """Check the top level of the table against the documented formula"""
    table = table or get_milestone_table()
    level10 = table.milestone_days(MAX_LEVEL)
    expected = calculate_milestone_days(MAX_LEVEL)

    if level10 != expected:
        logger.error("Milestone formula validation failed", level10=level10, expected=expected)
        return False

    logger.info("Milestone formula validated", level10=level10)
    return True


def validate_will_cap(table: Optional[MilestoneTable] = None) -> bool:
    """Total obtainable Will must land within [12, cap]"""
    table = table or get_milestone_table()
    total_will = table.total_will_from_milestones()
    is_valid = Decimal("12") <= total_will <= table.max_total_will

    if not is_valid:
        logger.error("Will cap validation failed",
                     total_will=str(total_will),
                     max_total_will=str(table.max_total_will))
    else:
        logger.info("Will cap validated", total_will=str(total_will))

    return is_valid
