"""Tests for the milestone table and its validators."""
from decimal import Decimal

from app.domain.milestones import (
    DEFAULT_MILESTONES, MAX_LEVEL, MilestoneTable, calculate_milestone_days,
    get_milestone_table, register_milestone_table, validate_milestone_formula,
    validate_will_cap
)


def test_default_table_has_ten_levels():
    table = get_milestone_table()

    assert len(table) == MAX_LEVEL
    assert [m.milestone_days for m in table] == [3, 5, 7, 9, 11, 13, 15, 17, 19, 21]


def test_formula_matches_every_level():
    for milestone in get_milestone_table():
        assert milestone.milestone_days == calculate_milestone_days(milestone.level)


def test_level_ten_rewards():
    milestone = get_milestone_table().get(10)

    assert milestone.rewards.coins == 1000
    assert milestone.rewards.stars == 5
    assert milestone.will_gain == Decimal("3.00")


def test_sub_milestone_counts_per_level():
    table = get_milestone_table()

    assert [table.sub_milestones_for_level(level) for level in range(1, 11)] == [
        0, 0, 0, 1, 1, 1, 2, 2, 2, 2
    ]


def test_total_obtainable_will_is_within_cap():
    table = get_milestone_table()

    assert table.total_will_from_milestones() == Decimal("14.95")
    assert validate_will_cap() is True
    assert validate_milestone_formula() is True


def test_validators_flag_broken_tables():
    broken = MilestoneTable(DEFAULT_MILESTONES[:9])

    assert validate_milestone_formula(broken) is False
    assert validate_will_cap(MilestoneTable(DEFAULT_MILESTONES[:3])) is False


def test_unknown_archetype_falls_back_to_default():
    assert get_milestone_table("does-not-exist") is get_milestone_table()


def test_registered_archetype_table_is_used():
    table = MilestoneTable(DEFAULT_MILESTONES[:5])
    register_milestone_table("sprint", table)

    assert get_milestone_table("sprint") is table
    assert get_milestone_table("sprint").max_level == 5
