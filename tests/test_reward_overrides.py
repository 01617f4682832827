"""
Tests for mission reward overrides.
"""
from loyalty.services.eligibility import MemberSnapshot
from loyalty.services.reward_overrides import (
    MemberTypeOverride,
    TierOverride,
    parse_overrides,
    find_override,
    resolve_award,
)

FARM_OWNER_GOLD = MemberSnapshot(tier='gold', member_type='farm', sub_type='owner')
FARM_ADMIN_GOLD = MemberSnapshot(tier='gold', member_type='farm', sub_type='admin')
VET_BRONZE = MemberSnapshot(tier='bronze', member_type='veterinarian', sub_type='livestock')


class TestParseOverrides:

    def test_parses_both_kinds(self):
        rules = parse_overrides([
            {'type': 'member_type', 'value': 'farm', 'sub_type': 'owner', 'points': 200, 'coins': 5},
            {'type': 'tier', 'value': 'gold', 'points': 150},
        ])
        assert rules == [
            MemberTypeOverride(member_type='farm', sub_type='owner', points=200, coins=5),
            TierOverride(tier='gold', points=150, coins=0),
        ]

    def test_unknown_kind_is_skipped(self):
        assert parse_overrides([{'type': 'region', 'value': 'north', 'points': 10}]) == []

    def test_none_is_empty(self):
        assert parse_overrides(None) == []


class TestResolveAward:

    def test_no_overrides_uses_base(self):
        assert resolve_award(FARM_OWNER_GOLD, 100, 10, []) == (100, 10)

    def test_member_type_beats_tier(self):
        """Member-type rules win even when a tier rule is listed first."""
        raw = [
            {'type': 'tier', 'value': 'gold', 'points': 150, 'coins': 0},
            {'type': 'member_type', 'value': 'farm', 'points': 300, 'coins': 0},
        ]
        assert resolve_award(FARM_OWNER_GOLD, 100, 0, raw) == (300, 0)

    def test_sub_type_must_match(self):
        raw = [
            {'type': 'member_type', 'value': 'farm', 'sub_type': 'owner', 'points': 300, 'coins': 0},
            {'type': 'tier', 'value': 'gold', 'points': 150, 'coins': 0},
        ]
        assert resolve_award(FARM_OWNER_GOLD, 100, 0, raw) == (300, 0)
        assert resolve_award(FARM_ADMIN_GOLD, 100, 0, raw) == (150, 0)

    def test_first_matching_rule_wins(self):
        raw = [
            {'type': 'member_type', 'value': 'farm', 'points': 300, 'coins': 0},
            {'type': 'member_type', 'value': 'farm', 'points': 999, 'coins': 0},
        ]
        assert resolve_award(FARM_OWNER_GOLD, 100, 0, raw) == (300, 0)

    def test_overrides_replace_not_add(self):
        raw = [{'type': 'tier', 'value': 'bronze', 'points': 20, 'coins': 3}]
        assert resolve_award(VET_BRONZE, 100, 10, raw) == (20, 3)

    def test_no_match_uses_base(self):
        raw = [{'type': 'member_type', 'value': 'farm', 'points': 300, 'coins': 0}]
        assert resolve_award(VET_BRONZE, 100, 10, raw) == (100, 10)

    def test_find_override_returns_none_without_match(self):
        assert find_override(VET_BRONZE, [TierOverride(tier='gold', points=1, coins=1)]) is None
