"""
Tests for targeting rules and tiered pricing.

These are pure functions; no database is needed.
"""
import pytest
from types import SimpleNamespace

from loyalty.services.eligibility import (
    MemberSnapshot,
    TargetingRules,
    is_eligible,
    filter_eligible,
    sub_type_allowed,
)
from loyalty.services.pricing import effective_price, price_list
from loyalty.models import Tier


def _reward(points_cost, tier_points_cost=None):
    return SimpleNamespace(points_cost=points_cost, tier_points_cost=tier_points_cost)


class TestTierTargeting:

    def test_empty_tier_list_allows_everyone(self):
        member = MemberSnapshot(tier='gold', member_type='farm', sub_type='owner')
        assert is_eligible(member, TargetingRules(target_tiers=[])) is True

    def test_tier_not_listed_is_denied(self):
        member = MemberSnapshot(tier='gold', member_type='farm', sub_type='owner')
        assert is_eligible(member, TargetingRules(target_tiers=['bronze', 'silver'])) is False

    def test_listed_tier_is_allowed(self):
        member = MemberSnapshot(tier='silver', member_type='farm', sub_type='owner')
        assert is_eligible(member, TargetingRules(target_tiers=['bronze', 'silver'])) is True

    def test_null_columns_behave_like_empty(self):
        member = MemberSnapshot(tier='bronze', member_type='other')
        item = SimpleNamespace(target_tiers=None, target_member_types=None, target_sub_types=None)
        assert is_eligible(member, item) is True

    def test_enum_tier_is_accepted(self):
        member = MemberSnapshot(tier=Tier.GOLD, member_type='farm', sub_type='owner')
        assert is_eligible(member, TargetingRules(target_tiers=['gold'])) is True


class TestMemberTypeTargeting:

    def test_member_type_listed(self):
        member = MemberSnapshot(tier='bronze', member_type='veterinarian', sub_type='livestock')
        assert is_eligible(member, TargetingRules(target_member_types=['veterinarian'])) is True

    def test_member_type_not_listed(self):
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type='owner')
        assert is_eligible(member, TargetingRules(target_member_types=['veterinarian'])) is False

    def test_all_checks_must_pass(self):
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type='owner')
        rules = TargetingRules(target_tiers=['gold'], target_member_types=['farm'])
        assert is_eligible(member, rules) is False


class TestSubTypeTargeting:

    def test_sub_type_listed_for_member_type(self):
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type='owner')
        rules = TargetingRules(target_sub_types={'farm': ['owner', 'farm_manager']})
        assert is_eligible(member, rules) is True

    def test_sub_type_not_listed_for_member_type(self):
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type='animal_husbandry')
        rules = TargetingRules(target_sub_types={'farm': ['owner']})
        assert is_eligible(member, rules) is False

    def test_other_member_types_are_not_filtered(self):
        member = MemberSnapshot(tier='bronze', member_type='veterinarian', sub_type='hospital_clinic')
        rules = TargetingRules(target_sub_types={'farm': ['owner']})
        assert is_eligible(member, rules) is True

    def test_empty_list_for_member_type_allows_all(self):
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type='admin')
        rules = TargetingRules(target_sub_types={'farm': []})
        assert is_eligible(member, rules) is True

    def test_missing_sub_type_is_denied(self):
        """A member whose sub-type cannot be resolved fails a sub-type restriction."""
        member = MemberSnapshot(tier='bronze', member_type='farm', sub_type=None)
        rules = TargetingRules(target_sub_types={'farm': ['owner']})
        assert sub_type_allowed(member, rules) is False
        assert is_eligible(member, rules) is False

    def test_sponsor_employee_sub_type(self):
        member = MemberSnapshot(tier='bronze', member_type='company_employee', sub_type='elanco')
        rules = TargetingRules(target_sub_types={'company_employee': ['elanco']})
        assert is_eligible(member, rules) is True


class TestFilterEligible:

    def test_filter_keeps_order(self):
        member = MemberSnapshot(tier='silver', member_type='farm', sub_type='owner')
        items = [
            TargetingRules(target_tiers=['silver']),
            TargetingRules(target_tiers=['gold']),
            TargetingRules(),
            TargetingRules(target_member_types=['farm']),
        ]
        assert filter_eligible(member, items) == [items[0], items[2], items[3]]


class TestProfileSnapshot:

    def test_snapshot_from_farm_profile(self, make_member):
        profile = make_member(sub_type='farm_manager')
        snapshot = MemberSnapshot.from_profile(profile)
        assert snapshot == MemberSnapshot(tier='bronze', member_type='farm', sub_type='farm_manager')

    def test_sponsor_employee_reports_sponsor_sub_type(self, make_member):
        profile = make_member(member_type='company_employee', sub_type='veterinary_distribution',
                              is_elanco=True)
        assert profile.sub_type == 'elanco'

    def test_member_without_detail_has_no_sub_type(self, make_member):
        profile = make_member(member_type='livestock_shop')
        assert profile.sub_type is None


class TestEffectivePrice:

    def test_tier_override_price(self):
        reward = _reward(500, {'gold': 300})
        assert effective_price(reward, 'gold') == 300

    def test_flat_price_without_override(self):
        reward = _reward(500, {'gold': 300})
        assert effective_price(reward, 'silver') == 500

    def test_no_tier_prices_at_all(self):
        assert effective_price(_reward(250, None), 'platinum') == 250

    def test_zero_override_is_honored(self):
        """A configured price of 0 is a free reward, not a missing entry."""
        assert effective_price(_reward(250, {'platinum': 0}), 'platinum') == 0

    def test_enum_tier(self):
        assert effective_price(_reward(500, {'gold': 300}), Tier.GOLD) == 300

    @pytest.mark.parametrize('tier,expected', [
        ('bronze', 400), ('silver', 350), ('gold', 400), ('platinum', 200),
    ])
    def test_prices_are_not_interpolated(self, tier, expected):
        reward = _reward(400, {'silver': 350, 'platinum': 200})
        assert effective_price(reward, tier) == expected

    def test_price_list(self):
        assert price_list(_reward(500, {'gold': '300'})) == {
            'points_cost': 500,
            'tier_points_cost': {'gold': 300},
        }
