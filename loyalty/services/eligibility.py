"""
Eligibility evaluator.

Decides whether a targetable item (content, mission, reward) is visible to
a member. Three checks, AND-ed, each allowing everyone when its rule set
is empty:

1. Tier: `target_tiers` empty or containing the member's tier.
2. Member type: `target_member_types` empty or containing the member's type.
3. Sub-type: when `target_sub_types[member_type]` is non-empty the member's
   sub-type must be listed. A member without a resolvable sub-type is
   denied. Types with no entry are not filtered further.

Listing endpoints take one `MemberSnapshot` per request and evaluate every
row against it. Mutating services call `is_eligible` again inside their
transaction.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class MemberSnapshot:
    """Targeting attributes of a member at one point in time."""
    tier: str
    member_type: str
    sub_type: Optional[str] = None

    @classmethod
    def from_profile(cls, profile) -> 'MemberSnapshot':
        return cls(tier=profile.tier, member_type=profile.member_type, sub_type=profile.sub_type)


@dataclass(frozen=True)
class TargetingRules:
    """Targeting rule set, same shape as the item columns."""
    target_tiers: List[str] = field(default_factory=list)
    target_member_types: List[str] = field(default_factory=list)
    target_sub_types: Dict[str, List[str]] = field(default_factory=dict)


def _value(attr) -> Optional[str]:
    # Accept str enums as well as plain strings
    if attr is None:
        return None
    return getattr(attr, 'value', attr)


def tier_allowed(member, item) -> bool:
    tiers = item.target_tiers or []
    return not tiers or _value(member.tier) in tiers


def member_type_allowed(member, item) -> bool:
    member_types = item.target_member_types or []
    return not member_types or _value(member.member_type) in member_types


def sub_type_allowed(member, item) -> bool:
    rules = item.target_sub_types or {}
    allowed = rules.get(_value(member.member_type)) or []
    if not allowed:
        return True
    sub_type = _value(member.sub_type)
    if not sub_type:
        return False
    return sub_type in allowed


def is_eligible(member, item) -> bool:
    """
    Whether `item` is visible to `member`.

    Args:
        member: anything with `tier`, `member_type` and `sub_type`
            (a MemberSnapshot or a Profile)
        item: anything with the targeting columns
            (Content, Mission, Reward or TargetingRules)
    """
    return (
        tier_allowed(member, item)
        and member_type_allowed(member, item)
        and sub_type_allowed(member, item)
    )


def filter_eligible(member: MemberSnapshot, items: Iterable[Any]) -> List[Any]:
    """Keep the items `member` may see, preserving order."""
    return [item for item in items if is_eligible(member, item)]
