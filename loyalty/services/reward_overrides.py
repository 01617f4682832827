"""
Mission reward overrides.

Stored as an ordered JSON list on the mission, parsed into two rule kinds:

    {"type": "member_type", "value": "farm", "sub_type": "owner", "points": 200, "coins": 0}
    {"type": "tier", "value": "gold", "points": 150, "coins": 10}

Member-type rules are tried first, then tier rules, each in the order they
were defined. The first rule that matches replaces the base award; rules
are never summed. A member-type rule carrying a `sub_type` only matches
members with that sub-type.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberTypeOverride:
    member_type: str
    points: int
    coins: int
    sub_type: Optional[str] = None

    def matches(self, member) -> bool:
        if getattr(member.member_type, 'value', member.member_type) != self.member_type:
            return False
        if self.sub_type:
            return getattr(member.sub_type, 'value', member.sub_type) == self.sub_type
        return True


@dataclass(frozen=True)
class TierOverride:
    tier: str
    points: int
    coins: int

    def matches(self, member) -> bool:
        return getattr(member.tier, 'value', member.tier) == self.tier


RewardOverride = Union[MemberTypeOverride, TierOverride]


def parse_overrides(raw) -> List[RewardOverride]:
    """Turn the stored JSON list into typed rules, dropping unknown kinds."""
    rules: List[RewardOverride] = []
    for entry in raw or []:
        kind = entry.get('type')
        points = int(entry.get('points') or 0)
        coins = int(entry.get('coins') or 0)
        if kind == 'member_type':
            rules.append(MemberTypeOverride(
                member_type=entry.get('value'),
                sub_type=entry.get('sub_type') or None,
                points=points,
                coins=coins,
            ))
        elif kind == 'tier':
            rules.append(TierOverride(tier=entry.get('value'), points=points, coins=coins))
        else:
            logger.warning(f"Ignoring reward override with unknown type {kind!r}")
    return rules


def find_override(member, rules: List[RewardOverride]) -> Optional[RewardOverride]:
    """First matching member-type rule, else first matching tier rule."""
    for rule in rules:
        if isinstance(rule, MemberTypeOverride) and rule.matches(member):
            return rule
    for rule in rules:
        if isinstance(rule, TierOverride) and rule.matches(member):
            return rule
    return None


def resolve_award(member, base_points: int, base_coins: int, raw_overrides) -> Tuple[int, int]:
    """(points, coins) a member earns, after applying overrides."""
    rule = find_override(member, parse_overrides(raw_overrides))
    if rule is None:
        return base_points or 0, base_coins or 0
    return rule.points, rule.coins
