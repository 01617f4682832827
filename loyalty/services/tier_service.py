"""
Tier recalculation.

A member's tier is the highest tier whose `min_points` threshold their
`total_points` has reached. Thresholds come from the tier_settings table,
falling back to `DEFAULT_TIER_SETTINGS` from config when it is empty.

The ledger service recalculates the tier inside every points mutation so
eligibility and pricing never see a stale tier.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from flask import current_app
from ..extensions import db
from ..models import Profile, TierSetting
from ..utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class TierThreshold:
    tier: str
    min_points: int
    max_points: Optional[int] = None
    display_name: Optional[str] = None


def resolve_tier(total_points: int, tier_settings: Sequence) -> str:
    """
    Tier for a points total.

    Settings are sorted by `min_points`; the last one whose threshold is
    reached wins. `max_points` is not consulted, so the unbounded top tier
    never caps membership. A total below every threshold gets the lowest
    tier.
    """
    if not tier_settings:
        raise ConfigurationError("No tier settings configured")

    ordered = sorted(tier_settings, key=lambda s: s.min_points)
    resolved = ordered[0].tier
    for setting in ordered:
        if setting.min_points <= total_points:
            resolved = setting.tier
        else:
            break
    return resolved


def validate_tier_settings(tier_settings: Sequence) -> List[str]:
    """
    Check that ranges are contiguous and non-overlapping.

    Returns a list of problems; empty when the settings are usable.
    """
    problems = []
    if not tier_settings:
        return ['No tier settings configured']

    ordered = sorted(tier_settings, key=lambda s: s.min_points)
    if ordered[0].min_points != 0:
        problems.append(f"Lowest tier '{ordered[0].tier}' must start at 0 points")

    seen = set()
    for setting in ordered:
        if setting.tier in seen:
            problems.append(f"Tier '{setting.tier}' is defined more than once")
        seen.add(setting.tier)
        if setting.max_points is not None and setting.max_points <= setting.min_points:
            problems.append(f"Tier '{setting.tier}' has max_points <= min_points")

    for lower, upper in zip(ordered, ordered[1:]):
        if lower.max_points is None:
            problems.append(f"Only the top tier may be unbounded, '{lower.tier}' has no max_points")
        elif lower.max_points < upper.min_points:
            problems.append(f"Gap between '{lower.tier}' ({lower.max_points}) and '{upper.tier}' ({upper.min_points})")
        elif lower.max_points > upper.min_points:
            problems.append(f"'{lower.tier}' overlaps '{upper.tier}'")

    return problems


class TierService:
    """
    Loads tier settings and keeps member tiers consistent with them.

    Usage:
        service = TierService()
        service.recalculate_member(profile)     # inside a ledger transaction
        service.recalculate_all()               # CLI repair
    """

    def __init__(self, settings: Sequence[TierThreshold] = None):
        self._settings = list(settings) if settings is not None else None

    @property
    def settings(self) -> List[TierThreshold]:
        """Lazy load tier settings."""
        if self._settings is None:
            self._settings = self.load_settings()
        return self._settings

    @staticmethod
    def load_settings() -> List[TierThreshold]:
        rows = TierSetting.query.order_by(TierSetting.min_points.asc()).all()
        if rows:
            return [
                TierThreshold(r.tier, r.min_points, r.max_points, r.display_name)
                for r in rows
            ]
        return [
            TierThreshold(s['tier'], s['min_points'], s.get('max_points'), s.get('display_name'))
            for s in current_app.config['DEFAULT_TIER_SETTINGS']
        ]

    def ensure_valid(self) -> None:
        problems = validate_tier_settings(self.settings)
        if problems:
            raise ConfigurationError('; '.join(problems))

    def tier_for(self, total_points: int) -> str:
        return resolve_tier(total_points, self.settings)

    # ==================== Recalculation ====================

    def recalculate_member(self, profile: Profile) -> Optional[Dict[str, str]]:
        """
        Set `profile.tier` from its current points. Does not commit.

        Returns {'old_tier', 'new_tier'} when the tier changed, else None.
        """
        new_tier = self.tier_for(profile.total_points or 0)
        if new_tier == profile.tier:
            return None

        old_tier = profile.tier
        profile.tier = new_tier
        current_app.logger.info(
            f"Tier change: profile {profile.id} {old_tier} -> {new_tier} "
            f"({profile.total_points} pts)"
        )
        return {'old_tier': old_tier, 'new_tier': new_tier}

    def recalculate_all(self, dry_run: bool = False) -> Dict[str, Any]:
        """Re-derive every member's tier. Used to repair data after settings change."""
        self.ensure_valid()
        changes = []
        for profile in Profile.query.order_by(Profile.id).all():
            new_tier = self.tier_for(profile.total_points or 0)
            if new_tier != profile.tier:
                changes.append({'profile_id': profile.id, 'old_tier': profile.tier, 'new_tier': new_tier})
                if not dry_run:
                    profile.tier = new_tier

        if dry_run:
            db.session.rollback()
        else:
            try:
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(f"Tier recalculation failed: {e}")
                raise

        return {'checked': Profile.query.count(), 'changed': len(changes), 'changes': changes}

    def settings_summary(self) -> List[Dict[str, Any]]:
        return [
            {
                'tier': s.tier,
                'display_name': s.display_name or s.tier.title(),
                'min_points': s.min_points,
                'max_points': s.max_points,
            }
            for s in sorted(self.settings, key=lambda s: s.min_points)
        ]
