"""
Runtime exchange settings.

The coin exchange reads its switch, rate and minimum from the
system_settings table so an admin can change them without a redeploy.
Keys that are missing or unparseable fall back to the config values
(`EXCHANGE_ENABLED`, `COINS_PER_POINT`, `EXCHANGE_MIN_COINS`).
"""
from typing import Any, Dict, Optional
from flask import current_app
from ..extensions import db
from ..models import SystemSetting
from ..utils.exceptions import ValidationError

# Response field -> system_settings key
EXCHANGE_KEYS = {
    'is_active': 'exchange_is_active',
    'coins_per_point': 'coins_per_point',
    'min_coins': 'exchange_min_coins',
}


def _parse_int(key: str, raw: Optional[str], default: int, minimum: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = None
    if value is None or value < minimum:
        current_app.logger.warning(f"Ignoring bad system setting {key}={raw!r}, using {default}")
        return default
    return value


class SettingsService:
    """Reads and updates the exchange settings."""

    def get_exchange_settings(self) -> Dict[str, Any]:
        config = current_app.config
        rows = SystemSetting.query.filter(SystemSetting.key.in_(EXCHANGE_KEYS.values())).all()
        stored = {row.key: row.value for row in rows}

        active = stored.get(EXCHANGE_KEYS['is_active'])
        return {
            'is_active': (active.strip().lower() == 'true') if active is not None
            else bool(config.get('EXCHANGE_ENABLED', True)),
            'coins_per_point': _parse_int(EXCHANGE_KEYS['coins_per_point'],
                                          stored.get(EXCHANGE_KEYS['coins_per_point']),
                                          config['COINS_PER_POINT'], minimum=1),
            'min_coins': _parse_int(EXCHANGE_KEYS['min_coins'],
                                    stored.get(EXCHANGE_KEYS['min_coins']),
                                    config.get('EXCHANGE_MIN_COINS', 0), minimum=0),
        }

    def update_exchange_settings(self, values: Dict[str, Any], updated_by: str = None) -> Dict[str, Any]:
        """
        Store new exchange settings. Only the fields given are changed.

        Args:
            values: Any of is_active (bool), coins_per_point (int >= 1),
                min_coins (int >= 0)
            updated_by: Admin making the change
        """
        if not values:
            raise ValidationError('No settings given')
        unknown = sorted(set(values) - set(EXCHANGE_KEYS))
        if unknown:
            raise ValidationError(f'Unknown settings: {unknown}')

        stored = {}
        if 'is_active' in values:
            if not isinstance(values['is_active'], bool):
                raise ValidationError('is_active must be true or false', field='is_active')
            stored[EXCHANGE_KEYS['is_active']] = 'true' if values['is_active'] else 'false'
        for field, minimum in (('coins_per_point', 1), ('min_coins', 0)):
            if field not in values:
                continue
            value = values[field]
            if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
                raise ValidationError(f'{field} must be an integer >= {minimum}', field=field)
            stored[EXCHANGE_KEYS[field]] = str(value)

        for key, value in stored.items():
            setting = db.session.get(SystemSetting, key)
            if setting is None:
                db.session.add(SystemSetting(key=key, value=value, updated_by=updated_by))
            else:
                setting.value = value
                setting.updated_by = updated_by
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Failed to save exchange settings: {e}")
            raise

        current_app.logger.info(f"Exchange settings updated by {updated_by or 'unknown'}: {stored}")
        return self.get_exchange_settings()
