"""
Tests for runtime exchange settings.
"""
import pytest

from loyalty.extensions import db
from loyalty.models import SystemSetting
from loyalty.services.settings_service import SettingsService
from loyalty.utils.exceptions import ValidationError


class TestGetExchangeSettings:

    def test_falls_back_to_config(self, app):
        assert SettingsService().get_exchange_settings() == {
            'is_active': True,
            'coins_per_point': 10,
            'min_coins': 100,
        }

    def test_reads_stored_values(self, app):
        db.session.add_all([
            SystemSetting(key='coins_per_point', value='20'),
            SystemSetting(key='exchange_is_active', value='false'),
        ])
        db.session.commit()

        settings = SettingsService().get_exchange_settings()
        assert settings['coins_per_point'] == 20
        assert settings['is_active'] is False
        assert settings['min_coins'] == 100

    @pytest.mark.parametrize('raw', ['abc', '0', '-5'])
    def test_bad_stored_rate_falls_back(self, app, raw):
        db.session.add(SystemSetting(key='coins_per_point', value=raw))
        db.session.commit()
        assert SettingsService().get_exchange_settings()['coins_per_point'] == 10


class TestUpdateExchangeSettings:

    def test_partial_update(self, app):
        service = SettingsService()
        settings = service.update_exchange_settings({'min_coins': 0}, updated_by='ops')

        assert settings['min_coins'] == 0
        assert settings['coins_per_point'] == 10
        row = db.session.get(SystemSetting, 'exchange_min_coins')
        assert row.value == '0'
        assert row.updated_by == 'ops'

    def test_update_replaces_existing_row(self, app):
        service = SettingsService()
        service.update_exchange_settings({'coins_per_point': 5})
        service.update_exchange_settings({'coins_per_point': 8})

        assert SystemSetting.query.filter_by(key='coins_per_point').count() == 1
        assert service.get_exchange_settings()['coins_per_point'] == 8

    @pytest.mark.parametrize('values', [
        {},
        {'rate': 5},
        {'coins_per_point': 0},
        {'coins_per_point': '5'},
        {'min_coins': -1},
        {'is_active': 'yes'},
    ])
    def test_invalid_values(self, app, values):
        with pytest.raises(ValidationError):
            SettingsService().update_exchange_settings(values)
        assert SystemSetting.query.count() == 0
