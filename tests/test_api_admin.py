"""
Tests for the admin API and CLI commands.
"""
import pytest

from loyalty.extensions import db
from loyalty.models import Mission, Profile, TierSetting
from loyalty.services.completion_service import CompletionService
from loyalty.services.redemption_service import RedemptionService
from loyalty.services.review_service import ReviewService


class TestAdminAuth:

    def test_missing_token(self, client, sample_member):
        response = client.post(f'/api/admin/members/{sample_member.id}/points',
                               json={'action': 'add', 'amount': 10})
        assert response.status_code == 401

    def test_wrong_token(self, client, sample_member):
        response = client.get('/api/admin/tiers', headers={'X-Admin-Token': 'nope'})
        assert response.status_code == 401


class TestAdjustBalances:

    def test_add_points(self, client, sample_member, admin_headers):
        response = client.post(f'/api/admin/members/{sample_member.id}/points', headers=admin_headers,
                               json={'action': 'add', 'amount': 250, 'description': 'Expo bonus'})
        data = response.get_json()
        assert response.status_code == 200
        assert data['new_balance'] == 1250
        assert data['source'] == 'admin'

    def test_deduct_coins_insufficient(self, client, sample_member, admin_headers):
        response = client.post(f'/api/admin/members/{sample_member.id}/coins', headers=admin_headers,
                               json={'action': 'deduct', 'amount': 201})
        assert response.status_code == 422
        assert response.get_json()['error']['code'] == 'INSUFFICIENT_COINS'

    @pytest.mark.parametrize('body', [
        {'action': 'set', 'amount': 10},
        {'action': 'add', 'amount': '10'},
        {'action': 'add'},
    ])
    def test_bad_body(self, client, sample_member, admin_headers, body):
        response = client.post(f'/api/admin/members/{sample_member.id}/points', headers=admin_headers, json=body)
        assert response.status_code == 400

    def test_negative_amount(self, client, sample_member, admin_headers):
        response = client.post(f'/api/admin/members/{sample_member.id}/points', headers=admin_headers,
                               json={'action': 'add', 'amount': -5})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_AMOUNT'

    def test_unknown_member(self, client, admin_headers):
        response = client.post('/api/admin/members/99999/points', headers=admin_headers,
                               json={'action': 'add', 'amount': 5})
        assert response.status_code == 404


class TestRedemptionAdmin:

    def test_status_update(self, client, sample_member, sample_reward, admin_headers):
        redemption = RedemptionService().redeem(sample_member.id, sample_reward.id, '12 Farm Road',
                                                acting_member_id=sample_member.id)

        response = client.patch(f'/api/admin/redemptions/{redemption.id}', headers=admin_headers,
                                json={'status': 'shipped', 'tracking_number': 'TH123'})
        assert response.status_code == 200
        assert response.get_json()['redemption']['tracking_number'] == 'TH123'

        response = client.patch(f'/api/admin/redemptions/{redemption.id}', headers=admin_headers,
                                json={'status': 'pending'})
        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'INVALID_STATUS_TRANSITION'

    def test_status_required(self, client, admin_headers):
        response = client.patch('/api/admin/redemptions/1', headers=admin_headers, json={})
        assert response.status_code == 400


class TestReviewAdmin:

    def test_receipt_review(self, client, make_member, admin_headers):
        profile = make_member()
        receipt = ReviewService().submit_receipt(profile.id, 'https://cdn.example.com/r.jpg')

        pending = client.get('/api/admin/receipts', headers=admin_headers).get_json()
        assert pending['count'] == 1

        response = client.post(f'/api/admin/receipts/{receipt.id}/review', headers=admin_headers,
                               json={'approve': True, 'points': 60})
        data = response.get_json()
        assert data['points_awarded'] == 60
        assert data['receipt']['status'] == 'approved'
        assert db.session.get(Profile, profile.id).total_points == 60

        again = client.post(f'/api/admin/receipts/{receipt.id}/review', headers=admin_headers,
                            json={'approve': True, 'points': 60})
        assert again.status_code == 409

    def test_approve_flag_required(self, client, admin_headers):
        response = client.post('/api/admin/receipts/1/review', headers=admin_headers, json={'approve': 'yes'})
        assert response.status_code == 400

    def test_mission_review(self, client, make_member, admin_headers):
        mission = Mission(title='Photo', mission_type='manual', points_reward=30)
        db.session.add(mission)
        db.session.commit()
        profile = make_member()
        completion = CompletionService().complete_mission(
            profile.id, mission.id, {'proof_image_url': 'https://cdn.example.com/p.jpg'}
        )['record']

        listed = client.get('/api/admin/mission-completions', headers=admin_headers).get_json()
        assert listed['count'] == 1

        data = client.post(f'/api/admin/mission-completions/{completion.id}/review', headers=admin_headers,
                           json={'approve': True}).get_json()
        assert data['points_awarded'] == 30
        assert data['completion']['status'] == 'approved'


class TestTiersAndAudit:

    def test_tiers(self, client, admin_headers):
        data = client.get('/api/admin/tiers', headers=admin_headers).get_json()
        assert [t['tier'] for t in data['tiers']] == ['bronze', 'silver', 'gold', 'platinum']
        assert data['problems'] == []

    def test_reconcile(self, client, sample_member, admin_headers):
        assert client.get('/api/admin/ledger/reconcile', headers=admin_headers).get_json()['count'] == 0

        sample_member.total_coins = 0
        db.session.commit()
        data = client.get('/api/admin/ledger/reconcile', headers=admin_headers).get_json()
        assert data['count'] == 1
        assert data['mismatches'][0]['currency'] == 'coins'


class TestExchangeSettingsAdmin:

    def test_update_is_seen_by_members(self, client, sample_member, admin_headers, member_headers):
        response = client.put('/api/admin/settings/exchange', headers=admin_headers,
                              json={'coins_per_point': 20, 'min_coins': 40})
        assert response.status_code == 200
        assert response.get_json()['coins_per_point'] == 20

        settings = client.get('/api/me/exchange', headers=member_headers(sample_member)).get_json()
        assert settings == {'is_active': True, 'coins_per_point': 20, 'min_coins': 40}

        data = client.post('/api/me/exchange', headers=member_headers(sample_member),
                           json={'amount': 45}).get_json()
        assert data['points_received'] == 2
        assert data['total_coins'] == 160

    def test_invalid_update(self, client, admin_headers):
        response = client.put('/api/admin/settings/exchange', headers=admin_headers,
                              json={'coins_per_point': 0})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_COINS_PER_POINT'

    def test_requires_admin(self, client):
        response = client.put('/api/admin/settings/exchange', json={'is_active': False})
        assert response.status_code == 401


class TestCommands:

    def test_tiers_show(self, app):
        result = app.test_cli_runner().invoke(args=['tiers', 'show'])
        assert result.exit_code == 0
        assert 'platinum' in result.output

    def test_tiers_validate_reports_gap(self, app):
        db.session.add_all([
            TierSetting(tier='bronze', display_name='Bronze', min_points=0, max_points=100),
            TierSetting(tier='silver', display_name='Silver', min_points=200, max_points=None),
        ])
        db.session.commit()

        result = app.test_cli_runner().invoke(args=['tiers', 'validate'])
        assert result.exit_code == 1
        assert 'Gap' in result.output

    def test_tiers_recalculate(self, app, make_member):
        profile = make_member(points=1500)
        profile.tier = 'bronze'
        db.session.commit()

        result = app.test_cli_runner().invoke(args=['tiers', 'recalculate'])
        assert result.exit_code == 0
        assert 'Changed: 1' in result.output
        assert db.session.get(Profile, profile.id).tier == 'silver'

    def test_ledger_reconcile(self, app, sample_member):
        runner = app.test_cli_runner()
        assert runner.invoke(args=['ledger', 'reconcile']).exit_code == 0

        sample_member.total_points = 1
        db.session.commit()
        result = runner.invoke(args=['ledger', 'reconcile'])
        assert result.exit_code == 1
        assert 'mismatched' in result.output
