from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from utils.auth_utils import issue_admin_token


def signup(client, wallet):
    return client.post('/api/signup', json={'wallet': wallet})


@pytest.fixture
def admin_headers(app):
    token = issue_admin_token('ops', app.config['JWT_SECRET'])
    return {'Authorization': f'Bearer {token}'}


def test_health_check(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


class TestSignup:

    def test_signup_then_existing(self, client):
        first = signup(client, '  0xabc  ')
        assert first.status_code == 201
        assert first.get_json()['user']['wallet'] == '0xabc'

        second = signup(client, '0xabc')
        assert second.status_code == 200
        assert second.get_json()['message'] == 'User already exists'
        assert second.get_json()['user']['referralCode'] == first.get_json()['user']['referralCode']

    def test_wallet_required(self, client):
        response = client.post('/api/signup', json={'wallet': '   '})
        assert response.status_code == 400

    def test_get_user(self, client):
        signup(client, 'W1')
        data = client.get('/api/user/W1').get_json()
        assert data['status'] == 'idle'
        assert data['session'] is None
        assert Decimal(data['account']['totalEarned']) == 0

    def test_miner_user_lookup_matches_user_lookup(self, client):
        signup(client, 'W1')
        assert client.get('/api/miner-user/W1').get_json() == client.get('/api/user/W1').get_json()
        assert client.get('/api/miner-user/ghost').status_code == 404

    def test_get_unknown_user(self, client):
        response = client.get('/api/user/ghost')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'wallet_not_registered'

    def test_miner_users_listing(self, client, clock):
        signup(client, 'OLD')
        clock.advance(86400 * 3)
        signup(client, 'NEW')

        data = client.get('/api/miner-users').get_json()
        assert data['count'] == 2
        assert [u['wallet'] for u in data['minerUsers']] == ['NEW', 'OLD']

        day = clock.now.date().isoformat()
        ranged = client.get(f'/api/miner-users/date-range?startDate={day}&endDate={day}').get_json()
        assert [u['wallet'] for u in ranged['minerUsers']] == ['NEW']

    def test_date_range_validation(self, client):
        assert client.get('/api/miner-users/date-range?startDate=2025-01-01').status_code == 400
        assert client.get('/api/miner-users/date-range?startDate=x&endDate=y').status_code == 400


class TestMiningFlow:

    def test_full_session(self, client, clock):
        signup(client, 'W1')
        started = client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 1, 'multiplier': 1})
        assert started.status_code == 200
        assert started.get_json()['session']['status'] == 'mining'

        clock.advance(1800)
        progress = client.post('/api/calculate-progress', json={'wallet': 'W1'}).get_json()
        assert progress['isComplete'] is False
        assert progress['status'] == 'mining'
        assert Decimal(progress['currentPoints']) == Decimal('18')
        assert progress['timeRemaining'] == 1800

        upgraded = client.post('/api/upgrade-multiplier', json={'wallet': 'W1', 'newMultiplier': 2})
        assert upgraded.status_code == 200
        assert upgraded.get_json()['newMultiplier'] == 2

        clock.advance(1800)
        progress = client.post('/api/calculate-progress', json={'wallet': 'W1'}).get_json()
        assert progress['isComplete'] is True
        assert progress['status'] == 'ready_to_claim'
        assert Decimal(progress['currentPoints']) == Decimal('54')

        claimed = client.post('/api/claim-reward', json={'wallet': 'W1'})
        assert claimed.status_code == 200
        assert Decimal(claimed.get_json()['settledAmount']) == Decimal('54')
        assert Decimal(claimed.get_json()['newTotalEarned']) == Decimal('54')

        again = client.post('/api/claim-reward', json={'wallet': 'W1'})
        assert again.status_code == 400
        assert again.get_json()['error'] == 'not_ready_to_claim'

    def test_start_errors(self, client):
        response = client.post('/api/start-mining', json={'wallet': 'ghost', 'selectedHour': 1})
        assert response.status_code == 404
        assert response.get_json()['error'] == 'wallet_not_registered'

        signup(client, 'W1')
        assert client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 3}).status_code == 400
        assert client.post('/api/start-mining', json={'wallet': 'W1', 'multiplier': 9}).status_code == 400

        assert client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 24}).status_code == 200
        conflict = client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 1})
        assert conflict.status_code == 409
        assert conflict.get_json()['error'] == 'active_session_exists'

    def test_upgrade_errors(self, client):
        signup(client, 'W1')
        not_mining = client.post('/api/upgrade-multiplier', json={'wallet': 'W1', 'newMultiplier': 2})
        assert not_mining.get_json()['error'] == 'not_mining'

        client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 1})
        skipped = client.post('/api/upgrade-multiplier', json={'wallet': 'W1', 'newMultiplier': 3})
        assert skipped.status_code == 400
        body = skipped.get_json()
        assert body['error'] == 'non_sequential_upgrade'
        assert body['allowedMultiplier'] == 2

        too_high = client.post('/api/upgrade-multiplier', json={'wallet': 'W1', 'newMultiplier': 7})
        assert too_high.get_json()['error'] == 'max_multiplier_reached'

        assert client.post('/api/upgrade-multiplier', json={'wallet': 'W1'}).status_code == 400

    def test_progress_for_idle_wallet(self, client):
        signup(client, 'W1')
        data = client.post('/api/calculate-progress', json={'wallet': 'W1'}).get_json()
        assert data['status'] == 'idle'
        assert data['isComplete'] is False


class TestReferralEndpoints:

    def test_apply_and_read_back(self, client, clock):
        code = signup(client, 'REF').get_json()['user']['referralCode']
        signup(client, 'NEW')

        applied = client.post('/api/referrals/apply', json={'wallet': 'NEW', 'referralCode': code})
        assert applied.status_code == 200
        assert applied.get_json()['referrerWallet'] == 'REF'
        assert Decimal(applied.get_json()['rewardedTokens']) == Decimal('10')

        reused = client.post('/api/referrals/apply', json={'wallet': 'NEW', 'referralCode': code})
        assert reused.status_code == 409
        assert reused.get_json()['error'] == 'referral_already_used'

        status = client.get('/api/referrals/status?wallet=NEW').get_json()
        assert status == {'hasUsedReferral': True, 'referrerWallet': 'REF'}
        assert client.get('/api/referrals/code?wallet=REF').get_json()['referralCode'] == code

        client.post('/api/start-mining', json={'wallet': 'NEW', 'selectedHour': 1})
        clock.advance(3600)
        client.post('/api/calculate-progress', json={'wallet': 'NEW'})
        client.post('/api/claim-reward', json={'wallet': 'NEW'})

        rewards = client.get('/api/referrals/mining-rewards?wallet=REF').get_json()
        assert rewards['count'] == 1
        assert Decimal(rewards['rewards'][0]['session10percentTokens']) == Decimal('3.6')

        stats = client.get('/api/referrals/stats?wallet=REF').get_json()['data']
        assert stats['inviteCount'] == 1

    def test_apply_errors(self, client):
        code = signup(client, 'SELF').get_json()['user']['referralCode']
        assert client.post('/api/referrals/apply',
                           json={'wallet': 'SELF', 'referralCode': code}).get_json()['error'] == 'self_referral'
        invalid = client.post('/api/referrals/apply', json={'wallet': 'SELF', 'referralCode': 'ZZZZZZZZ'})
        assert invalid.status_code == 404
        assert invalid.get_json()['error'] == 'invalid_referral_code'
        assert client.post('/api/referrals/apply', json={'wallet': 'SELF'}).status_code == 400


class TestActivityEndpoints:

    def test_ad_reward_and_leaderboard(self, client):
        signup(client, 'A')
        signup(client, 'B')
        client.post('/api/ad-reward', json={'wallet': 'B'})
        response = client.post('/api/ad-reward', json={'wallet': 'B'})
        assert Decimal(response.get_json()['bonusBalance']) == Decimal('10')

        board = client.get('/api/leaderboard').get_json()
        assert board[0]['rank'] == 1
        assert board[0]['wallet'] == 'B'

    def test_notifications(self, client, clock):
        code = signup(client, 'REF').get_json()['user']['referralCode']
        signup(client, 'NEW')
        client.post('/api/referrals/apply', json={'wallet': 'NEW', 'referralCode': code})

        data = client.get('/api/notifications/REF').get_json()
        assert data['count'] == 1
        assert data['unread'] == 1
        notification = data['notifications'][0]
        assert notification['type'] == 'referral'
        assert notification['data']['referredWallet'] == 'NEW'

        read = client.post(f"/api/notifications/{notification['id']}/read")
        assert read.get_json()['notification']['isRead'] is True
        assert client.post('/api/notifications/999/read').status_code == 404

        client.post('/api/start-mining', json={'wallet': 'NEW', 'selectedHour': 1})
        clock.advance(3600)
        client.post('/api/calculate-progress', json={'wallet': 'NEW'})
        assert client.get('/api/notifications/NEW').get_json()['unread'] == 1
        assert client.post('/api/notifications/read-all', json={'wallet': 'NEW'}).get_json()['updated'] == 1
        assert client.get('/api/notifications/NEW').get_json()['unread'] == 0


class TestConfigEndpoints:

    def test_defaults_without_seed(self, client):
        data = client.get('/api/config').get_json()
        assert data['updatedAt'] is None
        assert data['miningRates']['1'] == {'rate': 0.01, 'hourlyReward': 36.0}
        assert data['miningRates']['6'] == {'rate': 0.06, 'hourlyReward': 216.0}
        assert [o['value'] for o in data['durationOptions']] == [1, 2, 4, 12, 24]

    def test_update_requires_admin_token(self, client):
        response = client.put('/api/config/DURATION_OPTIONS', json={'value': [{'value': 3, 'label': '3 Hours'}]})
        assert response.status_code == 401

    def test_update_duration_options(self, client, admin_headers):
        response = client.put('/api/config/DURATION_OPTIONS', headers=admin_headers,
                              json={'value': [{'value': 3, 'label': '3 Hours'}]})
        assert response.status_code == 200

        data = client.get('/api/config').get_json()
        assert data['updatedAt'] is not None
        assert data['durationOptions'] == [{'value': 3, 'label': '3 Hours'}]

        signup(client, 'W1')
        assert client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 1}).status_code == 400
        assert client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 3}).status_code == 200

    def test_partial_rate_table_keeps_defaults(self, client, admin_headers):
        client.put('/api/config/MINING_RATES', headers=admin_headers,
                   json={'value': {'2': {'rate': 0.025, 'hourlyReward': 90}}})
        rates = client.get('/api/config').get_json()['miningRates']
        assert rates['2']['rate'] == 0.025
        assert rates['1']['rate'] == 0.01

    def test_unknown_key(self, client, admin_headers):
        response = client.put('/api/config/COLORS', headers=admin_headers, json={'value': {}})
        assert response.status_code == 400

    @pytest.mark.parametrize('value', [
        {'1': {'rate': 'abc'}},
        {'1': {'rate': -0.5}},
        {'7': {'rate': 0.07}},
    ])
    def test_invalid_rate_table_is_rejected(self, client, admin_headers, value):
        response = client.put('/api/config/MINING_RATES', headers=admin_headers, json={'value': value})
        assert response.status_code == 400
        assert client.get('/api/config').get_json()['updatedAt'] is None

    def test_invalid_duration_options_are_rejected(self, client, admin_headers):
        response = client.put('/api/config/DURATION_OPTIONS', headers=admin_headers,
                              json={'value': [{'value': -1, 'label': 'back'}]})
        assert response.status_code == 400


def test_store_failure_returns_500(client):
    signup(client, 'W1')
    with patch('sqlalchemy.orm.Session.commit',
               side_effect=OperationalError('INSERT', {}, Exception('disk I/O error'))):
        response = client.post('/api/start-mining', json={'wallet': 'W1', 'selectedHour': 1})

    assert response.status_code == 500
    assert response.get_json()['error'] == 'store_failure'
    assert client.get('/api/user/W1').get_json()['status'] == 'idle'
