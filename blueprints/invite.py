from flask import Blueprint, request, jsonify
from utils.session_manager import get_wallet
from utils import settlement

invite_bp = Blueprint('invite', __name__, url_prefix='/api/referrals')


def _wallet_arg():
    return (request.args.get('wallet') or '').strip()


@invite_bp.route('/apply', methods=['POST'])
def apply_referral():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    code = (data.get('referralCode') or '').strip()
    if not wallet or not code:
        return jsonify({'error': 'wallet and referralCode are required'}), 400

    result = settlement.apply_referral(wallet, code)
    payload = result.to_dict()
    payload['message'] = 'Referral applied successfully'
    return jsonify(payload)


@invite_bp.route('/code', methods=['GET'])
def get_referral_code():
    wallet = _wallet_arg()
    if not wallet:
        return jsonify({'error': 'Missing wallet parameter'}), 400
    user = get_wallet(wallet)
    return jsonify({'wallet': wallet, 'referralCode': user.referral_code})


@invite_bp.route('/status', methods=['GET'])
def get_referral_status():
    wallet = _wallet_arg()
    if not wallet:
        return jsonify({'error': 'Missing wallet parameter'}), 400
    get_wallet(wallet)
    link = settlement.referral_link_for(wallet)
    return jsonify({
        'hasUsedReferral': link is not None,
        'referrerWallet': link.referrer_address if link else None,
    })


@invite_bp.route('/stats', methods=['GET'])
def get_referral_stats():
    wallet = _wallet_arg()
    if not wallet:
        return jsonify({'error': 'Missing wallet parameter'}), 400
    get_wallet(wallet)
    return jsonify({'success': True, 'data': settlement.referral_stats(wallet)})


@invite_bp.route('/mining-rewards', methods=['GET'])
def get_referral_mining_rewards():
    wallet = _wallet_arg()
    if not wallet:
        return jsonify({'error': 'Missing wallet parameter'}), 400
    rewards = settlement.referral_mining_rewards(wallet)
    return jsonify({'count': len(rewards), 'rewards': [r.to_dict() for r in rewards]})
