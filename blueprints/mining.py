from flask import Blueprint, request, jsonify
from utils.config_store import allowed_hours
from utils import session_manager

mining_bp = Blueprint('mining', __name__, url_prefix='/api')


def _int_field(data, name, default=None):
    value = data.get(name, default)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@mining_bp.route('/start-mining', methods=['POST'])
def start_mining():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    if not wallet:
        return jsonify({'error': 'wallet is required'}), 400

    hours = _int_field(data, 'selectedHour', 1)
    if hours is None or hours not in allowed_hours():
        return jsonify({'error': 'Invalid duration', 'allowedHours': sorted(allowed_hours())}), 400

    multiplier = _int_field(data, 'multiplier', 1)
    if multiplier is None:
        return jsonify({'error': 'multiplier must be an integer'}), 400

    try:
        session = session_manager.start_mining(wallet, hours, multiplier)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'message': 'Mining started successfully', 'session': session.to_dict()})


@mining_bp.route('/calculate-progress', methods=['POST'])
def calculate_progress():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    if not wallet:
        return jsonify({'error': 'wallet is required'}), 400

    snapshot, session = session_manager.get_progress(wallet)
    payload = snapshot.to_dict()
    payload['status'] = session.status.value if session else 'idle'
    payload['multiplier'] = session.multiplier if session else None
    return jsonify(payload)


@mining_bp.route('/upgrade-multiplier', methods=['POST'])
def upgrade_multiplier():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    new_multiplier = _int_field(data, 'newMultiplier')
    if not wallet or new_multiplier is None:
        return jsonify({'error': 'Wallet and newMultiplier are required'}), 400

    session = session_manager.upgrade_multiplier(wallet, new_multiplier)
    return jsonify({
        'message': 'Multiplier upgraded successfully',
        'session': session.to_dict(),
        'previousMultiplier': new_multiplier - 1,
        'newMultiplier': session.multiplier,
    })


@mining_bp.route('/claim-reward', methods=['POST'])
def claim_reward():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    if not wallet:
        return jsonify({'error': 'wallet is required'}), 400

    result = session_manager.claim(wallet)
    payload = result.to_dict()
    payload['message'] = 'Reward claimed successfully'
    return jsonify(payload)
