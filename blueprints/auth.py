from datetime import datetime, time
from flask import Blueprint, request, jsonify
from models import WalletUser
from utils.session_manager import register_wallet, get_wallet, latest_session

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def _wallet_from_body():
    data = request.get_json(silent=True) or {}
    return (data.get('wallet') or '').strip()


@auth_bp.route('/signup', methods=['POST'])
def signup():
    wallet = _wallet_from_body()
    if not wallet:
        return jsonify({'error': 'Wallet address is required'}), 400

    user, created = register_wallet(wallet)
    return jsonify({
        'message': 'User created successfully' if created else 'User already exists',
        'user': user.to_dict(),
        'account': user.account.to_dict() if user.account else None,
    }), 201 if created else 200


@auth_bp.route('/user/<wallet>', methods=['GET'])
@auth_bp.route('/miner-user/<wallet>', methods=['GET'])
def get_user(wallet):
    user = get_wallet(wallet)
    session = latest_session(user)
    return jsonify({
        'user': user.to_dict(),
        'account': user.account.to_dict() if user.account else None,
        'session': session.to_dict() if session else None,
        'status': session.status.value if session else 'idle',
    })


@auth_bp.route('/miner-users', methods=['GET'])
def list_miner_users():
    users = WalletUser.query.order_by(WalletUser.registered_at.desc(), WalletUser.id.desc()).all()
    return jsonify({'count': len(users), 'minerUsers': [u.to_dict() for u in users]})


def _parse_bound(value, upper=False):
    parsed = datetime.fromisoformat(value)
    # 只有日期时，结束日期包含当天
    if upper and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


@auth_bp.route('/miner-users/date-range', methods=['GET'])
def list_miner_users_by_date():
    start_date = request.args.get('startDate', '').strip()
    end_date = request.args.get('endDate', '').strip()
    if not start_date or not end_date:
        return jsonify({'error': 'startDate and endDate are required'}), 400

    try:
        start = _parse_bound(start_date)
        end = _parse_bound(end_date, upper=True)
    except ValueError:
        return jsonify({'error': 'Invalid date format, expected ISO 8601'}), 400

    users = (WalletUser.query
             .filter(WalletUser.registered_at >= start, WalletUser.registered_at <= end)
             .order_by(WalletUser.registered_at.desc(), WalletUser.id.desc())
             .all())
    return jsonify({'count': len(users), 'minerUsers': [u.to_dict() for u in users]})
