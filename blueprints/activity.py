from flask import Blueprint, current_app, jsonify, request
from flask_socketio import join_room, leave_room
from extensions import socketio
from utils import notifications
from utils.leaderboard import get_leaderboard
from utils.settlement import claim_ad_reward

activity_bp = Blueprint('activity', __name__, url_prefix='/api')


@activity_bp.route('/ad-reward', methods=['POST'])
def ad_reward():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    if not wallet:
        return jsonify({'error': 'wallet is required'}), 400

    tokens, bonus_balance = claim_ad_reward(wallet)
    return jsonify({'rewardedTokens': str(tokens), 'bonusBalance': str(bonus_balance)})


@activity_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    limit = current_app.config.get('LEADERBOARD_LIMIT', 100)
    return jsonify(get_leaderboard(limit=limit))


@activity_bp.route('/notifications/<wallet>', methods=['GET'])
def list_notifications(wallet):
    items = notifications.list_notifications(wallet)
    return jsonify({
        'count': len(items),
        'unread': sum(1 for n in items if not n.is_read),
        'notifications': [n.to_dict() for n in items],
    })


@activity_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    notification = notifications.mark_read(notification_id)
    if notification is None:
        return jsonify({'error': 'Notification not found'}), 404
    return jsonify({'notification': notification.to_dict()})


@activity_bp.route('/notifications/read-all', methods=['POST'])
def mark_all_notifications_read():
    data = request.get_json(silent=True) or {}
    wallet = (data.get('wallet') or '').strip()
    if not wallet:
        return jsonify({'error': 'wallet is required'}), 400
    return jsonify({'updated': notifications.mark_all_read(wallet)})


# -------------------------------
# Socket.IO：客户端订阅自己钱包的通知
# -------------------------------
@socketio.on('subscribe_wallet')
def on_subscribe_wallet(data):
    wallet = (data or {}).get('wallet')
    if wallet:
        join_room(notifications.wallet_room(wallet))


@socketio.on('unsubscribe_wallet')
def on_unsubscribe_wallet(data):
    wallet = (data or {}).get('wallet')
    if wallet:
        leave_room(notifications.wallet_room(wallet))
