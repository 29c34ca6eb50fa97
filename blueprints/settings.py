from flask import Blueprint, request, jsonify
from utils.auth_utils import jwt_required
from utils import config_store

settings_bp = Blueprint('settings', __name__, url_prefix='/api/config')


@settings_bp.route('', methods=['GET'])
def get_config():
    updated_at = config_store.config_updated_at()
    return jsonify({
        'miningRates': config_store.rate_table_to_json(config_store.get_rate_table()),
        'durationOptions': config_store.get_duration_options(),
        'updatedAt': updated_at.isoformat() if updated_at else None,
    })


@settings_bp.route('/<key>', methods=['PUT'])
@jwt_required
def update_config(key):
    data = request.get_json(silent=True) or {}
    if 'value' not in data:
        return jsonify({'error': 'value is required'}), 400

    value = data['value']
    try:
        row = config_store.set_config_value(key, value)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'key': row.key, 'value': row.value, 'updatedAt': row.updated_at.isoformat()})
