# auth_utils.py
import jwt
from datetime import datetime, timedelta, timezone
from flask import request, jsonify, current_app, g
from functools import wraps

ADMIN_TOKEN_TTL_SECONDS = 3600  # token 有效时间，单位：秒


def issue_admin_token(subject, secret, ttl_seconds=ADMIN_TOKEN_TTL_SECONDS):
    payload = {
        'sub': subject,
        'role': 'admin',
        'exp': datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def jwt_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # 从请求头获取 Authorization: Bearer <token>
        auth_header = request.headers.get('Authorization', None)
        if auth_header and auth_header.startswith('Bearer '):
            token = auth_header.split(' ')[1]
        else:
            return jsonify({'success': False, 'message': 'Missing authorization token'}), 401

        try:
            payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            return jsonify({'success': False, 'message': 'Authorization token expired'}), 401
        except jwt.InvalidTokenError:
            return jsonify({'success': False, 'message': 'Invalid authorization token'}), 401

        if payload.get('role') != 'admin':
            return jsonify({'success': False, 'message': 'Admin role required'}), 403

        g.admin_subject = payload.get('sub')
        return f(*args, **kwargs)
    return decorated_function
