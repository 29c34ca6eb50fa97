from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
from extensions import db, socketio
from dotenv import load_dotenv
import click
import os

# 提前导入模型注册函数（明确显示依赖关系）
from models import register_models

from blueprints.auth import auth_bp
from blueprints.mining import mining_bp
from blueprints.invite import invite_bp
from blueprints.activity import activity_bp
from blueprints.settings import settings_bp
from utils.errors import MiningError
from utils.logger import get_logger

load_dotenv()

logger = get_logger("app")


def create_app(config_overrides=None):
    app = Flask(__name__)

    # CORS 允许前端携带 Cookie
    CORS(app, supports_credentials=True)

    # ===== 配置 =====
    app.config.update(
        SECRET_KEY=os.getenv('SECRET_KEY'),
        JWT_SECRET=os.getenv('JWT_SECRET') or os.getenv('SECRET_KEY'),
        SQLALCHEMY_DATABASE_URI=os.getenv('DB_URI', 'sqlite:///mining_village.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        REFERRAL_SIGNUP_BONUS=os.getenv('REFERRAL_SIGNUP_BONUS', '10'),
        REFERRAL_MINING_SHARE=os.getenv('REFERRAL_MINING_SHARE', '0.10'),
        AD_REWARD_TOKENS=os.getenv('AD_REWARD_TOKENS', '5'),
        LEADERBOARD_LIMIT=int(os.getenv('LEADERBOARD_LIMIT', '100')),
        SCHEDULER_ENABLED=os.getenv('SCHEDULER_ENABLED', 'False') == 'True',
        SOCKETIO_ASYNC_MODE=os.getenv('SOCKETIO_ASYNC_MODE') or None,
        CLOCK=None,
    )
    if config_overrides:
        app.config.update(config_overrides)

    # ===== 初始化扩展 =====
    db.init_app(app)
    Migrate(app, db)
    socketio.init_app(app, cors_allowed_origins="*",
                      async_mode=app.config.get('SOCKETIO_ASYNC_MODE'))

    with app.app_context():
        register_models()  # 确保在应用上下文中注册

    # ===== 注册蓝图 =====
    blueprints = [
        auth_bp,
        mining_bp,
        invite_bp,
        activity_bp,
        settings_bp,
    ]
    for bp in blueprints:
        app.register_blueprint(bp)

    register_error_handlers(app)
    register_commands(app)

    # 健康检查
    @app.route('/')
    def health_check():
        return jsonify({'message': 'Mining Village API', 'status': 'healthy'})

    return app


def register_error_handlers(app):
    @app.errorhandler(MiningError)
    def handle_mining_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        db.session.rollback()
        logger.exception(f"[store_failure] {error}")
        return jsonify({'error': 'store_failure', 'message': 'Database error'}), 500


def register_commands(app):
    @app.cli.command('seed-config')
    def seed_config_command():
        """Upsert the default mining rates and duration options."""
        from utils.config_store import seed_defaults
        seed_defaults()
        click.echo('Config seeded: MINING_RATES, DURATION_OPTIONS')

    @app.cli.command('issue-admin-token')
    @click.argument('subject')
    def issue_admin_token_command(subject):
        """Print a one-hour admin JWT for SUBJECT."""
        from utils.auth_utils import issue_admin_token
        click.echo(issue_admin_token(subject, app.config['JWT_SECRET']))

    @app.cli.command('settle-referrals')
    def settle_referrals_command():
        """Run the pending referral share sweep once."""
        from utils.settlement import settle_pending_referral_rewards
        click.echo(f'Credited {settle_pending_referral_rewards()} referral reward(s)')


if __name__ == '__main__':
    from scheduler import start_scheduler  # 延迟导入
    app = create_app()
    start_scheduler(app)
    socketio.run(app, host='0.0.0.0', port=5000)
