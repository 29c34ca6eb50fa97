# 1. 显式导入所有模型类（供__all__和直接引用使用）
from extensions import db

from .wallet_models import WalletUser, WalletAccount, AdReward
from .mining_models import MiningSession, SessionStatus, ACTIVE_STATUSES
from .invite_models import ReferralLink, ReferralMiningReward
from .message_models import Notification, NOTIFICATION_TYPES
from .config_models import AppConfig

# 2. 定义__all__（控制from models import *的行为）
__all__ = [
    'WalletUser',
    'WalletAccount',
    'AdReward',
    'MiningSession',
    'SessionStatus',
    'ACTIVE_STATUSES',
    'ReferralLink',
    'ReferralMiningReward',
    'Notification',
    'NOTIFICATION_TYPES',
    'AppConfig',
]


# 3. 显式注册函数（确保Flask-Migrate能发现模型）
def register_models():
    """强制导入所有模型模块（触发SQLAlchemy注册）"""
    from . import wallet_models
    from . import mining_models
    from . import invite_models
    from . import message_models
    from . import config_models
