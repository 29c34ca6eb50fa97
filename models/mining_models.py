import enum
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Numeric
from extensions import db


class SessionStatus(enum.Enum):
    idle = "idle"
    mining = "mining"                  # 挖矿中
    ready_to_claim = "ready_to_claim"  # 时长已满，待领取
    claimed = "claimed"                # 已领取


ACTIVE_STATUSES = (SessionStatus.mining, SessionStatus.ready_to_claim)

_ACTIVE_WHERE = db.text("status IN ('mining', 'ready_to_claim')")


class MiningSession(db.Model):
    __tablename__ = 'mining_sessions'

    id = db.Column(db.Integer, primary_key=True)
    wallet_user_id = db.Column(db.Integer, db.ForeignKey('wallet_users.id'), nullable=False)
    wallet_address = db.Column(db.String(128), nullable=False, index=True)
    status = db.Column(db.Enum(SessionStatus), default=SessionStatus.mining, nullable=False)
    multiplier = db.Column(db.Integer, default=1, nullable=False)
    mining_start_time = db.Column(db.DateTime, nullable=False)
    current_multiplier_start_time = db.Column(db.DateTime, nullable=False)
    selected_hour_target = db.Column(db.Integer, default=1, nullable=False)
    current_mining_points = db.Column(Numeric(36, 8), default=Decimal('0'), nullable=False)
    settled_amount = db.Column(Numeric(36, 8), default=Decimal('0'), nullable=False)
    referral_settled = db.Column(db.Boolean, default=False, nullable=False)
    claimed_at = db.Column(db.DateTime, nullable=True)
    last_updated = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    version = db.Column(db.Integer, nullable=False)

    wallet_user = db.relationship('WalletUser', back_populates='sessions')

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        # 每个钱包最多一个进行中的会话
        db.Index('uix_active_session_per_wallet', 'wallet_user_id', unique=True,
                 sqlite_where=_ACTIVE_WHERE, postgresql_where=_ACTIVE_WHERE),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'wallet': self.wallet_address,
            'status': self.status.value,
            'multiplier': self.multiplier,
            'miningStartTime': self.mining_start_time.isoformat(),
            'currentMultiplierStartTime': self.current_multiplier_start_time.isoformat(),
            'selectedHour': self.selected_hour_target,
            'currentMiningPoints': str(self.current_mining_points),
            'settledAmount': str(self.settled_amount),
            'claimedAt': self.claimed_at.isoformat() if self.claimed_at else None,
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
        }
