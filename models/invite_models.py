from datetime import datetime, timezone
from sqlalchemy import Numeric
from extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReferralLink(db.Model):
    __tablename__ = 'referral_links'

    id = db.Column(db.Integer, primary_key=True)
    referrer_address = db.Column(db.String(128), nullable=False, index=True)  # 发起邀请的钱包地址
    referred_address = db.Column(db.String(128), nullable=False, unique=True, index=True)  # 被邀请的钱包地址，只能被邀请一次
    signup_bonus = db.Column(Numeric(36, 8), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)


class ReferralMiningReward(db.Model):
    """被邀请人每次领取挖矿奖励时，给邀请人的 10% 分成记录"""
    __tablename__ = 'referral_mining_rewards'

    id = db.Column(db.Integer, primary_key=True)
    referrer_address = db.Column(db.String(128), nullable=False, index=True)
    referred_address = db.Column(db.String(128), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('mining_sessions.id'), nullable=False, unique=True)
    amount = db.Column(Numeric(36, 8), nullable=False)
    claimed_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            'referrerWallet': self.referrer_address,
            'referredWallet': self.referred_address,
            'sessionId': self.session_id,
            'session10percentTokens': str(self.amount),
            'claimedAt': self.claimed_at.isoformat(),
        }
