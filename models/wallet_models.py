from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import relationship
from extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class WalletUser(db.Model):
    __tablename__ = 'wallet_users'

    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(128), unique=True, nullable=False, index=True)
    referral_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    registered_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    account = relationship("WalletAccount", uselist=False, back_populates="wallet_user")
    sessions = relationship("MiningSession", back_populates="wallet_user",
                            order_by="MiningSession.id")

    def to_dict(self):
        return {
            'wallet': self.wallet_address,
            'referralCode': self.referral_code,
            'registeredAt': self.registered_at.isoformat() if self.registered_at else None,
        }


class WalletAccount(db.Model):
    """钱包维度的累计余额：挖矿结算 + 广告/邀请奖励"""
    __tablename__ = 'wallet_accounts'

    wallet_user_id = db.Column(db.Integer, ForeignKey('wallet_users.id'), primary_key=True)
    total_earned = db.Column(Numeric(36, 8), default=Decimal('0'), nullable=False)
    bonus_balance = db.Column(Numeric(36, 8), default=Decimal('0'), nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    wallet_user = relationship("WalletUser", back_populates="account")

    @property
    def total_balance(self):
        return (self.total_earned or Decimal('0')) + (self.bonus_balance or Decimal('0'))

    def to_dict(self):
        return {
            'totalEarned': str(self.total_earned or Decimal('0')),
            'bonusBalance': str(self.bonus_balance or Decimal('0')),
            'totalBalance': str(self.total_balance),
        }


class AdReward(db.Model):
    __tablename__ = 'ad_rewards'

    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(128), nullable=False, index=True)
    rewarded_tokens = db.Column(Numeric(36, 8), nullable=False)
    claimed_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
