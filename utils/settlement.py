"""
Reward settlement: referral binding, the per-claim referral share and ad credits.

The referral share runs after the claim has been committed. A failure there is
logged and queued for retry; it never undoes the claim.
"""
from decimal import Decimal
from flask import current_app
from sqlalchemy.exc import IntegrityError
from extensions import db, get_referral_queue
from models import (
    WalletUser,
    MiningSession,
    SessionStatus,
    ReferralLink,
    ReferralMiningReward,
    AdReward,
)
from utils.clock import current_time
from utils.errors import AlreadyUsedReferral, SelfReferral, InvalidReferralCode
from utils.logger import get_logger
from utils.notifications import create_notification, publish
from utils.session_manager import lock_wallet, lock_account

logger = get_logger("settlement")

DEFAULT_REFERRAL_SIGNUP_BONUS = Decimal('10')  # 每次邀请奖励积分
DEFAULT_REFERRAL_MINING_SHARE = Decimal('0.10')
DEFAULT_AD_REWARD_TOKENS = Decimal('5')


def _setting(name, default):
    value = current_app.config.get(name)
    return Decimal(str(value)) if value is not None else default


class ReferralResult:
    def __init__(self, referrer_wallet, bonus):
        self.referrer_wallet = referrer_wallet
        self.bonus = bonus

    def to_dict(self):
        return {'referrerWallet': self.referrer_wallet, 'rewardedTokens': str(self.bonus)}


# ----------------- 邀请绑定 -----------------

def apply_referral(referred_wallet, code, now=None):
    now = now or current_time()
    code = (code or '').strip().upper()

    referred = lock_wallet(referred_wallet)

    existing = referral_link_for(referred_wallet)
    if existing:
        raise AlreadyUsedReferral(referred_wallet, existing.referrer_address)

    referrer = WalletUser.query.filter_by(referral_code=code).first() if code else None
    if referrer is None:
        raise InvalidReferralCode(code)
    if referrer.id == referred.id:
        raise SelfReferral(referred_wallet)

    bonus = _setting('REFERRAL_SIGNUP_BONUS', DEFAULT_REFERRAL_SIGNUP_BONUS)
    db.session.add(ReferralLink(
        referrer_address=referrer.wallet_address,
        referred_address=referred_wallet,
        signup_bonus=bonus,
        created_at=now,
    ))

    account = lock_account(referrer)
    account.bonus_balance = Decimal(account.bonus_balance) + bonus
    account.updated_at = now

    notification = create_notification(
        referrer.wallet_address,
        'referral',
        'New referral',
        f'{referred_wallet} joined with your code. You earned {bonus} tokens!',
        {'referrerWallet': referrer.wallet_address, 'referredWallet': referred_wallet, 'tokens': str(bonus)},
    )
    try:
        db.session.commit()
    except IntegrityError:
        # 唯一索引兜底：并发绑定同一被邀请人
        db.session.rollback()
        raise AlreadyUsedReferral(referred_wallet)

    publish(notification)
    logger.info(f"[apply_referral] {referred_wallet} referred by {referrer.wallet_address}, bonus {bonus}")
    return ReferralResult(referrer.wallet_address, bonus)


def referral_link_for(wallet_address):
    return ReferralLink.query.filter_by(referred_address=wallet_address).first()


def referral_stats(wallet_address):
    links = ReferralLink.query.filter_by(referrer_address=wallet_address).all()
    mining_total = (db.session.query(db.func.coalesce(db.func.sum(ReferralMiningReward.amount), 0))
                    .filter(ReferralMiningReward.referrer_address == wallet_address)
                    .scalar())
    return {
        'inviteCount': len(links),
        'signupRewards': str(sum((Decimal(link.signup_bonus) for link in links), Decimal('0'))),
        'miningRewards': str(Decimal(str(mining_total))),
    }


def referral_mining_rewards(wallet_address, limit=50):
    return (ReferralMiningReward.query
            .filter_by(referrer_address=wallet_address)
            .order_by(ReferralMiningReward.claimed_at.desc(), ReferralMiningReward.id.desc())
            .limit(limit)
            .all())


# ----------------- 领取后的邀请分成 -----------------

def settle_referral_reward(session_id, now=None):
    """
    Credit the referrer's share for one claimed session. Safe to call repeatedly:
    a session is settled at most once.
    :return: ReferralMiningReward or None
    """
    now = now or current_time()
    session = db.session.get(MiningSession, session_id, populate_existing=True, with_for_update=True)
    if session is None or session.status != SessionStatus.claimed or session.referral_settled:
        return None

    reward = None
    notification = None
    link = referral_link_for(session.wallet_address)
    if link is not None:
        share = _setting('REFERRAL_MINING_SHARE', DEFAULT_REFERRAL_MINING_SHARE)
        amount = Decimal(session.settled_amount) * share
        reward = ReferralMiningReward(
            referrer_address=link.referrer_address,
            referred_address=session.wallet_address,
            session_id=session.id,
            amount=amount,
            claimed_at=now,
        )
        db.session.add(reward)

        referrer = lock_wallet(link.referrer_address)
        account = lock_account(referrer)
        account.bonus_balance = Decimal(account.bonus_balance) + amount
        account.updated_at = now

        notification = create_notification(
            link.referrer_address,
            'reward',
            'Referral mining reward',
            f'{session.wallet_address} claimed a mining session. You earned {amount} tokens!',
            {'referrerWallet': link.referrer_address, 'referredWallet': session.wallet_address,
             'tokens': str(amount)},
        )

    session.referral_settled = True
    db.session.commit()
    publish(notification)

    if reward is not None:
        logger.info(f"[settle_referral_reward] session {session_id}: {reward.amount} to {reward.referrer_address}")
    return reward


def enqueue_referral_retry(session_id):
    from utils.referral_jobs import retry_referral_settlement
    try:
        queue = get_referral_queue()
        if queue is None:
            logger.warning(f"[enqueue_referral_retry] no queue configured, session {session_id} left for the sweep")
            return None
        job = queue.enqueue(retry_referral_settlement, session_id, job_timeout=60)
    except Exception as e:
        # 队列不可用时交给定时任务兜底
        logger.error(f"[enqueue_referral_retry] session {session_id} enqueue failed: {e}")
        return None
    logger.info(f"[enqueue_referral_retry] session {session_id} queued as job {job.id}")
    return job


def run_referral_cascade(session_id, now=None):
    """Best-effort wrapper used right after a claim commits."""
    try:
        return settle_referral_reward(session_id, now=now)
    except Exception:
        db.session.rollback()
        logger.exception(f"[run_referral_cascade] session {session_id} failed, scheduling retry")
        enqueue_referral_retry(session_id)
        return None


def settle_pending_referral_rewards(now=None):
    """
    Sweep claimed sessions whose referral share has not run yet.
    :return: number of referral rewards credited
    """
    pending_ids = [row.id for row in MiningSession.query
                   .filter_by(status=SessionStatus.claimed, referral_settled=False)
                   .order_by(MiningSession.id)
                   .with_entities(MiningSession.id)
                   .all()]
    settled = 0
    for session_id in pending_ids:
        try:
            if settle_referral_reward(session_id, now=now) is not None:
                settled += 1
        except Exception:
            db.session.rollback()
            logger.exception(f"[settle_pending_referral_rewards] session {session_id} failed")
    return settled


# ----------------- 广告奖励 -----------------

def claim_ad_reward(wallet_address, now=None):
    now = now or current_time()
    user = lock_wallet(wallet_address)
    tokens = _setting('AD_REWARD_TOKENS', DEFAULT_AD_REWARD_TOKENS)

    account = lock_account(user)
    account.bonus_balance = Decimal(account.bonus_balance) + tokens
    account.updated_at = now
    db.session.add(AdReward(wallet_address=wallet_address, rewarded_tokens=tokens, claimed_at=now))
    db.session.commit()

    logger.info(f"[claim_ad_reward] {wallet_address} +{tokens}")
    return tokens, account.bonus_balance
