"""
Mining session lifecycle.

The only code that mutates WalletUser / WalletAccount / MiningSession rows for
the mining flow. Every mutating call locks the wallet row first, then performs
a single read-modify-write and commits. Accrual itself is computed on demand
by utils.mining_service from the stored timestamps.

    idle -> mining -> ready_to_claim -> claimed
              ^  |
              +--+  upgrade
"""
import secrets
import string
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from extensions import db
from models import WalletUser, WalletAccount, MiningSession, SessionStatus, ACTIVE_STATUSES
from utils.clock import current_time
from utils.config_store import get_rate_table
from utils.errors import (
    WalletNotRegistered,
    ActiveSessionExists,
    NotMining,
    NonSequential,
    MaxMultiplierReached,
    NotReadyToClaim,
)
from utils.logger import get_logger
from utils.mining_service import (
    MIN_MULTIPLIER,
    MAX_MULTIPLIER,
    ProgressSnapshot,
    compute_progress,
    segment_points,
    target_seconds,
)
from utils.notifications import create_notification, publish

logger = get_logger("mining")

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8


class ClaimResult:
    def __init__(self, session, settled_amount, new_total_earned):
        self.session = session
        self.settled_amount = settled_amount
        self.new_total_earned = new_total_earned

    def to_dict(self):
        return {
            'settledAmount': str(self.settled_amount),
            'newTotalEarned': str(self.new_total_earned),
            'session': self.session.to_dict(),
        }


# ----------------- 查询辅助 -----------------

def get_wallet(wallet_address):
    user = WalletUser.query.filter_by(wallet_address=wallet_address).first()
    if not user:
        raise WalletNotRegistered(wallet_address)
    return user


def lock_wallet(wallet_address):
    """加行级锁，同一钱包的写操作串行执行"""
    user = WalletUser.query.filter_by(wallet_address=wallet_address).with_for_update().first()
    if not user:
        raise WalletNotRegistered(wallet_address)
    return user


def lock_account(user):
    account = WalletAccount.query.filter_by(wallet_user_id=user.id).with_for_update().first()
    if account is None:
        account = WalletAccount(wallet_user_id=user.id, total_earned=Decimal('0'), bonus_balance=Decimal('0'))
        db.session.add(account)
        db.session.flush()
    return account


def active_session(user, for_update=False):
    query = MiningSession.query.filter(
        MiningSession.wallet_user_id == user.id,
        MiningSession.status.in_(ACTIVE_STATUSES),
    )
    if for_update:
        query = query.with_for_update()
    return query.order_by(MiningSession.id.desc()).first()


def latest_session(user):
    return MiningSession.query.filter_by(wallet_user_id=user.id).order_by(MiningSession.id.desc()).first()


# ----------------- 注册 -----------------

def _new_referral_code():
    while True:
        code = ''.join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if not WalletUser.query.filter_by(referral_code=code).first():
            return code


def register_wallet(wallet_address, now=None):
    """
    Idempotent registration.
    :return: (WalletUser, created)
    """
    existing = WalletUser.query.filter_by(wallet_address=wallet_address).first()
    if existing:
        return existing, False

    now = now or current_time()
    user = WalletUser(wallet_address=wallet_address, referral_code=_new_referral_code(), registered_at=now)
    db.session.add(user)
    try:
        db.session.flush()
        db.session.add(WalletAccount(wallet_user_id=user.id, total_earned=Decimal('0'),
                                     bonus_balance=Decimal('0'), updated_at=now))
        db.session.commit()
    except IntegrityError:
        # 并发注册同一地址，返回已存在的记录
        db.session.rollback()
        existing = WalletUser.query.filter_by(wallet_address=wallet_address).first()
        if existing is None:
            raise
        return existing, False

    logger.info(f"[register_wallet] {wallet_address} registered with code {user.referral_code}")
    return user, True


# ----------------- 状态迁移 -----------------

def _complete(session, snapshot, now):
    session.current_mining_points = snapshot.points
    session.status = SessionStatus.ready_to_claim
    session.last_updated = now
    return create_notification(
        session.wallet_address,
        'mining',
        'Mining complete',
        f'Your {session.selected_hour_target}h session mined {snapshot.points} tokens. Claim them now!',
        {'sessionId': session.id, 'tokens': str(snapshot.points)},
    )


def start_mining(wallet_address, hours, multiplier=MIN_MULTIPLIER, now=None):
    hours = int(hours)
    multiplier = int(multiplier)
    if hours <= 0:
        raise ValueError('hours must be positive')
    if not MIN_MULTIPLIER <= multiplier <= MAX_MULTIPLIER:
        raise ValueError(f'multiplier must be between {MIN_MULTIPLIER} and {MAX_MULTIPLIER}')

    now = now or current_time()
    user = lock_wallet(wallet_address)

    current = active_session(user)
    if current is not None:
        raise ActiveSessionExists(wallet_address, current.status.value)

    session = MiningSession(
        wallet_user_id=user.id,
        wallet_address=wallet_address,
        status=SessionStatus.mining,
        multiplier=multiplier,
        mining_start_time=now,
        current_multiplier_start_time=now,
        selected_hour_target=hours,
        current_mining_points=Decimal('0'),
        settled_amount=Decimal('0'),
        last_updated=now,
    )
    db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ActiveSessionExists(wallet_address)

    logger.info(f"[start_mining] {wallet_address} session {session.id}: {hours}h at {multiplier}x")
    return session


def _idle_snapshot():
    return ProgressSnapshot(points=Decimal('0'), elapsed=0, remaining=0, percent=0.0, complete=False)


def _stored_snapshot(session):
    if session.status == SessionStatus.ready_to_claim:
        total = target_seconds(session)
        return ProgressSnapshot(points=Decimal(session.current_mining_points), elapsed=total,
                                remaining=0, percent=100.0, complete=True)
    return ProgressSnapshot(points=Decimal(session.current_mining_points), elapsed=0,
                            remaining=0, percent=0.0, complete=False)


def get_progress(wallet_address, now=None):
    """
    轮询进度。只有在达到目标时长时才写库（mining -> ready_to_claim），
    其余情况返回实时计算结果，不修改存储。
    :return: (ProgressSnapshot, MiningSession or None)
    """
    now = now or current_time()
    user = get_wallet(wallet_address)
    session = latest_session(user)
    if session is None:
        return _idle_snapshot(), None
    if session.status != SessionStatus.mining:
        return _stored_snapshot(session), session

    snapshot = compute_progress(session, get_rate_table(), now)
    if not snapshot.complete:
        return snapshot, session

    lock_wallet(wallet_address)
    session = db.session.get(MiningSession, session.id, populate_existing=True, with_for_update=True)
    if session.status != SessionStatus.mining:
        return _stored_snapshot(session), session

    snapshot = compute_progress(session, get_rate_table(), now)
    notification = _complete(session, snapshot, now)
    db.session.commit()
    publish(notification)

    logger.info(f"[get_progress] {wallet_address} session {session.id} ready to claim: {snapshot.points}")
    return snapshot, session


def upgrade_multiplier(wallet_address, requested, now=None):
    requested = int(requested)
    if requested > MAX_MULTIPLIER:
        raise MaxMultiplierReached(requested, MAX_MULTIPLIER)

    now = now or current_time()
    user = lock_wallet(wallet_address)
    session = active_session(user, for_update=True)
    if session is None or session.status != SessionStatus.mining:
        raise NotMining(wallet_address, session.status.value if session else SessionStatus.idle.value)

    current = session.multiplier
    if requested != current + 1:
        raise NonSequential(current, requested)

    rates = get_rate_table()
    snapshot = compute_progress(session, rates, now)
    if snapshot.complete:
        # 时长已满：先完成会话，再拒绝升级
        notification = _complete(session, snapshot, now)
        db.session.commit()
        publish(notification)
        raise NotMining(wallet_address, session.status.value)

    # 用旧倍数结算当前分段，再开启新分段
    closing = segment_points(session, rates, now)
    session.current_mining_points = Decimal(session.current_mining_points) + closing
    session.current_multiplier_start_time = now
    session.multiplier = requested
    session.last_updated = now
    db.session.commit()

    logger.info(f"[upgrade_multiplier] {wallet_address} session {session.id}: "
                f"{current}x -> {requested}x, folded {closing}, total {session.current_mining_points}")
    return session


def claim(wallet_address, now=None):
    """
    领取奖励：会话积分转入钱包累计，状态置为 claimed 并提交，
    随后执行邀请分成（分成失败不影响领取结果）。
    """
    from utils.settlement import run_referral_cascade

    now = now or current_time()
    user = lock_wallet(wallet_address)
    session = active_session(user, for_update=True)
    if session is None or session.status != SessionStatus.ready_to_claim:
        last = session or latest_session(user)
        raise NotReadyToClaim(wallet_address, last.status.value if last else SessionStatus.idle.value)

    account = lock_account(user)
    amount = Decimal(session.current_mining_points)
    account.total_earned = Decimal(account.total_earned) + amount
    account.updated_at = now

    session.settled_amount = amount
    session.current_mining_points = Decimal('0')
    session.status = SessionStatus.claimed
    session.claimed_at = now
    session.last_updated = now
    db.session.commit()

    result = ClaimResult(session, amount, account.total_earned)
    logger.info(f"[claim] {wallet_address} session {session.id} claimed {amount}, total {result.new_total_earned}")

    run_referral_cascade(session.id, now=now)
    return result
