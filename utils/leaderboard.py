from decimal import Decimal
from extensions import db
from models import WalletUser, WalletAccount, MiningSession

DEFAULT_LEADERBOARD_LIMIT = 100


def rank_balances(balances, limit=DEFAULT_LEADERBOARD_LIMIT):
    """
    排名：按余额降序，余额相同保持输入顺序（sorted 是稳定排序）
    :param balances: 可迭代的 (wallet, balance)
    :return: [{'rank', 'wallet', 'totalBalance'}]
    """
    ordered = sorted(balances, key=lambda item: item[1], reverse=True)
    return [
        {'rank': index, 'wallet': wallet, 'totalBalance': str(balance)}
        for index, (wallet, balance) in enumerate(ordered[:limit], start=1)
    ]


def collect_balances():
    """
    Per-wallet totals: settled session amounts plus the bonus bucket.
    Wallets appear in first-session order, then bonus-only wallets in registration order.
    """
    totals = {}
    rows = (db.session.query(MiningSession.wallet_address, MiningSession.settled_amount)
            .order_by(MiningSession.id)
            .all())
    for wallet, settled in rows:
        totals[wallet] = totals.get(wallet, Decimal('0')) + Decimal(settled or 0)

    bonuses = (db.session.query(WalletUser.wallet_address, WalletAccount.bonus_balance)
               .join(WalletAccount, WalletAccount.wallet_user_id == WalletUser.id)
               .order_by(WalletUser.id)
               .all())
    for wallet, bonus in bonuses:
        bonus = Decimal(bonus or 0)
        if wallet in totals:
            totals[wallet] += bonus
        elif bonus > 0:
            totals[wallet] = bonus
    return list(totals.items())


def get_leaderboard(limit=DEFAULT_LEADERBOARD_LIMIT):
    return rank_balances(collect_balances(), limit=limit)
