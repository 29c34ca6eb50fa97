import math
from decimal import Decimal, getcontext

getcontext().prec = 30  # 设置高精度环境

SECONDS_PER_HOUR = 3600
MIN_MULTIPLIER = 1
MAX_MULTIPLIER = 6

# 1× 每秒 0.01，倍数线性递增
BASE_RATE_PER_SECOND = Decimal('0.01')


def default_rate(multiplier):
    return BASE_RATE_PER_SECOND * multiplier


# 唯一的默认费率表：既是计算兜底，也是配置种子数据
DEFAULT_MINING_RATES = {
    level: {
        'rate': default_rate(level),
        'hourlyReward': default_rate(level) * SECONDS_PER_HOUR,
    }
    for level in range(MIN_MULTIPLIER, MAX_MULTIPLIER + 1)
}

DEFAULT_DURATION_OPTIONS = [
    {'value': 1, 'label': '1 Hour'},
    {'value': 2, 'label': '2 Hours'},
    {'value': 4, 'label': '4 Hours'},
    {'value': 12, 'label': '12 Hours'},
    {'value': 24, 'label': '24 Hours'},
]


def rate_for(multiplier, rate_table=None):
    """Per-second rate for a multiplier level, falling back to the default table."""
    entry = None
    if rate_table:
        entry = rate_table.get(multiplier) or rate_table.get(str(multiplier))
    if entry and entry.get('rate') is not None:
        return Decimal(str(entry['rate']))
    return default_rate(multiplier)


class ProgressSnapshot:
    __slots__ = ('points', 'elapsed', 'remaining', 'percent', 'complete')

    def __init__(self, points, elapsed, remaining, percent, complete):
        self.points = points
        self.elapsed = elapsed
        self.remaining = remaining
        self.percent = percent
        self.complete = complete

    def __eq__(self, other):
        if not isinstance(other, ProgressSnapshot):
            return NotImplemented
        return self.to_tuple() == other.to_tuple()

    def __repr__(self):
        return (f'ProgressSnapshot(points={self.points}, elapsed={self.elapsed}, '
                f'remaining={self.remaining}, percent={self.percent}, complete={self.complete})')

    def to_tuple(self):
        return self.points, self.elapsed, self.remaining, self.percent, self.complete

    def to_dict(self):
        return {
            'currentPoints': str(self.points),
            'timeElapsed': self.elapsed,
            'timeRemaining': self.remaining,
            'progress': self.percent,
            'isComplete': self.complete,
        }


def _whole_seconds(later, earlier):
    return math.floor((later - earlier).total_seconds())


def target_seconds(session):
    return int(session.selected_hour_target) * SECONDS_PER_HOUR


def segment_points(session, rate_table, now):
    """
    Points accrued by the open multiplier segment, capped at the time the whole
    session had left when that segment began.
    """
    rate = rate_for(session.multiplier, rate_table)
    segment_elapsed = _whole_seconds(now, session.current_multiplier_start_time)
    segment_budget = target_seconds(session) - _whole_seconds(
        session.current_multiplier_start_time, session.mining_start_time)
    capped = max(0, min(segment_elapsed, segment_budget))
    return capped * rate


def compute_progress(session, rate_table, now):
    """
    计算挖矿进度（纯函数，不修改 session）
    :param session: 任何带有 mining_start_time / current_multiplier_start_time /
                    multiplier / selected_hour_target / current_mining_points 的对象
    :param rate_table: {倍数: {'rate': 每秒产出, 'hourlyReward': 每小时产出}}
    :param now: 当前时间（naive UTC）
    :return: ProgressSnapshot
    """
    total = target_seconds(session)
    total_elapsed = max(0, _whole_seconds(now, session.mining_start_time))

    carried = session.current_mining_points or Decimal('0')
    points = Decimal(carried) + segment_points(session, rate_table, now)

    remaining = max(0, total - total_elapsed)
    percent = min(100.0, total_elapsed / total * 100) if total else 100.0
    complete = total_elapsed >= total

    return ProgressSnapshot(
        points=points,
        elapsed=min(total_elapsed, total),
        remaining=remaining,
        percent=percent,
        complete=complete,
    )
