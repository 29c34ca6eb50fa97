from decimal import Decimal, InvalidOperation
from extensions import db
from models import AppConfig
from utils.clock import current_time
from utils.logger import get_logger
from utils.mining_service import (
    DEFAULT_MINING_RATES,
    DEFAULT_DURATION_OPTIONS,
    MIN_MULTIPLIER,
    MAX_MULTIPLIER,
    SECONDS_PER_HOUR,
)

logger = get_logger("config")

MINING_RATES_KEY = 'MINING_RATES'
DURATION_OPTIONS_KEY = 'DURATION_OPTIONS'
CONFIG_KEYS = (MINING_RATES_KEY, DURATION_OPTIONS_KEY)


def rate_table_to_json(table):
    """JSON 形式：键为字符串，数值为 float（与客户端一致）"""
    return {
        str(level): {'rate': float(entry['rate']), 'hourlyReward': float(entry['hourlyReward'])}
        for level, entry in sorted(table.items(), key=lambda item: int(item[0]))
    }


def default_config_values():
    return {
        MINING_RATES_KEY: rate_table_to_json(DEFAULT_MINING_RATES),
        DURATION_OPTIONS_KEY: [dict(option) for option in DEFAULT_DURATION_OPTIONS],
    }


def get_config_value(key, default=None):
    row = AppConfig.query.filter_by(key=key).first()
    return row.value if row is not None else default


# ----------------- 校验 -----------------

def _amount(value, field):
    # bool 是 int 的子类，单独排除
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f'{field} must be a number')
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f'{field} must be a number')
    if not amount.is_finite() or amount < 0:
        raise ValueError(f'{field} must be a finite, non-negative number')
    return amount


def parse_rate_entry(level, entry):
    """
    解析费率表的一档。
    :return: (multiplier, {'rate': Decimal, 'hourlyReward': Decimal})
    :raises ValueError: 倍数越界或数值非法
    """
    try:
        multiplier = int(level)
    except (TypeError, ValueError):
        raise ValueError(f'Invalid multiplier level: {level!r}')
    if not MIN_MULTIPLIER <= multiplier <= MAX_MULTIPLIER:
        raise ValueError(f'Multiplier level must be between {MIN_MULTIPLIER} and {MAX_MULTIPLIER}')
    if not isinstance(entry, dict) or entry.get('rate') is None:
        raise ValueError(f'Level {multiplier} must be an object with a rate')

    rate = _amount(entry['rate'], f'Level {multiplier} rate')
    hourly = entry.get('hourlyReward')
    return multiplier, {
        'rate': rate,
        'hourlyReward': (_amount(hourly, f'Level {multiplier} hourlyReward')
                         if hourly is not None else rate * SECONDS_PER_HOUR),
    }


def validate_mining_rates(value):
    if not isinstance(value, dict):
        raise ValueError('MINING_RATES must be an object keyed by multiplier')
    for level, entry in value.items():
        parse_rate_entry(level, entry)


def validate_duration_options(value):
    if not isinstance(value, list) or not value:
        raise ValueError('DURATION_OPTIONS must be a non-empty list')
    for option in value:
        hours = option.get('value') if isinstance(option, dict) else None
        if isinstance(hours, bool) or not isinstance(hours, int) or hours <= 0:
            raise ValueError('Each duration option needs a positive integer value')


VALIDATORS = {
    MINING_RATES_KEY: validate_mining_rates,
    DURATION_OPTIONS_KEY: validate_duration_options,
}


# ----------------- 读取 -----------------

def get_rate_table():
    """
    当前费率表 {倍数(int): {'rate': Decimal, 'hourlyReward': Decimal}}
    配置缺失、某一档缺失或无法解析时使用默认表，保证不会出现断档。
    """
    table = {level: dict(entry) for level, entry in DEFAULT_MINING_RATES.items()}
    stored = get_config_value(MINING_RATES_KEY) or {}
    if not isinstance(stored, dict):
        logger.warning(f"[get_rate_table] ignoring malformed {MINING_RATES_KEY}: {stored!r}")
        return table
    for level, entry in stored.items():
        try:
            multiplier, parsed = parse_rate_entry(level, entry)
        except ValueError as e:
            logger.warning(f"[get_rate_table] ignoring level {level!r}: {e}")
            continue
        table[multiplier] = parsed
    return table


def get_duration_options():
    options = get_config_value(DURATION_OPTIONS_KEY)
    if not options:
        return [dict(option) for option in DEFAULT_DURATION_OPTIONS]
    return options


def allowed_hours():
    return {int(option['value']) for option in get_duration_options()}


def config_updated_at():
    return db.session.query(db.func.max(AppConfig.updated_at)).scalar()


# ----------------- 写入 -----------------

def set_config_value(key, value, now=None):
    if key not in CONFIG_KEYS:
        raise ValueError(f'Unknown config key: {key}')
    VALIDATORS[key](value)

    now = now or current_time()
    row = AppConfig.query.filter_by(key=key).with_for_update().first()
    if row is None:
        row = AppConfig(key=key, value=value, updated_at=now)
        db.session.add(row)
    else:
        row.value = value
        row.updated_at = now
    db.session.commit()
    logger.info(f"[set_config_value] {key} updated")
    return row


def seed_defaults(now=None):
    """Upsert the default rate table and duration options."""
    for key, value in default_config_values().items():
        set_config_value(key, value, now=now)
