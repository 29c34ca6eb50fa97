from datetime import datetime, timezone
from flask import current_app, has_app_context


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def current_time():
    # 测试里通过 app.config['CLOCK'] 注入可控时钟
    if has_app_context():
        clock = current_app.config.get('CLOCK')
        if clock is not None:
            return clock()
    return utcnow()
