# extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
import os
from redis import Redis
from rq import Queue
from dotenv import load_dotenv

db = SQLAlchemy()

load_dotenv()

socketio = SocketIO()  # 不传 app

_referral_queue = None


def get_referral_queue():
    """Queue used to retry referral cascades; None when REDIS_URL is not configured."""
    global _referral_queue
    if _referral_queue is None:
        redis_url = os.getenv("REDIS_URL")
        if not redis_url:
            return None
        redis_conn = Redis.from_url(redis_url)
        _referral_queue = Queue("referral_jobs", connection=redis_conn)
    return _referral_queue
