# utils/referral_jobs.py
from utils.logger import get_logger

logger = get_logger("referral_jobs")


def retry_referral_settlement(session_id):
    """
    rq 任务：重试某个会话的邀请分成。
    在 worker 进程中运行，需要自己创建 app 上下文；失败时抛出，由 rq 标记为 failed，
    定时扫描任务会再次处理。
    """
    from app import create_app
    from utils.settlement import settle_referral_reward

    app = create_app()
    with app.app_context():
        reward = settle_referral_reward(session_id)
        if reward is not None:
            logger.info(f"[retry_referral_settlement] session {session_id} settled: {reward.amount}")
        return reward.id if reward is not None else None
