from apscheduler.schedulers.background import BackgroundScheduler
from utils.logger import get_logger

logger = get_logger("scheduler")

scheduler = BackgroundScheduler()


# 重试领取后未完成的邀请分成
def settle_pending_referrals_job(app):
    with app.app_context():
        from extensions import db
        from utils.settlement import settle_pending_referral_rewards
        try:
            settled = settle_pending_referral_rewards()
            if settled:
                logger.info(f"[settle_pending_referrals_job] credited {settled} referral reward(s)")
        except Exception:
            db.session.rollback()
            logger.exception("[settle_pending_referrals_job] sweep failed")


def start_scheduler(app):
    # 每5min执行一次
    scheduler.add_job(lambda: settle_pending_referrals_job(app), 'interval', minutes=5,
                      id='settle_pending_referrals', replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started: referral settlement sweep every 5min")
