from extensions import db, socketio
from models import Notification
from utils.logger import get_logger

logger = get_logger("notifications")


def wallet_room(wallet_address):
    return f"wallet:{wallet_address}"


def create_notification(wallet_address, type_, title, message, data=None):
    """Adds a notification to the current transaction; the caller commits."""
    notification = Notification(
        wallet_address=wallet_address,
        type=type_,
        title=title,
        message=message,
        data=data or {},
    )
    db.session.add(notification)
    return notification


def publish(notification):
    """推送到钱包房间；推送失败不影响已提交的数据"""
    if notification is None:
        return
    try:
        socketio.emit('notification', notification.to_dict(), to=wallet_room(notification.wallet_address))
    except Exception as e:
        logger.warning(f"[publish] notification {notification.id} push failed: {e}")


def list_notifications(wallet_address, limit=50):
    return (Notification.query
            .filter_by(wallet_address=wallet_address)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all())


def mark_read(notification_id):
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        return None
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(wallet_address):
    count = (Notification.query
             .filter_by(wallet_address=wallet_address, is_read=False)
             .update({'is_read': True}, synchronize_session=False))
    db.session.commit()
    return count
