from datetime import datetime, timezone
from extensions import db

NOTIFICATION_TYPES = ('referral', 'mining', 'reward')


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(128), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, default='referral')
    title = db.Column(db.String(120), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    data = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    def to_dict(self):
        return {
            'id': self.id,
            'wallet': self.wallet_address,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data or {},
            'isRead': self.is_read,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
