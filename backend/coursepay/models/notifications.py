from __future__ import annotations

from ..extensions import db
from coursepay.time_utils import to_utc_z


class Notification(db.Model):
    """In-app notification written by notification_service.notify."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_receiver_read", "receiver_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    mode_type = db.Column(db.String(32), nullable=False)  # ORDER, WITHDRAW_REQUEST
    message = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    context_json = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receiver_id": self.receiver_id,
            "mode_type": self.mode_type,
            "message": self.message,
            "description": self.description,
            "context": self.context_json,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
