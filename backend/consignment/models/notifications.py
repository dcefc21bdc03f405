from __future__ import annotations

from ..extensions import db
from consignment.time_utils import to_utc_z


NOTIFICATION_PAYOUT_PROCESSED = "PAYOUT_PROCESSED"
NOTIFICATION_STATEMENT_READY = "STATEMENT_READY"


class Notification(db.Model):
    """In-app notification addressed to a consignor."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_consignor_read", "consignor_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=False)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)

    related_entity_type = db.Column(db.String(32), nullable=True)
    related_entity_id = db.Column(db.Integer, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    email_sent = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "related_entity_type": self.related_entity_type,
            "related_entity_id": self.related_entity_id,
            "is_read": self.is_read,
            "email_sent": self.email_sent,
            "created_at": to_utc_z(self.created_at),
        }
