from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from coursepay.time_utils import to_utc_z


class WithdrawRequest(db.Model):
    """
    Author payout request against User.balance_cents.

    LIFECYCLE: PENDING -> COMPLETED | CANCELLED (both terminal).
    Balance is debited only on the transition to COMPLETED.

    The partial unique index keeps at most one PENDING request per user
    even when two creations race past the service-level check.
    """
    __tablename__ = "withdraw_requests"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_withdraw_requests_amount_positive"),
        db.Index(
            "uq_withdraw_requests_user_pending",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
        db.Index("ix_withdraw_requests_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payout_type = db.Column(db.String(32), nullable=False)  # BANK_TRANSFER, STRIPE
    status = db.Column(db.String(16), nullable=False, default="PENDING")

    # External payout id (e.g. Stripe transfer) recorded by the operator
    transfer_reference = db.Column(db.String(128), nullable=True)

    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("withdraw_requests", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount_cents": self.amount_cents,
            "payout_type": self.payout_type,
            "status": self.status,
            "transfer_reference": self.transfer_reference,
            "processed_by_user_id": self.processed_by_user_id,
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
