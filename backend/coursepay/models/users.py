from __future__ import annotations

from ..extensions import db
from coursepay.time_utils import to_utc_z


class User(db.Model):
    """
    Purchasers, authors and the platform owner.

    balance_cents is credited by order settlement and debited only by a
    COMPLETED withdraw request. Both directions go through guarded
    single-statement updates; never assign it from Python.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("balance_cents >= 0", name="ck_users_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)

    role = db.Column(db.String(32), nullable=False, default="STUDENT", index=True)  # STUDENT, INSTRUCTOR, SUPER_ADMIN
    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)  # ACTIVE, BLOCKED
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "is_deleted": self.is_deleted,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
        }


class BankDetail(db.Model):
    """Payout bank profile. A live row is required for BANK_TRANSFER withdrawals."""
    __tablename__ = "bank_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    bank_name = db.Column(db.String(255), nullable=False)
    account_holder = db.Column(db.String(255), nullable=False)
    account_number = db.Column(db.String(64), nullable=False)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("bank_detail", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bank_name": self.bank_name,
            "account_holder": self.account_holder,
            # Only the last four digits leave the service
            "account_number_last4": self.account_number[-4:],
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
        }
