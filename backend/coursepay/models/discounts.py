from __future__ import annotations

from ..extensions import db
from coursepay.time_utils import to_utc_z


class Coupon(db.Model):
    """
    Author-issued percentage discount bound to one book, course or event.

    used_count only moves through the guarded UPDATE in discount_service;
    reaching max_usage flips is_active in the same statement.
    """
    __tablename__ = "coupons"
    __table_args__ = (
        db.CheckConstraint("discount_percent > 0 AND discount_percent <= 100", name="ck_coupons_discount_range"),
        db.CheckConstraint("max_usage IS NULL OR used_count <= max_usage", name="ck_coupons_usage_ceiling"),
        db.Index("ix_coupons_code_active", "code", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)  # book, course, event
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=True, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=True, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True, index=True)

    discount_percent = db.Column(db.Integer, nullable=False)
    expire_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    max_usage = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "coupon",
            "code": self.code,
            "author_id": self.author_id,
            "item_type": self.item_type,
            "book_id": self.book_id,
            "course_id": self.course_id,
            "event_id": self.event_id,
            "discount_percent": self.discount_percent,
            "expire_at": to_utc_z(self.expire_at),
            "max_usage": self.max_usage,
            "used_count": self.used_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PromoCode(db.Model):
    """
    Promo codes validate exactly like coupons; they differ only in the
    revenue split they trigger (97/3 instructor/platform).
    """
    __tablename__ = "promo_codes"
    __table_args__ = (
        db.CheckConstraint("discount_percent > 0 AND discount_percent <= 100", name="ck_promo_codes_discount_range"),
        db.CheckConstraint("max_usage IS NULL OR used_count <= max_usage", name="ck_promo_codes_usage_ceiling"),
        db.Index("ix_promo_codes_code_active", "code", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)  # book, course, event
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=True, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=True, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True, index=True)

    discount_percent = db.Column(db.Integer, nullable=False)
    expire_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    max_usage = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "promo",
            "code": self.code,
            "author_id": self.author_id,
            "item_type": self.item_type,
            "book_id": self.book_id,
            "course_id": self.course_id,
            "event_id": self.event_id,
            "discount_percent": self.discount_percent,
            "expire_at": to_utc_z(self.expire_at),
            "max_usage": self.max_usage,
            "used_count": self.used_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Affiliate(db.Model):
    """Affiliate account; an order referencing it pays the 20% affiliate share."""
    __tablename__ = "affiliates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("affiliate", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
