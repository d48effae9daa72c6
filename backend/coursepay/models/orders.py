from __future__ import annotations

from ..extensions import db
from coursepay.time_utils import to_utc_z


class Order(db.Model):
    """
    Priced checkout result (all amounts in cents).

    Totals and shares are frozen at creation; afterwards only status,
    payment_status, transaction_id and is_deleted move.

    INVARIANTS:
    - final_amount_cents = gross_amount_cents - discount_cents
    - instructor + platform + affiliate shares = final_amount_cents
    - co_instructors_share_cents is recorded alongside, not carved out of them
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_author_created", "author_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Set only when every line shares the same author / company
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)

    gross_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    instructor_share_cents = db.Column(db.Integer, nullable=False, default=0)
    platform_share_cents = db.Column(db.Integer, nullable=False, default=0)
    affiliate_share_cents = db.Column(db.Integer, nullable=False, default=0)
    co_instructors_share_cents = db.Column(db.Integer, nullable=False, default=0)
    co_instructor_ids = db.Column(db.JSON, nullable=False, default=list)

    # Instruments that priced this order
    coupon_code = db.Column(db.String(64), nullable=True)
    promo_code = db.Column(db.String(64), nullable=True)
    affiliate_id = db.Column(db.Integer, db.ForeignKey("affiliates.id"), nullable=True, index=True)

    payment_method = db.Column(db.String(32), nullable=True)
    transaction_id = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)  # PENDING, COMPLETED, CANCELLED
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)  # UNPAID, PAID
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    items = db.relationship(
        "OrderItem",
        backref=db.backref("order", lazy=True),
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "author_id": self.author_id,
            "company_id": self.company_id,
            "gross_amount_cents": self.gross_amount_cents,
            "discount_cents": self.discount_cents,
            "final_amount_cents": self.final_amount_cents,
            "instructor_share_cents": self.instructor_share_cents,
            "platform_share_cents": self.platform_share_cents,
            "affiliate_share_cents": self.affiliate_share_cents,
            "co_instructors_share_cents": self.co_instructors_share_cents,
            "co_instructor_ids": list(self.co_instructor_ids or []),
            "coupon_code": self.coupon_code,
            "promo_code": self.promo_code,
            "affiliate_id": self.affiliate_id,
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "paid_at": to_utc_z(self.paid_at),
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """One cart line, priced and frozen at checkout."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint(
            "(CASE WHEN book_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN course_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN course_bundle_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN event_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_order_items_single_reference",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)  # book, course, course_bundle, event
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=True)
    course_bundle_id = db.Column(db.Integer, db.ForeignKey("course_bundles.id"), nullable=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True)

    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    base_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_price_cents = db.Column(db.Integer, nullable=False)
    co_instructors_share_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def reference_id(self) -> int | None:
        return self.book_id or self.course_id or self.course_bundle_id or self.event_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_type": self.item_type,
            "reference_id": self.reference_id,
            "book_id": self.book_id,
            "course_id": self.course_id,
            "course_bundle_id": self.course_bundle_id,
            "event_id": self.event_id,
            "author_id": self.author_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "base_price_cents": self.base_price_cents,
            "discount_cents": self.discount_cents,
            "final_price_cents": self.final_price_cents,
            "co_instructors_share_cents": self.co_instructors_share_cents,
            "created_at": to_utc_z(self.created_at),
        }


class CoInstructorEarning(db.Model):
    """Per co-instructor slice of an order's co-author share, written at settlement."""
    __tablename__ = "co_instructor_earnings"
    __table_args__ = (
        db.UniqueConstraint("order_id", "co_instructor_id", name="uq_co_instructor_earnings_order_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    co_instructor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "co_instructor_id": self.co_instructor_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }


class AffiliateSale(db.Model):
    """Commission record for a settled order that carried an affiliate."""
    __tablename__ = "affiliate_sales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    affiliate_id = db.Column(db.Integer, db.ForeignKey("affiliates.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    commission_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "affiliate_id": self.affiliate_id,
            "order_id": self.order_id,
            "author_id": self.author_id,
            "commission_cents": self.commission_cents,
            "created_at": to_utc_z(self.created_at),
        }
