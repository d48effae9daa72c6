"""
Pytest fixtures for coursepay backend tests.

Provides test database setup, marketplace actors, catalog items and a
factory for coupons / promo codes.
"""

from datetime import timedelta

import pytest

from coursepay import create_app
from coursepay.extensions import db
from coursepay.models import (
    Affiliate,
    BankDetail,
    Book,
    CoInstructor,
    Company,
    Coupon,
    Course,
    CourseBundle,
    Event,
    PromoCode,
    User,
)
from coursepay.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SCHEDULER_ENABLED': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _user(db_session, name, email, role="STUDENT", balance_cents=0):
    user = User(name=name, email=email, role=role, status="ACTIVE", balance_cents=balance_cents)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def platform_owner(db_session):
    """SUPER_ADMIN that receives platform shares."""
    return _user(db_session, "Platform", "owner@coursepay.test", role="SUPER_ADMIN")


@pytest.fixture(scope='function')
def student(db_session):
    return _user(db_session, "Student", "student@coursepay.test")


@pytest.fixture(scope='function')
def instructor(db_session):
    return _user(db_session, "Instructor", "instructor@coursepay.test", role="INSTRUCTOR")


@pytest.fixture(scope='function')
def other_instructor(db_session):
    return _user(db_session, "Other Instructor", "other@coursepay.test", role="INSTRUCTOR")


@pytest.fixture(scope='function')
def co_instructor(db_session):
    return _user(db_session, "Co Instructor", "co@coursepay.test", role="INSTRUCTOR")


@pytest.fixture(scope='function')
def company(db_session):
    company = Company(name="Acme Learning", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def course(db_session, instructor, company):
    """Course priced at 100.00."""
    course = Course(title="Intro to Ledgers", price_cents=10000, author_id=instructor.id, company_id=company.id)
    db_session.add(course)
    db_session.commit()
    return course


@pytest.fixture(scope='function')
def book(db_session, instructor, company):
    book = Book(title="Ledger Handbook", price_cents=2500, author_id=instructor.id, company_id=company.id)
    db_session.add(book)
    db_session.commit()
    return book


@pytest.fixture(scope='function')
def event(db_session, other_instructor):
    event = Event(title="Live Q&A", price_cents=4000, author_id=other_instructor.id)
    db_session.add(event)
    db_session.commit()
    return event


@pytest.fixture(scope='function')
def bundle(db_session, instructor, company):
    bundle = CourseBundle(title="Ledger Bundle", price_cents=15000, author_id=instructor.id, company_id=company.id)
    db_session.add(bundle)
    db_session.commit()
    return bundle


@pytest.fixture(scope='function')
def course_with_co_instructor(db_session, course, instructor, co_instructor):
    db_session.add(CoInstructor(
        course_id=course.id,
        co_instructor_id=co_instructor.id,
        invited_by_id=instructor.id,
        is_active=True,
    ))
    db_session.commit()
    return course


@pytest.fixture(scope='function')
def affiliate(db_session):
    user = _user(db_session, "Affiliate", "affiliate@coursepay.test")
    affiliate = Affiliate(user_id=user.id, is_active=True)
    db_session.add(affiliate)
    db_session.commit()
    return affiliate


@pytest.fixture(scope='function')
def bank_details(db_session, instructor):
    detail = BankDetail(
        user_id=instructor.id,
        bank_name="First Bank",
        account_holder="Instructor",
        account_number="000123456789",
    )
    db_session.add(detail)
    db_session.commit()
    return detail


@pytest.fixture(scope='function')
def make_discount(db_session):
    """
    Insert a coupon or promo code directly, bypassing creation rules.

    Usage: make_discount("coupon", course, code="SAVE10", percent=10, max_usage=1)
    """
    def _make(kind, target, code=None, percent=10, max_usage=None, used_count=0,
              expire_at=None, is_active=True, item_type="course", author_id=None):
        model = Coupon if kind == "coupon" else PromoCode
        instrument = model(
            code=code or f"{kind.upper()}-{target.id}-{percent}",
            author_id=author_id or target.author_id,
            item_type=item_type,
            discount_percent=percent,
            expire_at=expire_at or (utcnow() + timedelta(days=7)),
            max_usage=max_usage,
            used_count=used_count,
            is_active=is_active,
            **{f"{item_type}_id": target.id},
        )
        db_session.add(instrument)
        db_session.commit()
        return instrument

    return _make
