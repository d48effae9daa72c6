# Overview: Resolves a cart line's item type and id to its live price and owner.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidError, NotFoundError
from ..extensions import db
from ..models import Book, Course, CourseBundle, Event, CoInstructor


ITEM_BOOK = "book"
ITEM_COURSE = "course"
ITEM_COURSE_BUNDLE = "course_bundle"
ITEM_EVENT = "event"

MODEL_BY_ITEM_TYPE = {
    ITEM_BOOK: Book,
    ITEM_COURSE: Course,
    ITEM_COURSE_BUNDLE: CourseBundle,
    ITEM_EVENT: Event,
}

VALID_ITEM_TYPES = list(MODEL_BY_ITEM_TYPE)


@dataclass(frozen=True)
class PricedEntity:
    item_type: str
    reference_id: int
    price_cents: int
    author_id: int | None
    company_id: int | None


def get_live_entity(item_type: str, reference_id: int):
    """Load the non-deleted catalog row, or None."""
    model = MODEL_BY_ITEM_TYPE.get(item_type)
    if model is None:
        raise InvalidError(f"Invalid item type: {item_type}. Must be one of {VALID_ITEM_TYPES}")
    return db.session.query(model).filter_by(id=reference_id, is_deleted=False).first()


def resolve(item_type: str, reference_id: int) -> PricedEntity:
    entity = get_live_entity(item_type, reference_id)
    if entity is None:
        raise NotFoundError(f"{item_type} with id {reference_id} not found")

    return PricedEntity(
        item_type=item_type,
        reference_id=entity.id,
        price_cents=entity.price_cents,
        author_id=entity.author_id,
        company_id=entity.company_id,
    )


def active_co_instructor_ids(course_id: int) -> list[int]:
    """Co-instructors currently attached to a course, oldest link first."""
    rows = (
        db.session.query(CoInstructor.co_instructor_id)
        .filter_by(course_id=course_id, is_active=True, is_deleted=False)
        .order_by(CoInstructor.id)
        .all()
    )
    return [row[0] for row in rows]
