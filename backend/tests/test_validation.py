import pytest

from coursepay.validation import (
    ValidationError,
    parse_cart_lines,
    parse_cents,
    parse_datetime,
    parse_id,
    parse_int,
)


@pytest.mark.parametrize("value", [True, 1.0, "1e3", "12.5", "abc", [1]])
def test_parse_int_rejects_non_integers(value):
    with pytest.raises(ValidationError):
        parse_int(value, "field")


def test_parse_int_accepts_digit_strings():
    assert parse_int(" 42 ", "field") == 42
    assert parse_int(None, "field", required=False) is None


def test_parse_id_must_be_positive():
    with pytest.raises(ValidationError):
        parse_id(0, "user_id")


def test_parse_cents_bounds():
    assert parse_cents(1, "amount_cents") == 1
    with pytest.raises(ValidationError):
        parse_cents(0, "amount_cents")
    with pytest.raises(ValidationError):
        parse_cents(1_000_000_000, "amount_cents")


def test_parse_datetime_normalizes_to_naive_utc():
    dt = parse_datetime("2030-01-01T02:00:00+02:00", "expire_at")
    assert dt.tzinfo is None
    assert dt.hour == 0
    with pytest.raises(ValidationError):
        parse_datetime("next tuesday", "expire_at")


def test_parse_cart_lines_defaults_quantity():
    lines = parse_cart_lines([
        {"item_type": "course", "reference_id": 3},
        {"item_type": "book", "reference_id": "7", "quantity": 2},
    ])

    assert [(l.item_type, l.reference_id, l.quantity) for l in lines] == [("course", 3, 1), ("book", 7, 2)]


@pytest.mark.parametrize("raw", [
    None,
    [],
    [{"item_type": "podcast", "reference_id": 1}],
    [{"item_type": "course"}],
    [{"item_type": "course", "reference_id": 1, "quantity": 0}],
    ["course"],
])
def test_parse_cart_lines_rejects_bad_entries(raw):
    with pytest.raises(ValidationError):
        parse_cart_lines(raw)
