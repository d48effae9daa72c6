"""HTTP surface tests: status codes, error payloads and request parsing."""

from datetime import timedelta

from coursepay.time_utils import to_utc_z, utcnow


def test_health_reports_checks(client, db_session):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] in ("healthy", "degraded")
    assert body["checks"]["database"]["status"] == "healthy"


def test_checkout_route_creates_order(client, db_session, student, course):
    response = client.post("/api/orders/", json={
        "user_id": student.id,
        "items": [{"item_type": "course", "reference_id": course.id}],
    })

    assert response.status_code == 201
    order = response.get_json()["order"]
    assert order["final_amount_cents"] == 10000
    assert order["instructor_share_cents"] == 5000
    assert order["platform_share_cents"] == 5000
    assert order["items"][0]["quantity"] == 1


def test_checkout_route_maps_engine_errors(client, db_session, student, course, make_discount):
    make_discount("coupon", course, code="OLD", expire_at=utcnow() - timedelta(days=1))

    missing = client.post("/api/orders/", json={
        "user_id": student.id,
        "items": [{"item_type": "course", "reference_id": course.id}],
        "coupon_code": "NOPE",
    })
    expired = client.post("/api/orders/", json={
        "user_id": student.id,
        "items": [{"item_type": "course", "reference_id": course.id}],
        "coupon_code": "OLD",
    })

    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NOT_FOUND"
    assert expired.status_code == 400
    assert expired.get_json()["code"] == "EXPIRED"


def test_checkout_route_validates_body(client, db_session, student):
    no_items = client.post("/api/orders/", json={"user_id": student.id, "items": []})
    bad_type = client.post("/api/orders/", json={
        "user_id": student.id,
        "items": [{"item_type": "podcast", "reference_id": 1}],
    })
    float_id = client.post("/api/orders/", json={
        "user_id": 1.5,
        "items": [{"item_type": "course", "reference_id": 1}],
    })

    assert no_items.status_code == 400
    assert bad_type.status_code == 400
    assert float_id.status_code == 400


def test_order_lifecycle_routes(client, db_session, platform_owner, student, course):
    created = client.post("/api/orders/", json={
        "user_id": student.id,
        "items": [{"item_type": "course", "reference_id": course.id}],
    }).get_json()["order"]

    fetched = client.get(f"/api/orders/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.get_json()["split_branch"] == "NONE"

    listed = client.get(f"/api/orders/?user_id={student.id}").get_json()
    assert listed["meta"] == {"page": 1, "limit": 20, "total": 1}
    assert [o["id"] for o in listed["data"]] == [created["id"]]

    settled = client.post(f"/api/orders/{created['id']}/settle", json={"transaction_id": "pi_route"})
    assert settled.status_code == 200
    assert settled.get_json()["order"]["payment_status"] == "PAID"

    again = client.post(f"/api/orders/{created['id']}/settle", json={"transaction_id": "pi_route"})
    assert again.status_code == 400
    assert again.get_json()["code"] == "INVALID"

    deleted = client.delete(f"/api/orders/{created['id']}")
    assert deleted.status_code == 200
    assert client.get(f"/api/orders/{created['id']}").status_code == 404


def test_coupon_routes(client, db_session, instructor, course):
    response = client.post("/api/coupons/", json={
        "author_id": instructor.id,
        "code": "ROUTE10",
        "item_type": "course",
        "course_id": course.id,
        "discount_percent": 10,
        "expire_at": to_utc_z(utcnow() + timedelta(days=10)),
        "max_usage": 2,
    })
    assert response.status_code == 201
    coupon = response.get_json()["coupon"]

    listed = client.get(f"/api/coupons/?author_id={instructor.id}&active_only=true")
    assert [c["code"] for c in listed.get_json()["items"]] == ["ROUTE10"]

    deactivated = client.post(f"/api/coupons/{coupon['id']}/deactivate")
    assert deactivated.get_json()["coupon"]["is_active"] is False

    assert client.get("/api/promo-codes/424242").status_code == 404


def test_promo_route_rejects_conflicting_coupon(client, db_session, instructor, course, make_discount):
    make_discount("coupon", course, code="TAKEN")

    response = client.post("/api/promo-codes/", json={
        "author_id": instructor.id,
        "code": "PROMO1",
        "item_type": "course",
        "course_id": course.id,
        "discount_percent": 20,
        "expire_at": to_utc_z(utcnow() + timedelta(days=10)),
    })

    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID"


def test_affiliate_route_is_idempotent(client, db_session, student):
    first = client.post("/api/affiliates/", json={"user_id": student.id})
    second = client.post("/api/affiliates/", json={"user_id": student.id})

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.get_json()["affiliate"]["id"] == second.get_json()["affiliate"]["id"]


def test_withdraw_request_routes(client, db_session, instructor):
    instructor.balance_cents = 3000
    db_session.commit()

    too_much = client.post("/api/withdraw-requests/", json={
        "user_id": instructor.id, "amount_cents": 5000, "payout_type": "STRIPE",
    })
    assert too_much.status_code == 400

    created = client.post("/api/withdraw-requests/", json={
        "user_id": instructor.id, "amount_cents": 3000, "payout_type": "STRIPE",
    })
    assert created.status_code == 201
    request_id = created.get_json()["withdraw_request"]["id"]

    completed = client.patch(f"/api/withdraw-requests/{request_id}/status", json={"status": "COMPLETED"})
    assert completed.status_code == 200
    assert completed.get_json()["withdraw_request"]["status"] == "COMPLETED"

    repeat = client.patch(f"/api/withdraw-requests/{request_id}/status", json={"status": "CANCELLED"})
    assert repeat.status_code == 409
    assert repeat.get_json()["code"] == "INVALID_TRANSITION"

    listed = client.get(f"/api/withdraw-requests/?user_id={instructor.id}").get_json()
    assert listed["meta"]["total"] == 1
    assert [r["id"] for r in listed["data"]] == [request_id]


def test_withdraw_amount_must_be_integer_cents(client, db_session, instructor):
    response = client.post("/api/withdraw-requests/", json={
        "user_id": instructor.id, "amount_cents": 10.5, "payout_type": "STRIPE",
    })

    assert response.status_code == 400
