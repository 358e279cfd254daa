import pathlib
import sys
from datetime import datetime, timezone

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.application.use_cases.notifications import (
    build_meta,
    normalize_many,
    normalize_notification,
)
from notification_client.domain.entities import NotificationMeta


def test_normalize_generic_notification(record_factory):
    entity = normalize_notification(record_factory(payload={"anything": 1}))

    assert entity is not None
    assert entity.id == "n-1"
    assert entity.type == "generic"
    assert entity.payload == {"anything": 1}
    assert entity.meta is None
    assert entity.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert entity.read_at is None


@pytest.mark.parametrize(
    ("notification_type", "payload", "expected"),
    [
        (
            "product_question",
            {"question_id": "q1", "product_id": "p1"},
            NotificationMeta(href="/products/p1?question=q1", badge="Q&A"),
        ),
        (
            "product_answer",
            {"question_id": "q1", "answer_id": "a1", "product_id": "p1"},
            NotificationMeta(href="/products/p1?answer=a1", badge="Q&A"),
        ),
        (
            "order_status",
            {"order_id": 42, "payment_status": "paid"},
            NotificationMeta(href="/orders/42", badge="paid"),
        ),
        (
            "new_order",
            {"order_id": "o-7"},
            NotificationMeta(href="/orders/o-7", badge="Nuevo pedido"),
        ),
        (
            "promotion",
            {"promotion_id": "promo"},
            NotificationMeta(href="/promotions/promo", badge="Promocion"),
        ),
        (
            "loyalty",
            {"level": "Oro", "points": 120},
            NotificationMeta(href="/loyalty", badge="Nivel Oro"),
        ),
    ],
)
def test_build_meta_per_type(notification_type, payload, expected):
    assert build_meta(notification_type, payload) == expected

    entity = normalize_notification(
        {
            "id": "n-9",
            "user_id": "u-1",
            "type": notification_type,
            "title": "t",
            "message": "m",
            "payload": payload,
            "is_read": False,
            "created_at": "2024-05-01T10:00:00Z",
            "read_at": None,
        }
    )
    assert entity is not None
    assert entity.meta == expected


def test_build_meta_is_none_for_unknown_and_generic_types():
    assert build_meta("generic", {"order_id": "1"}) is None
    assert build_meta("unknown_kind", {"order_id": "1"}) is None


def test_build_meta_is_none_when_payload_does_not_match():
    assert build_meta("new_order", {}) is None


def test_order_status_badge_prefers_status():
    meta = build_meta(
        "order_status",
        {"order_id": "1", "status": "shipped", "payment_status": "paid"},
    )
    assert meta.badge == "shipped"


def test_identifier_fields_are_coerced_to_strings(record_factory):
    entity = normalize_notification(
        record_factory(type="new_order", payload={"order_id": 15, "extra": True})
    )

    assert entity.payload == {"order_id": "15", "extra": True}


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "not a mapping",
        ["n-1"],
        {"id": "n-1"},
    ],
)
def test_normalize_rejects_malformed_input(raw):
    assert normalize_notification(raw) is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": 1},
        {"user_id": 7},
        {"is_read": "false"},
        {"created_at": "yesterday"},
        {"read_at": "not a date"},
        {"title": None},
    ],
)
def test_normalize_is_strict_about_field_types(record_factory, overrides):
    assert normalize_notification(record_factory(**overrides)) is None


@pytest.mark.parametrize("missing_key", ["payload", "read_at"])
def test_nullable_keys_must_still_be_present(record_factory, missing_key):
    record = record_factory()
    del record[missing_key]

    assert normalize_notification(record) is None


@pytest.mark.parametrize(
    ("notification_type", "payload"),
    [
        ("product_question", {"question_id": "q1"}),
        ("loyalty", {"level": "Oro", "points": -1}),
        ("order_status", None),
    ],
)
def test_normalize_drops_invalid_typed_payloads(record_factory, notification_type, payload):
    assert normalize_notification(record_factory(type=notification_type, payload=payload)) is None


def test_unread_notification_never_keeps_read_at(record_factory):
    entity = normalize_notification(
        record_factory(is_read=False, read_at="2024-05-02T08:00:00Z")
    )

    assert entity.is_read is False
    assert entity.read_at is None


def test_read_notification_without_read_at_uses_created_at(record_factory):
    entity = normalize_notification(record_factory(is_read=True))

    assert entity.read_at == entity.created_at


def test_read_notification_keeps_server_read_at(record_factory):
    entity = normalize_notification(
        record_factory(is_read=True, read_at="2024-05-02T08:00:00+00:00")
    )

    assert entity.read_at == datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc)


def test_normalize_many_skips_invalid_items_and_keeps_order(record_factory):
    records = [
        record_factory(id="b"),
        {"broken": True},
        record_factory(id="a"),
    ]

    assert [entity.id for entity in normalize_many(records)] == ["b", "a"]


def test_entity_round_trips_to_wire_payload(record_factory):
    raw = record_factory(type="new_order", payload={"order_id": "o-1"})
    entity = normalize_notification(raw)

    payload = entity.to_payload()
    assert payload["created_at"] == "2024-05-01T10:00:00Z"
    assert payload["meta"] == {"href": "/orders/o-1", "badge": "Nuevo pedido"}
    assert normalize_notification(payload) == entity
