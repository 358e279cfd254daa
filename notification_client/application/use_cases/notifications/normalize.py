"""Convert wire notification records into validated domain entities."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Callable

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError, field_validator

from notification_client.domain.entities import NotificationEntity, NotificationMeta
from notification_client.interfaces.api.schemas import NotificationRead
from notification_client.utils import parse_timestamp

logger = logging.getLogger(__name__)


def _coerce_identifier(value: Any) -> Any:
    # Identifiers inside payloads may arrive as numbers; booleans are not ids.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]


class _PayloadSchema(BaseModel):
    model_config = ConfigDict(extra="allow")


class ProductQuestionPayload(_PayloadSchema):
    question_id: Identifier
    product_id: Identifier


class ProductAnswerPayload(_PayloadSchema):
    question_id: Identifier
    answer_id: Identifier
    product_id: Identifier


class OrderStatusPayload(_PayloadSchema):
    order_id: Identifier
    status: str | None = None
    payment_status: str | None = None
    shipping_status: str | None = None


class NewOrderPayload(_PayloadSchema):
    order_id: Identifier


class PromotionPayload(_PayloadSchema):
    promotion_id: Identifier


class LoyaltyPayload(_PayloadSchema):
    level: str
    previous_level: str | None = None
    points: int | float

    @field_validator("points")
    @classmethod
    def _points_not_negative(cls, value: int | float) -> int | float:
        if value < 0:
            raise ValueError("points must be non-negative")
        return value


def _product_question_meta(data: ProductQuestionPayload) -> NotificationMeta:
    return NotificationMeta(
        href=f"/products/{data.product_id}?question={data.question_id}",
        badge="Q&A",
    )


def _product_answer_meta(data: ProductAnswerPayload) -> NotificationMeta:
    return NotificationMeta(
        href=f"/products/{data.product_id}?answer={data.answer_id}",
        badge="Q&A",
    )


def _order_status_meta(data: OrderStatusPayload) -> NotificationMeta:
    return NotificationMeta(
        href=f"/orders/{data.order_id}",
        badge=data.status or data.payment_status or data.shipping_status,
    )


def _new_order_meta(data: NewOrderPayload) -> NotificationMeta:
    return NotificationMeta(href=f"/orders/{data.order_id}", badge="Nuevo pedido")


def _promotion_meta(data: PromotionPayload) -> NotificationMeta:
    return NotificationMeta(href=f"/promotions/{data.promotion_id}", badge="Promocion")


def _loyalty_meta(data: LoyaltyPayload) -> NotificationMeta:
    return NotificationMeta(href="/loyalty", badge=f"Nivel {data.level}")


_PayloadRule = tuple[type[_PayloadSchema], Callable[[Any], NotificationMeta]]

PAYLOAD_RULES: dict[str, _PayloadRule] = {
    "product_question": (ProductQuestionPayload, _product_question_meta),
    "product_answer": (ProductAnswerPayload, _product_answer_meta),
    "order_status": (OrderStatusPayload, _order_status_meta),
    "new_order": (NewOrderPayload, _new_order_meta),
    "promotion": (PromotionPayload, _promotion_meta),
    "loyalty": (LoyaltyPayload, _loyalty_meta),
}
GENERIC_TYPE = "generic"

NOTIFICATION_TYPES = (*PAYLOAD_RULES, GENERIC_TYPE)


def build_meta(notification_type: str, payload: Mapping[str, Any] | None) -> NotificationMeta | None:
    """Return the presentation hints for ``notification_type``.

    Pure function: the same inputs always produce an equal result. Unknown
    types, ``generic`` notifications and payloads that do not match the
    type's schema yield ``None``.
    """

    rule = PAYLOAD_RULES.get(notification_type)
    if rule is None:
        return None
    schema, meta_factory = rule
    try:
        data = schema.model_validate(dict(payload or {}))
    except ValidationError:
        return None
    return meta_factory(data)


def _normalize_payload(
    notification_type: str, payload: dict[str, Any] | None
) -> tuple[bool, dict[str, Any] | None, NotificationMeta | None]:
    rule = PAYLOAD_RULES.get(notification_type)
    if rule is None:
        return True, payload, None

    schema, meta_factory = rule
    try:
        data = schema.model_validate(payload or {})
    except ValidationError:
        return False, None, None
    return True, data.model_dump(exclude_none=True), meta_factory(data)


def normalize_notification(raw: object) -> NotificationEntity | None:
    """Return a :class:`NotificationEntity` for ``raw`` or ``None`` if invalid.

    Never raises: a malformed record is logged and skipped so a single bad
    item cannot abort a batch.
    """

    if not isinstance(raw, Mapping):
        logger.warning("normalize_notification: expected a mapping, got %s", type(raw).__name__)
        return None

    try:
        record = NotificationRead.model_validate(dict(raw))
    except ValidationError as exc:
        logger.warning(
            "normalize_notification: received invalid notification shape (%d errors)",
            exc.error_count(),
        )
        return None

    valid, payload, meta = _normalize_payload(record.type, record.payload)
    if not valid:
        logger.warning(
            'normalize_notification: invalid payload for type "%s" (id=%s)',
            record.type,
            record.id,
        )
        return None

    created_at = parse_timestamp(record.created_at)
    if created_at is None:  # pragma: no cover - guarded by NotificationRead
        return None

    if record.is_read:
        read_at = parse_timestamp(record.read_at) or created_at
    else:
        read_at = None

    return NotificationEntity(
        id=record.id,
        user_id=record.user_id,
        type=record.type,
        title=record.title,
        message=record.message,
        payload=payload,
        is_read=record.is_read,
        created_at=created_at,
        read_at=read_at,
        meta=meta,
    )


def normalize_many(records: Iterable[object]) -> list[NotificationEntity]:
    """Normalize ``records`` preserving order and dropping invalid items."""

    normalized: list[NotificationEntity] = []
    for raw in records:
        entity = normalize_notification(raw)
        if entity is not None:
            normalized.append(entity)
    return normalized


__all__ = [
    "GENERIC_TYPE",
    "NOTIFICATION_TYPES",
    "PAYLOAD_RULES",
    "build_meta",
    "normalize_many",
    "normalize_notification",
]
