"""
주문 라인아이템 관리

생성 / 일괄 수정 / 취소(soft delete)를 변경 이력(LineItemChange)과 함께 한 트랜잭션으로 처리합니다.
일괄 수정은 version 컬럼으로 낙관적 잠금을 겁니다.
"""
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import LineItemChange, Order, OrderLineItem
from linkorders.schemas.line_item import LineItemMetadata
from linkorders.services.inclusion import legacy_pool_for, validate_inclusion_status
from linkorders.services.order_access import ensure_order_access, load_order
from linkorders.services.order_status import ensure_line_items_editable
from linkorders.settings import settings

logger = logging.getLogger(__name__)

# account 사용자의 변경 이력에는 실제 사용자 대신 고정 id를 남깁니다
ACCOUNT_CHANGE_ACTOR = uuid.UUID(int=0)

DELIVERED_STATUSES = ("delivered", "completed")
PENDING_STATUSES = ("draft", "pending_selection")

UPDATABLE_FIELDS = (
    "status",
    "client_id",
    "target_page_url",
    "anchor_text",
    "estimated_price",
    "wholesale_price",
    "approved_price",
)

# inclusion_status에서 계산되거나 internal 전용인 키
CLIENT_READONLY_METADATA_KEYS = ("selectionPool", "poolRank", "exclusionReason")


def _change_actor(auth: AuthSession) -> uuid.UUID:
    return ACCOUNT_CHANGE_ACTOR if auth.user_type == "account" else auth.user_id


def _merge_metadata(stored: dict | None, incoming: dict[str, Any], auth: AuthSession) -> dict:
    """
    클라이언트 metadata를 기존 값에 병합합니다.

    selectionPool / poolRank는 inclusion_status에서만 계산하고, exclusionReason은
    internal 사용자만 바꿀 수 있으며 excluded 상태에서만 남깁니다.
    """
    previous = LineItemMetadata.from_raw(stored)
    meta = LineItemMetadata.from_raw(
        {
            **(stored or {}),
            **{k: v for k, v in incoming.items() if k not in CLIENT_READONLY_METADATA_KEYS},
        }
    )

    reason = previous.exclusion_reason
    if auth.is_internal and "exclusionReason" in incoming:
        reason = (incoming["exclusionReason"] or "").strip() or None

    meta.selection_pool, meta.pool_rank = legacy_pool_for(meta.inclusion_status, meta.inclusion_order)
    meta.exclusion_reason = reason if meta.inclusion_status == "excluded" else None
    return meta.to_raw()


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _load_editable_order(session: Session, auth: AuthSession, order_id: uuid.UUID, verb: str) -> Order:
    order = load_order(session, order_id, for_update=True)
    if auth.user_type not in ("internal", "account"):
        raise PermissionError(f"Cannot {verb} line items for this order")
    ensure_order_access(order, auth)
    ensure_line_items_editable(order, auth, verb)
    return order


def list_line_items(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    status: str | None = None,
    client_id: uuid.UUID | None = None,
) -> tuple[list[OrderLineItem], dict[str, Any]]:
    order = load_order(session, order_id)
    ensure_order_access(order, auth)

    stmt = select(OrderLineItem).where(OrderLineItem.order_id == order.id)
    if status:
        stmt = stmt.where(OrderLineItem.status == status)
    if client_id:
        stmt = stmt.where(OrderLineItem.client_id == client_id)
    stmt = stmt.order_by(OrderLineItem.display_order, OrderLineItem.created_at)
    items = list(session.scalars(stmt).all())

    summary = {
        "total": len(items),
        "byStatus": dict(Counter(item.status for item in items)),
        "totalValue": sum((item.approved_price or item.estimated_price or 0) for item in items),
        "deliveredCount": sum(1 for item in items if item.status in DELIVERED_STATUSES),
        "pendingCount": sum(1 for item in items if item.status in PENDING_STATUSES),
    }
    return items, summary


def recent_line_item_changes(
    session: Session,
    line_item_ids: list[uuid.UUID],
    per_item: int = 5,
) -> dict[uuid.UUID, list[LineItemChange]]:
    """라인아이템별 최근 변경 이력 (최신순)"""
    if not line_item_ids:
        return {}
    rows = session.scalars(
        select(LineItemChange)
        .where(LineItemChange.line_item_id.in_(line_item_ids))
        .order_by(LineItemChange.changed_at.desc())
    ).all()
    grouped: dict[uuid.UUID, list[LineItemChange]] = {}
    for row in rows:
        bucket = grouped.setdefault(row.line_item_id, [])
        if len(bucket) < per_item:
            bucket.append(row)
    return grouped


def recalculate_order_totals(session: Session, order: Order) -> None:
    items = session.scalars(
        select(OrderLineItem)
        .where(OrderLineItem.order_id == order.id)
        .where(OrderLineItem.status != "cancelled")
    ).all()
    order.total_retail = sum((i.approved_price or i.estimated_price or 0) for i in items)
    order.total_wholesale = sum((i.wholesale_price or 0) for i in items)
    order.updated_at = datetime.now(timezone.utc)


def create_line_items(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    items: list[dict[str, Any]],
    reason: str | None = None,
) -> list[OrderLineItem]:
    if not items:
        raise ValueError("items array is required")

    order = _load_editable_order(session, auth, order_id, "add")

    next_display_order = session.scalar(
        select(func.max(OrderLineItem.display_order)).where(OrderLineItem.order_id == order.id)
    )
    next_display_order = -1 if next_display_order is None else next_display_order

    batch_id = uuid.uuid4()
    now = datetime.now(timezone.utc)
    created = []
    for payload in items:
        if not payload.get("client_id"):
            raise ValueError("clientId is required for each line item")

        meta = LineItemMetadata.from_raw(payload.get("metadata"))
        if meta.inclusion_status is None:
            meta.inclusion_status = "included"
        validate_inclusion_status(meta.inclusion_status)
        meta.selection_pool, meta.pool_rank = legacy_pool_for(meta.inclusion_status, meta.inclusion_order)
        if meta.inclusion_status != "excluded" or not auth.is_internal:
            meta.exclusion_reason = None

        next_display_order += 1
        assigned_domain = payload.get("assigned_domain")
        item = OrderLineItem(
            order_id=order.id,
            client_id=payload["client_id"],
            target_page_url=payload.get("target_page_url"),
            anchor_text=payload.get("anchor_text"),
            status=payload.get("status") or "draft",
            assigned_domain=assigned_domain,
            assigned_at=now if assigned_domain else None,
            estimated_price=payload.get("estimated_price"),
            wholesale_price=payload.get("wholesale_price"),
            service_fee=settings.service_fee_cents,
            item_metadata=meta.to_raw(),
            added_by=auth.user_id,
            display_order=next_display_order,
            version=1,
        )
        session.add(item)
        session.flush()
        created.append(item)

        session.add(
            LineItemChange(
                line_item_id=item.id,
                order_id=order.id,
                change_type="created",
                new_value={
                    "clientId": str(item.client_id),
                    "targetPageUrl": item.target_page_url,
                    "anchorText": item.anchor_text,
                },
                changed_by=_change_actor(auth),
                change_reason=reason or "Line items added to order",
                batch_id=batch_id,
                changed_at=now,
            )
        )

    session.flush()
    recalculate_order_totals(session, order)
    session.flush()
    logger.info(f"라인아이템 추가: order={order.id} count={len(created)}")
    return created


def update_line_items(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    updates: list[dict[str, Any]],
    reason: str | None = None,
) -> list[OrderLineItem]:
    if not updates:
        raise ValueError("updates array is required")

    order = _load_editable_order(session, auth, order_id, "edit")

    batch_id = uuid.uuid4()
    now = datetime.now(timezone.utc)
    updated = []
    for payload in updates:
        item_id = payload.get("id")
        if not item_id:
            raise ValueError("Line item ID is required for updates")

        current = session.scalars(
            select(OrderLineItem)
            .where(OrderLineItem.id == item_id)
            .where(OrderLineItem.order_id == order.id)
        ).one_or_none()
        if not current:
            logger.warning(f"라인아이템 {item_id} 없음, 건너뜁니다")
            continue

        values: dict[str, Any] = {}
        changes: dict[str, Any] = {}
        for field in UPDATABLE_FIELDS:
            if field in payload and payload[field] != getattr(current, field):
                values[field] = payload[field]
                changes[field] = {"from": _jsonable(getattr(current, field)), "to": _jsonable(payload[field])}

        if "assigned_domain" in payload and payload["assigned_domain"] != current.assigned_domain:
            values["assigned_domain"] = payload["assigned_domain"]
            values["assigned_at"] = now
            changes["domain"] = {"from": current.assigned_domain, "to": payload["assigned_domain"]}
            if current.status == "draft" and "status" not in values:
                values["status"] = "pending_selection"
                changes["status"] = {"from": current.status, "to": "pending_selection"}

        if payload.get("metadata") is not None:
            item_metadata = _merge_metadata(current.item_metadata, payload["metadata"], auth)
            if item_metadata != current.item_metadata:
                values["item_metadata"] = item_metadata
                changes["metadata"] = {"from": current.item_metadata, "to": item_metadata}

        if not changes:
            continue

        values.update(modified_by=auth.user_id, updated_at=now, version=current.version + 1)
        result = session.execute(
            update(OrderLineItem)
            .where(OrderLineItem.id == current.id)
            .where(OrderLineItem.version == current.version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise RuntimeError(f"Concurrent update detected for line item {current.id}")
        session.refresh(current)
        updated.append(current)

        session.add(
            LineItemChange(
                line_item_id=current.id,
                order_id=order.id,
                change_type="status_changed" if "status" in changes else "modified",
                previous_value=changes,
                new_value={k: _jsonable(v) for k, v in values.items()},
                changed_by=_change_actor(auth),
                change_reason=reason or payload.get("reason") or "Line item updated",
                batch_id=batch_id,
                changed_at=now,
            )
        )

    session.flush()
    logger.info(f"라인아이템 수정: order={order.id} count={len(updated)}")
    return updated


def cancel_line_items(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    item_ids: list[uuid.UUID],
    reason: str | None = None,
) -> list[OrderLineItem]:
    if not item_ids:
        raise ValueError("itemIds array is required")

    order = _load_editable_order(session, auth, order_id, "delete")

    batch_id = uuid.uuid4()
    now = datetime.now(timezone.utc)
    cancelled = []
    for item_id in item_ids:
        item = session.scalars(
            select(OrderLineItem)
            .where(OrderLineItem.id == item_id)
            .where(OrderLineItem.order_id == order.id)
        ).one_or_none()
        if not item or item.status == "cancelled":
            continue

        previous_status = item.status
        item.status = "cancelled"
        item.cancelled_at = now
        item.cancelled_by = auth.user_id
        item.cancellation_reason = reason or "Line item cancelled"
        item.modified_by = auth.user_id
        item.updated_at = now
        cancelled.append(item)

        session.add(
            LineItemChange(
                line_item_id=item.id,
                order_id=order.id,
                change_type="cancelled",
                previous_value={"status": previous_status},
                new_value={"status": "cancelled"},
                changed_by=_change_actor(auth),
                change_reason=reason or "Line item cancelled",
                batch_id=batch_id,
                changed_at=now,
            )
        )

    session.flush()
    recalculate_order_totals(session, order)
    session.flush()
    return cancelled
