"""
퍼블리셔 주문 상태 머신

    (internal 도메인 배정)
              ↓
    pending ─(new_order 전달)→ notified
    pending / notified ─(accept)→ accepted → in_progress → submitted ─(internal)→ completed
                       └(reject)→ rejected

퍼블리셔 상태 변경 엔드포인트로는 accepted → in_progress, in_progress → submitted만 허용합니다.
submitted 이후 단계는 internal 팀의 완료 처리(complete_line_item)로만 진행됩니다.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import LineItemChange, OrderLineItem, PublisherEarning, PublisherOffering
from linkorders.services import earnings
from linkorders.services.order_access import load_order

logger = logging.getLogger(__name__)

PUBLISHER_STATUSES = ("pending", "notified", "accepted", "in_progress", "submitted", "completed", "rejected")

PUBLISHER_STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "accepted": ("in_progress",),
    "in_progress": ("submitted",),
    "submitted": (),
    "completed": (),
    "rejected": (),
}

PUBLISHER_RESPONSES = {
    "accept": "accepted",
    "reject": "rejected",
}
RESPONDABLE_STATUSES = ("pending", "notified")


def allowed_publisher_transitions(current_status: str | None) -> tuple[str, ...]:
    return PUBLISHER_STATUS_TRANSITIONS.get(current_status or "", ())


def _load_publisher_line_item(session: Session, auth: AuthSession, line_item_id: uuid.UUID) -> OrderLineItem:
    if auth.user_type != "publisher":
        raise PermissionError("퍼블리셔만 접근할 수 있습니다")

    item = session.scalars(
        select(OrderLineItem)
        .where(OrderLineItem.id == line_item_id)
        .where(OrderLineItem.publisher_id == auth.user_id)
        .with_for_update()
    ).one_or_none()
    if not item:
        raise LookupError("라인아이템을 찾을 수 없습니다")
    return item


def update_publisher_status(
    session: Session,
    auth: AuthSession,
    line_item_id: uuid.UUID,
    status: str,
    published_url: str | None = None,
    notes: str | None = None,
) -> tuple[OrderLineItem, PublisherEarning | None]:
    item = _load_publisher_line_item(session, auth, line_item_id)

    current = item.publisher_status
    if status not in allowed_publisher_transitions(current):
        raise ValueError(f"Invalid status transition from '{current}' to '{status}'")

    now = datetime.now(timezone.utc)
    if status == "submitted":
        url = (published_url or "").strip()
        if not url:
            raise ValueError("publishedUrl is required when marking an order as submitted")
        item.published_url = url
        item.delivered_at = now
        if notes:
            item.delivery_notes = notes

    item.publisher_status = status
    item.modified_by = auth.user_id
    item.updated_at = now
    session.flush()

    logger.info(f"퍼블리셔 상태 변경: line_item={item.id} {current} → {status}")

    earning = None
    if status == "submitted":
        earning = earnings.record_submission_earning(session, item)
    return item, earning


def respond_to_order(
    session: Session,
    auth: AuthSession,
    line_item_id: uuid.UUID,
    action: str,
    reason: str | None = None,
) -> OrderLineItem:
    """퍼블리셔의 주문 수락 / 거절"""
    if action not in PUBLISHER_RESPONSES:
        raise ValueError('Invalid action. Must be "accept" or "reject"')

    item = _load_publisher_line_item(session, auth, line_item_id)
    current = item.publisher_status
    if current not in RESPONDABLE_STATUSES:
        raise ValueError(f"Cannot {action} order in status '{current}'")

    item.publisher_status = PUBLISHER_RESPONSES[action]
    if action == "reject" and reason:
        item.delivery_notes = reason
    item.modified_by = auth.user_id
    item.updated_at = datetime.now(timezone.utc)
    session.flush()
    return item


def complete_line_item(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
) -> tuple[OrderLineItem, PublisherEarning]:
    """
    internal 팀의 납품 확인: submitted → completed, 정산 행을 confirmed로 전환합니다.
    """
    if not auth.is_internal:
        raise PermissionError("internal 사용자만 완료 처리할 수 있습니다")

    order = load_order(session, order_id)
    item = session.scalars(
        select(OrderLineItem)
        .where(OrderLineItem.id == line_item_id)
        .where(OrderLineItem.order_id == order.id)
        .with_for_update()
    ).one_or_none()
    if not item:
        raise LookupError("라인아이템을 찾을 수 없습니다")

    if item.publisher_status != "submitted":
        raise ValueError(f"Invalid status transition from '{item.publisher_status}' to 'completed'")

    earning = earnings.confirm_completion_earning(session, item)

    now = datetime.now(timezone.utc)
    item.publisher_status = "completed"
    item.status = "delivered"
    item.modified_by = auth.user_id
    item.updated_at = now
    session.flush()
    return item, earning


def find_publisher_offering(session: Session, domain: str) -> PublisherOffering | None:
    """
    도메인을 제공하는 퍼블리셔 선택: 검증된 퍼블리셔 → priority_rank 오름차순 → 오래된 offering 순.
    """
    verified_first = case((PublisherOffering.verification_status == "verified", 0), else_=1)
    return session.scalars(
        select(PublisherOffering)
        .where(func.lower(PublisherOffering.domain) == domain.lower())
        .where(PublisherOffering.is_active.is_(True))
        .order_by(verified_first, PublisherOffering.priority_rank, PublisherOffering.created_at)
        .limit(1)
    ).first()


def assign_line_item_domain(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
    domain: str,
) -> OrderLineItem:
    """
    internal 팀의 도메인 배정. 도메인을 제공하는 퍼블리셔가 있으면 함께 연결하고
    publisher_status를 pending으로 둡니다 (new_order 알림은 호출자가 큐에 넣습니다).
    """
    if not auth.is_internal:
        raise PermissionError("internal 사용자만 도메인을 배정할 수 있습니다")

    domain = (domain or "").strip().lower()
    if not domain:
        raise ValueError("domain is required")

    order = load_order(session, order_id)
    item = session.scalars(
        select(OrderLineItem)
        .where(OrderLineItem.id == line_item_id)
        .where(OrderLineItem.order_id == order.id)
        .with_for_update()
    ).one_or_none()
    if not item:
        raise LookupError("라인아이템을 찾을 수 없습니다")
    if item.status == "cancelled":
        raise ValueError("Cannot assign a domain to a cancelled line item")
    if item.publisher_status not in (None, "pending", "notified", "rejected"):
        raise ValueError(f"Cannot reassign line item with publisher status '{item.publisher_status}'")

    offering = find_publisher_offering(session, domain)
    platform_fee = None
    if offering and offering.base_price:
        platform_fee, _ = earnings.calculate_platform_fee(session, offering.publisher_id, offering.base_price)

    now = datetime.now(timezone.utc)
    previous = {
        "status": item.status,
        "domain": item.assigned_domain,
        "publisherId": str(item.publisher_id) if item.publisher_id else None,
    }

    item.assigned_domain = domain
    item.assigned_at = now
    item.assigned_by = auth.user_id
    item.publisher_id = offering.publisher_id if offering else None
    item.publisher_offering_id = offering.id if offering else None
    item.publisher_price = offering.base_price if offering else None
    item.platform_fee = platform_fee
    item.publisher_status = "pending" if offering else None
    item.status = "assigned"
    item.modified_by = auth.user_id
    item.updated_at = now
    item.version += 1

    session.add(
        LineItemChange(
            line_item_id=item.id,
            order_id=order.id,
            change_type="status_changed",
            previous_value=previous,
            new_value={
                "status": item.status,
                "domain": domain,
                "publisherId": str(item.publisher_id) if item.publisher_id else None,
            },
            changed_by=auth.user_id,
            change_reason="Domain assigned",
            changed_at=now,
        )
    )
    session.flush()

    if offering:
        logger.info(f"도메인 배정: line_item={item.id} domain={domain} publisher={offering.publisher_id}")
    else:
        logger.warning(f"도메인 배정: line_item={item.id} domain={domain} 제공 퍼블리셔 없음")
    return item


def list_publisher_line_items(
    session: Session,
    auth: AuthSession,
    status: str | None = None,
    limit: int = 100,
) -> list[OrderLineItem]:
    if auth.user_type != "publisher":
        raise PermissionError("퍼블리셔만 접근할 수 있습니다")

    stmt = (
        select(OrderLineItem)
        .where(OrderLineItem.publisher_id == auth.user_id)
        .order_by(OrderLineItem.updated_at.desc())
    )
    if status:
        stmt = stmt.where(OrderLineItem.publisher_status == status)
    return list(session.scalars(stmt.limit(limit)).all())
