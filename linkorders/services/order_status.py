"""
주문 상태 전환 엔진

사용자 유형별 허용 전환표를 기준으로 주문 상태를 바꾸고, 상태별 타임스탬프 / state / 이력을 기록합니다.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import Order, OrderStatusHistory
from linkorders.services.order_access import ensure_order_access, load_order

logger = logging.getLogger(__name__)

ORDER_STATUSES = (
    "draft",
    "pending_confirmation",
    "confirmed",
    "sites_ready",
    "client_reviewing",
    "client_approved",
    "invoiced",
    "payment_pending",
    "payment_processing",
    "paid",
    "in_progress",
    "completed",
    "cancelled",
    "refunded",
    "partially_refunded",
)

# account 사용자가 라인아이템을 수정할 수 있는 상태 (결제 시작 전)
EDITABLE_STATUSES = (
    "draft",
    "pending_confirmation",
    "confirmed",
    "sites_ready",
    "client_reviewing",
    "client_approved",
    "invoiced",
)

PAYMENT_LOCKED_STATUSES = (
    "payment_pending",
    "payment_processing",
    "paid",
    "in_progress",
    "completed",
    "refunded",
    "partially_refunded",
)

ACCOUNT_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "draft": ("pending_confirmation", "cancelled"),
    "pending_confirmation": ("cancelled",),
    "client_reviewing": ("client_approved",),
}

INTERNAL_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "draft": ("pending_confirmation", "cancelled"),
    "pending_confirmation": ("confirmed", "draft", "cancelled"),
    "confirmed": ("sites_ready", "cancelled"),
    "sites_ready": ("client_reviewing", "cancelled"),
    "client_reviewing": ("client_approved", "sites_ready", "cancelled"),
    "client_approved": ("invoiced", "cancelled"),
    "invoiced": ("payment_pending", "paid", "cancelled"),
    "payment_pending": ("payment_processing", "paid", "invoiced"),
    "payment_processing": ("paid", "invoiced"),
    "paid": ("in_progress", "refunded", "partially_refunded"),
    "in_progress": ("completed", "refunded", "partially_refunded"),
    "completed": ("refunded", "partially_refunded"),
    "partially_refunded": ("refunded",),
}

STATUS_TIMESTAMP_FIELDS = {
    "confirmed": "confirmed_at",
    "client_approved": "approved_at",
    "invoiced": "invoiced_at",
    "paid": "paid_at",
    "completed": "completed_at",
    "cancelled": "cancelled_at",
}

STATUS_STATE = {
    "draft": "configuring",
    "pending_confirmation": "awaiting_confirmation",
    "confirmed": "analyzing",
    "sites_ready": "sites_ready",
    "client_reviewing": "site_review",
    "client_approved": "approved",
    "paid": "payment_received",
    "in_progress": "in_progress",
    "completed": "completed",
    "cancelled": "cancelled",
}


def allowed_order_transitions(user_type: str, current_status: str) -> tuple[str, ...]:
    if user_type == "internal":
        return INTERNAL_TRANSITIONS.get(current_status, ())
    if user_type == "account":
        return ACCOUNT_TRANSITIONS.get(current_status, ())
    return ()


def ensure_line_items_editable(order: Order, auth: AuthSession, verb: str = "edit") -> None:
    """
    account 사용자는 결제 단계 이전까지만 라인아이템을 수정할 수 있습니다.
    """
    if auth.user_type != "account" or order.status in EDITABLE_STATUSES:
        return
    if order.status in PAYMENT_LOCKED_STATUSES:
        raise ValueError(
            f"Cannot {verb} line items once payment process begins. Current status: '{order.status}'. "
            "Please contact support for assistance."
        )
    raise ValueError(f"Cannot {verb} line items in status: '{order.status}'")


def transition_order_status(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    new_status: str,
    notes: str | None = None,
) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValueError(f"Invalid order status '{new_status}'")

    order = load_order(session, order_id, for_update=True)
    if auth.user_type == "publisher":
        raise PermissionError("퍼블리셔는 주문 상태를 변경할 수 없습니다")
    ensure_order_access(order, auth)

    old_status = order.status
    if new_status not in allowed_order_transitions(auth.user_type, old_status):
        raise ValueError(f"Invalid status transition from '{old_status}' to '{new_status}'")

    now = datetime.now(timezone.utc)
    order.status = new_status
    timestamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
    if timestamp_field and getattr(order, timestamp_field) is None:
        setattr(order, timestamp_field, now)
    if new_status in STATUS_STATE:
        order.state = STATUS_STATE[new_status]
    order.updated_at = now

    session.add(
        OrderStatusHistory(
            order_id=order.id,
            old_status=old_status,
            new_status=new_status,
            changed_by=auth.user_id,
            notes=notes,
            changed_at=now,
        )
    )
    session.flush()

    logger.info(f"주문 상태 변경: order={order.id} {old_status} → {new_status} by={auth.user_id}({auth.user_type})")
    return order


def confirm_order(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    notes: str | None = None,
) -> Order:
    if not auth.is_internal:
        raise PermissionError("internal 사용자만 주문을 확정할 수 있습니다")
    return transition_order_status(session, auth, order_id, "confirmed", notes=notes or "Order confirmed")
