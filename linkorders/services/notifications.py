"""
주문 알림

알림 행은 요청 트랜잭션 안의 savepoint에서 pending으로 만들고, 생성에 실패하면 로그만 남깁니다.
실제 전달은 BackgroundTasks에서 별도 세션으로 수행합니다. 전달 실패는 로그와 error_message로만 남기고 호출자에게 전파하지 않습니다.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
from sqlalchemy.orm import Session

from linkorders.models import Account, OrderLineItem, OrderNotification, Publisher
from linkorders.settings import settings

logger = logging.getLogger(__name__)

NOTIFICATION_NEW_ORDER = "new_order"
NOTIFICATION_ORDER_APPROVED = "order_approved"
NOTIFICATION_ORDER_CANCELLED = "order_cancelled"
NOTIFICATION_ORDER_CONFIRMED = "order_confirmed"
NOTIFICATION_ORDER_SUBMITTED = "order_submitted"


def notification_subject(notification_type: str) -> str:
    if notification_type == NOTIFICATION_NEW_ORDER:
        return "New Guest Post Order Available"
    if notification_type == NOTIFICATION_ORDER_APPROVED:
        return "Order Completed - Earnings Added"
    if notification_type == NOTIFICATION_ORDER_CANCELLED:
        return "Order Cancelled"
    if notification_type == NOTIFICATION_ORDER_CONFIRMED:
        return "Your Order Has Been Confirmed"
    if notification_type == NOTIFICATION_ORDER_SUBMITTED:
        return "Guest Post Published"
    return "Order Update"


def notification_message(notification_type: str, metadata: dict[str, Any]) -> str:
    base = settings.app_base_url.rstrip("/")
    if notification_type == NOTIFICATION_NEW_ORDER:
        return (
            "<p>You have a new guest post order available for review.</p>"
            "<p>Please log in to your dashboard to accept or decline this order.</p>"
            f'<p><a href="{base}/publisher/orders">View Order</a></p>'
        )
    if notification_type == NOTIFICATION_ORDER_APPROVED:
        earnings = (metadata.get("earnings") or 0) / 100
        return (
            "<p>Your order has been completed and approved.</p>"
            f"<p>Earnings of ${earnings:.2f} have been added to your account.</p>"
            f'<p><a href="{base}/publisher/earnings">View Earnings</a></p>'
        )
    if notification_type == NOTIFICATION_ORDER_CANCELLED:
        return "<p>An order has been cancelled.</p>"
    if notification_type == NOTIFICATION_ORDER_CONFIRMED:
        return (
            "<p>Your order has been confirmed and site analysis has started.</p>"
            f'<p><a href="{base}/orders/{metadata.get("orderId", "")}">View Order</a></p>'
        )
    if notification_type == NOTIFICATION_ORDER_SUBMITTED:
        return f'<p>A guest post was published: {metadata.get("publishedUrl", "")}</p>'
    return "<p>Your order has been updated.</p>"


def _queue(
    session: Session,
    notification_type: str,
    metadata: dict[str, Any],
    **recipient_fields: Any,
) -> OrderNotification | None:
    """
    알림 행 생성을 savepoint로 격리합니다. 실패해도 요청의 주 작업은 롤백하지 않습니다.
    """
    try:
        with session.begin_nested():
            notification = OrderNotification(
                notification_type=notification_type,
                channel="email",
                status="pending",
                subject=notification_subject(notification_type),
                message=notification_message(notification_type, metadata),
                notification_metadata=metadata,
                **recipient_fields,
            )
            session.add(notification)
            session.flush()
        return notification
    except Exception as e:
        logger.error(f"알림 생성 실패 ({notification_type}): {e}", exc_info=True)
        return None


def queue_publisher_notification(
    session: Session,
    publisher_id: uuid.UUID,
    line_item_id: uuid.UUID | None,
    notification_type: str,
    metadata: dict[str, Any] | None = None,
) -> OrderNotification | None:
    publisher = session.get(Publisher, publisher_id)
    if not publisher:
        logger.warning(f"알림 대상 퍼블리셔를 찾을 수 없습니다: {publisher_id}")
        return None

    return _queue(
        session,
        notification_type,
        metadata or {},
        publisher_id=publisher.id,
        order_line_item_id=line_item_id,
        recipient=publisher.email,
    )


def queue_account_notification(
    session: Session,
    account_id: uuid.UUID | None,
    order_id: uuid.UUID,
    notification_type: str,
    metadata: dict[str, Any] | None = None,
) -> OrderNotification | None:
    account = session.get(Account, account_id) if account_id else None
    if not account:
        logger.warning(f"알림 대상 계정을 찾을 수 없습니다: order={order_id}")
        return None

    return _queue(
        session,
        notification_type,
        {"orderId": str(order_id), **(metadata or {})},
        account_id=account.id,
        order_id=order_id,
        recipient=account.email,
    )


def _mark_line_item_notified(session: Session, notification: OrderNotification) -> None:
    """new_order 알림이 전달되면 pending 상태의 라인아이템을 notified로 올립니다."""
    if notification.notification_type != NOTIFICATION_NEW_ORDER or not notification.order_line_item_id:
        return
    item = session.get(OrderLineItem, notification.order_line_item_id)
    if item and item.publisher_status == "pending" and item.publisher_id == notification.publisher_id:
        item.publisher_status = "notified"


def deliver_notification(session_factory: Callable[[], Session], notification_id: uuid.UUID) -> None:
    """
    BackgroundTasks 진입점. 예외를 밖으로 내보내지 않습니다.
    """
    if not settings.notification_webhook_url:
        logger.info(f"notification_webhook_url 미설정, 알림 대기 유지: {notification_id}")
        return

    try:
        with session_factory() as session:
            notification = session.get(OrderNotification, notification_id)
            if not notification:
                logger.warning(f"알림을 찾을 수 없습니다: {notification_id}")
                return

            try:
                resp = httpx.post(
                    settings.notification_webhook_url,
                    json={
                        "id": str(notification.id),
                        "type": notification.notification_type,
                        "channel": notification.channel,
                        "to": notification.recipient,
                        "subject": notification.subject,
                        "html": notification.message,
                    },
                    timeout=settings.notification_timeout_seconds,
                )
                resp.raise_for_status()
                notification.status = "sent"
                notification.sent_at = datetime.now(timezone.utc)
                _mark_line_item_notified(session, notification)
            except httpx.HTTPError as e:
                logger.error(f"알림 전송 실패 ({notification_id}): {e}")
                notification.status = "failed"
                notification.error_message = str(e)
            session.commit()
    except Exception as e:
        logger.error(f"알림 처리 중 오류 ({notification_id}): {e}", exc_info=True)
