"""
퍼블리셔 정산 (earnings ledger)

수수료 우선순위: 퍼블리셔 전용 설정 > 글로벌 설정 > settings.default_commission_percent
금액 단위는 모두 센트입니다.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from linkorders.models import CommissionConfiguration, OrderLineItem, PublisherEarning
from linkorders.settings import settings

logger = logging.getLogger(__name__)

EARNING_TYPE_ORDER_COMPLETION = "order_completion"

EARNING_STATUS_PENDING = "pending"
EARNING_STATUS_CONFIRMED = "confirmed"
EARNING_STATUS_PAID = "paid"

PENDING_PUBLISHER_STATUSES = ("pending", "notified", "accepted", "in_progress")


def _active_commission(session: Session, scope_type: str, scope_id: uuid.UUID | None) -> CommissionConfiguration | None:
    stmt = (
        select(CommissionConfiguration)
        .where(CommissionConfiguration.scope_type == scope_type)
        .where(CommissionConfiguration.is_active.is_(True))
        .order_by(CommissionConfiguration.created_at)
        .limit(1)
    )
    if scope_id is not None:
        stmt = stmt.where(CommissionConfiguration.scope_id == scope_id)
    return session.scalars(stmt).first()


def calculate_platform_fee(session: Session, publisher_id: uuid.UUID, amount: int) -> tuple[int, float]:
    """
    Returns:
        (platform_fee, commission_percent)
    """
    config = _active_commission(session, "publisher", publisher_id) or _active_commission(session, "global", None)

    commission_percent = settings.default_commission_percent
    if config and config.base_commission_percent is not None:
        commission_percent = float(config.base_commission_percent)

    platform_fee = round(amount * commission_percent / 100)
    return platform_fee, commission_percent


def find_completion_earning(session: Session, line_item_id: uuid.UUID) -> PublisherEarning | None:
    return session.scalars(
        select(PublisherEarning)
        .where(PublisherEarning.order_line_item_id == line_item_id)
        .where(PublisherEarning.earning_type == EARNING_TYPE_ORDER_COMPLETION)
        .limit(1)
    ).first()


def create_pending_earning(session: Session, item: OrderLineItem) -> PublisherEarning:
    """
    라인아이템 납품에 대한 pending 정산 행을 만듭니다. 이미 있으면 기존 행을 반환합니다.
    """
    if not item.publisher_id or not item.publisher_price:
        raise ValueError(f"퍼블리셔 가격이 지정되지 않은 라인아이템입니다: {item.id}")

    existing = find_completion_earning(session, item.id)
    if existing:
        return existing

    gross = int(item.publisher_price)
    platform_fee, commission_percent = calculate_platform_fee(session, item.publisher_id, gross)

    earning = PublisherEarning(
        publisher_id=item.publisher_id,
        order_line_item_id=item.id,
        order_id=item.order_id,
        earning_type=EARNING_TYPE_ORDER_COMPLETION,
        amount=gross,
        gross_amount=gross,
        platform_fee_percent=commission_percent,
        platform_fee_amount=platform_fee,
        net_amount=gross - platform_fee,
        status=EARNING_STATUS_PENDING,
        description=f"Earnings for order #{item.order_id}",
        earning_metadata={
            "orderDetails": {
                "clientId": str(item.client_id),
                "targetPageUrl": item.target_page_url,
                "anchorText": item.anchor_text,
                "publishedUrl": item.published_url,
                "submittedAt": item.delivered_at.isoformat() if item.delivered_at else None,
            }
        },
    )
    session.add(earning)
    session.flush()

    if item.platform_fee is None:
        item.platform_fee = platform_fee

    logger.info(f"pending 정산 생성: line_item={item.id} gross={gross} fee={platform_fee}")
    return earning


def record_submission_earning(session: Session, item: OrderLineItem) -> PublisherEarning | None:
    """
    납품(submitted) 시점의 정산 행 생성. 실패해도 상태 변경은 유지되도록 savepoint로 격리하고
    예외는 로그만 남깁니다. 정산은 별도로 맞춥니다.
    """
    try:
        with session.begin_nested():
            return create_pending_earning(session, item)
    except Exception as e:
        logger.error(f"정산 행 생성 실패 (line_item={item.id}): {e}", exc_info=True)
        return None


def confirm_completion_earning(session: Session, item: OrderLineItem) -> PublisherEarning:
    earning = find_completion_earning(session, item.id) or create_pending_earning(session, item)
    if earning.status == EARNING_STATUS_PENDING:
        earning.status = EARNING_STATUS_CONFIRMED
        earning.confirmed_at = datetime.now(timezone.utc)
    session.flush()
    return earning


def get_publisher_order_stats(session: Session, publisher_id: uuid.UUID) -> dict[str, int]:
    total_orders = session.scalar(
        select(func.count(OrderLineItem.id)).where(OrderLineItem.publisher_id == publisher_id)
    ) or 0
    pending_orders = session.scalar(
        select(func.count(OrderLineItem.id))
        .where(OrderLineItem.publisher_id == publisher_id)
        .where(OrderLineItem.publisher_status.in_(PENDING_PUBLISHER_STATUSES))
    ) or 0
    completed_orders = session.scalar(
        select(func.count(OrderLineItem.id))
        .where(OrderLineItem.publisher_id == publisher_id)
        .where(OrderLineItem.publisher_status == "completed")
    ) or 0

    def _sum_net(*statuses: str) -> int:
        stmt = select(func.coalesce(func.sum(PublisherEarning.net_amount), 0)).where(
            PublisherEarning.publisher_id == publisher_id
        )
        if statuses:
            stmt = stmt.where(PublisherEarning.status.in_(statuses))
        return int(session.scalar(stmt) or 0)

    return {
        "totalOrders": int(total_orders),
        "pendingOrders": int(pending_orders),
        "completedOrders": int(completed_orders),
        "totalEarnings": _sum_net(),
        "pendingEarnings": _sum_net(EARNING_STATUS_PENDING, EARNING_STATUS_CONFIRMED),
        "paidEarnings": _sum_net(EARNING_STATUS_PAID),
    }
