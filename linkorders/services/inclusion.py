"""
Inclusion 상태 전환

사이트 제안 / 라인아이템을 삭제하지 않고 주문 내 노출 여부만 바꿉니다.

- inclusion_status: included | excluded | saved_for_later (기준 값)
- selection_pool / pool_rank: 기존 소비자를 위한 미러
    included → primary, 그 외 → alternative
- exclusion_reason: excluded 이면서 internal 사용자가 수정할 때만 기록, 그 외에는 비웁니다.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import OrderGroup, OrderLineItem, OrderSiteSubmission
from linkorders.schemas.line_item import LineItemMetadata
from linkorders.services.order_access import ensure_order_access, load_order

logger = logging.getLogger(__name__)

INCLUSION_STATUSES = ("included", "excluded", "saved_for_later")


def validate_inclusion_status(inclusion_status: str) -> str:
    if inclusion_status not in INCLUSION_STATUSES:
        raise ValueError(
            f"Invalid inclusion status '{inclusion_status}'. Must be one of: {', '.join(INCLUSION_STATUSES)}"
        )
    return inclusion_status


def legacy_pool_for(inclusion_status: str | None, inclusion_order: int | None = None) -> tuple[str, int]:
    """inclusion_status → (selection_pool, pool_rank)"""
    pool = "primary" if inclusion_status == "included" else "alternative"
    rank = inclusion_order if inclusion_order is not None else 1
    return pool, rank


def inclusion_status_from_pool(selection_pool: str | None) -> str:
    """legacy selection_pool만 있는 행의 inclusion_status 추정 (backfill 용)"""
    return "included" if selection_pool == "primary" else "saved_for_later"


def resolve_exclusion_reason(
    inclusion_status: str,
    exclusion_reason: str | None,
    auth: AuthSession,
) -> str | None:
    if inclusion_status != "excluded" or not auth.is_internal:
        return None
    reason = (exclusion_reason or "").strip()
    return reason or None


def set_submission_inclusion(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    group_id: uuid.UUID,
    submission_id: uuid.UUID,
    inclusion_status: str,
    inclusion_order: int | None = None,
    exclusion_reason: str | None = None,
) -> OrderSiteSubmission:
    validate_inclusion_status(inclusion_status)

    submission = session.scalars(
        select(OrderSiteSubmission).where(OrderSiteSubmission.id == submission_id).with_for_update()
    ).one_or_none()
    if not submission:
        raise LookupError("Submission을 찾을 수 없습니다")

    group = session.get(OrderGroup, group_id)
    if not group or submission.order_group_id != group.id or group.order_id != order_id:
        raise LookupError("Order group을 찾을 수 없습니다")

    ensure_order_access(group.order, auth)

    pool, rank = legacy_pool_for(inclusion_status, inclusion_order)
    submission.inclusion_status = inclusion_status
    submission.inclusion_order = inclusion_order
    submission.selection_pool = pool
    submission.pool_rank = rank
    submission.exclusion_reason = resolve_exclusion_reason(inclusion_status, exclusion_reason, auth)
    submission.updated_at = datetime.now(timezone.utc)
    session.flush()

    logger.info(f"submission inclusion 변경: submission={submission.id} status={inclusion_status} by={auth.user_id}({auth.user_type})")
    return submission


def set_line_item_inclusion(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
    inclusion_status: str,
    inclusion_order: int | None = None,
    exclusion_reason: str | None = None,
) -> OrderLineItem:
    validate_inclusion_status(inclusion_status)

    order = load_order(session, order_id)
    ensure_order_access(order, auth)

    item = session.scalars(
        select(OrderLineItem)
        .where(OrderLineItem.id == line_item_id)
        .where(OrderLineItem.order_id == order.id)
        .with_for_update()
    ).one_or_none()
    if not item:
        raise LookupError("라인아이템을 찾을 수 없습니다")

    meta = LineItemMetadata.from_raw(item.item_metadata)
    meta.inclusion_status = inclusion_status
    meta.inclusion_order = inclusion_order
    meta.selection_pool, meta.pool_rank = legacy_pool_for(inclusion_status, inclusion_order)
    meta.exclusion_reason = resolve_exclusion_reason(inclusion_status, exclusion_reason, auth)

    item.item_metadata = meta.to_raw()
    item.modified_by = auth.user_id
    item.updated_at = datetime.now(timezone.utc)
    session.flush()
    return item


def backfill_inclusion_status(session: Session, limit: int = 1000) -> dict[str, int]:
    """
    selection_pool만 기록된 기존 submission에 inclusion_status를 채웁니다.

    pool_rank는 그대로 두고 inclusion_order로 복사합니다.
    """
    rows = session.scalars(
        select(OrderSiteSubmission)
        .where(OrderSiteSubmission.inclusion_status.is_(None))
        .limit(limit)
    ).all()

    updated = 0
    for submission in rows:
        status = inclusion_status_from_pool(submission.selection_pool)
        submission.inclusion_status = status
        if submission.inclusion_order is None and submission.pool_rank is not None:
            submission.inclusion_order = submission.pool_rank
        submission.selection_pool, submission.pool_rank = legacy_pool_for(status, submission.inclusion_order)
        updated += 1

    session.flush()
    logger.info(f"inclusion backfill 완료: {updated}건")
    return {"scanned": len(rows), "updated": updated}
