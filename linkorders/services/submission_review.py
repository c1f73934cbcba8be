"""
사이트 제안 검토 (클라이언트 승인 / 거절)

검토 결과는 submission_status에 반영하고, 이력은 SubmissionReviewEvent에 순서대로 추가만 합니다.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import OrderGroup, OrderSiteSubmission, SubmissionReviewEvent
from linkorders.services.order_access import ensure_order_access, load_order

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = {
    "approve": "client_approved",
    "reject": "client_rejected",
}


def review_submission(
    session: Session,
    auth: AuthSession,
    order_id: uuid.UUID,
    group_id: uuid.UUID,
    submission_id: uuid.UUID,
    action: str,
    notes: str | None = None,
) -> OrderSiteSubmission:
    if action not in REVIEW_ACTIONS:
        raise ValueError('Invalid action. Must be "approve" or "reject"')

    order = load_order(session, order_id)
    ensure_order_access(order, auth)

    submission = session.scalars(
        select(OrderSiteSubmission)
        .where(OrderSiteSubmission.id == submission_id)
        .where(OrderSiteSubmission.order_group_id == group_id)
        .with_for_update()
    ).one_or_none()
    if not submission:
        raise LookupError("Submission을 찾을 수 없습니다")

    group = session.get(OrderGroup, group_id)
    if not group or group.order_id != order.id:
        raise LookupError("이 주문에 속한 order group을 찾을 수 없습니다")

    now = datetime.now(timezone.utc)
    submission.submission_status = REVIEW_ACTIONS[action]
    submission.client_reviewed_at = now
    # account 검토자는 주문 소유자로 식별되므로 internal 검토자만 기록합니다
    submission.client_reviewed_by = auth.user_id if auth.is_internal else None
    submission.client_review_notes = notes
    submission.updated_at = now

    last_sequence = session.scalar(
        select(func.max(SubmissionReviewEvent.sequence)).where(SubmissionReviewEvent.submission_id == submission.id)
    )
    session.add(
        SubmissionReviewEvent(
            submission_id=submission.id,
            sequence=(last_sequence or 0) + 1,
            action=action,
            reviewed_by=auth.user_id,
            reviewer_type=auth.user_type,
            notes=notes,
            created_at=now,
        )
    )
    session.flush()
    session.expire(submission, ["review_events"])

    logger.info(f"submission 검토: submission={submission.id} action={action} by={auth.user_id}({auth.user_type})")
    return submission


def review_history(submission: OrderSiteSubmission) -> list[dict]:
    return [
        {
            "action": event.action,
            "timestamp": event.created_at.isoformat() if event.created_at else None,
            "reviewedBy": str(event.reviewed_by) if event.reviewed_by else None,
            "reviewerType": event.reviewer_type,
            "notes": event.notes,
        }
        for event in submission.review_events
    ]
