"""
사이트 제안(submission) API

- inclusion 상태 변경 (included / excluded / saved_for_later)
- 클라이언트 검토 (approve / reject)
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from linkorders.api.errors import service_errors
from linkorders.auth import AuthSession, get_auth_session
from linkorders.db import get_session
from linkorders.schemas.order import submission_to_dict
from linkorders.services.inclusion import set_submission_inclusion
from linkorders.services.submission_review import review_submission

router = APIRouter()
logger = logging.getLogger(__name__)


class InclusionUpdateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inclusion_status: str = Field(alias="inclusionStatus")
    inclusion_order: Optional[int] = Field(default=None, alias="inclusionOrder")
    exclusion_reason: Optional[str] = Field(default=None, alias="exclusionReason")


class ReviewIn(BaseModel):
    action: str
    notes: Optional[str] = None


@router.patch("/orders/{order_id}/groups/{group_id}/submissions/{submission_id}/inclusion")
def update_submission_inclusion(
    order_id: uuid.UUID,
    group_id: uuid.UUID,
    submission_id: uuid.UUID,
    payload: InclusionUpdateIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("inclusion 상태 변경"):
        submission = set_submission_inclusion(
            session,
            auth,
            order_id,
            group_id,
            submission_id,
            payload.inclusion_status,
            inclusion_order=payload.inclusion_order,
            exclusion_reason=payload.exclusion_reason,
        )
        return {"success": True, "submission": submission_to_dict(submission)}


@router.post("/orders/{order_id}/groups/{group_id}/submissions/{submission_id}/review")
def review_order_submission(
    order_id: uuid.UUID,
    group_id: uuid.UUID,
    submission_id: uuid.UUID,
    payload: ReviewIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    """
    클라이언트 검토 결과 기록. 검토 이력은 metadata.reviewHistory로 내려갑니다.
    """
    with service_errors("submission 검토"):
        submission = review_submission(
            session, auth, order_id, group_id, submission_id, payload.action, notes=payload.notes
        )
        verb = "approved" if payload.action == "approve" else "rejected"
        return {"message": f"Submission {verb} successfully", "submission": submission_to_dict(submission)}
