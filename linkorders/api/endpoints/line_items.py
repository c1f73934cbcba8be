"""
주문 라인아이템 API

조회 / 추가 / 일괄 수정 / 취소, inclusion 상태 변경, internal 도메인 배정 및 완료 처리.
"""
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from linkorders.api.errors import service_errors
from linkorders.auth import AuthSession, get_auth_session
from linkorders.db import SessionLocal, get_session
from linkorders.schemas.order import earning_to_dict, line_item_to_dict
from linkorders.services import line_items as line_item_service
from linkorders.services import notifications
from linkorders.services.inclusion import set_line_item_inclusion
from linkorders.services.publisher_orders import assign_line_item_domain, complete_line_item

router = APIRouter()
logger = logging.getLogger(__name__)


# ==================== Request Models ====================

class LineItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: Optional[uuid.UUID] = Field(default=None, alias="clientId")
    target_page_url: Optional[str] = Field(default=None, alias="targetPageUrl")
    anchor_text: Optional[str] = Field(default=None, alias="anchorText")
    assigned_domain: Optional[str] = Field(default=None, alias="assignedDomain")
    status: Optional[str] = None
    estimated_price: Optional[int] = Field(default=None, alias="estimatedPrice")
    wholesale_price: Optional[int] = Field(default=None, alias="wholesalePrice")
    metadata: Optional[dict] = None


class CreateLineItemsIn(BaseModel):
    items: List[LineItemIn] = Field(default_factory=list)
    reason: Optional[str] = None


class LineItemUpdateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = Field(default=None, alias="clientId")
    target_page_url: Optional[str] = Field(default=None, alias="targetPageUrl")
    anchor_text: Optional[str] = Field(default=None, alias="anchorText")
    assigned_domain: Optional[str] = Field(default=None, alias="assignedDomain")
    status: Optional[str] = None
    estimated_price: Optional[int] = Field(default=None, alias="estimatedPrice")
    wholesale_price: Optional[int] = Field(default=None, alias="wholesalePrice")
    approved_price: Optional[int] = Field(default=None, alias="approvedPrice")
    metadata: Optional[dict] = None
    reason: Optional[str] = None


class UpdateLineItemsIn(BaseModel):
    updates: List[LineItemUpdateIn] = Field(default_factory=list)
    reason: Optional[str] = None


class CancelLineItemsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_ids: List[uuid.UUID] = Field(default_factory=list, alias="itemIds")
    reason: Optional[str] = None


class AssignDomainIn(BaseModel):
    domain: str


class LineItemInclusionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inclusion_status: str = Field(alias="inclusionStatus")
    inclusion_order: Optional[int] = Field(default=None, alias="inclusionOrder")
    exclusion_reason: Optional[str] = Field(default=None, alias="exclusionReason")


def _change_to_dict(change) -> dict:
    return {
        "id": str(change.id),
        "changeType": change.change_type,
        "previousValue": change.previous_value,
        "newValue": change.new_value,
        "changedBy": str(change.changed_by),
        "changeReason": change.change_reason,
        "batchId": str(change.batch_id) if change.batch_id else None,
        "changedAt": change.changed_at.isoformat() if change.changed_at else None,
    }


# ==================== 엔드포인트 ====================

@router.get("/orders/{order_id}/line-items")
def get_line_items(
    order_id: uuid.UUID,
    status: Optional[str] = Query(default=None),
    client_id: Optional[uuid.UUID] = Query(default=None, alias="clientId"),
    include_changes: bool = Query(default=False, alias="includeChanges"),
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("라인아이템 조회"):
        items, summary = line_item_service.list_line_items(
            session, auth, order_id, status=status, client_id=client_id
        )

        changes = {}
        if include_changes:
            changes = line_item_service.recent_line_item_changes(session, [i.id for i in items])

        line_items = []
        for item in items:
            data = line_item_to_dict(item)
            if include_changes:
                data["changes"] = [_change_to_dict(c) for c in changes.get(item.id, [])]
            line_items.append(data)

        return {"lineItems": line_items, "summary": summary, "orderId": str(order_id)}


@router.post("/orders/{order_id}/line-items")
def add_line_items(
    order_id: uuid.UUID,
    payload: CreateLineItemsIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("라인아이템 추가"):
        created = line_item_service.create_line_items(
            session,
            auth,
            order_id,
            [item.model_dump(exclude_none=True) for item in payload.items],
            reason=payload.reason,
        )
        return {
            "success": True,
            "lineItems": [line_item_to_dict(i) for i in created],
            "message": f"Added {len(created)} line items to order",
        }


@router.patch("/orders/{order_id}/line-items")
def update_line_items(
    order_id: uuid.UUID,
    payload: UpdateLineItemsIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("라인아이템 수정"):
        updated = line_item_service.update_line_items(
            session,
            auth,
            order_id,
            [u.model_dump(exclude_unset=True) for u in payload.updates],
            reason=payload.reason,
        )
        return {
            "success": True,
            "lineItems": [line_item_to_dict(i) for i in updated],
            "message": f"Updated {len(updated)} line items",
        }


@router.delete("/orders/{order_id}/line-items")
def cancel_line_items(
    order_id: uuid.UUID,
    payload: CancelLineItemsIn,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("라인아이템 취소"):
        cancelled = line_item_service.cancel_line_items(
            session, auth, order_id, payload.item_ids, reason=payload.reason
        )

        # 이미 배정된 퍼블리셔에게만 취소를 알립니다
        for item in cancelled:
            if not item.publisher_id:
                continue
            notification = notifications.queue_publisher_notification(
                session,
                item.publisher_id,
                item.id,
                notifications.NOTIFICATION_ORDER_CANCELLED,
                {"orderId": str(order_id), "reason": item.cancellation_reason},
            )
            if notification:
                background_tasks.add_task(notifications.deliver_notification, SessionLocal, notification.id)

        return {
            "success": True,
            "cancelledItems": [str(i.id) for i in cancelled],
            "message": f"Cancelled {len(cancelled)} line items",
        }


@router.patch("/orders/{order_id}/line-items/{line_item_id}/inclusion")
def update_line_item_inclusion(
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
    payload: LineItemInclusionIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("라인아이템 inclusion 변경"):
        item = set_line_item_inclusion(
            session,
            auth,
            order_id,
            line_item_id,
            payload.inclusion_status,
            inclusion_order=payload.inclusion_order,
            exclusion_reason=payload.exclusion_reason,
        )
        return {"success": True, "lineItem": line_item_to_dict(item)}


@router.post("/orders/{order_id}/line-items/{line_item_id}/complete")
def complete(
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    """
    internal 팀의 납품 확인. 정산 행을 confirmed로 바꾸고 퍼블리셔에게 알립니다.
    """
    with service_errors("라인아이템 완료 처리"):
        item, earning = complete_line_item(session, auth, order_id, line_item_id)

        notification = notifications.queue_publisher_notification(
            session,
            item.publisher_id,
            item.id,
            notifications.NOTIFICATION_ORDER_APPROVED,
            {"earnings": earning.net_amount, "orderId": str(order_id)},
        )
        if notification:
            background_tasks.add_task(notifications.deliver_notification, SessionLocal, notification.id)

        return {
            "success": True,
            "lineItem": line_item_to_dict(item),
            "earning": earning_to_dict(earning),
            "message": "Order marked as completed",
        }


@router.post("/orders/{order_id}/line-items/{line_item_id}/assign")
def assign_domain(
    order_id: uuid.UUID,
    line_item_id: uuid.UUID,
    payload: AssignDomainIn,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    """
    internal 팀의 도메인 배정. 제공 퍼블리셔가 연결되면 new_order 알림을 보냅니다.
    """
    with service_errors("도메인 배정"):
        item = assign_line_item_domain(session, auth, order_id, line_item_id, payload.domain)

        if item.publisher_id:
            notification = notifications.queue_publisher_notification(
                session,
                item.publisher_id,
                item.id,
                notifications.NOTIFICATION_NEW_ORDER,
                {"orderId": str(order_id), "domain": item.assigned_domain},
            )
            if notification:
                background_tasks.add_task(notifications.deliver_notification, SessionLocal, notification.id)

        return {
            "success": True,
            "lineItem": line_item_to_dict(item),
            "publisherAssigned": item.publisher_id is not None,
        }
