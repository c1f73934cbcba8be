"""
퍼블리셔 주문 API

퍼블리셔 세션만 접근할 수 있으며, 다른 사용자 유형은 401로 막습니다.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from linkorders.api.errors import service_errors
from linkorders.auth import AuthSession, get_auth_session
from linkorders.db import SessionLocal, get_session
from linkorders.schemas.order import earning_to_dict, line_item_to_dict
from linkorders.services import notifications
from linkorders.services.earnings import get_publisher_order_stats
from linkorders.services.publisher_orders import (
    list_publisher_line_items,
    respond_to_order,
    update_publisher_status,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class PublisherStatusIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    published_url: Optional[str] = Field(default=None, alias="publishedUrl")
    notes: Optional[str] = None


class PublisherRespondIn(BaseModel):
    action: str
    reason: Optional[str] = None


def require_publisher(auth: AuthSession = Depends(get_auth_session)) -> AuthSession:
    if auth.user_type != "publisher":
        raise HTTPException(status_code=401, detail="Unauthorized - Publisher access required")
    return auth


@router.get("/publisher/orders")
def list_publisher_orders(
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(require_publisher),
) -> dict:
    with service_errors("퍼블리셔 주문 조회"):
        items = list_publisher_line_items(session, auth, status=status, limit=limit)
        return {"lineItems": [line_item_to_dict(i) for i in items], "total": len(items)}


@router.get("/publisher/orders/stats")
def publisher_order_stats(
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(require_publisher),
) -> dict:
    with service_errors("퍼블리셔 통계 조회"):
        return {"stats": get_publisher_order_stats(session, auth.user_id)}


@router.patch("/publisher/orders/{line_item_id}/status")
def update_publisher_order_status(
    line_item_id: uuid.UUID,
    payload: PublisherStatusIn,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(require_publisher),
) -> dict:
    with service_errors("퍼블리셔 상태 변경"):
        item, earning = update_publisher_status(
            session,
            auth,
            line_item_id,
            payload.status,
            published_url=payload.published_url,
            notes=payload.notes,
        )

        if item.publisher_status == "submitted":
            order = item.order
            notification = notifications.queue_account_notification(
                session,
                order.account_id if order else None,
                item.order_id,
                notifications.NOTIFICATION_ORDER_SUBMITTED,
                {"lineItemId": str(item.id), "publishedUrl": item.published_url},
            )
            if notification:
                background_tasks.add_task(notifications.deliver_notification, SessionLocal, notification.id)

        return {
            "success": True,
            "lineItem": line_item_to_dict(item),
            "earning": earning_to_dict(earning),
            "message": f"Order status updated to {payload.status}",
        }


@router.post("/publisher/orders/{line_item_id}/respond")
def respond_publisher_order(
    line_item_id: uuid.UUID,
    payload: PublisherRespondIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(require_publisher),
) -> dict:
    with service_errors("퍼블리셔 주문 응답"):
        item = respond_to_order(session, auth, line_item_id, payload.action, reason=payload.reason)
        return {
            "success": True,
            "lineItem": line_item_to_dict(item),
            "message": f"Order {item.publisher_status}",
        }
