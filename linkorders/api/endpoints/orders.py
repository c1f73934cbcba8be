"""
주문 상태 API
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from linkorders.api.errors import service_errors
from linkorders.auth import AuthSession, get_auth_session
from linkorders.db import SessionLocal, get_session
from linkorders.schemas.order import order_to_dict
from linkorders.services import notifications
from linkorders.services.order_status import allowed_order_transitions, confirm_order, transition_order_status

router = APIRouter()
logger = logging.getLogger(__name__)


class OrderStatusIn(BaseModel):
    status: str
    notes: Optional[str] = None


class ConfirmOrderIn(BaseModel):
    notes: Optional[str] = None


@router.patch("/orders/{order_id}/status")
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusIn,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    with service_errors("주문 상태 변경"):
        order = transition_order_status(session, auth, order_id, payload.status, notes=payload.notes)
        return {
            "success": True,
            "order": order_to_dict(order),
            "allowedTransitions": list(allowed_order_transitions(auth.user_type, order.status)),
        }


@router.post("/orders/{order_id}/confirm")
def confirm(
    order_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    payload: Optional[ConfirmOrderIn] = None,
    session: Session = Depends(get_session),
    auth: AuthSession = Depends(get_auth_session),
) -> dict:
    """
    internal 팀의 주문 확정. 확정 알림은 응답 이후 백그라운드로 전달합니다.
    """
    with service_errors("주문 확정"):
        order = confirm_order(session, auth, order_id, notes=payload.notes if payload else None)

        notification = notifications.queue_account_notification(
            session, order.account_id, order.id, notifications.NOTIFICATION_ORDER_CONFIRMED
        )
        if notification:
            background_tasks.add_task(notifications.deliver_notification, SessionLocal, notification.id)

        return {"success": True, "message": "Order confirmed", "order": order_to_dict(order)}
