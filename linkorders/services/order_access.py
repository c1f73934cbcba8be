import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from linkorders.auth import AuthSession
from linkorders.models import Order


def ensure_order_access(order: Order, auth: AuthSession) -> None:
    """
    internal 사용자는 모든 주문, account 사용자는 본인 소유 주문만 수정할 수 있습니다.
    """
    if auth.user_type == "internal":
        return
    if auth.user_type == "account" and order.account_id == auth.user_id:
        return
    raise PermissionError("이 주문에 대한 권한이 없습니다")


def load_order(session: Session, order_id: uuid.UUID, for_update: bool = False) -> Order:
    stmt = select(Order).where(Order.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = session.scalars(stmt).one_or_none()
    if not order:
        raise LookupError("주문을 찾을 수 없습니다")
    return order
