"""
API 응답용 dict 변환 (camelCase)
"""
from datetime import datetime
from typing import Any

from linkorders.models import Order, OrderLineItem, OrderSiteSubmission, PublisherEarning
from linkorders.services.submission_review import review_history


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _str(value: Any) -> str | None:
    return str(value) if value is not None else None


def submission_to_dict(submission: OrderSiteSubmission) -> dict:
    metadata = dict(submission.submission_metadata or {})
    metadata["reviewHistory"] = review_history(submission)
    return {
        "id": str(submission.id),
        "orderGroupId": str(submission.order_group_id),
        "domain": submission.domain,
        "price": submission.price,
        "submissionStatus": submission.submission_status,
        "inclusionStatus": submission.inclusion_status,
        "inclusionOrder": submission.inclusion_order,
        "exclusionReason": submission.exclusion_reason,
        "selectionPool": submission.selection_pool,
        "poolRank": submission.pool_rank,
        "clientReviewedAt": _iso(submission.client_reviewed_at),
        "clientReviewedBy": _str(submission.client_reviewed_by),
        "clientReviewNotes": submission.client_review_notes,
        "metadata": metadata,
        "updatedAt": _iso(submission.updated_at),
    }


def line_item_to_dict(item: OrderLineItem) -> dict:
    return {
        "id": str(item.id),
        "orderId": str(item.order_id),
        "clientId": str(item.client_id),
        "targetPageUrl": item.target_page_url,
        "anchorText": item.anchor_text,
        "status": item.status,
        "assignedDomain": item.assigned_domain,
        "assignedAt": _iso(item.assigned_at),
        "publisherId": _str(item.publisher_id),
        "publisherStatus": item.publisher_status,
        "publisherPrice": item.publisher_price,
        "platformFee": item.platform_fee,
        "publishedUrl": item.published_url,
        "deliveredAt": _iso(item.delivered_at),
        "deliveryNotes": item.delivery_notes,
        "estimatedPrice": item.estimated_price,
        "wholesalePrice": item.wholesale_price,
        "approvedPrice": item.approved_price,
        "serviceFee": item.service_fee,
        "displayOrder": item.display_order,
        "version": item.version,
        "cancelledAt": _iso(item.cancelled_at),
        "cancellationReason": item.cancellation_reason,
        "metadata": item.item_metadata or {},
        "updatedAt": _iso(item.updated_at),
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": str(order.id),
        "accountId": _str(order.account_id),
        "status": order.status,
        "state": order.state,
        "totalRetail": order.total_retail,
        "totalWholesale": order.total_wholesale,
        "confirmedAt": _iso(order.confirmed_at),
        "approvedAt": _iso(order.approved_at),
        "invoicedAt": _iso(order.invoiced_at),
        "paidAt": _iso(order.paid_at),
        "completedAt": _iso(order.completed_at),
        "cancelledAt": _iso(order.cancelled_at),
        "updatedAt": _iso(order.updated_at),
    }


def earning_to_dict(earning: PublisherEarning | None) -> dict | None:
    if earning is None:
        return None
    return {
        "id": str(earning.id),
        "publisherId": str(earning.publisher_id),
        "orderLineItemId": _str(earning.order_line_item_id),
        "earningType": earning.earning_type,
        "grossAmount": earning.gross_amount,
        "platformFeePercent": earning.platform_fee_percent,
        "platformFeeAmount": earning.platform_fee_amount,
        "netAmount": earning.net_amount,
        "status": earning.status,
        "confirmedAt": _iso(earning.confirmed_at),
    }
