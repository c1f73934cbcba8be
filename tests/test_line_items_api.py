"""
라인아이템 API 테스트
"""
from sqlalchemy import select

from linkorders.models import LineItemChange, OrderNotification, PublisherOffering


def _url(order):
    return f"/api/orders/{order.id}/line-items"


class TestLineItemsApi:

    def test_list_with_summary(self, client, auth_headers, account, order, line_item):
        resp = client.get(_url(order), headers=auth_headers(account.id, "account"))

        assert resp.status_code == 200
        body = resp.json()
        assert body["orderId"] == str(order.id)
        assert body["summary"]["total"] == 1
        assert body["summary"]["totalValue"] == 30000
        assert body["lineItems"][0]["id"] == str(line_item.id)

    def test_list_with_changes(self, client, auth_headers, internal_user_id, order, line_item):
        headers = auth_headers(internal_user_id, "internal")
        client.patch(_url(order), json={"updates": [{"id": str(line_item.id), "anchorText": "renamed"}]}, headers=headers)

        resp = client.get(_url(order), params={"includeChanges": "true"}, headers=headers)

        changes = resp.json()["lineItems"][0]["changes"]
        assert len(changes) == 1
        assert changes[0]["changeType"] == "modified"

    def test_add(self, client, auth_headers, test_session, account, order, client_row):
        resp = client.post(
            _url(order),
            json={"items": [{"clientId": str(client_row.id), "targetPageUrl": "https://acme.example.com/x", "estimatedPrice": 40000}]},
            headers=auth_headers(account.id, "account"),
        )

        assert resp.status_code == 200
        item = resp.json()["lineItems"][0]
        assert item["metadata"]["inclusionStatus"] == "included"
        assert item["metadata"]["selectionPool"] == "primary"
        assert item["serviceFee"] == 7900
        test_session.refresh(order)
        assert order.total_retail == 40000

    def test_add_locked_after_payment(self, client, auth_headers, test_session, account, order, client_row):
        order.status = "payment_pending"
        test_session.flush()

        resp = client.post(
            _url(order), json={"items": [{"clientId": str(client_row.id)}]}, headers=auth_headers(account.id, "account")
        )
        assert resp.status_code == 400
        assert "once payment process begins" in resp.json()["detail"]

    def test_bulk_update(self, client, auth_headers, internal_user_id, order, line_item):
        resp = client.patch(
            _url(order),
            json={"updates": [{"id": str(line_item.id), "approvedPrice": 28000}], "reason": "negotiated"},
            headers=auth_headers(internal_user_id, "internal"),
        )
        assert resp.status_code == 200
        item = resp.json()["lineItems"][0]
        assert item["approvedPrice"] == 28000
        assert item["version"] == 2

    def test_bulk_update_ignores_client_pool_keys(self, client, auth_headers, test_session, account, order, line_item):
        resp = client.patch(
            _url(order),
            json={"updates": [{"id": str(line_item.id), "metadata": {"exclusionReason": "spam", "selectionPool": "primary"}}]},
            headers=auth_headers(account.id, "account"),
        )

        assert resp.status_code == 200
        test_session.refresh(line_item)
        assert line_item.item_metadata["exclusionReason"] is None
        assert line_item.item_metadata["selectionPool"] == "alternative"

    def test_cancel_notifies_publisher(self, client, auth_headers, test_session, internal_user_id, order, publisher_line_item):
        resp = client.request(
            "DELETE",
            _url(order),
            json={"itemIds": [str(publisher_line_item.id)], "reason": "client request"},
            headers=auth_headers(internal_user_id, "internal"),
        )

        assert resp.status_code == 200
        assert resp.json()["cancelledItems"] == [str(publisher_line_item.id)]
        change = test_session.scalars(select(LineItemChange)).one()
        assert change.change_type == "cancelled"
        notification = test_session.scalars(select(OrderNotification)).one()
        assert notification.notification_type == "order_cancelled"

    def test_non_owner(self, client, auth_headers, other_account, order, line_item):
        resp = client.get(_url(order), headers=auth_headers(other_account.id, "account"))
        assert resp.status_code == 403

    def test_line_item_inclusion(self, client, auth_headers, internal_user_id, order, line_item):
        resp = client.patch(
            f"{_url(order)}/{line_item.id}/inclusion",
            json={"inclusionStatus": "excluded", "exclusionReason": "low DR"},
            headers=auth_headers(internal_user_id, "internal"),
        )

        assert resp.status_code == 200
        metadata = resp.json()["lineItem"]["metadata"]
        assert metadata["inclusionStatus"] == "excluded"
        assert metadata["selectionPool"] == "alternative"
        assert metadata["exclusionReason"] == "low DR"

    def test_complete(self, client, auth_headers, test_session, internal_user_id, order, publisher_line_item):
        publisher_line_item.publisher_status = "submitted"
        publisher_line_item.published_url = "https://blog.example.com/post"
        test_session.flush()

        resp = client.post(f"{_url(order)}/{publisher_line_item.id}/complete", headers=auth_headers(internal_user_id, "internal"))

        assert resp.status_code == 200
        body = resp.json()
        assert body["lineItem"]["publisherStatus"] == "completed"
        assert body["earning"]["status"] == "confirmed"
        notification = test_session.scalars(select(OrderNotification)).one()
        assert notification.notification_type == "order_approved"

    def test_assign_domain_notifies_publisher(self, client, auth_headers, test_session, internal_user_id, publisher, order, line_item):
        test_session.add(PublisherOffering(publisher_id=publisher.id, domain="blog.example.com", base_price=20000))
        test_session.flush()

        resp = client.post(
            f"{_url(order)}/{line_item.id}/assign",
            json={"domain": "blog.example.com"},
            headers=auth_headers(internal_user_id, "internal"),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["publisherAssigned"] is True
        assert body["lineItem"]["status"] == "assigned"
        assert body["lineItem"]["publisherStatus"] == "pending"
        assert body["lineItem"]["platformFee"] == 6000
        notification = test_session.scalars(select(OrderNotification)).one()
        assert notification.notification_type == "new_order"
        assert notification.recipient == publisher.email

    def test_assign_domain_internal_only(self, client, auth_headers, account, order, line_item):
        resp = client.post(
            f"{_url(order)}/{line_item.id}/assign",
            json={"domain": "blog.example.com"},
            headers=auth_headers(account.id, "account"),
        )
        assert resp.status_code == 403
