"""
퍼블리셔 주문 상태 머신 단위 테스트
"""
import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select

from linkorders.auth import AuthSession
from linkorders.models import CommissionConfiguration, LineItemChange, Publisher, PublisherEarning, PublisherOffering
from linkorders.services.publisher_orders import (
    allowed_publisher_transitions,
    assign_line_item_domain,
    complete_line_item,
    find_publisher_offering,
    list_publisher_line_items,
    respond_to_order,
    update_publisher_status,
)


def _publisher_auth(publisher) -> AuthSession:
    return AuthSession(user_id=publisher.id, user_type="publisher", email=publisher.email)


def _internal() -> AuthSession:
    return AuthSession(user_id=uuid.uuid4(), user_type="internal")


class TestTransitionTable:

    def test_allowed(self):
        assert allowed_publisher_transitions("accepted") == ("in_progress",)
        assert allowed_publisher_transitions("in_progress") == ("submitted",)

    @pytest.mark.parametrize("status", ["submitted", "completed", "rejected", None, "unknown"])
    def test_terminal_or_unknown(self, status):
        assert allowed_publisher_transitions(status) == ()


class TestUpdatePublisherStatus:

    def test_accepted_to_in_progress(self, test_session, publisher, publisher_line_item):
        item, earning = update_publisher_status(
            test_session, _publisher_auth(publisher), publisher_line_item.id, "in_progress"
        )
        assert item.publisher_status == "in_progress"
        assert earning is None

    def test_skip_to_submitted_rejected(self, test_session, publisher, publisher_line_item):
        with pytest.raises(ValueError) as excinfo:
            update_publisher_status(
                test_session, _publisher_auth(publisher), publisher_line_item.id,
                "submitted", published_url="https://blog.example.com/post",
            )
        assert "'accepted'" in str(excinfo.value)
        assert "'submitted'" in str(excinfo.value)

    def test_submitted_requires_url(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "in_progress"
        test_session.flush()

        with pytest.raises(ValueError) as excinfo:
            update_publisher_status(test_session, _publisher_auth(publisher), publisher_line_item.id, "submitted", published_url="  ")
        assert "publishedUrl is required" in str(excinfo.value)
        assert publisher_line_item.publisher_status == "in_progress"

    def test_submitted_creates_pending_earning(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "in_progress"
        test_session.flush()

        item, earning = update_publisher_status(
            test_session, _publisher_auth(publisher), publisher_line_item.id,
            "submitted", published_url="https://blog.example.com/post", notes="live",
        )

        assert item.publisher_status == "submitted"
        assert item.published_url == "https://blog.example.com/post"
        assert item.delivered_at is not None
        assert item.delivery_notes == "live"
        assert item.platform_fee == 3000

        assert earning is not None
        assert earning.status == "pending"
        assert earning.gross_amount == 10000
        assert earning.platform_fee_amount == 3000
        assert earning.net_amount == 7000

    def test_earning_failure_keeps_status(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "in_progress"
        test_session.flush()

        with patch("linkorders.services.earnings.create_pending_earning", side_effect=RuntimeError("ledger down")):
            item, earning = update_publisher_status(
                test_session, _publisher_auth(publisher), publisher_line_item.id,
                "submitted", published_url="https://blog.example.com/post",
            )

        assert earning is None
        assert item.publisher_status == "submitted"
        test_session.flush()
        assert test_session.scalars(select(PublisherEarning)).all() == []

    def test_missing_price_is_best_effort(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "in_progress"
        publisher_line_item.publisher_price = None
        test_session.flush()

        item, earning = update_publisher_status(
            test_session, _publisher_auth(publisher), publisher_line_item.id,
            "submitted", published_url="https://blog.example.com/post",
        )
        assert item.publisher_status == "submitted"
        assert earning is None

    def test_no_transition_out_of_submitted(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "submitted"
        test_session.flush()

        with pytest.raises(ValueError) as excinfo:
            update_publisher_status(test_session, _publisher_auth(publisher), publisher_line_item.id, "in_progress")
        assert "from 'submitted' to 'in_progress'" in str(excinfo.value)

    def test_other_publisher_not_found(self, test_session, publisher_line_item):
        auth = AuthSession(user_id=uuid.uuid4(), user_type="publisher")
        with pytest.raises(LookupError):
            update_publisher_status(test_session, auth, publisher_line_item.id, "in_progress")

    def test_non_publisher_forbidden(self, test_session, publisher_line_item):
        auth = AuthSession(user_id=uuid.uuid4(), user_type="internal")
        with pytest.raises(PermissionError):
            update_publisher_status(test_session, auth, publisher_line_item.id, "in_progress")


class TestRespond:

    def test_accept_notified(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "notified"
        test_session.flush()

        item = respond_to_order(test_session, _publisher_auth(publisher), publisher_line_item.id, "accept")
        assert item.publisher_status == "accepted"

    def test_reject_with_reason(self, test_session, publisher, publisher_line_item):
        publisher_line_item.publisher_status = "pending"
        test_session.flush()

        item = respond_to_order(test_session, _publisher_auth(publisher), publisher_line_item.id, "reject", reason="no capacity")
        assert item.publisher_status == "rejected"
        assert item.delivery_notes == "no capacity"

    def test_cannot_respond_twice(self, test_session, publisher, publisher_line_item):
        with pytest.raises(ValueError):
            respond_to_order(test_session, _publisher_auth(publisher), publisher_line_item.id, "accept")

    def test_invalid_action(self, test_session, publisher, publisher_line_item):
        with pytest.raises(ValueError):
            respond_to_order(test_session, _publisher_auth(publisher), publisher_line_item.id, "ignore")


class TestComplete:

    def test_complete_confirms_earning(self, test_session, publisher, order, publisher_line_item):
        publisher_line_item.publisher_status = "in_progress"
        test_session.flush()
        _, pending = update_publisher_status(
            test_session, _publisher_auth(publisher), publisher_line_item.id,
            "submitted", published_url="https://blog.example.com/post",
        )

        auth = AuthSession(user_id=uuid.uuid4(), user_type="internal")
        item, earning = complete_line_item(test_session, auth, order.id, publisher_line_item.id)

        assert item.publisher_status == "completed"
        assert item.status == "delivered"
        assert earning.id == pending.id
        assert earning.status == "confirmed"
        assert earning.confirmed_at is not None

    def test_complete_creates_missing_earning(self, test_session, order, publisher_line_item):
        publisher_line_item.publisher_status = "submitted"
        test_session.flush()

        auth = AuthSession(user_id=uuid.uuid4(), user_type="internal")
        _, earning = complete_line_item(test_session, auth, order.id, publisher_line_item.id)

        assert earning.status == "confirmed"
        assert len(test_session.scalars(select(PublisherEarning)).all()) == 1

    def test_complete_requires_submitted(self, test_session, order, publisher_line_item):
        auth = AuthSession(user_id=uuid.uuid4(), user_type="internal")
        with pytest.raises(ValueError):
            complete_line_item(test_session, auth, order.id, publisher_line_item.id)

    def test_complete_internal_only(self, test_session, account, order, publisher_line_item):
        auth = AuthSession(user_id=account.id, user_type="account")
        with pytest.raises(PermissionError):
            complete_line_item(test_session, auth, order.id, publisher_line_item.id)


class TestListPublisherLineItems:

    def test_only_own_items(self, test_session, publisher, line_item, publisher_line_item):
        items = list_publisher_line_items(test_session, _publisher_auth(publisher))
        assert [i.id for i in items] == [publisher_line_item.id]

    def test_status_filter(self, test_session, publisher, publisher_line_item):
        assert list_publisher_line_items(test_session, _publisher_auth(publisher), status="completed") == []


def _offering(test_session, publisher, **kwargs) -> PublisherOffering:
    row = PublisherOffering(publisher_id=publisher.id, domain="blog.example.com", base_price=20000, **kwargs)
    test_session.add(row)
    test_session.flush()
    return row


class TestFindPublisherOffering:

    def test_verified_first(self, test_session, publisher):
        other = Publisher(email="other@example.com")
        test_session.add(other)
        test_session.flush()
        _offering(test_session, other, priority_rank=1)
        verified = _offering(test_session, publisher, priority_rank=50, verification_status="verified")

        assert find_publisher_offering(test_session, "blog.example.com").id == verified.id

    def test_priority_then_created(self, test_session, publisher):
        _offering(test_session, publisher, priority_rank=20, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        older = _offering(test_session, publisher, priority_rank=10, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        _offering(test_session, publisher, priority_rank=10, created_at=datetime(2024, 6, 1, tzinfo=timezone.utc))

        assert find_publisher_offering(test_session, "Blog.Example.com").id == older.id

    def test_inactive_ignored(self, test_session, publisher):
        _offering(test_session, publisher, is_active=False)
        assert find_publisher_offering(test_session, "blog.example.com") is None


class TestAssignDomain:

    def test_assigns_publisher(self, test_session, publisher, order, line_item):
        offering = _offering(test_session, publisher)

        item = assign_line_item_domain(test_session, _internal(), order.id, line_item.id, " Blog.Example.com ")

        assert item.assigned_domain == "blog.example.com"
        assert item.status == "assigned"
        assert item.publisher_id == publisher.id
        assert item.publisher_offering_id == offering.id
        assert item.publisher_status == "pending"
        assert item.publisher_price == 20000
        assert item.platform_fee == 6000
        assert item.version == 2
        change = test_session.scalars(select(LineItemChange)).one()
        assert change.new_value["status"] == "assigned"

    def test_publisher_commission(self, test_session, publisher, order, line_item):
        _offering(test_session, publisher)
        test_session.add(
            CommissionConfiguration(scope_type="publisher", scope_id=publisher.id, base_commission_percent=10)
        )
        test_session.flush()

        item = assign_line_item_domain(test_session, _internal(), order.id, line_item.id, "blog.example.com")
        assert item.platform_fee == 2000

    def test_without_offering(self, test_session, order, line_item):
        item = assign_line_item_domain(test_session, _internal(), order.id, line_item.id, "unknown.example.com")

        assert item.status == "assigned"
        assert item.publisher_id is None
        assert item.publisher_status is None

    def test_pending_then_respond(self, test_session, publisher, order, line_item):
        _offering(test_session, publisher)
        assign_line_item_domain(test_session, _internal(), order.id, line_item.id, "blog.example.com")

        item = respond_to_order(test_session, _publisher_auth(publisher), line_item.id, "accept")
        assert item.publisher_status == "accepted"

    def test_internal_only(self, test_session, account, order, line_item):
        auth = AuthSession(user_id=account.id, user_type="account")
        with pytest.raises(PermissionError):
            assign_line_item_domain(test_session, auth, order.id, line_item.id, "blog.example.com")

    def test_domain_required(self, test_session, order, line_item):
        with pytest.raises(ValueError):
            assign_line_item_domain(test_session, _internal(), order.id, line_item.id, "  ")

    def test_in_flight_not_reassigned(self, test_session, order, publisher_line_item):
        with pytest.raises(ValueError):
            assign_line_item_domain(test_session, _internal(), order.id, publisher_line_item.id, "other.example.com")

    def test_unknown_item(self, test_session, order):
        with pytest.raises(LookupError):
            assign_line_item_domain(test_session, _internal(), order.id, uuid.uuid4(), "blog.example.com")
