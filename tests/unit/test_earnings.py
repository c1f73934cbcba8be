"""
퍼블리셔 정산 단위 테스트
"""
import uuid

import pytest

from linkorders.models import CommissionConfiguration, PublisherEarning
from linkorders.services.earnings import (
    calculate_platform_fee,
    confirm_completion_earning,
    create_pending_earning,
    get_publisher_order_stats,
)


class TestPlatformFee:

    def test_default_percent(self, test_session, publisher):
        assert calculate_platform_fee(test_session, publisher.id, 10000) == (3000, 30.0)

    def test_global_config(self, test_session, publisher):
        test_session.add(CommissionConfiguration(scope_type="global", base_commission_percent=20.0))
        test_session.flush()
        assert calculate_platform_fee(test_session, publisher.id, 10000) == (2000, 20.0)

    def test_publisher_config_wins(self, test_session, publisher):
        test_session.add_all([
            CommissionConfiguration(scope_type="global", base_commission_percent=20.0),
            CommissionConfiguration(scope_type="publisher", scope_id=publisher.id, base_commission_percent=12.5),
            CommissionConfiguration(scope_type="publisher", scope_id=uuid.uuid4(), base_commission_percent=50.0),
        ])
        test_session.flush()
        assert calculate_platform_fee(test_session, publisher.id, 10000) == (1250, 12.5)

    def test_inactive_config_ignored(self, test_session, publisher):
        test_session.add(
            CommissionConfiguration(scope_type="publisher", scope_id=publisher.id, base_commission_percent=5.0, is_active=False)
        )
        test_session.flush()
        assert calculate_platform_fee(test_session, publisher.id, 10000) == (3000, 30.0)

    def test_rounding(self, test_session, publisher):
        fee, _ = calculate_platform_fee(test_session, publisher.id, 3333)
        assert fee == 1000


class TestEarningRows:

    def test_create_is_idempotent(self, test_session, publisher_line_item):
        first = create_pending_earning(test_session, publisher_line_item)
        second = create_pending_earning(test_session, publisher_line_item)
        assert first.id == second.id
        assert first.net_amount == first.gross_amount - first.platform_fee_amount

    def test_requires_price(self, test_session, publisher_line_item):
        publisher_line_item.publisher_price = None
        with pytest.raises(ValueError):
            create_pending_earning(test_session, publisher_line_item)

    def test_confirm(self, test_session, publisher_line_item):
        earning = confirm_completion_earning(test_session, publisher_line_item)
        assert earning.status == "confirmed"

        again = confirm_completion_earning(test_session, publisher_line_item)
        assert again.id == earning.id
        assert again.confirmed_at == earning.confirmed_at


class TestPublisherStats:

    def test_stats(self, test_session, publisher, order, publisher_line_item):
        earning = create_pending_earning(test_session, publisher_line_item)
        test_session.add(
            PublisherEarning(
                publisher_id=publisher.id,
                earning_type="bonus",
                amount=500,
                net_amount=500,
                status="paid",
            )
        )
        test_session.flush()

        stats = get_publisher_order_stats(test_session, publisher.id)

        assert stats["totalOrders"] == 1
        assert stats["pendingOrders"] == 1
        assert stats["completedOrders"] == 0
        assert stats["pendingEarnings"] == earning.net_amount
        assert stats["paidEarnings"] == 500
        assert stats["totalEarnings"] == earning.net_amount + 500

    def test_empty(self, test_session, publisher):
        stats = get_publisher_order_stats(test_session, publisher.id)
        assert stats == {
            "totalOrders": 0,
            "pendingOrders": 0,
            "completedOrders": 0,
            "totalEarnings": 0,
            "pendingEarnings": 0,
            "paidEarnings": 0,
        }
