"""Tests for default catalog subscribers."""

from structlog.testing import capture_logs

from storefront.catalog.subscribers import (
    audit_event,
    make_low_stock_alert,
    register_default_subscribers,
)
from storefront.domain.events import EVENT_REGISTRY, ProductCreated, ProductStockUpdated
from storefront.infrastructure.event_bus import EventBus


class TestRegistration:
    """Tests for register_default_subscribers."""

    def test_audit_covers_every_event(self) -> None:
        """Audit handler listens to all event types."""
        bus = EventBus()
        register_default_subscribers(bus, low_stock_threshold=5)

        for event_type in EVENT_REGISTRY:
            assert audit_event in bus.handlers_for(event_type)

        assert len(bus.handlers_for(ProductStockUpdated.event_type)) == 2


class TestAuditEvent:
    """Tests for audit_event."""

    async def test_logs_event(self) -> None:
        """Audit log entry carries the serialized event."""
        event = ProductCreated(product_id=1, seller_id=7, shop_id=2)

        with capture_logs() as logs:
            await audit_event(event)

        assert logs[0]["event_type"] == "product:created"
        assert logs[0]["payload"]["product_id"] == 1


class TestLowStockAlert:
    """Tests for the low-stock alert."""

    async def test_warns_at_threshold(self) -> None:
        """Decrement to the threshold warns."""
        alert = make_low_stock_alert(5)
        event = ProductStockUpdated(product_id=1, previous_stock=7, new_stock=5, change=-2)

        with capture_logs() as logs:
            await alert(event)

        assert logs[0]["log_level"] == "warning"
        assert logs[0]["stock"] == 5

    async def test_quiet_above_threshold_or_on_restock(self) -> None:
        """No warning for healthy stock or increments."""
        alert = make_low_stock_alert(5)

        with capture_logs() as logs:
            await alert(ProductStockUpdated(product_id=1, previous_stock=10, new_stock=8, change=-2))
            await alert(ProductStockUpdated(product_id=1, previous_stock=1, new_stock=3, change=2))
            await alert(ProductCreated(product_id=1))

        assert logs == []
