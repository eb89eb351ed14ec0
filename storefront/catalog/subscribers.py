"""Default catalog event subscribers."""

import structlog

from storefront.domain.base import DomainEvent
from storefront.domain.events import EVENT_REGISTRY, ProductStockUpdated
from storefront.infrastructure.event_bus import EventBus

logger = structlog.get_logger("storefront.audit")


async def audit_event(event: DomainEvent) -> None:
    """Write every catalog event to the audit log."""
    logger.info("Catalog event", **event.to_dict())


def make_low_stock_alert(threshold: int):
    """Build a handler that warns when stock falls to ``threshold`` or below."""

    async def low_stock_alert(event: DomainEvent) -> None:
        if not isinstance(event, ProductStockUpdated):
            return
        if event.change < 0 and event.new_stock <= threshold:
            logger.warning(
                "Product stock low",
                product_id=event.product_id,
                seller_id=event.seller_id,
                stock=event.new_stock,
                threshold=threshold,
            )

    return low_stock_alert


def register_default_subscribers(bus: EventBus, low_stock_threshold: int) -> None:
    """Attach the audit logger to every event type and the low-stock alert."""
    for event_type in EVENT_REGISTRY:
        bus.subscribe(event_type, audit_event)
    bus.subscribe(ProductStockUpdated.event_type, make_low_stock_alert(low_stock_threshold))
