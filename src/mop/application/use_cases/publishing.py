from __future__ import annotations

import logging

from mop.application.metrics.order_lifecycle import record_publish_failure
from mop.application.ports.publisher import EventPublisher, PublishResult

logger = logging.getLogger(__name__)


def publish_event(publisher: EventPublisher, topic: str, key: str, message: str) -> PublishResult:
    """Hand ``message`` to the broker; a failure is logged and counted, never raised."""
    result = publisher.publish(topic=topic, key=key, message=message)
    if not result.ok:
        record_publish_failure(topic)
        logger.error(
            "event_publish_failed",
            extra={"topic": topic, "order_number": key, "error": result.error},
        )
    return result
