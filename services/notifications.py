"""
Merchant-facing notifications.
The wizard receives a Notifier instead of calling a global toast; the default
implementation logs events. Swap in real integrations (email/Slack/Webhooks) by
passing another Notifier.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol
import logging

from schemas.bundle_schemas import BundleDefinition, BundleOperation

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify_bundle_created(
        self,
        definition: BundleDefinition,
        operation: BundleOperation,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes merchant notifications to the log."""

    async def notify_bundle_created(
        self,
        definition: BundleDefinition,
        operation: BundleOperation,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Notify merchant that the bundle was handed to the platform.

        Args:
            definition: The submitted bundle definition
            operation: Platform operation handle (creation completes asynchronously)
            details: Optional additional details about the notification
        """
        payload = {
            "title": definition.title,
            "component_count": len(definition.components),
            "operation_id": operation.id,
            "operation_status": operation.status,
        }
        if details:
            payload["details"] = details
        logger.info("[NOTIFY] Bundle created | payload=%s", payload)
