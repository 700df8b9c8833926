from assignment_engine.notifications.channels import (
    InAppNotifier,
    Notifier,
    OutboundMessage,
    OutboxNotifier,
)
from assignment_engine.notifications.registry import NotificationRouter, default_router

__all__ = [
    "InAppNotifier", "Notifier", "OutboundMessage", "OutboxNotifier",
    "NotificationRouter", "default_router",
]
