"""
Notification router: maps confirmation channels to notifiers.

The dispatcher never talks to a transport directly. Each channel resolves
to a registered notifier at send time; a channel with no notifier, a
notifier returning ``False``, or a notifier raising are all reported back
as a ``DeliveryFailure`` rather than propagated.
"""

import logging
from typing import Optional

from assignment_engine.errors import DeliveryFailure
from assignment_engine.notifications.channels import InAppNotifier, Notifier, OutboxNotifier
from assignment_engine.schemas.confirmation_schema import Channel, ConfirmationRequest
from assignment_engine.schemas.installer_schema import Installer
from assignment_engine.schemas.job_schema import Job

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Routes confirmation requests to the notifier registered for their channel."""

    def __init__(self) -> None:
        self._notifiers: dict[Channel, Notifier] = {}

    def register(self, channel: Channel, notifier: Notifier) -> None:
        """Register (or replace) the notifier for a channel."""
        self._notifiers[Channel(channel)] = notifier
        logger.debug("Notifier registered: %s", Channel(channel).value)

    def registered_channels(self) -> list[Channel]:
        return list(self._notifiers.keys())

    def get(self, channel: Channel) -> Optional[Notifier]:
        return self._notifiers.get(channel)

    def send(
        self, installer: Installer, job: Job, request: ConfirmationRequest
    ) -> Optional[DeliveryFailure]:
        """Deliver one request. Returns ``None`` on success, else the failure."""
        notifier = self._notifiers.get(request.channel)
        if notifier is None:
            failure = DeliveryFailure(request.channel.value, installer.id, "no notifier registered")
        else:
            try:
                delivered = notifier.send(installer, job, request)
            except Exception as exc:  # transport errors must not undo the request
                logger.warning(
                    "Notifier for %s raised", request.channel.value, exc_info=True
                )
                failure = DeliveryFailure(request.channel.value, installer.id, str(exc))
            else:
                if delivered:
                    return None
                failure = DeliveryFailure(request.channel.value, installer.id, "not delivered")

        logger.warning("%s", failure)
        return failure


def default_router() -> NotificationRouter:
    """Router with the in-app inbox and outboxes for email and chat."""
    router = NotificationRouter()
    router.register(Channel.IN_APP, InAppNotifier())
    router.register(Channel.EMAIL, OutboxNotifier(Channel.EMAIL))
    router.register(Channel.CHAT, OutboxNotifier(Channel.CHAT))
    return router
