"""
Notification channel implementations.

Real email and chat transports live outside the engine; anything with a
``send(installer, job, request) -> bool`` method can be registered for a
channel. The built-ins cover the in-app inbox and an outbox that renders
messages for a transport to pick up.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from assignment_engine.messages import build_confirmation_message
from assignment_engine.schemas.confirmation_schema import Channel, ConfirmationRequest
from assignment_engine.schemas.installer_schema import Installer
from assignment_engine.schemas.job_schema import Job

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, installer: Installer, job: Job, request: ConfirmationRequest) -> bool: ...


class InAppNotifier:
    """The pending request row is the installer's in-app inbox."""

    def send(self, installer: Installer, job: Job, request: ConfirmationRequest) -> bool:
        logger.debug("In-app request %s visible to %s", request.id, installer.id)
        return True


@dataclass
class OutboundMessage:
    channel: Channel
    recipient: str
    body: str
    request_id: str


@dataclass
class OutboxNotifier:
    """Renders confirmation messages into an outbox for a transport to deliver.

    Email asks need an address on the installer profile; without one the
    delivery is reported as failed.
    """

    channel: Channel
    outbox: list[OutboundMessage] = field(default_factory=list)

    def send(self, installer: Installer, job: Job, request: ConfirmationRequest) -> bool:
        if self.channel == Channel.EMAIL and not installer.email:
            logger.warning("Installer %s has no email address", installer.id)
            return False
        recipient = installer.email or installer.id
        self.outbox.append(OutboundMessage(
            channel=self.channel,
            recipient=recipient,
            body=build_confirmation_message(job, installer.name, request.token),
            request_id=request.id,
        ))
        return True
