"""
Inbound triggers: authenticate an installer's answer, then resolve it.

Three surfaces deliver answers:
1. In-app:   the session user must be the installer being answered for
2. Link:     the request token in an email / chat link identifies the pair
3. Chat bot: a webhook authenticated by API key, installer found by email
"""

import hmac
from typing import Optional, Union

from assignment_engine.config import settings
from assignment_engine.errors import ConflictError, NotFoundError, UnauthorizedError
from assignment_engine.engine.resolver import ConfirmationResolver, ResponseResult
from assignment_engine.logging_context import get_job_logger
from assignment_engine.schemas.confirmation_schema import Channel, RespondAction
from assignment_engine.store.base import Store

logger = get_job_logger(__name__)


class ResponseGateway:
    """Authenticates inbound answers before handing them to the resolver."""

    def __init__(
        self,
        store: Store,
        resolver: ConfirmationResolver,
        webhook_api_key: Optional[str] = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._api_key = (
            settings.dispatch.chat_webhook_api_key if webhook_api_key is None else webhook_api_key
        )

    def respond(
        self,
        caller_id: Optional[str],
        job_id: str,
        installer_id: str,
        channel: Union[Channel, str],
        action: Union[RespondAction, str],
    ) -> ResponseResult:
        """Answer on behalf of the authenticated ``caller_id``."""
        if not caller_id or caller_id != installer_id:
            logger.warning(
                "Caller %r tried to answer job %s for installer %s",
                caller_id, job_id, installer_id,
            )
            raise UnauthorizedError("Caller is not the installer being answered for")
        return self._resolver.respond(job_id, installer_id, channel, action)

    def respond_by_token(self, token: str, action: Union[RespondAction, str]) -> ResponseResult:
        """Answer through the token carried in an email or chat link."""
        action = RespondAction(action)
        with self._store.transaction() as uow:
            request = uow.get_request_by_token(token)
        if request is None:
            raise NotFoundError("Confirmation not found")
        if not request.is_pending:
            raise ConflictError(f"Confirmation already answered ({request.status.value})")
        return self._resolver.respond(
            request.job_id, request.installer_id, request.channel, action
        )

    def chat_webhook(
        self,
        api_key: Optional[str],
        installer_email: str,
        job_id: str,
        action: Union[RespondAction, str],
    ) -> ResponseResult:
        """Answer relayed by the chat bot."""
        if not self._api_key or not api_key or not hmac.compare_digest(api_key, self._api_key):
            raise UnauthorizedError("Invalid webhook API key")
        with self._store.transaction() as uow:
            installer = uow.find_installer_by_email(installer_email)
        if installer is None:
            raise NotFoundError("Installer not found")
        return self._resolver.respond(job_id, installer.id, Channel.CHAT, action)
