"""Tests for token links and the chat webhook."""

import pytest

from assignment_engine.engine import AssignmentEngine
from assignment_engine.errors import ConflictError, NotFoundError, UnauthorizedError
from assignment_engine.schemas.confirmation_schema import Channel, RequestStatus
from tests.conftest import WEBHOOK_KEY, make_job, requests_for


def _token(store, installer_id, channel=Channel.EMAIL):
    return requests_for(store, "JOB-1", installer_id=installer_id, channel=channel)[0].token


class TestTokenResponses:
    def test_accept_by_token(self, engine, store):
        engine.submit_job(make_job(crew_size=1, channels=["in_app", "email"]))
        result = engine.respond_by_token(_token(store, "A"), "accept")
        assert result.changed
        assert result.request.channel == Channel.EMAIL
        in_app = requests_for(store, "JOB-1", installer_id="A", channel=Channel.IN_APP)[0]
        assert in_app.status == RequestStatus.CANCELLED

    def test_decline_by_token_cascades(self, engine, store):
        engine.submit_job(make_job(crew_size=1, channels=["email"]))
        result = engine.respond_by_token(_token(store, "A"), "decline")
        assert result.dispatch.invited == ["B"]

    def test_unknown_token(self, engine):
        engine.submit_job(make_job(channels=["email"]))
        with pytest.raises(NotFoundError):
            engine.respond_by_token("not-a-token", "accept")

    def test_answered_token_rejected(self, engine, store):
        engine.submit_job(make_job(crew_size=1, channels=["email"]))
        token = _token(store, "A")
        engine.respond_by_token(token, "decline")
        with pytest.raises(ConflictError, match="already answered"):
            engine.respond_by_token(token, "accept")

    def test_sibling_token_rejected_after_accept(self, engine, store):
        engine.submit_job(make_job(crew_size=1, channels=["email", "chat"]))
        engine.respond_by_token(_token(store, "A"), "accept")
        with pytest.raises(ConflictError, match="cancelled"):
            engine.respond_by_token(_token(store, "A", Channel.CHAT), "accept")


class TestChatWebhook:
    def test_valid_key_accepts(self, engine, store):
        engine.submit_job(make_job(crew_size=1, channels=["chat"]))
        result = engine.chat_webhook(WEBHOOK_KEY, "A@Example.com", "JOB-1", "accept")
        assert result.changed
        assert result.installer_id == "A"

    def test_wrong_key(self, engine):
        engine.submit_job(make_job(channels=["chat"]))
        with pytest.raises(UnauthorizedError):
            engine.chat_webhook("wrong", "a@example.com", "JOB-1", "accept")

    def test_missing_key(self, engine):
        engine.submit_job(make_job(channels=["chat"]))
        with pytest.raises(UnauthorizedError):
            engine.chat_webhook(None, "a@example.com", "JOB-1", "accept")

    def test_unconfigured_key_rejects_everything(self, store):
        engine = AssignmentEngine(store, webhook_api_key="")
        engine.submit_job(make_job(channels=["chat"]))
        with pytest.raises(UnauthorizedError):
            engine.chat_webhook("", "a@example.com", "JOB-1", "accept")

    def test_unknown_email(self, engine):
        engine.submit_job(make_job(channels=["chat"]))
        with pytest.raises(NotFoundError, match="Installer not found"):
            engine.chat_webhook(WEBHOOK_KEY, "nobody@example.com", "JOB-1", "accept")
