"""Tests for POST /ai-chat.

Tests cover:
- Real answers return success without a fallback flag
- Provider failures return 200 with fallback: true
- Missing fields and malformed JSON return 500 E_INVALID_REQUEST
- Unknown projects return 500 with success: false
- Every response carries X-Request-ID
"""

from uuid import uuid4

import respx
from sqlalchemy import select

from parley.db.models import Message
from parley.services.completion import QUOTA_FALLBACK_MESSAGE
from tests.factories import create_test_conversation, create_test_project
from tests.helpers import OPENAI_CHAT_URL, chat_body, completion_body


def _conversation(db_session):
    project = create_test_project(db_session)
    return create_test_conversation(db_session, project)


def _body(conversation, message="What was Q3 revenue?") -> dict:
    return chat_body(message, conversation.id, conversation.project_id, conversation.user_id)


class TestAiChatRoute:
    def test_real_answer(self, client, db_session):
        conversation = _conversation(db_session)

        with respx.mock(assert_all_called=True) as mock:
            mock.post(OPENAI_CHAT_URL).respond(200, json=completion_body("It was $5M."))
            response = client.post("/ai-chat", json=_body(conversation))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "It was $5M."}
        assert "X-Request-ID" in response.headers

    def test_quota_failure_is_fallback(self, client, db_session):
        conversation = _conversation(db_session)

        with respx.mock as mock:
            mock.post(OPENAI_CHAT_URL).respond(
                429, json={"error": {"code": "insufficient_quota", "type": "insufficient_quota"}}
            )
            response = client.post("/ai-chat", json=_body(conversation))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": QUOTA_FALLBACK_MESSAGE,
            "fallback": True,
        }
        contents = db_session.execute(
            select(Message.content).where(Message.conversation_id == conversation.id)
        ).scalars().all()
        assert QUOTA_FALLBACK_MESSAGE in contents

    def test_missing_field(self, client, db_session):
        conversation = _conversation(db_session)
        body = _body(conversation)
        del body["userId"]

        response = client.post("/ai-chat", json=body)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "E_INVALID_REQUEST"
        assert data["error"] == "Missing required parameters"

    def test_blank_message(self, client, db_session):
        conversation = _conversation(db_session)

        response = client.post("/ai-chat", json=_body(conversation, message="   "))

        assert response.status_code == 500
        assert response.json()["code"] == "E_INVALID_REQUEST"

    def test_malformed_json(self, client):
        response = client.post(
            "/ai-chat",
            content=b'{"message": "hi",',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500
        assert response.json()["code"] == "E_INVALID_REQUEST"

    def test_unknown_project(self, client, db_session):
        conversation = _conversation(db_session)
        body = chat_body("hi", conversation.id, uuid4(), conversation.user_id)

        response = client.post("/ai-chat", json=body)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "E_PROJECT_NOT_FOUND"
        assert data["request_id"] == response.headers["X-Request-ID"]
        assert db_session.execute(select(Message)).first() is None

    def test_cors_preflight(self, client):
        response = client.options(
            "/ai-chat",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "X-Request-ID" in response.headers
