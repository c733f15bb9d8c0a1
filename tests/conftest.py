import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Configure before anything imports scholar.core.config
os.environ.update({
    "ENVIRONMENT": "test",
    "MONGODB_URI": "",
    "RATE_LIMIT_ENABLED": "false",
    "LOG_TO_FILE": "false",
    "BCRYPT_ROUNDS": "4",
    "ANTHROPIC_API_KEY": "",
    "SENDGRID_API_KEY": "",
    "SMTP_USER": "",
    "SMTP_PASSWORD": "",
    "EMAIL_USER": "",
    "EMAIL_PASS": "",
})
for _name in ["AI_API_KEY_1", "AI_API_KEY_2", "AI_API_KEY_3", "AI_API_KEY_4", "AI_API_KEY_5",
              "API_KEY", "API_KEY_2", "API_KEY_3", "API_KEY_4", "API_KEY_5"]:
    os.environ[_name] = ""

from scholar.services.ai_client import AITransport  # noqa: E402


class FakeTransport(AITransport):
    """Records provider requests and answers with a canned reply or error."""

    def __init__(self, reply: str = "", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.requests: list[dict] = []

    async def generate(self, request: dict) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeResolver:
    def __init__(self, transport: AITransport):
        self.transport = transport

    def get_transport(self) -> AITransport:
        return self.transport


@pytest.fixture(scope="session")
def app():
    import main as main_module
    return main_module.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def memory_store():
    from scholar.db.database import memory_store
    return memory_store


@pytest.fixture()
def fake_ai():
    transport = FakeTransport()
    with patch("scholar.services.ai_service.get_resolver", return_value=FakeResolver(transport)):
        yield transport
