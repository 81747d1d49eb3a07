# conftest.py
import pytest
from fastapi.testclient import TestClient

from app import create_app  # The FastAPI app factory
from config.app_config import Settings
from utils import coap_helper

TEST_COAP_URL = "coap://192.0.2.10/"


class FakeDevice:
    """Stands in for the CoAP transport; records requests and plays back a reply or an error."""

    def __init__(self):
        self.reply = b"0:0"
        self.error = None
        self.requests = []

    async def post(self, url: str, payload: bytes, timeout: float) -> bytes:
        self.requests.append({"url": url, "payload": payload, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def test_settings():
    """Settings for an app pointed at a documentation-range device address."""
    return Settings(COAP_URL=TEST_COAP_URL, COAP_TIMEOUT=2.5)


@pytest.fixture
def fake_device(monkeypatch):
    """Replace the CoAP exchange with a FakeDevice."""
    device = FakeDevice()
    monkeypatch.setattr(coap_helper, "post_with_timeout", device.post)
    yield device


@pytest.fixture
def test_app_client(test_settings, fake_device):
    """Create a TestClient for an app built from the test settings."""
    with TestClient(create_app(test_settings)) as client:
        yield client
