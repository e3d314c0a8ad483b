import os

# Qt must not need a display for the command tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import json
import threading
from typing import Callable, Dict, List, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from spatialvault.provider import OAuthProviderConfig


@pytest.fixture
def fake_home(tmp_path, monkeypatch):
    """Point the machine passphrase at a throwaway home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def config_dir(tmp_path, fake_home):
    return str(tmp_path / "config")


@pytest.fixture
def provider() -> OAuthProviderConfig:
    return OAuthProviderConfig(
        client_id="abc",
        client_secret="shh",
        authorization_endpoint="https://accounts.example/auth",
        token_endpoint="https://oauth.example/token",
        redirect_uri="http://localhost:3000",
        user_info_endpoint="https://people.example/v1/people/me",
    )


PEOPLE_RESPONSE = {
    "names": [{"displayName": "Ada Lovelace"}, {"displayName": "Second"}],
    "emailAddresses": [{"value": "ada@example.com"}],
    "photos": [{"url": "http://photos.example/ada.png"}],
}


class FakeProviderServer:
    """httpx transport standing in for the token and profile endpoints."""

    def __init__(self, token_status: int = 200, token_body=None,
                 profile_status: int = 200, profile_body=None):
        self.token_status = token_status
        self.token_body = {"access_token": "tok-123", "expires_in": 3599} if token_body is None else token_body
        self.profile_status = profile_status
        self.profile_body = PEOPLE_RESPONSE if profile_body is None else profile_body
        self.requests: List[httpx.Request] = []

    def _body(self, body) -> bytes:
        return body if isinstance(body, bytes) else json.dumps(body).encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth.example":
            return httpx.Response(self.token_status, content=self._body(self.token_body),
                                  headers={"Content-Type": "application/json"})
        if request.url.host == "people.example":
            return httpx.Response(self.profile_status, content=self._body(self.profile_body),
                                  headers={"Content-Type": "application/json"})
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def token_form(self) -> Dict[str, List[str]]:
        token_request = next(r for r in self.requests if r.url.host == "oauth.example")
        return parse_qs(token_request.content.decode())


@pytest.fixture
def fake_provider_server() -> FakeProviderServer:
    return FakeProviderServer()


@pytest.fixture
def browser():
    """Plays the user's browser against the loopback listener."""
    with httpx.Client(trust_env=False, timeout=10.0) as client:
        yield client


class EventRecorder:
    def __init__(self):
        self.events: List[Tuple[str, dict]] = []
        self._lock = threading.Lock()

    def __call__(self, event: str, payload: dict) -> None:
        with self._lock:
            self.events.append((event, payload))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def events() -> EventRecorder:
    return EventRecorder()


class BrowserOpener:
    def __init__(self, result: bool = True):
        self.result = result
        self.urls: List[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return self.result


@pytest.fixture
def opener() -> Callable[[str], bool]:
    return BrowserOpener()
