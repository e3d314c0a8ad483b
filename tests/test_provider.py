"""Unit tests for the OAuth client configuration and authorization URL."""

import json
from urllib.parse import parse_qs, urlparse

import pytest

from spatialvault import config
from spatialvault.errors import AuthSetupError, ProviderConfigError
from spatialvault.provider import (
    OAuthProviderConfig,
    build_authorization_url,
    load_provider_config,
    parse_provider_config,
)

CLIENT = {
    "client_id": "abc.apps.example",
    "client_secret": "shh",
    "auth_uri": "https://accounts.example/auth",
    "token_uri": "https://oauth.example/token",
}


@pytest.mark.parametrize("variant", ["web", "installed"])
def test_parses_either_variant(variant):
    provider = parse_provider_config(json.dumps({variant: CLIENT}))
    assert provider == OAuthProviderConfig(
        client_id="abc.apps.example",
        client_secret="shh",
        authorization_endpoint="https://accounts.example/auth",
        token_endpoint="https://oauth.example/token",
        redirect_uri=config.REDIRECT_URI,
        user_info_endpoint=config.USER_INFO_ENDPOINT,
    )


@pytest.mark.parametrize("blob", [
    json.dumps({}),
    json.dumps({"web": CLIENT, "installed": CLIENT}),
    json.dumps({"web": dict(CLIENT, client_secret="")}),
    json.dumps({"installed": {"client_id": "x"}}),
    json.dumps({"web": "nope"}),
    json.dumps([1, 2]),
    "{not json",
])
def test_rejects_malformed_blobs(blob):
    with pytest.raises(ProviderConfigError):
        parse_provider_config(blob)


def test_config_errors_are_setup_errors():
    assert issubclass(ProviderConfigError, AuthSetupError)


def test_provider_config_is_immutable(provider):
    with pytest.raises(AttributeError):
        provider.client_id = "other"


def test_bundled_config_loads():
    provider = load_provider_config(config.OAUTH_CLIENT_FILE)
    assert provider.redirect_uri == config.REDIRECT_URI
    assert provider.token_endpoint.startswith("https://")


def test_env_override(tmp_path, monkeypatch):
    path = tmp_path / "client.json"
    path.write_text(json.dumps({"web": CLIENT}))
    monkeypatch.setenv(config.OAUTH_CLIENT_FILE_ENV, str(path))
    assert load_provider_config().client_id == "abc.apps.example"


def test_missing_file(tmp_path):
    with pytest.raises(ProviderConfigError):
        load_provider_config(str(tmp_path / "missing.json"))


def test_authorization_url_contains_values_verbatim(provider):
    url = build_authorization_url(provider)

    assert url.startswith("https://accounts.example/auth?")
    assert "client_id=abc" in url
    assert "redirect_uri=http://localhost:3000" in url
    assert "response_type=code" in url
    assert "access_type=offline" in url
    assert "prompt=consent" in url


def test_authorization_url_parses_back(provider):
    query = parse_qs(urlparse(build_authorization_url(provider, scope="profile email")).query)
    assert query == {
        "client_id": ["abc"],
        "redirect_uri": ["http://localhost:3000"],
        "response_type": ["code"],
        "scope": ["profile email"],
        "access_type": ["offline"],
        "prompt": ["consent"],
    }


def test_authorization_url_appends_to_existing_query():
    provider = OAuthProviderConfig("abc", "shh", "https://accounts.example/auth?hl=en", "https://t")
    assert build_authorization_url(provider).startswith("https://accounts.example/auth?hl=en&client_id=abc")
