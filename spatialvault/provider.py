"""
OAuth client configuration and authorization URL construction.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from . import config
from .errors import ProviderConfigError

logger = logging.getLogger(__name__)

APP_VARIANTS = ("web", "installed")
REQUIRED_KEYS = ("client_id", "client_secret", "auth_uri", "token_uri")


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Client credentials and endpoints for the single identity provider."""
    client_id: str
    client_secret: str
    authorization_endpoint: str
    token_endpoint: str
    redirect_uri: str = config.REDIRECT_URI
    user_info_endpoint: str = config.USER_INFO_ENDPOINT


def parse_provider_config(text: str, redirect_uri: str = config.REDIRECT_URI,
                          user_info_endpoint: str = config.USER_INFO_ENDPOINT) -> OAuthProviderConfig:
    """
    Parse a client configuration blob in the Google "client secrets" format.

    Exactly one of the "web" or "installed" sections must be present.

    Raises:
        ProviderConfigError: If the blob is not usable
    """
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise ProviderConfigError(f"Failed to parse OAuth client configuration: {e}") from e
    if not isinstance(data, dict):
        raise ProviderConfigError("OAuth client configuration must be a JSON object")

    present = [variant for variant in APP_VARIANTS if variant in data]
    if len(present) != 1:
        raise ProviderConfigError(
            "OAuth client configuration must contain exactly one of 'web' or 'installed'"
        )
    section: Dict[str, Any] = data[present[0]]
    if not isinstance(section, dict):
        raise ProviderConfigError(f"OAuth client section '{present[0]}' must be an object")

    missing = [key for key in REQUIRED_KEYS if not isinstance(section.get(key), str) or not section[key]]
    if missing:
        raise ProviderConfigError(
            f"OAuth client configuration is missing: {', '.join(missing)}"
        )

    return OAuthProviderConfig(
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        authorization_endpoint=section["auth_uri"],
        token_endpoint=section["token_uri"],
        redirect_uri=redirect_uri,
        user_info_endpoint=user_info_endpoint,
    )


def load_provider_config(path: Optional[str] = None) -> OAuthProviderConfig:
    """Load the client configuration from `path`, the env override, or the bundled file."""
    path = path or os.environ.get(config.OAUTH_CLIENT_FILE_ENV) or config.OAUTH_CLIENT_FILE
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise ProviderConfigError(f"Failed to read OAuth client configuration {path}: {e}") from e
    logger.debug(f"Loaded OAuth client configuration from {path}")
    return parse_provider_config(text)


def build_authorization_url(provider: OAuthProviderConfig, scope: str = config.OAUTH_SCOPE) -> str:
    """
    Build the URL the browser opens to ask the user for consent.

    ':' and '/' stay unescaped so the redirect URI is passed through as registered.
    """
    params = {
        "client_id": provider.client_id,
        "redirect_uri": provider.redirect_uri,
        "response_type": "code",
        "scope": scope,
        "access_type": "offline",
        "prompt": "consent",
    }
    separator = "&" if "?" in provider.authorization_endpoint else "?"
    return f"{provider.authorization_endpoint}{separator}{urlencode(params, quote_via=quote, safe=':/')}"
