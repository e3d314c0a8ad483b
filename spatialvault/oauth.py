"""
Loopback OAuth receiver.

Binds the fixed redirect port, sends the user's browser to the provider's
consent page and waits for the redirect. A redirect carrying a `code` is
exchanged for an access token, the profile is fetched and written to
profile.json, and the browser tab always gets a final success or error page.

Only one code is ever processed. Favicon requests are answered with 404 and do
not end the flow. Protocol failures are reported to the browser and through the
returned AuthOutcome; they are not raised.
"""

import logging
import threading
import time
import webbrowser
from enum import Enum
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import httpx

from . import config
from . import pages
from .errors import AuthSetupError
from .profile import ProfileStore, UserProfile
from .provider import OAuthProviderConfig, build_authorization_url
from .utils import Notifier

logger = logging.getLogger(__name__)


class AuthOutcome(Enum):
    """How a login attempt ended."""
    SUCCEEDED = "succeeded"
    DENIED = "denied"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class ReceiverState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    EXCHANGING = "exchanging"
    FETCHING_PROFILE = "fetching_profile"
    PERSISTING = "persisting"
    DONE = "done"


class ProtocolError(Exception):
    """A step of the code exchange failed; the message is shown in the browser."""


class LoopbackOAuthReceiver:
    """Runs one authorization-code login through a local redirect listener."""

    def __init__(
        self,
        provider: OAuthProviderConfig,
        profile_store: ProfileStore,
        notifier: Optional[Notifier] = None,
        http_client: Optional[httpx.Client] = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        host: str = config.REDIRECT_HOST,
        port: int = config.REDIRECT_PORT,
        timeout: Optional[float] = config.CALLBACK_TIMEOUT_SECONDS,
        poll_interval: float = config.CALLBACK_POLL_INTERVAL_SECONDS,
        read_timeout: float = config.CALLBACK_READ_TIMEOUT_SECONDS,
    ):
        """
        Args:
            provider: Client credentials and endpoints
            profile_store: Where the profile is written on success
            notifier: Receives EVENT_AUTH_SUCCESS with the profile payload
            http_client: Client for the token and profile requests; one is created per run if omitted
            open_browser: Opens a URL in the system browser, returning falsy on failure
            host: Interface to bind
            port: Port to bind; must match the registered redirect URI
            timeout: Seconds to wait for the redirect, or None to wait indefinitely
            poll_interval: Longest single accept wait between cancellation checks
            read_timeout: Seconds a connected client may stay silent before it is dropped
        """
        self.provider = provider
        self.profile_store = profile_store
        self._notifier = notifier
        self._http_client = http_client
        self._open_browser = open_browser
        self._host = host
        self._port = port
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._read_timeout = read_timeout
        self._server: Optional[HTTPServer] = None
        self._cancel = threading.Event()
        self._outcome: Optional[AuthOutcome] = None
        self.state = ReceiverState.IDLE

    @property
    def authorization_url(self) -> str:
        return build_authorization_url(self.provider)

    @property
    def port(self) -> int:
        """The bound port, which differs from the requested one only when 0 was requested."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._port

    @property
    def outcome(self) -> Optional[AuthOutcome]:
        return self._outcome

    def listen(self) -> None:
        """
        Bind the loopback listener.

        Raises:
            AuthSetupError: If the port cannot be bound. The port is never changed,
                since the provider only redirects to the registered URI.
        """
        try:
            self._server = HTTPServer((self._host, self._port), self._build_handler())
        except OSError as e:
            raise AuthSetupError(f"Failed to start server on port {self._port}: {e}") from e
        self.state = ReceiverState.LISTENING
        logger.info(f"OAuth callback listener bound on {self._host}:{self.port}")

    def open_browser(self) -> None:
        """
        Send the user to the consent page.

        Raises:
            AuthSetupError: If no browser could be launched
        """
        try:
            opened = self._open_browser(self.authorization_url)
        except (webbrowser.Error, OSError) as e:
            raise AuthSetupError(f"Failed to open browser: {e}") from e
        if not opened:
            raise AuthSetupError("Failed to open browser")
        logger.info("Opened browser for Google sign-in")

    def cancel(self) -> None:
        """Ask a running serve() to stop at its next wakeup."""
        self._cancel.set()

    def close(self) -> None:
        if self._server is not None:
            self._server.server_close()
            self._server = None
        self.state = ReceiverState.DONE

    def run(self) -> AuthOutcome:
        """Bind, open the browser and wait for the redirect."""
        self.listen()
        try:
            self.open_browser()
        except AuthSetupError:
            self.close()
            raise
        return self.serve()

    def serve(self) -> AuthOutcome:
        """
        Handle requests one at a time until the flow ends.

        Returns:
            The outcome; the listener is closed on return
        """
        if self._server is None:
            raise AuthSetupError("Listener is not bound")

        deadline = time.monotonic() + self._timeout if self._timeout is not None else None
        try:
            while self._outcome is None:
                if self._cancel.is_set():
                    self._outcome = AuthOutcome.CANCELLED
                    break
                wait = self._poll_interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        self._outcome = AuthOutcome.TIMED_OUT
                        break
                    wait = min(wait, remaining)
                self._server.timeout = wait
                self._server.handle_request()
        finally:
            self.close()

        logger.info(f"OAuth flow finished: {self._outcome.value}")
        return self._outcome

    def _build_handler(self) -> type:
        receiver = self

        class Handler(BaseHTTPRequestHandler):
            # Per-connection read limit so a silent client cannot stall handle_request()
            timeout = receiver._read_timeout

            def log_message(self, format: str, *args: Any) -> None:
                logger.debug("callback listener: " + format, *args)

            def do_GET(self) -> None:
                receiver._handle_request(self)

        return Handler

    def _handle_request(self, request: BaseHTTPRequestHandler) -> None:
        parsed = urlparse(request.path)
        if "favicon" in parsed.path:
            self._respond(request, 404, "Not Found", content_type="text/plain; charset=utf-8")
            return

        code = parse_qs(parsed.query).get("code", [""])[0]
        if not code:
            logger.info("Redirect arrived without an authorization code")
            self._outcome = AuthOutcome.DENIED
            self._respond(request, 400, pages.denied_page())
            return

        outcome, page = self._complete_login(code)
        self._outcome = outcome
        self._respond(request, 200 if outcome is AuthOutcome.SUCCEEDED else 400, page)

    def _complete_login(self, code: str) -> Tuple[AuthOutcome, str]:
        try:
            if self._http_client is not None:
                profile = self._login(self._http_client, code)
            else:
                with httpx.Client(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
                    profile = self._login(client, code)
        except ProtocolError as e:
            logger.warning(f"OAuth login failed: {e}")
            return AuthOutcome.FAILED, pages.failure_page(str(e))

        if self._notifier is not None:
            try:
                self._notifier(config.EVENT_AUTH_SUCCESS, profile.to_dict())
            except Exception as e:
                logger.error(f"Auth success notification failed: {e}", exc_info=True)
        return AuthOutcome.SUCCEEDED, pages.success_page()

    def _login(self, client: httpx.Client, code: str) -> UserProfile:
        self.state = ReceiverState.EXCHANGING
        access_token = self._exchange_code(client, code)

        self.state = ReceiverState.FETCHING_PROFILE
        profile = UserProfile.from_people_response(self._fetch_profile(client, access_token))

        self.state = ReceiverState.PERSISTING
        try:
            self.profile_store.save(profile)
        except OSError as e:
            raise ProtocolError("Your profile could not be saved.") from e
        return profile

    def _exchange_code(self, client: httpx.Client, code: str) -> str:
        """Trade the authorization code for an access token."""
        try:
            response = client.post(
                self.provider.token_endpoint,
                data={
                    "client_id": self.provider.client_id,
                    "client_secret": self.provider.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.provider.redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ProtocolError(f"Could not reach the sign-in service ({type(e).__name__}).") from e

        if not response.is_success:
            logger.warning(f"Token exchange failed: {response.status_code}")
            raise ProtocolError("Google refused the code exchange.")

        data = self._json_body(response, "token")
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ProtocolError("The token response did not contain an access token.")
        return access_token

    def _fetch_profile(self, client: httpx.Client, access_token: str) -> Dict[str, Any]:
        try:
            response = client.get(
                self.provider.user_info_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise ProtocolError(f"Could not load your profile ({type(e).__name__}).") from e

        if not response.is_success:
            logger.warning(f"Profile request failed: {response.status_code}")
            raise ProtocolError("Google did not return your profile.")
        return self._json_body(response, "profile")

    @staticmethod
    def _json_body(response: httpx.Response, what: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError(f"The {what} response was not valid JSON.") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"The {what} response was not a JSON object.")
        return data

    @staticmethod
    def _respond(request: BaseHTTPRequestHandler, status: int, body: str,
                 content_type: str = "text/html; charset=utf-8") -> None:
        payload = body.encode('utf-8')
        request.send_response(status)
        request.send_header("Content-Type", content_type)
        request.send_header("Content-Length", str(len(payload)))
        request.send_header("Connection", "close")
        request.end_headers()
        request.wfile.write(payload)
