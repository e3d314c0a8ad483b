"""
Serializes login attempts.

At most one LoopbackOAuthReceiver runs at a time. The in-flight flag is a
non-blocking lock owned by the orchestrator; it is released when the attempt
ends, however it ends.
"""

import logging
import threading
import webbrowser
from typing import Any, Callable, Optional

import httpx

from . import config
from .errors import AuthInProgressError
from .oauth import AuthOutcome, LoopbackOAuthReceiver
from .profile import ProfileStore
from .provider import OAuthProviderConfig, load_provider_config
from .utils import Notifier, ensure_dir

logger = logging.getLogger(__name__)


class AuthOrchestrator:
    """Starts login attempts on a worker thread, one at a time."""

    def __init__(
        self,
        config_dir: str,
        notifier: Optional[Notifier] = None,
        provider: Optional[OAuthProviderConfig] = None,
        http_client: Optional[httpx.Client] = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        port: int = config.REDIRECT_PORT,
        timeout: Optional[float] = config.CALLBACK_TIMEOUT_SECONDS,
        on_finished: Optional[Callable[[AuthOutcome], None]] = None,
    ):
        self.config_dir = config_dir
        self._notifier = notifier
        self._provider = provider
        self._http_client = http_client
        self._open_browser = open_browser
        self._port = port
        self._timeout = timeout
        self._on_finished = on_finished

        self._running = threading.Lock()
        self._receiver: Optional[LoopbackOAuthReceiver] = None
        self._thread: Optional[threading.Thread] = None
        self.last_outcome: Optional[AuthOutcome] = None

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    @property
    def receiver(self) -> Optional[LoopbackOAuthReceiver]:
        return self._receiver

    def start_auth(self) -> None:
        """
        Begin a login attempt.

        Returns once the listener is bound and the browser is open; the redirect
        is handled on a background thread.

        Raises:
            AuthInProgressError: If an attempt is already running
            AuthSetupError: If the listener, browser or client configuration fails
        """
        if not self._running.acquire(blocking=False):
            logger.info("Login requested while another attempt is running")
            raise AuthInProgressError()

        receiver = None
        try:
            ensure_dir(self.config_dir)
            provider = self._provider or load_provider_config()
            receiver = LoopbackOAuthReceiver(
                provider,
                ProfileStore(self.config_dir),
                notifier=self._notifier,
                http_client=self._http_client,
                open_browser=self._open_browser,
                port=self._port,
                timeout=self._timeout,
            )
            receiver.listen()
            receiver.open_browser()
            self._receiver = receiver
            thread = threading.Thread(
                target=self._serve, args=(receiver,), name="oauth-receiver", daemon=True
            )
            thread.start()
            self._thread = thread
        except BaseException:
            if receiver is not None:
                receiver.close()
            self._receiver = None
            self._running.release()
            raise

    def cancel(self) -> bool:
        """Stop a running attempt. Returns False if nothing was running."""
        receiver = self._receiver
        if receiver is None or not self.is_running:
            return False
        receiver.cancel()
        return True

    def wait(self, timeout: Optional[float] = None) -> Optional[AuthOutcome]:
        """Block until the current attempt's thread exits; returns its outcome."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.last_outcome

    def _serve(self, receiver: LoopbackOAuthReceiver) -> None:
        outcome = AuthOutcome.FAILED
        try:
            outcome = receiver.serve()
        except Exception as e:
            logger.error(f"OAuth receiver crashed: {e}", exc_info=True)
        finally:
            receiver.close()
            self.last_outcome = outcome
            self._receiver = None
            self._running.release()

        if self._on_finished is not None:
            self._on_finished(outcome)
