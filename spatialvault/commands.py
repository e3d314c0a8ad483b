"""
Commands exposed to the UI layer.

The UI calls these from its event loop. Login runs on the orchestrator's
worker thread and secret encryption can be pushed to a SecretTaskWorker, so
the KDF never blocks the UI. Events raised on worker threads reach the UI as
Qt signals.
"""

import logging
from typing import Any, Callable, Dict, Optional

from PyQt5.QtCore import QObject, QThread, pyqtSignal

from . import config
from .oauth import AuthOutcome
from .orchestrator import AuthOrchestrator
from .profile import ProfileStore
from .vault import SecretVault

logger = logging.getLogger(__name__)


class SecretTaskWorker(QThread):
    """Worker thread for vault reads and writes."""

    completed = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, task: Callable[..., Any], *args: Any):
        super().__init__()
        self.task = task
        self.args = args

    def run(self):
        """Run the vault operation."""
        try:
            self.completed.emit(self.task(*self.args))
        except Exception as e:
            logger.error(f"Secret task failed: {e}", exc_info=True)
            self.error.emit(str(e))


class CredentialCommands(QObject):
    """UI-facing login, profile and secret commands."""

    auth_succeeded = pyqtSignal(dict)
    auth_finished = pyqtSignal(str)
    imgbb_configured = pyqtSignal()

    def __init__(self, config_dir: str, orchestrator: Optional[AuthOrchestrator] = None,
                 vault: Optional[SecretVault] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.config_dir = config_dir
        self.profiles = ProfileStore(config_dir)
        self.vault = vault or SecretVault(config_dir, notifier=self.dispatch_event)
        self.orchestrator = orchestrator or AuthOrchestrator(
            config_dir,
            notifier=self.dispatch_event,
            on_finished=self._auth_finished,
        )
        self._workers = set()

    def dispatch_event(self, event: str, payload: Dict[str, Any]) -> None:
        """Turn a subsystem event into the matching signal. Safe from any thread."""
        if event == config.EVENT_AUTH_SUCCESS:
            self.auth_succeeded.emit(dict(payload))
        elif event == config.EVENT_IMGBB_CONFIGURED:
            self.imgbb_configured.emit()
        else:
            logger.debug(f"Ignoring unknown event {event}")

    def _auth_finished(self, outcome: AuthOutcome) -> None:
        self.auth_finished.emit(outcome.value)

    # Login

    def start_auth(self) -> None:
        """Raises AuthInProgressError or AuthSetupError; str(exc) is shown to the user."""
        self.orchestrator.start_auth()

    def cancel_auth(self) -> bool:
        return self.orchestrator.cancel()

    def logout(self) -> None:
        """Forget the profile. Stored secrets are kept."""
        self.profiles.delete()

    def get_profile(self) -> Dict[str, str]:
        return self.profiles.load_or_guest()

    # Secrets

    def save_secret(self, plaintext: str, provider: str) -> str:
        """
        Encrypt and store a secret; returns the key file path.

        Runs PBKDF2 on the calling thread. From the UI thread use
        save_secret_worker instead.
        """
        return self.vault.encrypt_and_save(plaintext, provider)

    def get_secret(self, provider: str) -> str:
        """Decrypted secret, or "" if none. Blocks on PBKDF2; UI code uses get_secret_worker."""
        return self.vault.decrypt(provider) or ""

    def reset_secrets(self) -> int:
        """Delete every key file and the profile."""
        removed = self.vault.reset()
        self.profiles.delete()
        logger.info(f"Reset {removed} stored secret(s)")
        return removed

    def save_secret_worker(self, plaintext: str, provider: str) -> SecretTaskWorker:
        """Worker that saves a secret; connect its signals, then call start()."""
        return self._make_worker(self.save_secret, plaintext, provider)

    def get_secret_worker(self, provider: str) -> SecretTaskWorker:
        """Worker that reads a secret; connect its signals, then call start()."""
        return self._make_worker(self.get_secret, provider)

    def _make_worker(self, task: Callable[..., Any], *args: Any) -> SecretTaskWorker:
        worker = SecretTaskWorker(task, *args)
        # Hold a reference until the thread exits so Qt does not destroy it mid-run
        self._workers.add(worker)
        worker.finished.connect(lambda: self._workers.discard(worker))
        return worker
