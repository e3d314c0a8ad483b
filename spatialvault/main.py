"""
Wiring used by the host application to set up the credential subsystem.
"""

import logging
from typing import Optional

from PyQt5.QtCore import QObject

from . import config
from .commands import CredentialCommands
from .utils import default_config_dir, ensure_dir

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging the way the desktop app does at startup."""
    logging.basicConfig(level=level, format=config.LOG_FORMAT)


def create_commands(config_dir: Optional[str] = None,
                    parent: Optional[QObject] = None) -> CredentialCommands:
    """
    Build the command object the UI binds to.

    Args:
        config_dir: Directory for profile and key files; defaults to ~/.spatialshot
        parent: Optional Qt parent, usually the main window
    """
    config_dir = ensure_dir(config_dir or default_config_dir())
    logger.debug(f"Credential config directory: {config_dir}")
    return CredentialCommands(config_dir, parent=parent)
