"""
Exceptions raised by the credential subsystem.

Only setup failures and concurrency conflicts cross the command boundary.
Protocol failures during login end up in the browser page, and unreadable
secrets are reported as absent.
"""


class CredentialError(Exception):
    """Base class for credential subsystem errors."""


class AuthSetupError(CredentialError):
    """The login flow could not start (port in use, no browser, ...)."""


class ProviderConfigError(AuthSetupError):
    """The bundled OAuth client configuration is missing or malformed."""


class AuthInProgressError(CredentialError):
    """A login attempt is already running."""

    def __init__(self, message: str = "Authentication already in progress"):
        super().__init__(message)


class InvalidProviderError(CredentialError, ValueError):
    """The provider identifier cannot be used to name a key file."""


class MachineIdentityError(RuntimeError):
    """The home directory could not be resolved, so no passphrase can be derived."""
