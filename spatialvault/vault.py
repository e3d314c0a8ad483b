"""
Encrypted storage of provider API secrets.

SECURITY NOTICE:
Each provider secret lives in its own JSON file under the config directory,
encrypted with AES-256-GCM under a key re-derived on every read from the
machine passphrase and the stored salt. Nothing is cached in memory. A file
that fails to parse or authenticate is reported exactly like a missing one.
"""

import base64
import binascii
import glob
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cryptography.exceptions import InvalidTag

from . import config
from .crypto import CryptoManager, derive_machine_passphrase
from .errors import InvalidProviderError
from .utils import Notifier, ensure_dir, read_json, write_json_atomic

logger = logging.getLogger(__name__)

_PROVIDER_RE = re.compile(config.PROVIDER_NAME_PATTERN)


class PayloadFormatError(ValueError):
    """Raised when a stored payload does not have the expected shape."""


def _b64decode(value: Any, field: str, size: Optional[int] = None) -> bytes:
    if not isinstance(value, str):
        raise PayloadFormatError(f"{field} is not a string")
    try:
        raw = base64.b64decode(value.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise PayloadFormatError(f"{field} is not valid base64") from e
    if size is not None and len(raw) != size:
        raise PayloadFormatError(f"{field} must be {size} bytes, got {len(raw)}")
    return raw


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode('ascii')


@dataclass
class EncryptedSecretPayload:
    """On-disk form of one encrypted secret."""
    salt: bytes
    nonce: bytes
    authentication_tag: bytes
    ciphertext: bytes
    version: int = config.PAYLOAD_VERSION
    algorithm: str = config.PAYLOAD_ALGORITHM

    @property
    def sealed(self) -> bytes:
        """ciphertext || tag, the layout GCM decryption consumes."""
        return self.ciphertext + self.authentication_tag

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'version': self.version,
            'algorithm': self.algorithm,
            'salt': _b64encode(self.salt),
            'nonce': _b64encode(self.nonce),
            'authentication_tag': _b64encode(self.authentication_tag),
            'ciphertext': _b64encode(self.ciphertext),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EncryptedSecretPayload':
        """Create from dictionary, rejecting anything this version did not write."""
        if not isinstance(data, dict):
            raise PayloadFormatError("payload is not an object")
        if data.get('version') != config.PAYLOAD_VERSION:
            raise PayloadFormatError(f"unsupported payload version {data.get('version')!r}")
        if data.get('algorithm') != config.PAYLOAD_ALGORITHM:
            raise PayloadFormatError(f"unsupported algorithm {data.get('algorithm')!r}")
        return cls(
            salt=_b64decode(data.get('salt'), 'salt', config.SALT_SIZE),
            nonce=_b64decode(data.get('nonce'), 'nonce', config.NONCE_SIZE),
            authentication_tag=_b64decode(data.get('authentication_tag'), 'authentication_tag', config.TAG_SIZE),
            ciphertext=_b64decode(data.get('ciphertext'), 'ciphertext'),
        )


class SecretVault:
    """Encrypts provider secrets to per-provider key files and reads them back."""

    def __init__(self, config_dir: str, crypto: Optional[CryptoManager] = None,
                 notifier: Optional[Notifier] = None):
        """
        Initialize the vault.

        Args:
            config_dir: Directory holding the key files
            crypto: Crypto manager, mainly overridden in tests
            notifier: Called as notifier(event, payload) for UI events
        """
        self.config_dir = config_dir
        self.crypto = crypto or CryptoManager()
        self._notifier = notifier

    def key_path(self, provider: str) -> str:
        """Path of the key file for a provider."""
        if not isinstance(provider, str) or not _PROVIDER_RE.fullmatch(provider):
            raise InvalidProviderError(f"Invalid provider identifier: {provider!r}")
        return os.path.join(self.config_dir, f"{provider}{config.KEY_FILE_SUFFIX}")

    def encrypt_and_save(self, plaintext: str, provider: str) -> str:
        """
        Encrypt a secret and write it to the provider's key file.

        Args:
            plaintext: The secret to store
            provider: Provider identifier, e.g. "gemini"

        Returns:
            Path of the written key file
        """
        path = self.key_path(provider)
        ensure_dir(self.config_dir)

        salt = self.crypto.generate_salt()
        key = self.crypto.derive_key(derive_machine_passphrase(), salt)
        ciphertext, nonce, tag = self.crypto.encrypt(plaintext.encode('utf-8'), key)

        payload = EncryptedSecretPayload(
            salt=salt,
            nonce=nonce,
            authentication_tag=tag,
            ciphertext=ciphertext,
        )
        write_json_atomic(path, payload.to_dict())
        logger.info(f"Saved secret for provider '{provider}'")

        if provider == config.IMGBB_PROVIDER and self._notifier is not None:
            self._notifier(config.EVENT_IMGBB_CONFIGURED, {'provider': provider})
        return path

    def decrypt(self, provider: str) -> Optional[str]:
        """
        Read and decrypt the provider's secret.

        Returns:
            The plaintext, or None if the file is missing, malformed,
            tampered with, or was written on another machine
        """
        path = self.key_path(provider)
        if not os.path.exists(path):
            return None

        try:
            payload = EncryptedSecretPayload.from_dict(read_json(path))
            key = self.crypto.derive_key(derive_machine_passphrase(), payload.salt)
            plaintext = self.crypto.decrypt(payload.sealed, key, payload.nonce)
            return plaintext.decode('utf-8')
        except InvalidTag:
            logger.warning(f"Secret for provider '{provider}' failed authentication")
        except (OSError, ValueError, RecursionError) as e:
            # json.JSONDecodeError, PayloadFormatError and UnicodeDecodeError are ValueErrors;
            # deeply nested JSON raises RecursionError
            logger.warning(f"Secret for provider '{provider}' is unreadable: {type(e).__name__}")
        return None

    def delete(self, provider: str) -> bool:
        """Delete one provider's key file."""
        path = self.key_path(provider)
        if not os.path.exists(path):
            return False
        os.remove(path)
        logger.info(f"Deleted secret for provider '{provider}'")
        return True

    def providers(self) -> List[str]:
        """Providers that currently have a key file."""
        suffix = config.KEY_FILE_SUFFIX
        names = []
        for path in glob.glob(os.path.join(glob.escape(self.config_dir), f"*{suffix}")):
            name = os.path.basename(path)[:-len(suffix)]
            if _PROVIDER_RE.fullmatch(name):
                names.append(name)
        return sorted(names)

    def reset(self) -> int:
        """Delete every provider key file. Returns how many were removed."""
        removed = 0
        for provider in self.providers():
            if self.delete(provider):
                removed += 1
        return removed
