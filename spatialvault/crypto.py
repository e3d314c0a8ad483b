"""
Cryptographic operations for the credential vault.

SECURITY NOTICE:
This module derives the machine-bound passphrase and performs the AES-256-GCM
encryption of provider secrets. The passphrase is computed from the home
directory path, so it is low entropy; PBKDF2 only makes guessing it costly.
"""

import os
import hashlib
from typing import Tuple
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend

from . import config
from .errors import MachineIdentityError


def derive_machine_passphrase() -> str:
    """
    Derive the passphrase that binds key files to this machine and user.

    Returns:
        Lowercase hex SHA-256 digest of the home directory path

    Raises:
        MachineIdentityError: If the home directory cannot be resolved
    """
    home = os.path.expanduser("~")
    if not home or home == "~":
        raise MachineIdentityError("Could not resolve the user's home directory")
    return hashlib.sha256(home.encode('utf-8')).hexdigest()


class CryptoManager:
    """Handles key derivation and AES-256-GCM for the vault."""

    def __init__(self, iterations: int = config.PBKDF2_ITERATIONS):
        """Initialize the crypto manager."""
        if iterations < config.PBKDF2_ITERATIONS:
            raise ValueError(f"PBKDF2 needs at least {config.PBKDF2_ITERATIONS} iterations")
        self.backend = default_backend()
        self.iterations = iterations

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(config.SALT_SIZE)

    def generate_nonce(self) -> bytes:
        """Generate a fresh GCM nonce."""
        return os.urandom(config.NONCE_SIZE)

    def derive_key(self, passphrase: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from the machine passphrase using PBKDF2-HMAC-SHA256.

        This is CPU-bound; UI code runs it on a worker thread.

        Args:
            passphrase: The machine passphrase
            salt: Random per-secret salt

        Returns:
            32-byte encryption key
        """
        if len(salt) != config.SALT_SIZE:
            raise ValueError(f"Salt must be {config.SALT_SIZE} bytes, got {len(salt)}")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=config.KEY_SIZE,
            salt=salt,
            iterations=self.iterations,
            backend=self.backend
        )
        return kdf.derive(passphrase.encode('utf-8'))

    def encrypt(self, plaintext: bytes, key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt data using AES-256-GCM.

        Args:
            plaintext: Data to encrypt
            key: 32-byte encryption key

        Returns:
            Tuple of (ciphertext, nonce, tag)
        """
        nonce = self.generate_nonce()
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce),
            backend=self.backend
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return ciphertext, nonce, encryptor.tag

    def decrypt(self, sealed: bytes, key: bytes, nonce: bytes) -> bytes:
        """
        Decrypt data using AES-256-GCM.

        Args:
            sealed: ciphertext || tag, with the tag as the last TAG_SIZE bytes
            key: 32-byte encryption key
            nonce: Nonce used for encryption

        Returns:
            Decrypted plaintext

        Raises:
            InvalidTag: If authentication fails
            ValueError: If the sealed data is shorter than a tag
        """
        if len(sealed) < config.TAG_SIZE:
            raise ValueError("Sealed data is shorter than the authentication tag")
        ciphertext, tag = sealed[:-config.TAG_SIZE], sealed[-config.TAG_SIZE:]
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce, tag),
            backend=self.backend
        )
        decryptor = cipher.decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()
