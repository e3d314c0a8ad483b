"""Unit tests for passphrase derivation, PBKDF2 and AES-GCM."""

import hashlib
import os

import pytest
from cryptography.exceptions import InvalidTag

from spatialvault import config
from spatialvault.crypto import CryptoManager, derive_machine_passphrase
from spatialvault.errors import MachineIdentityError


def test_passphrase_is_sha256_of_home(fake_home):
    expected = hashlib.sha256(str(fake_home).encode("utf-8")).hexdigest()
    assert derive_machine_passphrase() == expected


def test_passphrase_is_stable_and_lowercase_hex(fake_home):
    first = derive_machine_passphrase()
    assert first == derive_machine_passphrase()
    assert len(first) == 64
    assert first == first.lower()
    int(first, 16)


def test_passphrase_changes_with_home(tmp_path, monkeypatch, fake_home):
    before = derive_machine_passphrase()
    monkeypatch.setenv("HOME", str(tmp_path / "someone-else"))
    monkeypatch.setenv("USERPROFILE", str(tmp_path / "someone-else"))
    assert derive_machine_passphrase() != before


def test_unresolvable_home_is_fatal(monkeypatch):
    monkeypatch.setattr(os.path, "expanduser", lambda path: path)
    with pytest.raises(MachineIdentityError):
        derive_machine_passphrase()


def test_derive_key_is_deterministic():
    crypto = CryptoManager()
    salt = b"\x01" * config.SALT_SIZE
    key = crypto.derive_key("passphrase", salt)
    assert len(key) == config.KEY_SIZE
    assert key == crypto.derive_key("passphrase", salt)
    assert key != crypto.derive_key("passphrase", b"\x02" * config.SALT_SIZE)
    assert key != crypto.derive_key("other", salt)


def test_derive_key_rejects_wrong_salt_length():
    with pytest.raises(ValueError):
        CryptoManager().derive_key("passphrase", b"short")


def test_iterations_cannot_drop_below_minimum():
    with pytest.raises(ValueError):
        CryptoManager(iterations=1000)


def test_random_material_sizes():
    crypto = CryptoManager()
    assert len(crypto.generate_salt()) == 16
    assert len(crypto.generate_nonce()) == 12
    assert crypto.generate_nonce() != crypto.generate_nonce()


def test_encrypt_then_decrypt_sealed_layout():
    crypto = CryptoManager()
    key = os.urandom(32)
    ciphertext, nonce, tag = crypto.encrypt(b"secret value", key)

    assert len(tag) == config.TAG_SIZE
    assert len(ciphertext) == len(b"secret value")
    assert crypto.decrypt(ciphertext + tag, key, nonce) == b"secret value"


def test_decrypt_rejects_tag_first_layout():
    crypto = CryptoManager()
    key = os.urandom(32)
    ciphertext, nonce, tag = crypto.encrypt(b"secret value", key)
    with pytest.raises(InvalidTag):
        crypto.decrypt(tag + ciphertext, key, nonce)


def test_decrypt_with_wrong_key_fails():
    crypto = CryptoManager()
    ciphertext, nonce, tag = crypto.encrypt(b"secret value", os.urandom(32))
    with pytest.raises(InvalidTag):
        crypto.decrypt(ciphertext + tag, os.urandom(32), nonce)


def test_decrypt_rejects_truncated_input():
    with pytest.raises(ValueError):
        CryptoManager().decrypt(b"abc", os.urandom(32), os.urandom(12))
