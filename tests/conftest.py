"""
Shared pytest configuration and fixtures.

This module provides RSA key fixtures generated with cryptography, a fully
populated Config, and cache resets used across unit and integration tests.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from intuit_cad.config.manager import ENV_PREFIX
from intuit_cad.config.schema import Config, OAuthConfig, SAMLConfig, TransportConfig
from intuit_cad.saml.key_manager import clear_key_cache
from intuit_cad.saml.template_loader import clear_template_cache

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_caches() -> Generator[None, None, None]:
    """Start and finish every test with empty key and template caches."""
    clear_key_cache()
    clear_template_cache()
    yield
    clear_key_cache()
    clear_template_cache()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove INTUIT_CAD_* variables so the host environment cannot leak in."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Undo handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Generate one 2048-bit RSA key for the whole test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    """
    Write the session key as PEM PKCS#1 (``BEGIN RSA PRIVATE KEY``).

    Returns:
        Path: Path to the key file.
    """
    key_path = tmp_path / "app.key"
    key_path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return key_path


@pytest.fixture
def pkcs8_key_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    """Write the session key as PEM PKCS#8 (``BEGIN PRIVATE KEY``)."""
    key_path = tmp_path / "app-pkcs8.key"
    key_path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return key_path


@pytest.fixture
def encrypted_key_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    """Write the session key encrypted with a password."""
    key_path = tmp_path / "app-encrypted.key"
    key_path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.BestAvailableEncryption(b"testpass"),
        )
    )
    return key_path


@pytest.fixture
def ec_key_path(tmp_path: Path) -> Path:
    """Write a PEM EC key, which cannot sign RSA-SHA1 assertions."""
    key = ec.generate_private_key(ec.SECP256R1())
    key_path = tmp_path / "ec.key"
    key_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return key_path


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def test_config(private_key_path: Path) -> Config:
    """Config with every credential needed for token acquisition."""
    return Config(
        customer_id="customer-42",
        oauth=OAuthConfig(consumer_key="consumer-key", consumer_secret="consumer-secret"),
        saml=SAMLConfig(provider_id="test.provider.id", private_key_path=private_key_path),
        transport=TransportConfig(max_retries=0),
    )
