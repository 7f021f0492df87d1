"""Private key loading for SAML assertion signing.

This module loads the PEM-encoded RSA private key used to sign assertions
and keeps parsed keys in a process-wide cache keyed by path and
modification time, so repeated token acquisitions skip the file parse.
"""

import logging
import os
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Tuple, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..utils.exceptions import KeyFormatError, KeyLoadError

logger = logging.getLogger(__name__)


class PrivateKeyCache:
    """In-memory private key cache to avoid repeated file I/O.

    Caches parsed keys keyed by absolute file path and modification time.
    Entries are invalidated automatically when the key file changes.
    Thread-safe: parsed keys are immutable and shared between signers.
    """

    def __init__(self) -> None:
        """Initialize empty key cache."""
        self._cache: Dict[str, Tuple[float, rsa.RSAPrivateKey]] = {}
        self._lock = Lock()

    def get(self, key_path: Path) -> Optional[rsa.RSAPrivateKey]:
        """Get cached key if the file hasn't changed.

        Args:
            key_path: Path to private key file

        Returns:
            Cached key or None if not cached or stale
        """
        cache_key = str(key_path.absolute())
        with self._lock:
            if cache_key not in self._cache:
                return None

            cached_mtime, key = self._cache[cache_key]

            try:
                current_mtime = os.path.getmtime(key_path)
            except OSError:
                # File no longer exists or accessible, invalidate cache
                del self._cache[cache_key]
                return None

            if current_mtime != cached_mtime:
                del self._cache[cache_key]
                return None

        logger.debug(f"Key cache hit for {key_path.name}")
        return key

    def put(self, key_path: Path, key: rsa.RSAPrivateKey) -> None:
        """Cache a parsed private key.

        Args:
            key_path: Path the key was read from
            key: Parsed RSA private key
        """
        cache_key = str(key_path.absolute())
        try:
            mtime = os.path.getmtime(key_path)
        except OSError as e:
            logger.warning(f"Failed to cache private key {key_path.name}: {e}")
            return
        with self._lock:
            self._cache[cache_key] = (mtime, key)
        logger.debug(f"Cached private key: {key_path.name}")

    def clear(self) -> None:
        """Clear all cached keys."""
        with self._lock:
            self._cache.clear()
        logger.debug("Private key cache cleared")


# Global key cache instance
_key_cache = PrivateKeyCache()


def read_key_file(key_path: Union[str, Path]) -> bytes:
    """Read raw key file bytes.

    Raises:
        KeyLoadError: If the file does not exist or cannot be read
    """
    key_path = Path(key_path)
    try:
        return key_path.read_bytes()
    except FileNotFoundError as e:
        raise KeyLoadError(
            f"Private key file not found: {key_path}. "
            f"Check saml.private_key_path in your configuration."
        ) from e
    except OSError as e:
        raise KeyLoadError(
            f"Failed to read private key file {key_path}: {e}. "
            f"Check file permissions."
        ) from e


def parse_rsa_private_key(key_data: bytes, source: str = "<memory>") -> rsa.RSAPrivateKey:
    """Parse PEM bytes into an RSA private key.

    PKCS#1 (``BEGIN RSA PRIVATE KEY``) is the format Intuit issues; PKCS#8
    RSA keys are accepted as well. Encrypted keys are rejected since the
    signing path has no password source.

    Args:
        key_data: PEM-encoded key bytes
        source: Description of where the bytes came from, for error messages

    Returns:
        Parsed RSA private key

    Raises:
        KeyFormatError: If the data is not an unencrypted PEM RSA private key
    """
    if b"-----BEGIN" not in key_data:
        raise KeyFormatError(f"Bad key data in {source}: not PEM-encoded")

    try:
        private_key = serialization.load_pem_private_key(key_data, password=None)
    except TypeError as e:
        raise KeyFormatError(
            f"Private key in {source} is encrypted. "
            f"Export an unencrypted PKCS#1 key for SAML signing."
        ) from e
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyFormatError(f"Bad private key in {source}: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyFormatError(
            f"Private key in {source} is {type(private_key).__name__}, "
            f"an RSA private key is required"
        )
    return private_key


def load_private_key(key_path: Union[str, Path], use_cache: bool = True) -> rsa.RSAPrivateKey:
    """Load the RSA private key used for SAML signing.

    Args:
        key_path: Path to PEM private key file
        use_cache: Reuse a previously parsed key if the file is unchanged

    Returns:
        Loaded RSA private key

    Raises:
        KeyLoadError: If the file cannot be read
        KeyFormatError: If the content is not a PEM RSA private key

    Example:
        >>> key = load_private_key(Path("certs/intuit.key"))
        >>> print(f"Key size: {key.key_size}")
    """
    key_path = Path(key_path)

    if use_cache:
        cached = _key_cache.get(key_path)
        if cached is not None:
            return cached

    key_data = read_key_file(key_path)
    private_key = parse_rsa_private_key(key_data, source=str(key_path))

    # Never log key material
    logger.info(f"Loaded RSA private key from {key_path.name} ({private_key.key_size} bits)")

    if use_cache:
        _key_cache.put(key_path, private_key)
    return private_key


def clear_key_cache() -> None:
    """Clear the global private key cache."""
    _key_cache.clear()
