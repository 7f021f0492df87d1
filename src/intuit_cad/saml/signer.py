"""RSA-SHA1 signing of SAML signed-info digests.

The identity provider verifies assertions with RSA PKCS#1 v1.5 over SHA-1,
so both algorithms are fixed here. Callers pass the SHA-1 digest they
computed; it is signed as a prehashed value.
"""

import hashlib
import logging
from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, utils

from ..utils.exceptions import SigningError
from .key_manager import load_private_key

logger = logging.getLogger(__name__)

SHA1_DIGEST_SIZE = hashlib.sha1().digest_size


class Signer:
    """Sign SHA-1 digests with an RSA private key loaded from disk.

    Attributes:
        use_key_cache: Reuse parsed keys across signatures (default True)

    Example:
        >>> digest = hashlib.sha1(signed_info_xml.encode("utf-8")).digest()
        >>> signature = Signer().sign(digest, Path("certs/intuit.key"))
        >>> len(signature)
        256
    """

    def __init__(self, use_key_cache: bool = True) -> None:
        self.use_key_cache = use_key_cache

    def sign(self, digest: bytes, private_key_path: Union[str, Path]) -> bytes:
        """Sign a SHA-1 digest with RSA PKCS#1 v1.5.

        Args:
            digest: 20-byte SHA-1 digest
            private_key_path: Path to the PEM RSA private key

        Returns:
            Raw signature bytes (key-size long)

        Raises:
            KeyLoadError: If the key file cannot be read
            KeyFormatError: If the key file is not a PEM RSA private key
            SigningError: If the digest is invalid or the RSA operation fails
        """
        if len(digest) != SHA1_DIGEST_SIZE:
            raise SigningError(
                f"Expected a {SHA1_DIGEST_SIZE}-byte SHA-1 digest, got {len(digest)} bytes"
            )

        private_key = load_private_key(private_key_path, use_cache=self.use_key_cache)

        try:
            signature = private_key.sign(
                digest,
                padding.PKCS1v15(),
                utils.Prehashed(hashes.SHA1()),
            )
        except (ValueError, TypeError) as e:
            logger.error(f"RSA signing failed: {e}")
            raise SigningError(f"RSA PKCS#1 v1.5 signing failed: {e}") from e

        logger.debug(f"Signed digest with {private_key.key_size}-bit key")
        return signature
