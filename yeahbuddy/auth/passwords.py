# =============================================================================
# Credential Codec
# =============================================================================
#
# Salted PBKDF2-SHA256 password hashing:
#   - hash_password(raw)               -> "salt$hash" credential string
#   - verify_password(raw, credential) -> bool
#
# The rest of the service only relies on this contract.
#
# =============================================================================

import base64
import hashlib
import logging
import secrets

from yeahbuddy.config import get_settings

logger = logging.getLogger(__name__)

SALT_BYTES = 32


def _derive(raw: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        'sha256',
        raw.encode('utf-8'),
        salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: int | None = None) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: base64(salt)$base64(hash) format string
    """
    iterations = iterations or get_settings().password_hash_iterations
    salt = secrets.token_bytes(SALT_BYTES)
    hash_bytes = _derive(password, salt, iterations)
    return "{}${}".format(
        base64.b64encode(salt).decode('ascii'),
        base64.b64encode(hash_bytes).decode('ascii'),
    )


def verify_password(password: str, password_hash: str, iterations: int | None = None) -> bool:
    """Verify a password against its hash. Malformed hashes never match."""
    iterations = iterations or get_settings().password_hash_iterations
    try:
        salt_b64, stored_b64 = password_hash.split('$', 1)
        salt = base64.b64decode(salt_b64, validate=True)
        stored = base64.b64decode(stored_b64, validate=True)
    except (ValueError, AttributeError):
        logger.debug("Rejecting malformed password hash")
        return False
    return secrets.compare_digest(_derive(password, salt, iterations), stored)

