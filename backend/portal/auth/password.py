"""Salted PBKDF2 password hashing.

Stored form: ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``. The
iteration count travels with the hash, so raising
``settings.password_hash_iterations`` only affects new hashes.
"""

import hashlib
import hmac
import secrets

from portal.config import settings

ALGORITHM = "pbkdf2_sha256"


def hash_password(password: str) -> str:
    iterations = settings.password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, iterations)
    return f"{ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.split("$")
        salt = bytes.fromhex(salt_hex)
        rounds = int(iterations)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    if algorithm != ALGORITHM or rounds < 1:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, rounds)
    return hmac.compare_digest(digest, expected)
