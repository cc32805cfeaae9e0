"""
Opaque single-use tokens for email verification and password reset links.
"""
import hashlib
import re
import secrets

TOKEN_BYTES = 32  # 256 bits
TOKEN_LENGTH = TOKEN_BYTES * 2

_TOKEN_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def is_valid_token_format(token) -> bool:
    """Cheap rejection of malformed tokens before touching the database."""
    if not isinstance(token, str):
        return False
    return _TOKEN_RE.fullmatch(token) is not None


def hash_token(raw_token: str) -> str:
    """Solo el sha256 del token se guarda en la base de datos"""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
