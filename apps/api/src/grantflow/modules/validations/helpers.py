"""
Validation helpers

Token generation/hashing and validation URL templates.

URL templates are supplied by clients and must contain the literal markers
``{{token}}`` and ``{{id}}``; ``{{type}}`` is optional.
"""

import hashlib
import secrets
from uuid import UUID

TOKEN_PLACEHOLDER = "{{token}}"
ID_PLACEHOLDER = "{{id}}"
TYPE_PLACEHOLDER = "{{type}}"
REQUIRED_PLACEHOLDERS = (TOKEN_PLACEHOLDER, ID_PLACEHOLDER)

TOKEN_BYTES = 32  # 256 bits of entropy


def generate_token() -> str:
    """Random URL-safe token (base64url alphabet)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """
    Hash a token for storage using SHA-256.

    Returns:
        Hex-encoded SHA-256 hash of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()


def tokens_match(presented: str, stored_hash: str) -> bool:
    """Constant-time comparison of a presented token against a stored hash."""
    return secrets.compare_digest(hash_token(presented), stored_hash)


def missing_placeholders(template: str) -> list[str]:
    """Required markers absent from a URL template."""
    return [marker for marker in REQUIRED_PLACEHOLDERS if marker not in template]


def render_validation_url(
    template: str,
    *,
    token: str,
    validation_id: UUID | int | str,
    validation_type: str,
) -> str:
    """Substitute the token, id and type markers of a URL template."""
    return (
        template.replace(TOKEN_PLACEHOLDER, token)
        .replace(ID_PLACEHOLDER, str(validation_id))
        .replace(TYPE_PLACEHOLDER, validation_type)
    )
