"""
Encryption utilities for secret storage.

Handles cross-database encryption (PostgreSQL pgcrypto, SQLite plaintext for testing).
"""

from typing import Optional, Union

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import get_config
from ..exceptions import ErrorCode, ServiceError


def _encryption_key(key_suffix: str) -> str:
    base_key = get_config().security.encryption_key
    if not base_key:
        raise ServiceError(
            "SECRET_ENCRYPTION_KEY must be set to store secrets in PostgreSQL",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="encrypt_secret",
        )
    return f"{base_key}_{key_suffix}" if key_suffix else base_key


def encrypt_value(session: Session, value: str, key_suffix: str = "") -> Union[bytes, str]:
    """
    Encrypt a value using database-specific encryption.

    Args:
        session: Database session
        value: Value to encrypt
        key_suffix: Additional key suffix for different data types

    Returns:
        Encrypted bytes on PostgreSQL, the value itself on SQLite
    """
    if session.bind.dialect.name == "postgresql":
        return session.execute(
            text("SELECT pgp_sym_encrypt(:data, :key)"),
            {"data": value, "key": _encryption_key(key_suffix)},
        ).scalar()

    # SQLite for testing - stored as-is
    return value


def decrypt_value(
    session: Session, encrypted_value: Union[bytes, str, None], key_suffix: str = ""
) -> Optional[str]:
    """
    Decrypt a value using database-specific decryption.

    Args:
        session: Database session
        encrypted_value: Encrypted bytes
        key_suffix: Additional key suffix for different data types

    Returns:
        Decrypted string or None
    """
    if not encrypted_value:
        return None

    if session.bind.dialect.name == "postgresql":
        return session.execute(
            text("SELECT pgp_sym_decrypt(:data, :key)"),
            {"data": encrypted_value, "key": _encryption_key(key_suffix)},
        ).scalar()

    if isinstance(encrypted_value, bytes):
        return encrypted_value.decode()
    return encrypted_value


def encrypt_secret(session: Session, value: str) -> Union[bytes, str]:
    """Encrypt a secret store value."""
    return encrypt_value(session, value, "secret")


def decrypt_secret(session: Session, encrypted: Union[bytes, str, None]) -> Optional[str]:
    """Decrypt a secret store value."""
    return decrypt_value(session, encrypted, "secret")
