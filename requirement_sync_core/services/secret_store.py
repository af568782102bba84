"""
Secret store adapter.

A key/value store of secrets addressed by namespaced string keys. Keys are
validated against an allow-list before any storage access; the store itself
makes no network calls.
"""

import re
from typing import Optional

from sqlalchemy.orm import Session

from ..constants import SecretKeys
from ..db.db_config import get_db_manager
from ..db.db_secret_models import SecretEntry
from ..exceptions import ErrorCode, InvalidKeyError, ServiceError, validation_failed
from ..utils.encryption_utils import decrypt_secret, encrypt_secret
from ..utils.logger import get_logger

_KEY_PATTERN = re.compile(SecretKeys.ALLOWED_PATTERN)


def validate_key(key: str) -> str:
    """
    Check a secret key against the allowed character set.

    Args:
        key: Secret key

    Returns:
        The key, unchanged

    Raises:
        InvalidKeyError: If the key is empty or contains other characters
    """
    if not isinstance(key, str) or not key or not _KEY_PATTERN.match(key):
        raise InvalidKeyError(key)
    return key


class SecretStore:
    """
    Secret store backed by the ``secret_entries`` table.

    Each operation commits on its own so that a failure leaves no half-written
    state behind.
    """

    def __init__(self, session: Optional[Session] = None):
        """Initialize with a session, or one from the global database manager."""
        self.session = session or get_db_manager().get_session()
        self.logger = get_logger()

    def _find(self, key: str) -> Optional[SecretEntry]:
        return self.session.query(SecretEntry).filter(SecretEntry.key == key).first()

    def get(self, key: str) -> Optional[str]:
        """
        Read a secret.

        Returns:
            The secret value, or None when the key is absent
        """
        validate_key(key)
        entry = self._find(key)
        if entry is None:
            return None
        return decrypt_secret(self.session, entry.secret_value)

    def set(self, key: str, value: str) -> None:
        """
        Write a secret, replacing any previous value.

        Raises:
            InvalidKeyError: If the key is invalid
            ValidationError: If the value is not a string
            ServiceError: If the write fails
        """
        validate_key(key)
        if not isinstance(value, str):
            raise validation_failed("value", type(value).__name__, "secret values must be strings")

        try:
            encrypted = encrypt_secret(self.session, value)
            entry = self._find(key)
            if entry is None:
                self.session.add(SecretEntry(key=key, secret_value=encrypted))
            else:
                entry.secret_value = encrypted
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise ServiceError(
                "Failed to write secret",
                error_code=ErrorCode.DATABASE_ERROR,
                operation="secret_store.set",
                key=key,
                cause=e,
            ) from e

        self.logger.debug("Secret written", extra={"key": key})

    def delete(self, key: str) -> None:
        """
        Delete a secret. Deleting an absent key is not an error.

        Raises:
            InvalidKeyError: If the key is invalid
            ServiceError: If the delete fails
        """
        validate_key(key)
        try:
            deleted = self.session.query(SecretEntry).filter(SecretEntry.key == key).delete()
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise ServiceError(
                "Failed to delete secret",
                error_code=ErrorCode.DATABASE_ERROR,
                operation="secret_store.delete",
                key=key,
                cause=e,
            ) from e

        self.logger.debug("Secret deleted", extra={"key": key, "existed": bool(deleted)})
