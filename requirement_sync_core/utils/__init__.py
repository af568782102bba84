"""Utility modules for the requirement sync integration."""

from .encryption_utils import decrypt_secret, decrypt_value, encrypt_secret, encrypt_value
from .envelope import EntityIdMatch, extract_entity_id, first_record, normalize_records
from .logger import AzureQueueHandler, ContextAwareLogger, configure_logging, get_logger
from .masking import mask_secret

__all__ = [
    "AzureQueueHandler",
    "ContextAwareLogger",
    "EntityIdMatch",
    "configure_logging",
    "decrypt_secret",
    "decrypt_value",
    "encrypt_secret",
    "encrypt_value",
    "extract_entity_id",
    "first_record",
    "get_logger",
    "mask_secret",
    "normalize_records",
]
