"""
Tenant key for the active credential pointer.

Only one tenant is served today. Code that never sets a tenant resolves to
``SecretKeys.DEFAULT_TENANT``; reads and writes of the pointer still go
through here so the pointer key never has to be threaded by hand.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..constants import SecretKeys
from ..exceptions import ErrorCode, ValidationError
from ..utils.logger import get_logger


class TenantContext:
    """Thread-local current tenant."""

    _thread_local = threading.local()

    @classmethod
    def set_current_tenant(cls, tenant_id: str) -> None:
        """
        Raises:
            ValidationError: If tenant_id is blank or not a string
        """
        if not isinstance(tenant_id, str) or not tenant_id.strip():
            raise ValidationError(
                "tenant_id must be a non-empty string",
                field="tenant_id",
                error_code=ErrorCode.MISSING_REQUIRED,
            )
        cls._thread_local.tenant_id = tenant_id.strip()
        get_logger().debug("Tenant selected", extra={"tenant": cls._thread_local.tenant_id})

    @classmethod
    def get_current_tenant_id(cls) -> Optional[str]:
        return getattr(cls._thread_local, "tenant_id", None)

    @classmethod
    def get_effective_tenant_id(cls) -> str:
        """Current tenant, or the default tenant when none is selected."""
        return cls.get_current_tenant_id() or SecretKeys.DEFAULT_TENANT

    @classmethod
    def clear_current_tenant(cls) -> None:
        cls._thread_local.__dict__.pop("tenant_id", None)


@contextmanager
def tenant_context(tenant_id: str) -> Iterator[None]:
    """Select ``tenant_id`` for the block, then restore whatever was selected before."""
    previous = TenantContext.get_current_tenant_id()
    TenantContext.set_current_tenant(tenant_id)
    try:
        yield
    finally:
        if previous:
            TenantContext.set_current_tenant(previous)
        else:
            TenantContext.clear_current_tenant()
