"""Execution context: tenant selection and operation logging."""

from .operation_context import OperationContext, OperationHandler, operation
from .tenant_context import TenantContext, tenant_context

__all__ = [
    "OperationContext",
    "OperationHandler",
    "TenantContext",
    "operation",
    "tenant_context",
]
