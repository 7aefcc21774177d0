# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Tenant Context — Multi-tenancy support.

Every data operation in Comptoir is scoped to a tenant_id.

TenantContext carries the request identity resolved from headers.
The *current* tenant is propagated implicitly through async call chains
with a ContextVar: asyncio tasks copy the context when they are created,
so a binding is inherited by child tasks but never shared between
concurrently running units of work.

    await run_in_tenant_context("t_001", handle_job, payload)

    with tenant_scope("t_001"):
        ...
"""

from __future__ import annotations

import inspect
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar, Union

from comptoir.core.errors import AuthorizationError

T = TypeVar("T")

_current_tenant: ContextVar[Optional[str]] = ContextVar("comptoir_tenant_id", default=None)


@dataclass
class TenantContext:
    """Immutable tenant identity for request-scoped operations."""

    tenant_id: str
    user_id: Optional[str] = None
    roles: list[str] = None

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id must not be empty")
        if self.roles is None:
            self.roles = []

    def __repr__(self) -> str:
        return f"TenantContext(tenant={self.tenant_id!r}, user={self.user_id!r})"


def get_current_tenant_id() -> Optional[str]:
    """Return the tenant bound to the running scope, or None outside any scope."""
    return _current_tenant.get()


def require_tenant_id() -> str:
    """Return the ambient tenant or fail as a guard violation."""
    tenant_id = _current_tenant.get()
    if not tenant_id:
        raise AuthorizationError("No tenant bound to the current execution scope")
    return tenant_id


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[str]:
    """Bind tenant_id until the block exits, then restore the outer binding."""
    if not tenant_id:
        raise ValueError("tenant_id must not be empty")
    token = _current_tenant.set(tenant_id)
    try:
        yield tenant_id
    finally:
        _current_tenant.reset(token)


async def run_in_tenant_context(
    tenant_id: str,
    fn: Callable[..., Union[Awaitable[T], T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Execute fn with tenant_id as the ambient tenant.

    fn may be a plain callable or a coroutine function; everything it
    reaches, including code running after an await, sees tenant_id from
    get_current_tenant_id(). Nested calls shadow the outer binding only
    for their own duration.
    """
    with tenant_scope(tenant_id):
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
