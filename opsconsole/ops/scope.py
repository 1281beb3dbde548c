# -*- coding: utf-8 -*-
"""
Tenant scope resolution

A caller is scoped either to one tenant (client id) or to the whole platform.
A record is scoped either to one tenant or is global (client_id NULL).
is_visible() and visibility_clause() are the in-memory and query-level
forms of the same rule and must stay in lockstep.
"""
import re
from typing import Optional

from sqlalchemy import or_, true

from .errors import ValidationError

# Caller scope for administrators and record scope for global records.
PLATFORM_WIDE = None
GLOBAL = None

# Scope key stored for the platform-wide status row and used as a cache key.
PLATFORM_KEY = 'platform'

_PLATFORM_ALIASES = {'', PLATFORM_KEY, 'global', 'all'}
_TENANT_ID_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.:-]{0,63}$')


def parse_scope(value) -> Optional[str]:
    """
    Normalise an incoming scope identifier.

    Returns None for the platform-wide/global scope and the tenant id otherwise.
    Raises ValidationError for anything that cannot be a tenant id.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if value.lower() in _PLATFORM_ALIASES:
        return None
    if not _TENANT_ID_RE.match(value):
        raise ValidationError(f"Invalid scope key: {value!r}")
    return value


def scope_key(tenant_id: Optional[str]) -> str:
    """Scope key used for caching and for the status uniqueness constraint."""
    return tenant_id if tenant_id else PLATFORM_KEY


def record_scope(record) -> Optional[str]:
    """Scope of a record dict; an absent or empty client_id is global."""
    return record.get('client_id') or GLOBAL


def is_visible(caller_scope: Optional[str], record_scope_value: Optional[str]) -> bool:
    if caller_scope is PLATFORM_WIDE or caller_scope == '':
        return True
    if not record_scope_value:
        return True
    return record_scope_value == caller_scope


def visibility_clause(column, caller_scope: Optional[str]):
    """SQL form of is_visible() for pushing the check down into a query."""
    if caller_scope is PLATFORM_WIDE or caller_scope == '':
        return true()
    return or_(column.is_(None), column == '', column == caller_scope)


def filter_visible(records, caller_scope: Optional[str]):
    return [r for r in records if is_visible(caller_scope, record_scope(r))]


def assign_scope(caller_scope: Optional[str], requested) -> Optional[str]:
    """
    Resolve the scope a new or reassigned record should carry.

    Platform callers may write any scope, including global. Tenant callers
    default to their own tenant and may not write into another tenant.
    """
    requested = parse_scope(requested)
    if caller_scope is PLATFORM_WIDE:
        return requested
    if requested is None:
        return caller_scope
    if requested != caller_scope:
        raise ValidationError(
            f"Caller scoped to {caller_scope!r} cannot write records for {requested!r}"
        )
    return requested
