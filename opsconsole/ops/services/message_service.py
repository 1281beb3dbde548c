# -*- coding: utf-8 -*-
"""
System Message Service
Broadcast messages with a paginated, scope-keyed read cache
"""
import logging
from typing import Optional, Dict, Any, List

from opsconsole.models import MESSAGE_TYPES
from ..cache import PagedCache, MISS, DEFAULT_TTL_SECONDS
from ..clock import SystemClock
from ..errors import NotFound, PartialDataError, ValidationError
from ..scope import (
    PLATFORM_KEY, PLATFORM_WIDE, assign_scope, is_visible, parse_scope, record_scope, scope_key
)
from .record_service import parse_datetime

logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'
GLOBAL_CLIENT_NAME = 'All clients'


class MessageService:
    """
    Messages are browsed a page at a time. Each (page, page_size, scope_key)
    has its own TTL entry. A write drops every cached page that could contain
    the record: its tenant's pages and the platform-wide pages, or everything
    for a global message since every tenant sees those.
    """

    def __init__(self, message_repo, directory_repo, identity, clock=None,
                 ttl: float = DEFAULT_TTL_SECONDS, default_page_size: int = 5,
                 max_page_size: int = 100):
        self.message_repo = message_repo
        self.directory_repo = directory_repo
        self.identity = identity
        self.clock = clock or SystemClock()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.page_cache = PagedCache(ttl=ttl, clock=self.clock.monotonic, label='system message pages')

    # ========================================
    # READS
    # ========================================

    def get_page(self, page: int = 1, page_size: Optional[int] = None, scope=None,
                 force_refresh: bool = False, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        One page of messages visible to `scope`, joined with publisher and
        client names. Filtered reads are never cached.
        """
        page_size = page_size or self.default_page_size
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive")
        if page_size > self.max_page_size:
            raise ValidationError(f"page_size must not exceed {self.max_page_size}")
        caller_scope = parse_scope(scope)
        key = PagedCache.make_key(page, page_size, scope_key(caller_scope))

        if filters:
            return self._fetch_page(caller_scope, page, page_size, self._normalize_filters(filters))

        if not force_refresh:
            cached = self.page_cache.get(key)
            if cached is not MISS:
                logger.debug(f"Using cached system messages page {key}")
                return cached

        ticket = self.page_cache.begin()
        result = self._fetch_page(caller_scope, page, page_size, {})
        self.page_cache.put(key, result, ticket)
        return result

    def get_visible(self, scope=None) -> List[Dict[str, Any]]:
        """All unexpired messages for a caller, global ones included."""
        caller_scope = parse_scope(scope)
        rows = self.message_repo.list_visible(caller_scope, {'now': self.clock.now()})
        return [self._decorate(row) for row in rows]

    def get_by_id(self, message_id: str, scope=PLATFORM_WIDE) -> Dict[str, Any]:
        row = self.message_repo.get_by_id(message_id)
        if row is None or not is_visible(parse_scope(scope), record_scope(row)):
            raise NotFound(f"No system message found with ID {message_id}")
        return self._decorate(row)

    def get_statistics(self, scope=None) -> Dict[str, Any]:
        now = self.clock.now()
        rows = self.message_repo.type_and_expiry(parse_scope(scope))
        stats = {'total': len(rows), 'byType': {}, 'active': 0, 'expired': 0}
        for row in rows:
            stats['byType'][row['type']] = stats['byType'].get(row['type'], 0) + 1
            if row['expires_at'] and row['expires_at'] < now:
                stats['expired'] += 1
            else:
                stats['active'] += 1
        return stats

    # ========================================
    # WRITES
    # ========================================

    def create(self, data: Dict[str, Any], scope=PLATFORM_WIDE, actor: Optional[str] = None) -> Dict[str, Any]:
        caller_scope = parse_scope(scope)
        values = self._validate(data, creating=True)
        values['client_id'] = assign_scope(caller_scope, data.get('client_id'))
        actor = self.identity.resolve(actor)

        now = self.clock.now()
        values.update(timestamp=now, created_by=actor, created_at=now, updated_at=now)
        row = self.message_repo.create(values, actor, now)
        self._invalidate_for(row['client_id'])
        logger.info(f"System message {row['id']} created by {actor}")
        return row

    def update(self, message_id: str, changes: Dict[str, Any], scope=PLATFORM_WIDE,
               actor: Optional[str] = None) -> Dict[str, Any]:
        caller_scope = parse_scope(scope)
        self.get_by_id(message_id, caller_scope)
        values = self._validate(changes, creating=False)
        if 'client_id' in changes:
            values['client_id'] = assign_scope(caller_scope, changes['client_id'])
        actor = self.identity.resolve(actor)

        now = self.clock.now()
        values.update(updated_by=actor, updated_at=now)
        result = self.message_repo.update_audited(message_id, values, actor, now)
        if result is None:
            raise NotFound(f"No system message found with ID {message_id}")
        before, after = result
        self._invalidate_for(before['client_id'])
        if after['client_id'] != before['client_id']:
            self._invalidate_for(after['client_id'])
        return after

    def delete(self, message_id: str, scope=PLATFORM_WIDE, actor: Optional[str] = None) -> None:
        caller_scope = parse_scope(scope)
        self.get_by_id(message_id, caller_scope)
        actor = self.identity.resolve(actor)

        deleted = self.message_repo.delete_audited(message_id, actor, self.clock.now())
        if deleted is None:
            raise NotFound(f"No system message found with ID {message_id}")
        self._invalidate_for(deleted['client_id'])
        logger.info(f"System message {message_id} deleted by {actor}")

    def bulk_create(self, message: str, message_type: str, client_ids: List[str],
                    actor: Optional[str] = None, expires_at=None) -> List[Dict[str, Any]]:
        """Same message for several clients in one transaction."""
        if not client_ids:
            return []
        base = self._validate({'message': message, 'type': message_type, 'expires_at': expires_at},
                              creating=True)
        tenants = [parse_scope(c) for c in client_ids]
        actor = self.identity.resolve(actor)

        now = self.clock.now()
        rows_values = [
            dict(base, client_id=tenant, timestamp=now, created_by=actor, created_at=now, updated_at=now)
            for tenant in tenants
        ]
        rows = self.message_repo.create_many(rows_values, actor, now)
        for tenant in set(tenants):
            self._invalidate_for(tenant)
        return rows

    def cleanup_expired(self) -> int:
        removed = self.message_repo.delete_expired(self.clock.now())
        for client_id in {row['client_id'] for row in removed}:
            self._invalidate_for(client_id)
        if removed:
            logger.info(f"Removed {len(removed)} expired system messages")
        return len(removed)

    # ========================================
    # HELPERS
    # ========================================

    def _fetch_page(self, caller_scope, page, page_size, filters) -> Dict[str, Any]:
        filters = dict(filters, now=self.clock.now())
        rows, total = self.message_repo.page(caller_scope, (page - 1) * page_size, page_size, filters)
        items = self._join_names(rows)
        return {
            'items': items,
            'totalCount': total,
            'hasMore': page * page_size < total,
            'page': page,
            'pageSize': page_size,
            'totalPages': -(-total // page_size),
        }

    def _join_names(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Decorate a page with names using one lookup per entity type."""
        try:
            users = self.directory_repo.user_names(row.get('created_by') for row in rows)
        except PartialDataError as e:
            logger.warning(f"Publisher names unavailable: {e.message}")
            users = {}
        try:
            clients = self.directory_repo.client_names(row.get('client_id') for row in rows)
        except PartialDataError as e:
            logger.warning(f"Client names unavailable: {e.message}")
            clients = {}
        return [self._decorate(row, users, clients) for row in rows]

    def _decorate(self, row, users=None, clients=None) -> Dict[str, Any]:
        item = dict(row)
        expires_at = parse_datetime(row.get('expires_at'), 'expires_at')
        item['is_expired'] = bool(expires_at and self.clock.now() > expires_at)
        item['is_global'] = not row.get('client_id')
        if users is not None:
            item['created_by_name'] = users.get(row.get('created_by')) or UNKNOWN
        if clients is not None:
            item['client_name'] = GLOBAL_CLIENT_NAME if item['is_global'] else (
                clients.get(row['client_id']) or UNKNOWN
            )
        return item

    def _invalidate_for(self, client_id: Optional[str]) -> None:
        if client_id:
            dropped = self.page_cache.invalidate_scopes(scope_key(client_id), PLATFORM_KEY)
        else:
            dropped = self.page_cache.invalidate_all()
        logger.debug(f"Invalidated {dropped} cached message pages for {scope_key(client_id)}")

    def _normalize_filters(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        filters = dict(filters)
        if filters.get('type') not in (None, 'all') and filters['type'] not in MESSAGE_TYPES:
            raise ValidationError(f"type must be one of {', '.join(MESSAGE_TYPES)}")
        if 'client_id' in filters:
            filters['client_id'] = parse_scope(filters['client_id'])
        return filters

    @staticmethod
    def _validate(data: Dict[str, Any], creating: bool) -> Dict[str, Any]:
        allowed = {'type', 'message', 'expires_at', 'client_id'}
        unknown = set(data) - allowed
        if unknown:
            raise ValidationError(f"Unknown system message fields: {', '.join(sorted(unknown))}")

        values = {}
        if 'type' in data or creating:
            message_type = data.get('type') or 'info'
            if message_type not in MESSAGE_TYPES:
                raise ValidationError(f"type must be one of {', '.join(MESSAGE_TYPES)}")
            values['type'] = message_type
        if 'message' in data or creating:
            text = (data.get('message') or '').strip()
            if not text:
                raise ValidationError("message is required")
            values['message'] = text
        if 'expires_at' in data:
            values['expires_at'] = parse_datetime(data['expires_at'], 'expires_at')
        return values
