# -*- coding: utf-8 -*-
"""
Cached record service
Shared read-through cache and scope rules for call logs and leads
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from ..cache import TtlCache, MISS, DEFAULT_TTL_SECONDS
from ..clock import SystemClock
from ..errors import NotFound, ValidationError
from ..scope import (
    PLATFORM_WIDE, assign_scope, filter_visible, is_visible, parse_scope, record_scope
)

logger = logging.getLogger(__name__)


def parse_datetime(value, field_name: str) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError as e:
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp") from e


class CachedRecordService:
    """
    Read/write coordination for one scoped table.

    Only the unfiltered read is cached; every filtered or searched read goes
    straight to the store, because the filter space is unbounded and a cached
    filtered result could not be reliably invalidated. The cache is cleared
    only after a write has succeeded.
    """

    entity_name = 'record'
    writable_fields = frozenset()

    def __init__(self, repository, ttl: float = DEFAULT_TTL_SECONDS, clock=None):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.cache = TtlCache(ttl=ttl, clock=self.clock.monotonic, label=f"{self.entity_name} cache")

    # ========================================
    # READS
    # ========================================

    def get_all(self, caller_scope: Optional[str] = PLATFORM_WIDE,
                force_refresh: bool = False) -> List[Dict[str, Any]]:
        """
        Everything this service holds, narrowed to what the caller may see.

        The cache stores the full unfiltered collection; visibility is applied
        in memory on the way out.
        """
        if not force_refresh:
            cached = self.cache.get()
            if cached is not MISS:
                logger.debug(f"Using cached {self.entity_name} data")
                return filter_visible(cached, caller_scope)

        ticket = self.cache.begin()
        records = self.repository.list_all()
        self.cache.put(records, ticket)
        return filter_visible(records, caller_scope)

    def get_by_scope(self, caller_scope: Optional[str]) -> List[Dict[str, Any]]:
        """Same visibility rule as get_all, evaluated by the store."""
        return self.repository.list_visible(parse_scope(caller_scope))

    def search(self, filters: Optional[Dict[str, Any]],
               caller_scope: Optional[str] = PLATFORM_WIDE) -> List[Dict[str, Any]]:
        """Filtered read; never cached. A client_id filter narrows within what the caller can see."""
        filters = self.normalize_filters(dict(filters or {}))
        return self.repository.list_visible(caller_scope, filters)

    def get_by_id(self, record_id: str, caller_scope: Optional[str] = PLATFORM_WIDE) -> Dict[str, Any]:
        record = self.repository.get_by_id(record_id)
        if record is None or not is_visible(caller_scope, record_scope(record)):
            raise NotFound(f"No {self.entity_name} found with ID {record_id}")
        return record

    # ========================================
    # WRITES
    # ========================================

    def create(self, data: Dict[str, Any], caller_scope: Optional[str] = PLATFORM_WIDE) -> Dict[str, Any]:
        values = self.prepare_create(self._writable(data))
        values['client_id'] = assign_scope(caller_scope, data.get('client_id'))
        record = self.repository.insert(values)
        self.cache.invalidate()
        logger.info(f"Created {self.entity_name} {record.get('id')}")
        return record

    def update(self, record_id: str, changes: Dict[str, Any],
               caller_scope: Optional[str] = PLATFORM_WIDE) -> Dict[str, Any]:
        self.get_by_id(record_id, caller_scope)

        values = self.prepare_update(self._writable(changes))
        # client_id is only touched when the caller reassigns it explicitly
        if 'client_id' in changes:
            values['client_id'] = assign_scope(caller_scope, changes['client_id'])

        record = self.repository.update(record_id, values)
        if record is None:
            raise NotFound(f"No {self.entity_name} found with ID {record_id}")
        self.cache.invalidate()
        logger.info(f"Updated {self.entity_name} {record_id}")
        return record

    def delete(self, record_id: str, caller_scope: Optional[str] = PLATFORM_WIDE) -> None:
        self.get_by_id(record_id, caller_scope)
        if not self.repository.delete(record_id):
            raise NotFound(f"No {self.entity_name} found with ID {record_id}")
        self.cache.invalidate()
        logger.info(f"Deleted {self.entity_name} {record_id}")

    # ========================================
    # HOOKS
    # ========================================

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return values

    def prepare_update(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return values

    def normalize_filters(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        if 'start_date' in filters:
            filters['start_date'] = parse_datetime(filters['start_date'], 'start_date')
        if 'end_date' in filters:
            filters['end_date'] = parse_datetime(filters['end_date'], 'end_date')
        if 'client_id' in filters:
            filters['client_id'] = parse_scope(filters['client_id'])
        return filters

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(data) - self.writable_fields - {'client_id'}
        if unknown:
            raise ValidationError(f"Unknown {self.entity_name} fields: {', '.join(sorted(unknown))}")
        return {k: v for k, v in data.items() if k != 'client_id'}
