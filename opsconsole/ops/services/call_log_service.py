# -*- coding: utf-8 -*-
"""
Call Log Service
Cached access to call logs with tenant isolation
"""
from typing import Optional, Dict, Any, List

from opsconsole.models import CALL_TYPES
from ..errors import ValidationError
from ..scope import PLATFORM_WIDE
from .record_service import CachedRecordService, parse_datetime

CALL_TYPE_FILTERS = ('all', 'live', 'test') + CALL_TYPES


class CallLogService(CachedRecordService):
    entity_name = 'call log'
    writable_fields = frozenset({
        'call_type', 'is_test_call', 'caller_full_name', 'caller_phone_number',
        'call_summary', 'transcript', 'call_duration_seconds',
        'call_start_time', 'call_end_time',
    })

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        now = self.clock.now()
        values = self.prepare_update(values)
        values.setdefault('call_type', 'inbound')
        values['transcript'] = values.get('transcript') or ''
        values['call_duration_seconds'] = values.get('call_duration_seconds') or 0
        values['call_start_time'] = values.get('call_start_time') or now
        values['call_end_time'] = values.get('call_end_time') or now
        values['created_at'] = now
        return values

    def prepare_update(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if 'call_type' in values and values['call_type'] not in CALL_TYPES:
            raise ValidationError(f"call_type must be one of {', '.join(CALL_TYPES)}")
        for field in ('call_start_time', 'call_end_time'):
            if field in values:
                values[field] = parse_datetime(values[field], field)
        return values

    def normalize_filters(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        call_type = filters.get('call_type')
        if call_type and call_type not in CALL_TYPE_FILTERS:
            raise ValidationError(f"Unsupported call type filter: {call_type}")
        return super().normalize_filters(filters)

    def get_recent(self, limit: int = 10,
                   caller_scope: Optional[str] = PLATFORM_WIDE) -> List[Dict[str, Any]]:
        if limit < 1:
            raise ValidationError("limit must be positive")
        return self.repository.list_visible(caller_scope, limit=limit)

    def get_by_type(self, call_type: str,
                    caller_scope: Optional[str] = PLATFORM_WIDE) -> List[Dict[str, Any]]:
        return self.search({'call_type': call_type}, caller_scope)
