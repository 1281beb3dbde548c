# -*- coding: utf-8 -*-
"""
Call Log Repository
Handles database operations for the calls table
"""
from typing import Dict, Any

from opsconsole.models import CallLog
from .record_repository import ScopedRecordRepository


class CallLogRepository(ScopedRecordRepository):
    model = CallLog
    order_column = 'call_start_time'
    date_column = 'call_start_time'
    search_columns = ('caller_full_name', 'caller_phone_number', 'call_summary')
    entity_name = 'call log'

    def apply_filters(self, query, filters: Dict[str, Any]):
        # 'all' = no filter, 'live' = real calls, 'test' = test calls,
        # anything else is a legacy call_type value such as 'inbound'
        call_type = filters.get('call_type')
        if call_type == 'live':
            query = query.filter(CallLog.is_test_call.is_(False))
        elif call_type == 'test':
            query = query.filter(CallLog.is_test_call.is_(True))
        elif call_type and call_type != 'all':
            query = query.filter(CallLog.call_type == call_type)

        return super().apply_filters(query, filters)
