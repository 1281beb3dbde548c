# -*- coding: utf-8 -*-
"""
Lead Repository
Handles database operations for the leads table
"""
from typing import Dict, Any

from opsconsole.models import Lead
from .record_repository import ScopedRecordRepository


class LeadRepository(ScopedRecordRepository):
    model = Lead
    search_columns = ('full_name', 'phone_number', 'email')
    entity_name = 'lead'

    def apply_filters(self, query, filters: Dict[str, Any]):
        if filters.get('status'):
            query = query.filter(Lead.status == filters['status'])
        if filters.get('source'):
            query = query.filter(Lead.source == filters['source'])
        return super().apply_filters(query, filters)
