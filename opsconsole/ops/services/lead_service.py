# -*- coding: utf-8 -*-
"""
Lead Service
Cached access to leads; every read and write enforces client isolation
"""
from typing import Optional, Dict, Any

from opsconsole.models import LEAD_STATUSES, LEAD_SOURCES
from ..errors import ValidationError
from ..scope import PLATFORM_WIDE
from .record_service import CachedRecordService


class LeadService(CachedRecordService):
    entity_name = 'lead'
    writable_fields = frozenset({
        'call_id', 'full_name', 'phone_number', 'email', 'status', 'source', 'notes',
    })

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        for field in ('full_name', 'phone_number'):
            if not values.get(field):
                raise ValidationError(f"{field} is required")
        values = self.prepare_update(values)
        values.setdefault('status', 'new')
        values.setdefault('source', 'other')
        values['created_at'] = self.clock.now()
        return values

    def prepare_update(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if 'status' in values and values['status'] not in LEAD_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(LEAD_STATUSES)}")
        if 'source' in values and values['source'] not in LEAD_SOURCES:
            raise ValidationError(f"source must be one of {', '.join(LEAD_SOURCES)}")
        return values

    def update_status(self, lead_id: str, status: str,
                      caller_scope: Optional[str] = PLATFORM_WIDE) -> Dict[str, Any]:
        return self.update(lead_id, {'status': status}, caller_scope)

    def add_note(self, lead_id: str, note: str,
                 caller_scope: Optional[str] = PLATFORM_WIDE) -> Dict[str, Any]:
        """Append a note on its own line."""
        if not note or not note.strip():
            raise ValidationError("note must not be empty")
        lead = self.get_by_id(lead_id, caller_scope)
        notes = f"{lead['notes']}\n{note}" if lead.get('notes') else note
        return self.update(lead_id, {'notes': notes}, caller_scope)
