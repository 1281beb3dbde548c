# -*- coding: utf-8 -*-
"""
Status history reconstruction

The audit trail only records completed transitions, so the live status row
is always prepended as the current entry. Everything else comes from audit
rows, newest first.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

UNKNOWN_USER = 'Unknown user'
SYSTEM_NAME = 'System'

_MISSING = object()


@dataclass
class FieldChange:
    field: str
    before: Optional[str]
    after: Optional[str]

    def to_dict(self):
        return {'field': self.field, 'before': self.before, 'after': self.after}


@dataclass
class HistoryEntry:
    id: Any
    scope_key: str
    status: str
    message: Optional[str]
    occurred_at: datetime
    actor_id: Optional[str]
    actor_name: str
    is_current: bool = False
    changes: List[FieldChange] = field(default_factory=list)
    summary: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'scope_key': self.scope_key,
            'status': self.status,
            'message': self.message,
            'occurred_at': self.occurred_at.isoformat() if self.occurred_at else None,
            'actor_id': self.actor_id,
            'actor_name': self.actor_name,
            'is_current': self.is_current,
            'changes': [c.to_dict() for c in self.changes],
            'summary': self.summary,
        }


def render_value(value) -> Optional[str]:
    """Display form of a snapshot value; objects render as their JSON."""
    if value is _MISSING or value is None:
        return None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def diff_snapshots(old_values: Optional[Dict[str, Any]],
                   new_values: Optional[Dict[str, Any]]) -> List[FieldChange]:
    """Field-level diff of two snapshots, reporting changed fields only."""
    old_values = old_values or {}
    new_values = new_values or {}

    keys = list(old_values)
    keys += [k for k in new_values if k not in old_values]

    changes = []
    for key in keys:
        before = old_values.get(key, _MISSING)
        after = new_values.get(key, _MISSING)
        if before == after:
            continue
        changes.append(FieldChange(field=key, before=render_value(before), after=render_value(after)))
    return changes


def as_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def actor_display_name(actor_id: Optional[str], names: Dict[str, str]) -> str:
    if not actor_id or actor_id == 'system':
        return SYSTEM_NAME
    return names.get(actor_id) or UNKNOWN_USER


def build_history(current: Dict[str, Any], audit_rows: List[Dict[str, Any]],
                  names: Dict[str, str]) -> List[HistoryEntry]:
    """
    Assemble the history list from the live status row and audit rows.

    `audit_rows` must already be newest first; `names` maps actor ids to
    display names and may be missing any of them.
    """
    entries = [HistoryEntry(
        id=current.get('id'),
        scope_key=current['scope_key'],
        status=current['status'],
        message=current.get('message'),
        occurred_at=as_datetime(current['last_updated']),
        actor_id=current.get('updated_by'),
        actor_name=actor_display_name(current.get('updated_by'), names),
        is_current=True,
    )]

    for row in audit_rows:
        new_values = row.get('new_values') or {}
        entries.append(HistoryEntry(
            id=row['id'],
            scope_key=row['scope_key'],
            status=new_values.get('status', 'unknown'),
            message=new_values.get('message'),
            occurred_at=as_datetime(row['created_at']),
            actor_id=row.get('user_id'),
            actor_name=actor_display_name(row.get('user_id'), names),
            changes=diff_snapshots(row.get('old_values'), row.get('new_values')),
            summary=row.get('summary'),
        ))
    return entries
