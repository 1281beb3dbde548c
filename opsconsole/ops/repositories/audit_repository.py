# -*- coding: utf-8 -*-
"""
Audit Repository
Append-only access to the audit_logs table
"""
from datetime import datetime
from typing import Optional, Dict, Any, List

from opsconsole.models import AuditLog
from .base_repository import BaseRepository

ACTION_LABELS = {
    'create': 'created',
    'update': 'updated',
    'delete': 'deleted',
    'agent_status_change': 'changed agent status',
    'system_message_create': 'created system message',
    'system_message_update': 'updated system message',
    'system_message_delete': 'deleted system message',
}


def summarize(entry: Dict[str, Any]) -> str:
    """Human-readable one-liner for an audit entry."""
    action = ACTION_LABELS.get(entry['action'], entry['action'])
    table = entry['table_name'].replace('_', ' ')
    if entry.get('record_id'):
        return f"User {action} {table} record {entry['record_id']}"
    return f"User {action} {table}"


class AuditRepository(BaseRepository):

    @staticmethod
    def append(session, *, table_name: str, action: str, scope_key: str,
               client_id: Optional[str], user_id: Optional[str], occurred_at: datetime,
               record_id: Optional[str] = None, old_values: Optional[Dict[str, Any]] = None,
               new_values: Optional[Dict[str, Any]] = None) -> AuditLog:
        """
        Add an entry to an open session. The entry commits or rolls back with
        the mutation it describes.
        """
        entry = AuditLog(
            table_name=table_name,
            action=action,
            scope_key=scope_key,
            client_id=client_id,
            user_id=user_id,
            record_id=record_id,
            old_values=old_values,
            new_values=new_values,
            created_at=occurred_at,
        )
        session.add(entry)
        return entry

    def latest(self, table_name: str, scope_key: str, limit: int,
               action: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest-first slice of the trail for one scope key."""
        if limit <= 0:
            return []
        with self.session_scope(f"Fetch {table_name} audit trail") as session:
            query = session.query(AuditLog).filter(
                AuditLog.table_name == table_name,
                AuditLog.scope_key == scope_key,
            )
            if action:
                query = query.filter(AuditLog.action == action)
            rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
            entries = [row.to_dict() for row in rows]
            for entry in entries:
                entry['summary'] = summarize(entry)
            return entries

    def since(self, table_name: str, scope_key: str, start: datetime,
              action: Optional[str] = None) -> List[Dict[str, Any]]:
        """Oldest-first entries at or after `start`."""
        with self.session_scope(f"Fetch {table_name} audit window") as session:
            query = session.query(AuditLog).filter(
                AuditLog.table_name == table_name,
                AuditLog.scope_key == scope_key,
                AuditLog.created_at >= start,
            )
            if action:
                query = query.filter(AuditLog.action == action)
            rows = query.order_by(AuditLog.created_at.asc(), AuditLog.id.asc()).all()
            return [row.to_dict() for row in rows]

    def last_before(self, table_name: str, scope_key: str, before: datetime,
                    action: Optional[str] = None) -> Optional[Dict[str, Any]]:
        with self.session_scope(f"Fetch {table_name} audit entry") as session:
            query = session.query(AuditLog).filter(
                AuditLog.table_name == table_name,
                AuditLog.scope_key == scope_key,
                AuditLog.created_at < before,
            )
            if action:
                query = query.filter(AuditLog.action == action)
            row = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).first()
            return row.to_dict() if row else None

    def count(self, table_name: str, scope_key: Optional[str] = None) -> int:
        with self.session_scope(f"Count {table_name} audit entries") as session:
            query = session.query(AuditLog).filter(AuditLog.table_name == table_name)
            if scope_key is not None:
                query = query.filter(AuditLog.scope_key == scope_key)
            return query.count()
