# -*- coding: utf-8 -*-
"""
System Message Repository
Handles database operations for the system_messages table
"""
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import or_

from opsconsole.models import SystemMessage
from ..scope import scope_key, visibility_clause
from .audit_repository import AuditRepository
from .record_repository import ScopedRecordRepository

MESSAGE_TABLE = 'system_messages'


def _snapshot(row: SystemMessage) -> Dict[str, Any]:
    return {
        'client_id': row.client_id,
        'type': row.type,
        'message': row.message,
        'expires_at': row.expires_at.isoformat() if row.expires_at else None,
    }


class MessageRepository(ScopedRecordRepository):
    model = SystemMessage
    order_column = 'timestamp'
    date_column = 'timestamp'
    search_columns = ('message',)
    entity_name = 'system message'

    def apply_filters(self, query, filters: Dict[str, Any]):
        if filters.get('type') and filters['type'] != 'all':
            query = query.filter(SystemMessage.type == filters['type'])
        if not filters.get('include_expired') and filters.get('now'):
            query = query.filter(or_(
                SystemMessage.expires_at.is_(None),
                SystemMessage.expires_at > filters['now'],
            ))
        return super().apply_filters(query, filters)

    def page(self, caller_scope: Optional[str], offset: int, limit: int,
             filters: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], int]:
        """One page of visible messages plus the total matching count."""
        with self.session_scope("Fetch system messages page") as session:
            query = session.query(SystemMessage).filter(
                visibility_clause(SystemMessage.client_id, caller_scope)
            )
            query = self.apply_filters(query, filters)
            total = query.count()
            rows = self._ordered(query).offset(offset).limit(limit).all()
            return [row.to_dict() for row in rows], total

    def create(self, values: Dict[str, Any], actor: str, now: datetime) -> Dict[str, Any]:
        with self.session_scope("Create system message") as session:
            row = SystemMessage(**values)
            session.add(row)
            session.flush()
            AuditRepository.append(
                session,
                table_name=MESSAGE_TABLE,
                action='system_message_create',
                scope_key=scope_key(row.client_id),
                client_id=row.client_id,
                user_id=actor,
                record_id=row.id,
                new_values=_snapshot(row),
                occurred_at=now,
            )
            return row.to_dict()

    def create_many(self, rows_values: List[Dict[str, Any]], actor: str,
                    now: datetime) -> List[Dict[str, Any]]:
        with self.session_scope("Bulk create system messages") as session:
            rows = [SystemMessage(**values) for values in rows_values]
            session.add_all(rows)
            session.flush()
            for row in rows:
                AuditRepository.append(
                    session,
                    table_name=MESSAGE_TABLE,
                    action='system_message_create',
                    scope_key=scope_key(row.client_id),
                    client_id=row.client_id,
                    user_id=actor,
                    record_id=row.id,
                    new_values=_snapshot(row),
                    occurred_at=now,
                )
            return [row.to_dict() for row in rows]

    def update_audited(self, message_id: str, changes: Dict[str, Any], actor: str,
                       now: datetime) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
        """Apply changes; returns (before, after) dicts or None when the row is gone."""
        with self.session_scope(f"Update system message {message_id}") as session:
            row = session.get(SystemMessage, message_id)
            if row is None:
                return None
            before = row.to_dict()
            old_values = _snapshot(row)
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            AuditRepository.append(
                session,
                table_name=MESSAGE_TABLE,
                action='system_message_update',
                scope_key=scope_key(row.client_id),
                client_id=row.client_id,
                user_id=actor,
                record_id=row.id,
                old_values=old_values,
                new_values=_snapshot(row),
                occurred_at=now,
            )
            return before, row.to_dict()

    def delete_audited(self, message_id: str, actor: str, now: datetime) -> Optional[Dict[str, Any]]:
        """Delete a message; returns the deleted row or None when it did not exist."""
        with self.session_scope(f"Delete system message {message_id}") as session:
            row = session.get(SystemMessage, message_id)
            if row is None:
                return None
            deleted = row.to_dict()
            AuditRepository.append(
                session,
                table_name=MESSAGE_TABLE,
                action='system_message_delete',
                scope_key=scope_key(row.client_id),
                client_id=row.client_id,
                user_id=actor,
                record_id=row.id,
                old_values=_snapshot(row),
                occurred_at=now,
            )
            session.delete(row)
            return deleted

    def delete_expired(self, now: datetime) -> List[Dict[str, Any]]:
        """Remove expired messages; returns what was removed."""
        with self.session_scope("Clean up expired system messages") as session:
            rows = session.query(SystemMessage).filter(
                SystemMessage.expires_at.isnot(None),
                SystemMessage.expires_at < now,
            ).all()
            removed = [row.to_dict() for row in rows]
            for row in rows:
                session.delete(row)
            return removed

    def type_and_expiry(self, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self.session_scope("Fetch system message statistics") as session:
            query = session.query(SystemMessage.type, SystemMessage.expires_at)
            if client_id:
                query = query.filter(SystemMessage.client_id == client_id)
            return [{'type': t, 'expires_at': e} for t, e in query.all()]
