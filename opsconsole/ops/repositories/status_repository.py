# -*- coding: utf-8 -*-
"""
Agent Status Repository
Handles database operations for the agent_status table

Rows are keyed by scope_key ('platform' or a client id) and only ever written
through INSERT ... ON CONFLICT (scope_key), so the store resolves concurrent
writers to exactly one current row per key.
"""
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import or_

from opsconsole.models import AgentStatus
from .audit_repository import AuditRepository
from .base_repository import BaseRepository

STATUS_TABLE = 'agent_status'
STATUS_ACTION = 'agent_status_change'


class StatusRepository(BaseRepository):

    def get(self, scope_key: str) -> Optional[Dict[str, Any]]:
        with self.session_scope(f"Fetch agent status {scope_key}") as session:
            row = session.query(AgentStatus).filter(AgentStatus.scope_key == scope_key).first()
            return row.to_dict() if row else None

    def list_all(self) -> List[Dict[str, Any]]:
        with self.session_scope("Fetch agent statuses") as session:
            rows = session.query(AgentStatus).order_by(AgentStatus.last_updated.desc()).all()
            return [row.to_dict() for row in rows]

    def ensure(self, scope_key: str, client_id: Optional[str], status: str,
               message: Optional[str], actor: str, now: datetime) -> Tuple[Dict[str, Any], bool]:
        """
        Create the row for `scope_key` unless one exists.

        Uses ON CONFLICT DO NOTHING so two first reads racing each other end up
        with the same single row. Returns (row, created).
        """
        with self.session_scope(f"Initialise agent status {scope_key}") as session:
            stmt = self.dialect_insert(session, AgentStatus.__table__).values(
                scope_key=scope_key,
                client_id=client_id,
                status=status,
                message=message,
                updated_by=actor,
                last_updated=now,
                created_at=now,
            ).on_conflict_do_nothing(index_elements=['scope_key'])
            created = session.execute(stmt).rowcount > 0
            row = session.query(AgentStatus).filter(AgentStatus.scope_key == scope_key).one()
            return row.to_dict(), created

    def upsert(self, scope_key: str, client_id: Optional[str], status: str,
               message: Optional[str], actor: str, now: datetime) -> Tuple[Dict[str, Any], bool]:
        """
        Insert or overwrite the row for `scope_key` and audit the transition.

        The conflict update only fires when status or message actually differ,
        so a retried identical call changes nothing and writes no audit entry.
        The audit entry shares the upsert's transaction: it exists only if the
        mutation committed. Returns (row, changed).
        """
        with self.session_scope(f"Update agent status {scope_key}") as session:
            previous = session.query(AgentStatus).filter(AgentStatus.scope_key == scope_key).first()
            old_values = {'status': previous.status, 'message': previous.message} if previous else None

            insert = self.dialect_insert(session, AgentStatus.__table__)
            stmt = insert.values(
                scope_key=scope_key,
                client_id=client_id,
                status=status,
                message=message,
                updated_by=actor,
                last_updated=now,
                created_at=now,
            ).on_conflict_do_update(
                index_elements=['scope_key'],
                set_={
                    'client_id': insert.excluded.client_id,
                    'status': insert.excluded.status,
                    'message': insert.excluded.message,
                    'updated_by': insert.excluded.updated_by,
                    'last_updated': insert.excluded.last_updated,
                },
                where=or_(
                    AgentStatus.__table__.c.status != insert.excluded.status,
                    AgentStatus.__table__.c.message.is_distinct_from(insert.excluded.message),
                ),
            ).returning(AgentStatus.__table__.c.id)

            written = session.execute(stmt).first()
            # Drop anything the session loaded before the statement ran
            session.expire_all()
            row = session.query(AgentStatus).filter(AgentStatus.scope_key == scope_key).one()

            if written is None:
                return row.to_dict(), False

            AuditRepository.append(
                session,
                table_name=STATUS_TABLE,
                action=STATUS_ACTION,
                scope_key=scope_key,
                client_id=client_id,
                user_id=actor,
                record_id=scope_key,
                old_values=old_values,
                new_values={'status': status, 'message': message},
                occurred_at=now,
            )
            return row.to_dict(), True
