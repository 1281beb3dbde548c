# -*- coding: utf-8 -*-
"""
Scoped Record Repository
Generic CRUD for tables whose rows carry a client_id scope
"""
from typing import Optional, Dict, Any, List

from sqlalchemy import or_

from ..scope import visibility_clause
from .base_repository import BaseRepository


class ScopedRecordRepository(BaseRepository):
    """
    Subclasses set `model`, `order_column` and `search_columns` and may
    extend `apply_filters` with table-specific filters.
    """

    model = None
    order_column = 'created_at'
    date_column = 'created_at'
    search_columns = ()
    entity_name = 'record'

    def _ordered(self, query):
        return query.order_by(getattr(self.model, self.order_column).desc())

    def apply_filters(self, query, filters: Dict[str, Any]):
        if filters.get('client_id'):
            query = query.filter(self.model.client_id == filters['client_id'])
        column = getattr(self.model, self.date_column)
        if filters.get('start_date'):
            query = query.filter(column >= filters['start_date'])
        if filters.get('end_date'):
            query = query.filter(column <= filters['end_date'])
        if filters.get('search') and self.search_columns:
            pattern = f"%{filters['search']}%"
            query = query.filter(or_(*[
                getattr(self.model, name).ilike(pattern) for name in self.search_columns
            ]))
        return query

    def list_all(self) -> List[Dict[str, Any]]:
        """Every row, newest first. This is the read the service caches."""
        with self.session_scope(f"Fetch {self.entity_name}s") as session:
            rows = self._ordered(session.query(self.model)).all()
            return [row.to_dict() for row in rows]

    def list_visible(self, caller_scope: Optional[str],
                     filters: Optional[Dict[str, Any]] = None,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Rows visible to the caller with the scope check pushed into SQL."""
        with self.session_scope(f"Fetch {self.entity_name}s") as session:
            query = session.query(self.model).filter(
                visibility_clause(self.model.client_id, caller_scope)
            )
            if filters:
                query = self.apply_filters(query, filters)
            query = self._ordered(query)
            if limit is not None:
                query = query.limit(limit)
            return [row.to_dict() for row in query.all()]

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self.session_scope(f"Fetch {self.entity_name} {record_id}") as session:
            row = session.get(self.model, record_id)
            return row.to_dict() if row else None

    def insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        with self.session_scope(f"Create {self.entity_name}") as session:
            row = self.model(**values)
            session.add(row)
            session.flush()
            return row.to_dict()

    def update(self, record_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self.session_scope(f"Update {self.entity_name} {record_id}") as session:
            row = session.get(self.model, record_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            return row.to_dict()

    def delete(self, record_id: str) -> bool:
        with self.session_scope(f"Delete {self.entity_name} {record_id}") as session:
            deleted = session.query(self.model).filter(self.model.id == record_id).delete(
                synchronize_session=False
            )
            return deleted > 0
