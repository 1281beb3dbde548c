# -*- coding: utf-8 -*-
"""
Directory Repository
Batched display-name lookups for users and clients
"""
from typing import Dict, Iterable, Optional

from opsconsole.models import User, Client
from ..errors import PersistenceError, PartialDataError
from .base_repository import BaseRepository


class DirectoryRepository(BaseRepository):
    """
    One query per entity type for a whole page or history slice, never one
    per row. A failure here is a PartialDataError: the primary data is fine,
    only the decoration is missing.
    """

    def user_names(self, user_ids: Iterable[Optional[str]]) -> Dict[str, str]:
        ids = sorted({u for u in user_ids if u})
        if not ids:
            return {}
        try:
            with self.session_scope("Fetch user names") as session:
                rows = session.query(User).filter(User.id.in_(ids)).all()
                return {row.id: row.full_name for row in rows}
        except PersistenceError as e:
            raise PartialDataError(f"User lookup failed: {e.message}", ids=ids) from e

    def client_names(self, client_ids: Iterable[Optional[str]]) -> Dict[str, str]:
        ids = sorted({c for c in client_ids if c})
        if not ids:
            return {}
        try:
            with self.session_scope("Fetch client names") as session:
                rows = session.query(Client.id, Client.name).filter(Client.id.in_(ids)).all()
                return {client_id: name for client_id, name in rows}
        except PersistenceError as e:
            raise PartialDataError(f"Client lookup failed: {e.message}", ids=ids) from e