# -*- coding: utf-8 -*-
"""
Repository base
Session handling and error translation shared by every ops repository
"""
import logging
from contextlib import contextmanager

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class BaseRepository:
    """
    Wraps a SQLAlchemy session factory.

    Every public repository method opens its own session, performs one round
    trip (or a small fixed number inside one transaction) and closes it, so no
    connection is held between calls.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def session_scope(self, operation: str):
        """
        Context manager for database sessions
        Commits on success, rolls back and raises PersistenceError on failure
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"{operation} failed: {e}")
            raise PersistenceError(f"{operation} failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def dialect_insert(session, table):
        """INSERT construct that supports ON CONFLICT for the bound dialect."""
        if session.get_bind().dialect.name == 'postgresql':
            return postgresql.insert(table)
        return sqlite.insert(table)
