# -*- coding: utf-8 -*-
"""
Shared fixtures for the ops test suites
In-memory SQLite store, a controllable clock and seed helpers
"""
from datetime import datetime, timedelta

from opsconsole.db import make_engine, make_session_factory, init_db
from opsconsole.models import Client, User
from opsconsole.ops.services import OpsServices


class FakeClock:
    """Clock whose wall time and monotonic time move only when told to."""

    def __init__(self, start=datetime(2026, 1, 5, 9, 0, 0)):
        self.current = start
        self.elapsed = 0.0

    def now(self):
        return self.current

    def monotonic(self):
        return self.elapsed

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)
        self.elapsed += seconds


def make_store():
    """Fresh in-memory database with every table created."""
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    return engine, make_session_factory(engine)


def make_services(session_factory, clock, actor='user-1', ttl=300):
    """OpsServices wired to a fixed identity provider; sleeping is a no-op."""
    return OpsServices.build(
        session_factory,
        identity_provider=lambda: actor,
        clock=clock,
        ttl=ttl,
        sleep=lambda seconds: None,
    )


def seed_directory(session_factory):
    session = session_factory()
    try:
        session.add_all([
            Client(id='Acme', name='Acme Motors'),
            Client(id='Beta', name='Beta Dealers'),
            User(id='user-1', email='ops@example.com', first_name='Olivia', last_name='Park',
                 role='admin', client_id=None),
            User(id='user-2', email='acme@example.com', first_name='Sam', last_name='Reed',
                 role='client_admin', client_id='Acme'),
        ])
        session.commit()
    finally:
        session.close()
